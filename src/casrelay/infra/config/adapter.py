from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from casrelay.schemas import (
    AppConfig,
    ServerConfig,
    TransportConfig,
    UpstreamConfig,
)

ENV_BIND_ADDR = "CASRELAY_BIND_ADDR"
ENV_AUTH_TOKEN = "CASRELAY_AUTH_TOKEN"
ENV_LOG_LEVEL = "CASRELAY_LOG_LEVEL"


class ConfigAdapter:
    """High-level accessor for the service configuration.

    All configuration resolution follows the order:

    **environment -> settings file section -> built-in defaults**

    Args:
        config (dict[str, Any]): Fully loaded configuration mapping with
            optional ``server``, ``upstream`` and ``transport`` blocks.
        env (Mapping[str, str] | None): Environment to read overrides from.
            Defaults to ``os.environ``.
    """

    def __init__(
        self,
        config: dict[str, Any],
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config: dict[str, Any] = dict(config)
        self._env: Mapping[str, str] = os.environ if env is None else env

    def get_config(self) -> dict[str, Any]:
        """Return the full raw configuration mapping.

        Returns:
            dict[str, Any]: The stored configuration.
        """
        return self._config

    def get_server_config(self) -> ServerConfig:
        """Build a ServerConfig, applying environment overrides.

        Returns:
            ServerConfig: Resolved server settings.

        Raises:
            ValueError: If ``CASRELAY_BIND_ADDR`` is not ``host:port``.
        """
        cfg = self._section("server")
        host = str(cfg.get("host", "0.0.0.0"))
        port = int(cfg.get("port", 50052))

        bind = self._env.get(ENV_BIND_ADDR)
        if bind:
            host, port = self._split_bind_addr(bind)

        return ServerConfig(
            host=host,
            port=port,
            auth_token=self._env.get(ENV_AUTH_TOKEN) or cfg.get("auth_token") or None,
            log_level=str(
                self._env.get(ENV_LOG_LEVEL) or cfg.get("log_level", "INFO")
            ).upper(),
        )

    def get_upstream_config(self) -> UpstreamConfig:
        """Build an UpstreamConfig from the ``upstream`` block.

        Returns:
            UpstreamConfig: Resolved portal settings.
        """
        cfg = self._section("upstream")
        default = UpstreamConfig()

        statuses = cfg.get("invalid_credential_statuses")
        markers = cfg.get("failure_markers")
        extra_form = cfg.get("extra_form")

        return UpstreamConfig(
            login_path=cfg.get("login_path", default.login_path),
            post_path=cfg.get("post_path") or None,
            auth_cookie_name=cfg.get("auth_cookie_name", default.auth_cookie_name),
            max_redirects=int(cfg.get("max_redirects", default.max_redirects)),
            phase_timeout=(
                float(cfg["phase_timeout"]) if cfg.get("phase_timeout") else None
            ),
            require_session_cookie=bool(
                cfg.get("require_session_cookie", default.require_session_cookie)
            ),
            default_execution=str(
                cfg.get("default_execution", default.default_execution)
            ),
            extra_form=(
                {str(k): str(v) for k, v in extra_form.items()}
                if isinstance(extra_form, dict)
                else default.extra_form
            ),
            invalid_credential_statuses=(
                frozenset(int(s) for s in statuses)
                if statuses is not None
                else default.invalid_credential_statuses
            ),
            failure_markers=(
                tuple(str(m) for m in markers)
                if markers is not None
                else default.failure_markers
            ),
            failure_xpath=cfg.get("failure_xpath") or None,
        )

    def get_transport_config(self) -> TransportConfig:
        """Build a TransportConfig from the ``transport`` block.

        Returns:
            TransportConfig: Resolved transport settings.
        """
        cfg = self._section("transport")
        default = TransportConfig()

        return TransportConfig(
            backend=cfg.get("backend", default.backend),
            base_url=cfg.get("base_url", default.base_url),
            timeout=float(cfg.get("timeout", default.timeout)),
            max_connections=int(cfg.get("max_connections", default.max_connections)),
            keepalive_expiry=float(
                cfg.get("keepalive_expiry", default.keepalive_expiry)
            ),
            user_agent=cfg.get("user_agent") or None,
            headers=cfg.get("headers") or None,
            verify_ssl=bool(cfg.get("verify_ssl", default.verify_ssl)),
            http2=bool(cfg.get("http2", default.http2)),
            trust_env=bool(cfg.get("trust_env", default.trust_env)),
            proxy=cfg.get("proxy") or None,
        )

    def get_app_config(self) -> AppConfig:
        """Build the complete AppConfig.

        Returns:
            AppConfig: Server, upstream and transport settings.
        """
        return AppConfig(
            server=self.get_server_config(),
            upstream=self.get_upstream_config(),
            transport=self.get_transport_config(),
        )

    def _section(self, name: str) -> dict[str, Any]:
        """Return a config block or an empty dict."""
        section = self._config.get(name) or {}
        return section if isinstance(section, dict) else {}

    @staticmethod
    def _split_bind_addr(value: str) -> tuple[str, int]:
        host, sep, port = value.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"Invalid bind address {value!r}, expected host:port")
        return host.strip("[]") or "0.0.0.0", int(port)
