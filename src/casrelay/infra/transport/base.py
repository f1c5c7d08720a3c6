from __future__ import annotations

import abc
import asyncio
import logging
import types
from collections.abc import Mapping
from typing import Any, Self
from urllib.parse import urljoin

from casrelay.infra.http_defaults import DEFAULT_USER_HEADERS
from casrelay.schemas import TransportConfig

from .errors import TransportError
from .response import RawResponse

logger = logging.getLogger(__name__)


class BaseTransport(abc.ABC):
    """Pooled HTTP client shared by every login attempt in the process.

    A transport knows nothing about CAS. It sends a request, waits for the
    full response and hands back status, headers and body untouched. It never
    follows redirects and never keeps cookies between requests, so nothing
    one caller receives can leak into another caller's request.
    """

    def __init__(self, cfg: TransportConfig | None = None, **kwargs: Any) -> None:
        """Initializes the transport using the provided configuration.

        Args:
            cfg: Optional configuration object defining transport behavior.
            **kwargs: Additional parameters reserved for backend-specific
                initialization.
        """
        cfg = cfg or TransportConfig()

        self._base_url = cfg.base_url
        self._timeout = cfg.timeout
        self._max_connections = cfg.max_connections
        self._keepalive_expiry = cfg.keepalive_expiry
        self._verify_ssl = cfg.verify_ssl
        self._http2 = cfg.http2
        self._trust_env = cfg.trust_env
        self._proxy = cfg.proxy
        self._client: Any = None

        self._headers = (
            cfg.headers.copy()
            if cfg.headers is not None
            else DEFAULT_USER_HEADERS.copy()
        )
        if cfg.user_agent:
            self._headers["User-Agent"] = cfg.user_agent

    @abc.abstractmethod
    async def init(self) -> None:
        """Creates the underlying connection pool. Calling it twice is a no-op."""
        ...

    @abc.abstractmethod
    async def close(self) -> None:
        """Releases the connection pool. Calling it twice is a no-op."""
        ...

    @property
    @abc.abstractmethod
    def is_open(self) -> bool:
        """Whether the pool is initialized and not yet closed."""
        ...

    @abc.abstractmethod
    async def _request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None,
        data: Mapping[str, str] | None,
    ) -> RawResponse:
        """Performs one request with the backend client.

        Backend exceptions are left to propagate; :meth:`send` translates them
        through :meth:`_translate_error`.
        """
        ...

    @abc.abstractmethod
    def _translate_error(self, exc: Exception) -> TransportError | None:
        """Maps a backend exception onto a :class:`TransportError`.

        Returns:
            The typed error, or ``None`` if ``exc`` is not a network failure.
        """
        ...

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        data: Mapping[str, str] | None = None,
    ) -> RawResponse:
        """Sends a request and returns the complete response.

        The whole exchange, including reading the body, is bounded by the
        configured timeout.

        Args:
            method: HTTP method.
            url: Absolute URL, or a path resolved against ``base_url``.
            headers: Extra request headers, merged over the defaults.
            data: Form fields, sent ``application/x-www-form-urlencoded``.

        Returns:
            RawResponse: Status, all headers and the decompressed body.

        Raises:
            TransportError: On timeout, connect, TLS or other network failure.
            RuntimeError: If the transport has not been initialized.
        """
        if not self.is_open:
            raise RuntimeError("Transport is not initialized or has been shut down.")

        target = self.resolve(url)
        try:
            async with asyncio.timeout(self._timeout):
                resp = await self._request(method, target, headers, data)
        except TimeoutError as e:
            raise TransportError(
                "timeout", f"{method} {target} timed out after {self._timeout}s"
            ) from e
        except Exception as e:
            err = self._translate_error(e)
            if err is None:
                raise
            raise err from e

        logger.debug("%s %s -> %d", method, target, resp.status)
        return resp

    async def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> RawResponse:
        return await self.send("GET", url, headers=headers)

    async def post(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        data: Mapping[str, str] | None = None,
    ) -> RawResponse:
        return await self.send("POST", url, headers=headers, data=data)

    def resolve(self, url: str) -> str:
        """Resolves a possibly relative URL against ``base_url``."""
        if url.startswith(("http://", "https://")):
            return url
        return urljoin(self._base_url, url)

    @property
    def headers(self) -> dict[str, str]:
        """Returns a copy of the default request headers.

        Returns:
            dict[str, str]: Header names mapped to their values.
        """
        return self._headers.copy()

    @property
    def timeout(self) -> float:
        return self._timeout

    async def __aenter__(self) -> Self:
        await self.init()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        await self.close()
