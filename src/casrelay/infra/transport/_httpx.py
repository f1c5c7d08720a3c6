import socket
from collections.abc import Mapping
from http.cookiejar import CookieJar, DefaultCookiePolicy

import httpx

from .base import BaseTransport
from .errors import TransportError, caused_by_tls
from .response import RawResponse

_KEEPALIVE_IDLE = 60
_KEEPALIVE_INTERVAL = 60


def _socket_options() -> list[tuple[int, int, int]]:
    """TCP_NODELAY plus keepalive probes, where the platform exposes them."""
    opts = [
        (socket.IPPROTO_TCP, socket.TCP_NODELAY, 1),
        (socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1),
    ]
    if hasattr(socket, "TCP_KEEPIDLE"):
        opts.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, _KEEPALIVE_IDLE))
    if hasattr(socket, "TCP_KEEPINTVL"):
        opts.append((socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, _KEEPALIVE_INTERVAL))
    return opts


def _refusing_cookies() -> CookieJar:
    """A client cookie jar that neither stores nor sends anything.

    Passed as a bare jar: httpx copies ``httpx.Cookies`` into a new jar and
    would drop the policy.
    """
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


class HttpxTransport(BaseTransport):
    """Transport backend based on httpx with HTTP/2 and tuned sockets."""

    _client: httpx.AsyncClient | None

    async def init(self) -> None:
        if self._client and not self._client.is_closed:
            return
        limits = httpx.Limits(
            max_keepalive_connections=self._max_connections,
            keepalive_expiry=self._keepalive_expiry,
        )
        transport = httpx.AsyncHTTPTransport(
            http2=self._http2,
            verify=self._verify_ssl,
            limits=limits,
            trust_env=self._trust_env,
            proxy=self._proxy,
            socket_options=_socket_options(),
        )

        self._client = httpx.AsyncClient(
            transport=transport,
            timeout=self._timeout,
            headers=self._headers,
            cookies=_refusing_cookies(),
            follow_redirects=False,
            trust_env=self._trust_env,
        )

    async def close(self) -> None:
        """
        Shutdown and clean up any resources.
        """
        if self._client is None:
            return
        if not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    @property
    def is_open(self) -> bool:
        return self._client is not None and not self._client.is_closed

    async def _request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None,
        data: Mapping[str, str] | None,
    ) -> RawResponse:
        assert self._client is not None
        r = await self._client.request(
            method,
            url,
            headers=dict(headers) if headers else None,
            data=dict(data) if data is not None else None,
        )
        return RawResponse(
            content=r.content,
            headers=r.headers.multi_items(),
            status=r.status_code,
            url=str(r.url),
            encoding=r.encoding or "utf-8",
        )

    def _translate_error(self, exc: Exception) -> TransportError | None:
        if isinstance(exc, httpx.TimeoutException):
            return TransportError("timeout", f"request timed out: {exc}")
        if isinstance(exc, httpx.ConnectError):
            if caused_by_tls(exc):
                return TransportError("tls_error", f"TLS handshake failed: {exc}")
            return TransportError("connect_failed", f"connection failed: {exc}")
        if isinstance(exc, httpx.TransportError):
            return TransportError("upstream_unreachable", f"upstream unreachable: {exc}")
        return None
