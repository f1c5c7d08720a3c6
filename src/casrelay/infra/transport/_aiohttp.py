from collections.abc import Mapping

import aiohttp

from .base import BaseTransport
from .errors import TransportError
from .response import RawResponse


class AiohttpTransport(BaseTransport):
    """Transport backend implemented with aiohttp.

    aiohttp speaks HTTP/1.1 only; the ``http2`` setting is ignored.
    """

    _client: aiohttp.ClientSession | None

    async def init(self) -> None:
        if self._client and not self._client.closed:
            return

        timeout = aiohttp.ClientTimeout(total=self._timeout)
        connector = aiohttp.TCPConnector(
            ssl=self._verify_ssl,
            limit_per_host=self._max_connections,
            keepalive_timeout=self._keepalive_expiry,
        )

        self._client = aiohttp.ClientSession(
            connector=connector,
            timeout=timeout,
            headers=self._headers,
            cookie_jar=aiohttp.DummyCookieJar(),
            trust_env=self._trust_env,
            auto_decompress=True,
        )

    async def close(self) -> None:
        if self._client and not self._client.closed:
            await self._client.close()
        self._client = None

    @property
    def is_open(self) -> bool:
        return self._client is not None and not self._client.closed

    async def _request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None,
        data: Mapping[str, str] | None,
    ) -> RawResponse:
        assert self._client is not None
        async with self._client.request(
            method,
            url,
            headers=dict(headers) if headers else None,
            data=dict(data) if data is not None else None,
            allow_redirects=False,
            proxy=self._proxy,
        ) as r:
            content = await r.read()
            return RawResponse(
                content=content,
                headers=list(r.headers.items()),
                status=r.status,
                url=str(r.url),
                encoding=r.charset or "utf-8",
            )

    def _translate_error(self, exc: Exception) -> TransportError | None:
        if isinstance(exc, aiohttp.ClientSSLError):
            return TransportError("tls_error", f"TLS handshake failed: {exc}")
        if isinstance(exc, aiohttp.ClientConnectorError):
            return TransportError("connect_failed", f"connection failed: {exc}")
        if isinstance(exc, aiohttp.ClientError):
            return TransportError("upstream_unreachable", f"upstream unreachable: {exc}")
        return None
