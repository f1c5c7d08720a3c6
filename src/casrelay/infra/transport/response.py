"""
Backend-agnostic response objects returned by the transport layer.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterator, Mapping, MutableMapping, Sequence


class Headers(MutableMapping[str, str]):
    """A case-insensitive, multi-value HTTP header container.

    This class stores header keys in lowercase and supports multiple values
    per header field. Assignment overwrites all values, while `add()` appends
    to the existing list. Repeated ``Set-Cookie`` fields are kept apart, never
    folded into one comma-joined value.

    Args:
        headers: Optional initial header mapping or sequence of key-value pairs.
    """

    __slots__ = ("_store",)

    def __init__(
        self,
        headers: Mapping[str, str] | Sequence[tuple[str, str]] | None = None,
    ) -> None:
        self._store: dict[str, list[str]] = defaultdict(list)
        if not headers:
            return

        if isinstance(headers, Mapping):
            for k, v in headers.items():
                self.add(k, v)
        else:
            for k, v in headers:
                self.add(k, v)

    def add(self, key: str, value: str | None) -> None:
        self._store[key.lower()].append(value or "")

    def get_all(self, key: str) -> list[str]:
        return list(self._store.get(key.lower(), []))

    def __getitem__(self, key: str) -> str:
        vals = self._store.get(key.lower())
        if not vals:
            raise KeyError(key)
        return vals[0]

    def __setitem__(self, key: str, value: str) -> None:
        self._store[key.lower()] = [value]

    def __delitem__(self, key: str) -> None:
        del self._store[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return key.lower() in self._store

    def __repr__(self) -> str:
        items_preview = ", ".join(f"{k}={len(v)}" for k, v in self._store.items())
        return f"<Headers ({items_preview})>"


class RawResponse:
    """A complete, uninterpreted upstream response.

    Args:
        content: Raw (decompressed) response body.
        headers: Header mapping or sequence of header pairs.
        status: HTTP status code.
        url: URL the response was received from.
        encoding: Default text encoding used when decoding the body.
    """

    __slots__ = ("content", "headers", "status", "url", "encoding")

    def __init__(
        self,
        *,
        content: bytes,
        headers: Mapping[str, str] | Sequence[tuple[str, str]] | None = None,
        status: int = 200,
        url: str = "",
        encoding: str = "utf-8",
    ) -> None:
        self.content = content
        self.headers = Headers(headers)
        self.status = status
        self.url = url
        self.encoding = encoding

    @property
    def text(self) -> str:
        """Returns the body decoded with the response encoding.

        Undecodable bytes are replaced rather than raising.
        """
        try:
            return self.content.decode(self.encoding, errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")

    @property
    def set_cookies(self) -> list[str]:
        """All raw ``Set-Cookie`` header values, in received order."""
        return self.headers.get_all("set-cookie")

    @property
    def location(self) -> str | None:
        return self.headers.get("location")

    @property
    def ok(self) -> bool:
        """Indicates whether the status code represents a successful response.

        Returns:
            bool: True if the status code is less than 400.
        """
        return self.status < 400

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400 and "location" in self.headers

    def __repr__(self) -> str:
        return f"<RawResponse status={self.status} len={len(self.content)}>"
