"""
Cookie parsing and the attempt-scoped cookie store used by the CAS handshake.
"""

__all__ = ["parse_set_cookie", "SessionCookieStore"]

from collections.abc import Iterable, Iterator


def parse_set_cookie(header: str) -> tuple[str, str] | None:
    """Extract the name/value pair from a single ``Set-Cookie`` header value.

    Attributes such as ``Path``, ``Domain``, ``Expires`` or ``HttpOnly`` are
    dropped. Surrounding double quotes around the value are removed.

    Args:
        header: Raw ``Set-Cookie`` header value.

    Returns:
        ``(name, value)`` or ``None`` if the header carries no usable pair.
    """
    pair = header.split(";", 1)[0]
    if "=" not in pair:
        return None
    name, value = pair.split("=", 1)
    name, value = name.strip(), value.strip()
    if not name:
        return None
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
    return name, value


class SessionCookieStore:
    """Ordered cookie name/value mapping owned by exactly one login attempt.

    The store ignores cookie attributes: a cookie set again under the same
    name replaces the earlier value and keeps its original position, which
    matches cookie-jar replacement semantics for replay purposes.
    """

    __slots__ = ("_cookies",)

    def __init__(self) -> None:
        self._cookies: dict[str, str] = {}

    def set(self, name: str, value: str) -> None:
        self._cookies[name] = value

    def get(self, name: str) -> str | None:
        return self._cookies.get(name)

    def update_from_headers(self, set_cookie_headers: Iterable[str]) -> list[str]:
        """Insert every cookie found in the given ``Set-Cookie`` values.

        Args:
            set_cookie_headers: Raw ``Set-Cookie`` header values.

        Returns:
            Names of the cookies that were stored, in header order.
        """
        names: list[str] = []
        for header in set_cookie_headers:
            parsed = parse_set_cookie(header)
            if parsed is None:
                continue
            name, value = parsed
            self._cookies[name] = value
            names.append(name)
        return names

    def header_value(self) -> str:
        """Render the store as a ``Cookie`` request header value."""
        return "; ".join(f"{k}={v}" for k, v in self._cookies.items())

    def clear(self) -> None:
        self._cookies.clear()

    def names(self) -> list[str]:
        return list(self._cookies)

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def __iter__(self) -> Iterator[str]:
        return iter(self._cookies)

    def __len__(self) -> int:
        return len(self._cookies)

    def __repr__(self) -> str:
        # values are session secrets
        return f"<SessionCookieStore names={list(self._cookies)}>"
