from __future__ import annotations

import ssl

from casrelay.schemas import TransportErrorKind


class TransportError(Exception):
    """A request could not be completed at the network level.

    Attributes:
        kind: One of ``timeout``, ``connect_failed``, ``tls_error`` or
            ``upstream_unreachable``.
    """

    def __init__(self, kind: TransportErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind: TransportErrorKind = kind

    def __repr__(self) -> str:
        return f"TransportError(kind={self.kind!r}, message={str(self)!r})"


def caused_by_tls(exc: BaseException) -> bool:
    """Whether an :class:`ssl.SSLError` appears anywhere in the exception chain."""
    seen: set[int] = set()
    cur: BaseException | None = exc
    while cur is not None and id(cur) not in seen:
        if isinstance(cur, ssl.SSLError):
            return True
        seen.add(id(cur))
        cur = cur.__cause__ or cur.__context__
    return False
