from dataclasses import dataclass, field
from typing import Literal

FailureKind = Literal[
    "transport_error",
    "session_init_error",
    "invalid_credentials",
    "upstream_error",
    "token_missing",
    "cancelled",
]
TransportErrorKind = Literal[
    "timeout",
    "connect_failed",
    "tls_error",
    "upstream_unreachable",
]
LoginPhase = Literal["session", "credentials"]


@dataclass(frozen=True, slots=True)
class Credentials:
    """A username/password pair for a single login attempt.

    Both values are excluded from ``repr`` so they cannot end up in logs or
    tracebacks by accident.
    """

    username: str = field(repr=False)
    password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class LoginSuccess:
    """The handshake produced a usable auth cookie.

    Attributes:
        token: Value of the auth cookie. Never empty.
    """

    token: str = field(repr=False)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class LoginFailure:
    """The handshake did not produce a token.

    Attributes:
        kind: Failure category.
        detail: Short human-readable summary, safe to hand to callers.
        phase: Handshake phase in which the failure happened, if any.
        transport_error: Transport sub-kind when ``kind`` is
            ``"transport_error"``.
    """

    kind: FailureKind
    detail: str
    phase: LoginPhase | None = None
    transport_error: TransportErrorKind | None = None

    @property
    def ok(self) -> bool:
        return False


LoginOutcome = LoginSuccess | LoginFailure
