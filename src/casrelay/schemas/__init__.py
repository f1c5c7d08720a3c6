"""
Data contracts and type definitions.
"""

__all__ = [
    "AppConfig",
    "ServerConfig",
    "TransportConfig",
    "UpstreamConfig",
    "Credentials",
    "FailureKind",
    "LoginFailure",
    "LoginOutcome",
    "LoginPhase",
    "LoginSuccess",
    "TransportErrorKind",
]

from .auth import (
    Credentials,
    FailureKind,
    LoginFailure,
    LoginOutcome,
    LoginPhase,
    LoginSuccess,
    TransportErrorKind,
)
from .config import (
    AppConfig,
    ServerConfig,
    TransportConfig,
    UpstreamConfig,
)
