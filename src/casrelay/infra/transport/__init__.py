"""
Upstream HTTP transport for casrelay's infrastructure layer.

This module provides a factory for the pooled transport backends and
exports the base abstractions shared by them.
"""

__all__ = [
    "create_transport",
    "BaseTransport",
    "Headers",
    "RawResponse",
    "TransportError",
]

from typing import Any

from casrelay.schemas import TransportConfig

from .base import BaseTransport
from .errors import TransportError
from .response import Headers, RawResponse


def create_transport(
    backend: str,
    cfg: TransportConfig | None = None,
    **kwargs: Any,
) -> BaseTransport:
    """Creates and returns a transport backend instance.

    Supported backends:
        * "httpx"
        * "aiohttp"

    Args:
        backend: Name of the backend to use.
        cfg: Optional transport configuration to pass to the backend.
        **kwargs: Additional keyword arguments forwarded directly to the
            backend constructor.

    Returns:
        BaseTransport: An uninitialized transport for the selected backend.

    Raises:
        ValueError: If the specified backend name is not supported.
    """
    match backend:
        case "httpx":
            from ._httpx import HttpxTransport

            return HttpxTransport(cfg, **kwargs)
        case "aiohttp":
            from ._aiohttp import AiohttpTransport

            return AiohttpTransport(cfg, **kwargs)
        case _:
            raise ValueError(f"Unsupported backend: {backend!r}")
