from __future__ import annotations

from typing import Any

import pytest

from casrelay.infra.transport import create_transport
from casrelay.infra.transport.base import BaseTransport
from casrelay.schemas import TransportConfig

SUPPORTED_BACKENDS: set[str] = {"aiohttp", "httpx"}


def safe_create(backend: str, cfg: TransportConfig, **kw: Any) -> BaseTransport:
    """
    Create backend instance, skipping test if backend dependency is missing.
    """
    try:
        return create_transport(backend, cfg, **kw)
    except ImportError as e:
        pytest.skip(f"backend {backend!r} not installed: {e}")
