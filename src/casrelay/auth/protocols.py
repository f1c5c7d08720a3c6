"""
Protocol definitions for login services consumed by the RPC layer.
"""

import asyncio
from typing import Protocol

from casrelay.schemas import LoginOutcome


class Authenticator(Protocol):
    """Anything that can turn a username/password pair into a login outcome."""

    async def login(
        self,
        username: str,
        password: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> LoginOutcome:
        """Runs one login attempt.

        Implementations must return an outcome for every expected failure
        instead of raising.
        """
        ...
