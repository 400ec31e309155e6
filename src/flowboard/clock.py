"""Injectable sources of time and randomness.

Everything that reads the wall clock or draws secret bytes goes through one
of these, so tests can pin time and make generated secrets reproducible.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""
        ...


class RandomSource(Protocol):
    def token_bytes(self, n: int) -> bytes:
        """Return ``n`` bytes suitable for secrets."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)


class SystemRandom:
    """CSPRNG backed by the OS (``secrets``)."""

    def token_bytes(self, n: int) -> bytes:
        return secrets.token_bytes(n)
