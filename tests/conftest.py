"""Shared fixtures: pinned clock, seeded randomness, in-memory store, fast bcrypt."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from flowboard.auth.challenges import ChallengeStore
from flowboard.auth.passwords import PasswordHasher, make_context
from flowboard.auth.recovery import RecoveryCodeManager
from flowboard.auth.service import AdminAuthService
from flowboard.store.memory import InMemoryAdminStore

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "ChangeThisPassword123!"
START = datetime(2025, 11, 8, 10, 0, 15, tzinfo=UTC)


class FrozenClock:
    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class SeededRandom:
    def __init__(self, seed: int = 1234) -> None:
        self._random = random.Random(seed)

    def token_bytes(self, n: int) -> bytes:
        return self._random.randbytes(n)


class RecordingEmitter:
    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def __call__(self, category, severity, event_type, message, *, account_id=None, context=None):
        self.events.append(
            {
                "category": category,
                "severity": severity,
                "event_type": event_type,
                "message": message,
                "account_id": account_id,
                "context": context or {},
            }
        )
        return len(self.events)

    def types(self) -> list[str]:
        return [e["event_type"] for e in self.events]


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def rng() -> SeededRandom:
    return SeededRandom()


@pytest.fixture
def crypt_context():
    # minimum bcrypt cost keeps the suite fast
    return make_context(rounds=4)


@pytest.fixture
def store() -> InMemoryAdminStore:
    return InMemoryAdminStore()


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def service(store, clock, rng, crypt_context, emitter) -> AdminAuthService:
    return AdminAuthService(
        store,
        passwords=PasswordHasher(crypt_context),
        recovery=RecoveryCodeManager(store, rng, crypt_context),
        challenges=ChallengeStore(store, clock, rng),
        clock=clock,
        random_source=rng,
        emit=emitter,
    )


@pytest.fixture
async def admin(service):
    return await service.create_admin(ADMIN_EMAIL, "Admin User", ADMIN_PASSWORD)
