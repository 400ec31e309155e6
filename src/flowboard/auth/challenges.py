"""Short-lived, single-use login challenges bridging password and second factor."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from uuid import UUID

from flowboard.clock import Clock, RandomSource, SystemClock, SystemRandom
from flowboard.models import LoginChallenge
from flowboard.store.base import AdminStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)


def parse_challenge_id(value: str | UUID | None) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        return None


class ChallengeStore:
    def __init__(
        self,
        store: AdminStore,
        clock: Clock | None = None,
        random_source: RandomSource | None = None,
        ttl: timedelta = DEFAULT_TTL,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._rng = random_source or SystemRandom()
        self.ttl = ttl

    def _new_id(self) -> UUID:
        # 122 random bits; UUID form keeps the column type and wire format stable.
        return uuid.UUID(bytes=self._rng.token_bytes(16), version=4)

    async def create(self, account_id: UUID, ttl: timedelta | None = None) -> UUID:
        now = self._clock.now()
        challenge = LoginChallenge(
            id=self._new_id(),
            account_id=account_id,
            created_at=now,
            expires_at=now + (ttl or self.ttl),
        )
        await self._store.insert_challenge(challenge)
        logger.debug("Issued login challenge for account %s", account_id)
        return challenge.id

    async def fetch_valid(self, challenge_id: str | UUID | None) -> LoginChallenge | None:
        """The challenge if it exists, is unconsumed and unexpired; else None.

        Unknown, expired and consumed ids are indistinguishable to the caller.
        """
        cid = parse_challenge_id(challenge_id)
        if cid is None:
            return None
        challenge = await self._store.get_challenge(cid)
        if challenge is None or not challenge.is_valid_at(self._clock.now()):
            return None
        return challenge

    async def consume(self, challenge_id: UUID) -> bool:
        """Mark the challenge used. Only one concurrent caller gets True."""
        return await self._store.consume_challenge(challenge_id, self._clock.now())

    async def reap(self, before: datetime | None = None) -> int:
        """Delete challenges that expired at or before ``before`` (default: now)."""
        removed = await self._store.delete_expired_challenges(before or self._clock.now())
        if removed:
            logger.info("Reaped %d expired login challenges", removed)
        return removed
