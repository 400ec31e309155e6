"""Single-use recovery codes that stand in for a TOTP code.

Codes are 5 random bytes rendered as ``XXXXX-XXXXX`` (40 bits), shown to the
operator once, and persisted only as bcrypt hashes.
"""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from passlib.context import CryptContext

from flowboard.auth.passwords import make_context
from flowboard.clock import RandomSource, SystemRandom
from flowboard.models import RecoveryCode
from flowboard.store.base import AdminStore

logger = logging.getLogger(__name__)

CODE_BYTES = 5
DEFAULT_BATCH_SIZE = 8


def format_code(raw: bytes) -> str:
    digits = raw.hex().upper()
    return f"{digits[:5]}-{digits[5:]}"


def normalize(candidate: str | None) -> str:
    """Trim and upper-case user input; ``abcde-12345`` matches ``ABCDE-12345``."""
    return (candidate or "").strip().upper()


class RecoveryCodeManager:
    def __init__(
        self,
        store: AdminStore,
        random_source: RandomSource | None = None,
        context: CryptContext | None = None,
    ) -> None:
        self._store = store
        self._rng = random_source or SystemRandom()
        self._context = context or make_context()

    def generate_batch(self, count: int = DEFAULT_BATCH_SIZE) -> list[RecoveryCode]:
        codes = []
        for _ in range(count):
            plaintext = format_code(self._rng.token_bytes(CODE_BYTES))
            codes.append(RecoveryCode(plaintext=plaintext, hash=self._context.hash(plaintext)))
        return codes

    def find_match(self, candidate: str | None, hashes: tuple[str, ...] | list[str]) -> str | None:
        """Return the stored hash that ``candidate`` matches, if any."""
        attempt = normalize(candidate)
        if not attempt:
            return None
        for code_hash in hashes:
            try:
                if self._context.verify(attempt, code_hash):
                    return code_hash
            except ValueError:
                logger.warning("Skipping unreadable recovery code hash")
        return None

    async def consume(self, account_id: UUID, candidate: str | None) -> bool:
        """Use up a recovery code of the account's active factor.

        Returns False on empty input, no match, or when a concurrent request
        removed the same code first.
        """
        if not normalize(candidate):
            return False
        account = await self._store.get_account(account_id)
        if account is None or account.two_factor.active is None:
            return False
        hashes = account.two_factor.active.recovery_code_hashes
        matched = await asyncio.to_thread(self.find_match, candidate, hashes)
        if matched is None:
            return False
        removed = await self._store.remove_recovery_code(account_id, matched)
        if removed:
            remaining = len(hashes) - 1
            logger.info("Recovery code used for account %s (%d left)", account_id, remaining)
        return removed
