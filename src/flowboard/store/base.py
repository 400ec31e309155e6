"""Storage contract for admin accounts and login challenges.

Every mutating method that guards a single-use resource (challenge
consumption, recovery-code removal, enrollment promotion) is a conditional
write: it reports whether *this* call made the change, so two racing
requests can never both succeed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from flowboard.models import AdminAccount, AdminRole, LoginChallenge, PendingFactor


class StorageUnavailable(Exception):
    """The backing datastore could not be reached or failed mid-operation."""


class DuplicateAccount(Exception):
    pass


class AdminStore(Protocol):
    # --- accounts ---

    async def get_account(self, account_id: UUID) -> AdminAccount | None: ...

    async def get_account_by_email(self, email: str) -> AdminAccount | None:
        """Case-insensitive lookup."""
        ...

    async def create_account(
        self, email: str, name: str, role: AdminRole, password_hash: str
    ) -> AdminAccount: ...

    async def set_pending_factor(self, account_id: UUID, pending: PendingFactor) -> None:
        """Replace any pending enrollment; active 2FA fields are untouched."""
        ...

    async def promote_pending_factor(
        self, account_id: UUID, expected_secret: str, confirmed_at: datetime
    ) -> bool:
        """Atomically make the pending factor active and clear it.

        Only succeeds if the pending secret still equals ``expected_secret``.
        """
        ...

    async def clear_two_factor(self, account_id: UUID) -> None:
        """Disable 2FA: drop active and pending factors and all recovery codes."""
        ...

    async def remove_recovery_code(self, account_id: UUID, code_hash: str) -> bool:
        """Remove one active recovery-code hash if it is still present."""
        ...

    # --- challenges ---

    async def insert_challenge(self, challenge: LoginChallenge) -> None: ...

    async def get_challenge(self, challenge_id: UUID) -> LoginChallenge | None: ...

    async def consume_challenge(self, challenge_id: UUID, now: datetime) -> bool:
        """Mark consumed if unconsumed and unexpired at ``now``."""
        ...

    async def delete_expired_challenges(self, before: datetime) -> int: ...

    # --- health ---

    async def ping(self) -> bool: ...
