"""In-process store for tests and local development."""

from __future__ import annotations

import asyncio
from datetime import datetime
from uuid import UUID, uuid4

from flowboard.models import (
    ActiveFactor,
    AdminAccount,
    AdminRole,
    LoginChallenge,
    PendingFactor,
    TwoFactorState,
)
from flowboard.store.base import DuplicateAccount


class InMemoryAdminStore:
    """Dict-backed ``AdminStore``.

    Records are immutable models; every write swaps a whole record under one
    lock, which gives the same all-or-nothing visibility as a single UPDATE.
    """

    def __init__(self) -> None:
        self._accounts: dict[UUID, AdminAccount] = {}
        self._challenges: dict[UUID, LoginChallenge] = {}
        self._lock = asyncio.Lock()

    # --- accounts ---

    async def get_account(self, account_id: UUID) -> AdminAccount | None:
        return self._accounts.get(account_id)

    async def get_account_by_email(self, email: str) -> AdminAccount | None:
        wanted = email.strip().lower()
        for account in self._accounts.values():
            if account.email.lower() == wanted:
                return account
        return None

    async def create_account(
        self, email: str, name: str, role: AdminRole, password_hash: str
    ) -> AdminAccount:
        async with self._lock:
            if await self.get_account_by_email(email) is not None:
                raise DuplicateAccount(email)
            account = AdminAccount(
                id=uuid4(),
                email=email.strip(),
                name=name,
                role=role,
                password_hash=password_hash,
            )
            self._accounts[account.id] = account
            return account

    async def put_account(self, account: AdminAccount) -> None:
        """Insert or overwrite an account as-is (fixtures)."""
        async with self._lock:
            self._accounts[account.id] = account

    async def delete_account(self, account_id: UUID) -> None:
        """Remove an account and, like the FK cascade, its challenges."""
        async with self._lock:
            self._accounts.pop(account_id, None)
            for cid in [c.id for c in self._challenges.values() if c.account_id == account_id]:
                del self._challenges[cid]

    async def set_pending_factor(self, account_id: UUID, pending: PendingFactor) -> None:
        async with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return
            state = account.two_factor.model_copy(update={"pending": pending})
            self._accounts[account_id] = account.model_copy(update={"two_factor": state})

    async def promote_pending_factor(
        self, account_id: UUID, expected_secret: str, confirmed_at: datetime
    ) -> bool:
        async with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return False
            pending = account.two_factor.pending
            if pending is None or pending.secret != expected_secret:
                return False
            state = TwoFactorState(
                active=ActiveFactor(
                    secret=pending.secret,
                    recovery_code_hashes=pending.recovery_code_hashes,
                    confirmed_at=confirmed_at,
                ),
                pending=None,
            )
            self._accounts[account_id] = account.model_copy(update={"two_factor": state})
            return True

    async def clear_two_factor(self, account_id: UUID) -> None:
        async with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return
            self._accounts[account_id] = account.model_copy(update={"two_factor": TwoFactorState()})

    async def remove_recovery_code(self, account_id: UUID, code_hash: str) -> bool:
        async with self._lock:
            account = self._accounts.get(account_id)
            if account is None or account.two_factor.active is None:
                return False
            active = account.two_factor.active
            if code_hash not in active.recovery_code_hashes:
                return False
            remaining = tuple(h for h in active.recovery_code_hashes if h != code_hash)
            state = account.two_factor.model_copy(
                update={"active": active.model_copy(update={"recovery_code_hashes": remaining})}
            )
            self._accounts[account_id] = account.model_copy(update={"two_factor": state})
            return True

    # --- challenges ---

    async def insert_challenge(self, challenge: LoginChallenge) -> None:
        async with self._lock:
            self._challenges[challenge.id] = challenge

    async def get_challenge(self, challenge_id: UUID) -> LoginChallenge | None:
        return self._challenges.get(challenge_id)

    async def consume_challenge(self, challenge_id: UUID, now: datetime) -> bool:
        async with self._lock:
            challenge = self._challenges.get(challenge_id)
            if challenge is None or not challenge.is_valid_at(now):
                return False
            self._challenges[challenge_id] = challenge.model_copy(update={"consumed_at": now})
            return True

    async def delete_expired_challenges(self, before: datetime) -> int:
        async with self._lock:
            stale = [c.id for c in self._challenges.values() if c.expires_at <= before]
            for cid in stale:
                del self._challenges[cid]
            return len(stale)

    async def ping(self) -> bool:
        return True
