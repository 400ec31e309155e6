"""PostgreSQL-backed ``AdminStore`` on the shared psycopg pool."""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, ParamSpec, TypeVar
from uuid import UUID, uuid4

import psycopg
import psycopg.errors
from cryptography.exceptions import InvalidTag

from flowboard import crypto, db
from flowboard.models import (
    ActiveFactor,
    AdminAccount,
    AdminRole,
    LoginChallenge,
    PendingFactor,
    TwoFactorState,
)
from flowboard.store.base import DuplicateAccount, StorageUnavailable

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

_ACCOUNT_COLUMNS = """id, email, name, role, password_hash,
       two_factor_enabled, two_factor_secret, two_factor_recovery_codes,
       two_factor_temp_secret, two_factor_temp_recovery_codes,
       two_factor_confirmed_at"""


def _storage_errors(fn: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    """Translate any database error into ``StorageUnavailable``."""

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return await fn(*args, **kwargs)
        except psycopg.Error as e:
            logger.error("Database error during %s: %s", fn.__name__, e)
            raise StorageUnavailable(fn.__name__) from e

    return wrapper


def _seal(secret: str) -> str:
    try:
        return crypto.encrypt(secret)
    except (RuntimeError, ValueError) as e:
        logger.exception("Cannot encrypt two-factor secret")
        raise StorageUnavailable("encrypt") from e


def _open(token: str | None) -> str | None:
    """Decrypt a secret column; a missing or wrong master key is an outage."""
    try:
        return crypto.decrypt_optional(token)
    except (RuntimeError, ValueError, InvalidTag) as e:
        logger.exception("Cannot decrypt two-factor secret")
        raise StorageUnavailable("decrypt") from e


def _row_to_account(row: dict[str, Any]) -> AdminAccount:
    active = None
    secret = _open(row["two_factor_secret"])
    if row["two_factor_enabled"] and secret is not None:
        active = ActiveFactor(
            secret=secret,
            recovery_code_hashes=tuple(row["two_factor_recovery_codes"] or ()),
            confirmed_at=row["two_factor_confirmed_at"],
        )
    pending = None
    temp_secret = _open(row["two_factor_temp_secret"])
    if temp_secret is not None:
        pending = PendingFactor(
            secret=temp_secret,
            recovery_code_hashes=tuple(row["two_factor_temp_recovery_codes"] or ()),
        )
    return AdminAccount(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        role=AdminRole(row["role"]),
        password_hash=row["password_hash"],
        two_factor=TwoFactorState(active=active, pending=pending),
    )


def _row_to_challenge(row: dict[str, Any]) -> LoginChallenge:
    return LoginChallenge(
        id=row["id"],
        account_id=row["admin_user_id"],
        created_at=row["created_at"],
        expires_at=row["expires_at"],
        consumed_at=row["consumed_at"],
    )


class PostgresAdminStore:
    """Requires ``flowboard.db.init_pool()`` to have been awaited."""

    # --- accounts ---

    @_storage_errors
    async def get_account(self, account_id: UUID) -> AdminAccount | None:
        row = await db.execute_one(
            f"SELECT {_ACCOUNT_COLUMNS} FROM admin_users WHERE id = %s",
            (account_id,),
        )
        return _row_to_account(row) if row else None

    @_storage_errors
    async def get_account_by_email(self, email: str) -> AdminAccount | None:
        row = await db.execute_one(
            f"SELECT {_ACCOUNT_COLUMNS} FROM admin_users WHERE lower(email) = lower(%s)",
            (email.strip(),),
        )
        return _row_to_account(row) if row else None

    @_storage_errors
    async def create_account(
        self, email: str, name: str, role: AdminRole, password_hash: str
    ) -> AdminAccount:
        try:
            row = await db.execute_one(
                f"""INSERT INTO admin_users (id, email, name, role, password_hash)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING {_ACCOUNT_COLUMNS}""",
                (uuid4(), email.strip(), name, str(role), password_hash),
            )
        except psycopg.errors.UniqueViolation as e:
            raise DuplicateAccount(email) from e
        assert row is not None
        return _row_to_account(row)

    @_storage_errors
    async def set_pending_factor(self, account_id: UUID, pending: PendingFactor) -> None:
        await db.execute(
            """UPDATE admin_users
               SET two_factor_temp_secret = %s,
                   two_factor_temp_recovery_codes = %s
               WHERE id = %s""",
            (_seal(pending.secret), list(pending.recovery_code_hashes), account_id),
        )

    @_storage_errors
    async def promote_pending_factor(
        self, account_id: UUID, expected_secret: str, confirmed_at: datetime
    ) -> bool:
        # Ciphertexts use random nonces, so the comparison happens in Python
        # under a row lock rather than in the WHERE clause.
        async with db.get_conn() as conn:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    await cur.execute(
                        "SELECT two_factor_temp_secret FROM admin_users WHERE id = %s FOR UPDATE",
                        (account_id,),
                    )
                    row = await cur.fetchone()
                    if not row or row["two_factor_temp_secret"] is None:
                        return False
                    if _open(row["two_factor_temp_secret"]) != expected_secret:
                        return False
                    await cur.execute(
                        """UPDATE admin_users
                           SET two_factor_secret = two_factor_temp_secret,
                               two_factor_enabled = true,
                               two_factor_confirmed_at = %s,
                               two_factor_recovery_codes = two_factor_temp_recovery_codes,
                               two_factor_temp_secret = NULL,
                               two_factor_temp_recovery_codes = ARRAY[]::text[]
                           WHERE id = %s""",
                        (confirmed_at, account_id),
                    )
                    return True

    @_storage_errors
    async def clear_two_factor(self, account_id: UUID) -> None:
        await db.execute(
            """UPDATE admin_users
               SET two_factor_enabled = false,
                   two_factor_secret = NULL,
                   two_factor_recovery_codes = ARRAY[]::text[],
                   two_factor_temp_secret = NULL,
                   two_factor_temp_recovery_codes = ARRAY[]::text[]
               WHERE id = %s""",
            (account_id,),
        )

    @_storage_errors
    async def remove_recovery_code(self, account_id: UUID, code_hash: str) -> bool:
        rows = await db.execute(
            """UPDATE admin_users
               SET two_factor_recovery_codes = array_remove(two_factor_recovery_codes, %s)
               WHERE id = %s
                 AND two_factor_enabled
                 AND %s = ANY(two_factor_recovery_codes)
               RETURNING id""",
            (code_hash, account_id, code_hash),
        )
        return bool(rows)

    # --- challenges ---

    @_storage_errors
    async def insert_challenge(self, challenge: LoginChallenge) -> None:
        await db.execute(
            """INSERT INTO admin_login_challenges
               (id, admin_user_id, created_at, expires_at, consumed_at)
               VALUES (%s, %s, %s, %s, %s)""",
            (
                challenge.id,
                challenge.account_id,
                challenge.created_at,
                challenge.expires_at,
                challenge.consumed_at,
            ),
        )

    @_storage_errors
    async def get_challenge(self, challenge_id: UUID) -> LoginChallenge | None:
        row = await db.execute_one(
            """SELECT id, admin_user_id, created_at, expires_at, consumed_at
               FROM admin_login_challenges WHERE id = %s""",
            (challenge_id,),
        )
        return _row_to_challenge(row) if row else None

    @_storage_errors
    async def consume_challenge(self, challenge_id: UUID, now: datetime) -> bool:
        rows = await db.execute(
            """UPDATE admin_login_challenges
               SET consumed_at = %s
               WHERE id = %s AND consumed_at IS NULL AND expires_at > %s
               RETURNING id""",
            (now, challenge_id, now),
        )
        return bool(rows)

    @_storage_errors
    async def delete_expired_challenges(self, before: datetime) -> int:
        rows = await db.execute(
            "DELETE FROM admin_login_challenges WHERE expires_at <= %s RETURNING id",
            (before,),
        )
        return len(rows)

    @_storage_errors
    async def ping(self) -> bool:
        row = await db.execute_one("SELECT 1 AS ok")
        return bool(row and row["ok"] == 1)
