"""Admin authentication: password login, TOTP second factor, 2FA lifecycle.

Login state machine::

    AwaitingCredentials --password ok, 2FA off--> Authenticated
    AwaitingCredentials --password ok, 2FA on---> AwaitingSecondFactor (challenge issued)
    AwaitingSecondFactor --TOTP or recovery ok--> Authenticated (challenge consumed)

Any failure leaves the caller at AwaitingCredentials; only an issued
challenge outlives a request. Every operation returns a typed result and
never raises for a validation failure. Enrollment, confirmation and
disabling each re-check the password before touching 2FA state.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, Concatenate, ParamSpec, TypeVar
from uuid import UUID

from flowboard.auth import totp
from flowboard.auth.challenges import ChallengeStore
from flowboard.auth.passwords import PasswordHasher, make_context
from flowboard.auth.recovery import RecoveryCodeManager
from flowboard.clock import Clock, RandomSource, SystemClock, SystemRandom
from flowboard.config import Settings, settings
from flowboard.events import EventEmitter, log_only_emit
from flowboard.models import (
    AdminAccount,
    AdminRole,
    Authenticated,
    AuthError,
    ChangeResult,
    EnrollmentStarted,
    EnrollResult,
    LoginResult,
    PendingFactor,
    Rejected,
    RequiresOtp,
    Succeeded,
    VerifyResult,
)
from flowboard.store.base import AdminStore, StorageUnavailable

logger = logging.getLogger(__name__)

EVENT_CATEGORY = "admin_auth"

MESSAGES: dict[AuthError, str] = {
    AuthError.INVALID_CREDENTIALS: "Invalid credentials",
    AuthError.CHALLENGE_INVALID: "Challenge expired or invalid",
    AuthError.OTP_INVALID: "Invalid authentication code",
    AuthError.SETUP_NOT_PENDING: "No pending setup found",
    AuthError.NOT_ENABLED: "Two-factor authentication is not enabled",
    AuthError.STORAGE_UNAVAILABLE: "Service temporarily unavailable",
}
SETUP_CODE_INVALID = "Verification code is invalid"


def reject(error: AuthError, message: str | None = None) -> Rejected:
    return Rejected(error=error, message=message or MESSAGES[error])


S = TypeVar("S", bound="AdminAuthService")
P = ParamSpec("P")
R = TypeVar("R")


def _storage_guard(
    fn: Callable[Concatenate[S, P], Awaitable[R]],
) -> Callable[Concatenate[S, P], Awaitable[R | Rejected]]:
    """Turn ``StorageUnavailable`` into a generic rejection at the service boundary."""

    @functools.wraps(fn)
    async def wrapper(self: S, *args: P.args, **kwargs: P.kwargs) -> R | Rejected:
        try:
            return await fn(self, *args, **kwargs)
        except StorageUnavailable:
            logger.exception("Storage unavailable during %s", fn.__name__)
            return reject(AuthError.STORAGE_UNAVAILABLE)

    return wrapper


class AdminAuthService:
    def __init__(
        self,
        store: AdminStore,
        *,
        passwords: PasswordHasher | None = None,
        recovery: RecoveryCodeManager | None = None,
        challenges: ChallengeStore | None = None,
        clock: Clock | None = None,
        random_source: RandomSource | None = None,
        emit: EventEmitter = log_only_emit,
        issuer: str = "Flowboard Admin",
        drift_steps: int = totp.DEFAULT_DRIFT_STEPS,
        recovery_code_count: int = 8,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._rng = random_source or SystemRandom()
        self._passwords = passwords or PasswordHasher()
        self._recovery = recovery or RecoveryCodeManager(store, self._rng)
        self._challenges = challenges or ChallengeStore(store, self._clock, self._rng)
        self._emit = emit
        self.issuer = issuer
        self.drift_steps = drift_steps
        self.recovery_code_count = recovery_code_count

    @classmethod
    def from_settings(
        cls,
        store: AdminStore,
        cfg: Settings = settings,
        *,
        clock: Clock | None = None,
        random_source: RandomSource | None = None,
        emit: EventEmitter = log_only_emit,
    ) -> AdminAuthService:
        clock = clock or SystemClock()
        rng = random_source or SystemRandom()
        context = make_context(cfg.bcrypt_rounds)
        return cls(
            store,
            passwords=PasswordHasher(context),
            recovery=RecoveryCodeManager(store, rng, context),
            challenges=ChallengeStore(
                store, clock, rng, ttl=timedelta(seconds=cfg.challenge_ttl_seconds)
            ),
            clock=clock,
            random_source=rng,
            emit=emit,
            issuer=cfg.totp_issuer,
            drift_steps=cfg.totp_drift_steps,
            recovery_code_count=cfg.recovery_code_count,
        )

    @property
    def store(self) -> AdminStore:
        return self._store

    @property
    def challenges(self) -> ChallengeStore:
        return self._challenges

    # --- helpers ---

    async def _event(
        self,
        severity: str,
        event_type: str,
        message: str,
        account_id: UUID | None = None,
        **context: Any,
    ) -> None:
        await self._emit(
            EVENT_CATEGORY, severity, event_type, message, account_id=account_id, context=context
        )

    async def _check_credentials(self, email: str | None, password: str | None) -> AdminAccount | None:
        """The account if email and password match; None otherwise, in similar time."""
        account = await self._store.get_account_by_email(email) if email and email.strip() else None
        if account is None:
            await asyncio.to_thread(self._passwords.dummy_verify)
            return None
        if not await asyncio.to_thread(self._passwords.verify, password, account.password_hash):
            return None
        return account

    def _totp_ok(self, secret: str, code: str | None) -> bool:
        return totp.verify_code(secret, code, self.drift_steps, at=self._clock.now())

    async def _credentials_rejected(self, email: str | None, action: str) -> Rejected:
        await self._event("warning", f"{action}_rejected", "Invalid credentials", email=email)
        return reject(AuthError.INVALID_CREDENTIALS)

    # --- login ---

    @_storage_guard
    async def login(self, email: str | None, password: str | None) -> LoginResult:
        account = await self._check_credentials(email, password)
        if account is None:
            return await self._credentials_rejected(email, "login")

        if account.two_factor_enabled:
            challenge_id = await self._challenges.create(account.id)
            await self._event("info", "challenge_issued", "Second factor required", account.id)
            return RequiresOtp(challenge_id=challenge_id)

        await self._event("info", "login_succeeded", "Password login", account.id)
        return Authenticated(account=account.identity())

    @_storage_guard
    async def verify_two_factor(self, challenge_id: str | UUID | None, code: str | None) -> VerifyResult:
        challenge = await self._challenges.fetch_valid(challenge_id)
        if challenge is None:
            return reject(AuthError.CHALLENGE_INVALID)

        account = await self._store.get_account(challenge.account_id)
        if account is None:
            return reject(AuthError.CHALLENGE_INVALID)

        active = account.two_factor.active
        if active is None:
            # 2FA was turned off after the password step; the password was
            # still verified for this challenge.
            if not await self._challenges.consume(challenge.id):
                return reject(AuthError.CHALLENGE_INVALID)
            await self._event(
                "warning", "two_factor_skipped", "2FA disabled during pending challenge", account.id
            )
            return Authenticated(account=account.identity())

        if self._totp_ok(active.secret, code):
            method = "totp"
        elif await self._recovery.consume(account.id, code):
            method = "recovery_code"
        else:
            await self._event("warning", "two_factor_failed", "Invalid authentication code", account.id)
            return reject(AuthError.OTP_INVALID)

        if not await self._challenges.consume(challenge.id):
            # another request used this challenge between fetch and consume
            return reject(AuthError.CHALLENGE_INVALID)

        await self._event("info", "two_factor_verified", "Second factor accepted", account.id, method=method)
        return Authenticated(account=account.identity())

    # --- enrollment lifecycle ---

    @_storage_guard
    async def start_enrollment(self, email: str | None, password: str | None) -> EnrollResult:
        account = await self._check_credentials(email, password)
        if account is None:
            return await self._credentials_rejected(email, "enrollment")

        secret = totp.generate_secret(self._rng)
        codes = await asyncio.to_thread(self._recovery.generate_batch, self.recovery_code_count)
        await self._store.set_pending_factor(
            account.id,
            PendingFactor(secret=secret, recovery_code_hashes=tuple(c.hash for c in codes)),
        )
        await self._event("info", "enrollment_started", "2FA enrollment started", account.id)
        return EnrollmentStarted(
            secret=secret,
            recovery_codes=[c.plaintext for c in codes],
            provisioning_uri=totp.get_provisioning_uri(secret, account.email, self.issuer),
        )

    @_storage_guard
    async def confirm_enrollment(
        self, email: str | None, password: str | None, code: str | None
    ) -> ChangeResult:
        account = await self._check_credentials(email, password)
        if account is None:
            return await self._credentials_rejected(email, "enrollment_confirm")

        pending = account.two_factor.pending
        if pending is None:
            return reject(AuthError.SETUP_NOT_PENDING)

        if not self._totp_ok(pending.secret, code):
            return reject(AuthError.OTP_INVALID, SETUP_CODE_INVALID)

        promoted = await self._store.promote_pending_factor(account.id, pending.secret, self._clock.now())
        if not promoted:
            # enrollment was restarted or cancelled after we read it
            return reject(AuthError.SETUP_NOT_PENDING)

        await self._event("info", "two_factor_enabled", "2FA enabled", account.id)
        return Succeeded()

    @_storage_guard
    async def disable_two_factor(
        self, email: str | None, password: str | None, code: str | None
    ) -> ChangeResult:
        account = await self._check_credentials(email, password)
        if account is None:
            return await self._credentials_rejected(email, "disable")

        active = account.two_factor.active
        if active is None:
            return reject(AuthError.NOT_ENABLED)

        if self._totp_ok(active.secret, code):
            method = "totp"
        elif await self._recovery.consume(account.id, code):
            method = "recovery_code"
        else:
            await self._event("warning", "disable_failed", "Invalid authentication code", account.id)
            return reject(AuthError.OTP_INVALID)

        await self._store.clear_two_factor(account.id)
        await self._event("info", "two_factor_disabled", "2FA disabled", account.id, method=method)
        return Succeeded()

    # --- maintenance ---

    async def create_admin(
        self, email: str, name: str, password: str, role: AdminRole = AdminRole.ADMIN
    ) -> AdminAccount:
        """Provision an account with a freshly hashed password."""
        password_hash = await asyncio.to_thread(self._passwords.hash, password)
        account = await self._store.create_account(email, name, role, password_hash)
        await self._event("info", "account_created", "Admin account created", account.id, role=str(role))
        return account

    async def reap_challenges(self) -> int:
        return await self._challenges.reap()
