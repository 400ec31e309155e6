"""Pydantic models for admin accounts, login challenges and auth results."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# === Enums ===


class AdminRole(StrEnum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class AuthError(StrEnum):
    INVALID_CREDENTIALS = "invalid_credentials"
    CHALLENGE_INVALID = "challenge_invalid"
    OTP_INVALID = "otp_invalid"
    SETUP_NOT_PENDING = "setup_not_pending"
    NOT_ENABLED = "not_enabled"
    STORAGE_UNAVAILABLE = "storage_unavailable"


# === Two-factor state ===


class PendingFactor(BaseModel):
    """An enrollment that has been started but not yet confirmed with a code."""

    model_config = ConfigDict(frozen=True)

    secret: str
    recovery_code_hashes: tuple[str, ...] = ()


class ActiveFactor(BaseModel):
    """A confirmed TOTP secret together with its unconsumed recovery codes."""

    model_config = ConfigDict(frozen=True)

    secret: str
    recovery_code_hashes: tuple[str, ...] = ()
    confirmed_at: datetime | None = None


class TwoFactorState(BaseModel):
    """Two-factor configuration of an account.

    ``active`` is None when 2FA is disabled; ``pending`` is None when no
    enrollment is awaiting confirmation. Both may be set while an enabled
    account re-enrolls.
    """

    model_config = ConfigDict(frozen=True)

    active: ActiveFactor | None = None
    pending: PendingFactor | None = None

    @property
    def enabled(self) -> bool:
        return self.active is not None


# === Records ===


class AdminAccount(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str
    name: str
    role: AdminRole = AdminRole.ADMIN
    password_hash: str = Field(repr=False)
    two_factor: TwoFactorState = Field(default_factory=TwoFactorState, repr=False)

    @property
    def two_factor_enabled(self) -> bool:
        return self.two_factor.enabled

    def identity(self) -> AdminIdentity:
        return AdminIdentity(
            id=self.id,
            email=self.email,
            name=self.name,
            role=self.role,
            two_factor_enabled=self.two_factor_enabled,
        )


class AdminIdentity(BaseModel):
    """What a caller learns about an account after authenticating."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str
    name: str
    role: AdminRole
    two_factor_enabled: bool


class LoginChallenge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    account_id: UUID
    created_at: datetime
    expires_at: datetime
    consumed_at: datetime | None = None

    def is_valid_at(self, now: datetime) -> bool:
        return self.consumed_at is None and now < self.expires_at


class RecoveryCode(BaseModel):
    """A freshly generated recovery code; ``plaintext`` is shown once and never stored."""

    model_config = ConfigDict(frozen=True)

    plaintext: str
    hash: str = Field(repr=False)


# === Operation results ===


class Authenticated(BaseModel):
    kind: Literal["authenticated"] = "authenticated"
    account: AdminIdentity


class RequiresOtp(BaseModel):
    kind: Literal["requires_otp"] = "requires_otp"
    challenge_id: UUID


class Rejected(BaseModel):
    kind: Literal["rejected"] = "rejected"
    error: AuthError
    message: str


class EnrollmentStarted(BaseModel):
    kind: Literal["enrollment_started"] = "enrollment_started"
    secret: str
    recovery_codes: list[str]
    provisioning_uri: str


class Succeeded(BaseModel):
    kind: Literal["succeeded"] = "succeeded"


LoginResult = Authenticated | RequiresOtp | Rejected
VerifyResult = Authenticated | Rejected
EnrollResult = EnrollmentStarted | Rejected
ChangeResult = Succeeded | Rejected
