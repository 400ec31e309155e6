"""Request/response bodies for the admin auth API (camelCase on the wire)."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from flowboard.models import AdminIdentity, AdminRole


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- requests ---


class LoginRequest(CamelModel):
    email: str
    password: str


class VerifyRequest(CamelModel):
    challenge_id: str
    code: str


class SetupRequest(CamelModel):
    email: str
    password: str


class CodeRequest(CamelModel):
    """Body for confirming setup and for disabling 2FA."""

    email: str
    password: str
    code: str


# --- responses ---


class AuthResponse(CamelModel):
    success: bool
    requires_otp: bool | None = None
    challenge_id: UUID | None = None
    error: str | None = None
    id: UUID | None = None
    email: str | None = None
    name: str | None = None
    role: AdminRole | None = None
    two_factor_enabled: bool | None = None

    @classmethod
    def authenticated(cls, account: AdminIdentity) -> AuthResponse:
        return cls(success=True, **account.model_dump())


class SetupResponse(CamelModel):
    secret: str | None = None
    recovery_codes: list[str] | None = None
    otpauth_uri: str | None = None
    qr_data_url: str | None = None
    error: str | None = None


class ChangeResponse(CamelModel):
    success: bool
    error: str | None = None
