"""Admin auth endpoints: one POST per operation, RPC style.

Rejections come back as HTTP 200 with ``success: false`` and the rejection
message; only an unavailable datastore changes the status code (503).
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from flowboard.api.schemas import (
    AuthResponse,
    ChangeResponse,
    CodeRequest,
    LoginRequest,
    SetupRequest,
    SetupResponse,
    VerifyRequest,
)
from flowboard.auth import qr
from flowboard.auth.service import AdminAuthService
from flowboard.models import (
    Authenticated,
    AuthError,
    EnrollmentStarted,
    Rejected,
    RequiresOtp,
    Succeeded,
)
from flowboard.store.base import StorageUnavailable

router = APIRouter(prefix="/api/admin/auth", tags=["admin-auth"])
health_router = APIRouter(tags=["health"])


def _service(request: Request) -> AdminAuthService:
    return request.app.state.auth_service


def _json(body: BaseModel, rejected: Rejected | None = None) -> JSONResponse:
    status = 503 if rejected and rejected.error == AuthError.STORAGE_UNAVAILABLE else 200
    return JSONResponse(body.model_dump(mode="json", by_alias=True, exclude_none=True), status_code=status)


def _auth_response(result: Authenticated | RequiresOtp | Rejected) -> JSONResponse:
    if isinstance(result, Authenticated):
        return _json(AuthResponse.authenticated(result.account))
    if isinstance(result, RequiresOtp):
        return _json(AuthResponse(success=False, requires_otp=True, challenge_id=result.challenge_id))
    return _json(AuthResponse(success=False, error=result.message), result)


def _change_response(result: Succeeded | Rejected) -> JSONResponse:
    if isinstance(result, Succeeded):
        return _json(ChangeResponse(success=True))
    return _json(ChangeResponse(success=False, error=result.message), result)


@router.post("/login")
async def login(body: LoginRequest, request: Request):
    return _auth_response(await _service(request).login(body.email, body.password))


@router.post("/verify")
async def verify_two_factor(body: VerifyRequest, request: Request):
    return _auth_response(await _service(request).verify_two_factor(body.challenge_id, body.code))


@router.post("/2fa/setup")
async def start_two_factor_setup(body: SetupRequest, request: Request):
    result = await _service(request).start_enrollment(body.email, body.password)
    if isinstance(result, EnrollmentStarted):
        return _json(
            SetupResponse(
                secret=result.secret,
                recovery_codes=result.recovery_codes,
                otpauth_uri=result.provisioning_uri,
                qr_data_url=qr.qr_data_url(result.provisioning_uri),
            )
        )
    return _json(SetupResponse(error=result.message), result)


@router.post("/2fa/confirm")
async def confirm_two_factor_setup(body: CodeRequest, request: Request):
    return _change_response(
        await _service(request).confirm_enrollment(body.email, body.password, body.code)
    )


@router.post("/2fa/disable")
async def disable_two_factor(body: CodeRequest, request: Request):
    return _change_response(
        await _service(request).disable_two_factor(body.email, body.password, body.code)
    )


@health_router.get("/healthz")
async def healthz(request: Request):
    store = request.app.state.store
    try:
        ok = await store.ping()
    except StorageUnavailable:
        ok = False
    return JSONResponse({"ok": ok}, status_code=200 if ok else 503)
