"""TOTP (Time-based One-Time Password) for admin 2FA.

Uses pyotp (RFC 6238: HMAC-SHA1, 30 second steps, 6 digits). Every call
takes an explicit ``at`` so verification follows the injected clock.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pyotp

from flowboard.auth import base32
from flowboard.clock import RandomSource, SystemRandom

PERIOD_SECONDS = 30
DIGITS = 6
SECRET_BYTES = 20  # 160-bit key, encodes to 32 base32 characters
DEFAULT_DRIFT_STEPS = 1


def _totp(secret: str) -> pyotp.TOTP:
    # pyotp expects bare upper-case base32; clean() also rejects 0/1/8/9
    return pyotp.TOTP(base32.clean(secret), digits=DIGITS, interval=PERIOD_SECONDS)


def generate_secret(random_source: RandomSource | None = None) -> str:
    """Generate a new TOTP secret (base32-encoded, 32 chars)."""
    rng = random_source or SystemRandom()
    return base32.encode(rng.token_bytes(SECRET_BYTES))


def time_step(at: datetime) -> int:
    """Number of whole 30 second periods since the Unix epoch."""
    return int(at.timestamp()) // PERIOD_SECONDS


def get_code(secret: str, at: datetime | None = None) -> str:
    """Get the TOTP code for a secret at ``at`` (default: now)."""
    return _totp(secret).at(at or datetime.now(UTC))


def verify_code(
    secret: str | None,
    code: str | None,
    drift_steps: int = DEFAULT_DRIFT_STEPS,
    *,
    at: datetime | None = None,
) -> bool:
    """Verify a TOTP code against a secret, tolerating +-``drift_steps`` periods.

    Returns False rather than raising for an empty or malformed secret and
    for a blank or non 6-digit code. Has no side effects; replay protection
    is up to the caller.
    """
    if not secret or code is None:
        return False
    candidate = code.strip()
    # pyotp NFKC-normalises before comparing, which would accept full-width digits
    if len(candidate) != DIGITS or not (candidate.isascii() and candidate.isdigit()):
        return False
    try:
        if not base32.decode(secret):
            return False
        otp = _totp(secret)
    except base32.Base32Error:
        return False

    at = at or datetime.now(UTC)
    # counters below zero do not exist in the first steps after the epoch
    window = min(drift_steps, time_step(at))
    return otp.verify(candidate, for_time=at, valid_window=window)


def get_provisioning_uri(secret: str, username: str, issuer: str = "Flowboard Admin") -> str:
    """Get the otpauth:// URI for QR code enrollment."""
    return _totp(secret).provisioning_uri(name=username, issuer_name=issuer)
