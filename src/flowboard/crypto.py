"""AES-256-GCM encryption for TOTP secrets stored in the database."""

from __future__ import annotations

import base64
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from flowboard.config import settings

_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM
_AAD = b"flowboard:two_factor_secret"


def _get_key() -> bytes:
    raw = settings.flowboard_master_key
    if not raw:
        raise RuntimeError("FLOWBOARD_MASTER_KEY not set")
    key = base64.b64decode(raw)
    if len(key) != 32:
        raise ValueError("FLOWBOARD_MASTER_KEY must be 32 bytes (base64-encoded)")
    return key


def encrypt(plaintext: str) -> str:
    """Encrypt a string. Returns base64(nonce + ciphertext)."""
    key = _get_key()
    nonce = os.urandom(_NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, plaintext.encode(), _AAD)
    return base64.b64encode(nonce + ct).decode()


def decrypt(token: str) -> str:
    """Decrypt a base64(nonce + ciphertext) token back to plaintext."""
    key = _get_key()
    raw = base64.b64decode(token)
    nonce, ct = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
    return AESGCM(key).decrypt(nonce, ct, _AAD).decode()


def decrypt_optional(token: str | None) -> str | None:
    return decrypt(token) if token is not None else None
