"""Tests for AES-256-GCM encryption of TOTP secrets."""

from __future__ import annotations

import base64
import os

import pytest
from cryptography.exceptions import InvalidTag

from flowboard.config import Settings


@pytest.fixture
def master_key(monkeypatch):
    key = base64.b64encode(os.urandom(32)).decode()
    monkeypatch.setattr("flowboard.crypto.settings", Settings(_env_file=None, flowboard_master_key=key))
    return key


def test_encrypt_decrypt(master_key):
    from flowboard.crypto import decrypt, encrypt

    secret = "JBSWY3DPEHPK3PXPJBSWY3DPEHPK3PXP"
    token = encrypt(secret)
    assert secret not in token
    assert decrypt(token) == secret


def test_encrypt_produces_different_ciphertexts(master_key):
    from flowboard.crypto import encrypt

    # random nonce per call
    assert encrypt("test") != encrypt("test")


def test_tampered_token_fails(master_key):
    from flowboard.crypto import decrypt, encrypt

    raw = bytearray(base64.b64decode(encrypt("test")))
    raw[-1] ^= 0x01
    with pytest.raises(InvalidTag):
        decrypt(base64.b64encode(bytes(raw)).decode())


def test_decrypt_optional_passes_none_through(master_key):
    from flowboard.crypto import decrypt_optional, encrypt

    assert decrypt_optional(None) is None
    assert decrypt_optional(encrypt("abc")) == "abc"


def test_missing_key_raises(monkeypatch):
    monkeypatch.setattr("flowboard.crypto.settings", Settings(_env_file=None, flowboard_master_key=""))
    from flowboard.crypto import encrypt

    with pytest.raises(RuntimeError, match="FLOWBOARD_MASTER_KEY not set"):
        encrypt("test")


def test_short_key_raises(monkeypatch):
    short = base64.b64encode(os.urandom(16)).decode()
    monkeypatch.setattr("flowboard.crypto.settings", Settings(_env_file=None, flowboard_master_key=short))
    from flowboard.crypto import encrypt

    with pytest.raises(ValueError, match="32 bytes"):
        encrypt("test")
