"""Tests for the offline CLI commands."""

from __future__ import annotations

import time

import pyotp
from click.testing import CliRunner

from flowboard.cli import main


def test_status():
    result = CliRunner().invoke(main, ["status"])
    assert result.exit_code == 0
    assert "TOTP issuer" in result.output
    assert "Challenge TTL" in result.output


def test_totp_code_matches_authenticator():
    secret = pyotp.random_base32()
    before = int(time.time())
    result = CliRunner().invoke(main, ["totp-code", secret])
    after = int(time.time())
    assert result.exit_code == 0
    oracle = pyotp.TOTP(secret)
    assert result.output.strip() in {oracle.at(before), oracle.at(after)}


def test_totp_code_rejects_bad_secret():
    result = CliRunner().invoke(main, ["totp-code", "not!base32"])
    assert result.exit_code == 1
    assert "Invalid base32 character" in result.output
