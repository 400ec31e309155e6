"""Tests for provisioning QR rendering."""

from __future__ import annotations

import base64

import pytest

from flowboard.auth import qr, totp


def test_qr_svg_renders_otpauth_uri():
    svg = qr.qr_svg(totp.get_provisioning_uri("JBSWY3DPEHPK3PXP", "admin@example.com"))
    assert b"<svg" in svg


def test_qr_data_url_embeds_svg():
    url = qr.qr_data_url("otpauth://totp/Flowboard%20Admin:admin?secret=JBSWY3DPEHPK3PXP")
    prefix = "data:image/svg+xml;base64,"
    assert url.startswith(prefix)
    assert b"<svg" in base64.b64decode(url[len(prefix):])


@pytest.mark.parametrize("uri", ["", "https://example.com", "otpauth:/totp"])
def test_qr_rejects_non_otpauth(uri):
    with pytest.raises(ValueError):
        qr.qr_svg(uri)
