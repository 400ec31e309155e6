"""QR rendering of otpauth:// URIs so the secret can be scanned instead of typed."""

from __future__ import annotations

import base64
import io

import qrcode
import qrcode.image.svg

OTPAUTH_PREFIX = "otpauth://"


def qr_svg(uri: str) -> bytes:
    """Render ``uri`` as a standalone SVG document."""
    if not uri.startswith(OTPAUTH_PREFIX):
        raise ValueError("Not an otpauth:// URI")
    img = qrcode.make(uri, image_factory=qrcode.image.svg.SvgPathImage)
    buffer = io.BytesIO()
    img.save(buffer)
    return buffer.getvalue()


def qr_data_url(uri: str) -> str:
    """SVG QR code as a ``data:`` URL, for embedding in an <img> tag."""
    return "data:image/svg+xml;base64," + base64.b64encode(qr_svg(uri)).decode()
