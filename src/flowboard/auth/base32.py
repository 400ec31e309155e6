"""RFC 4648 base32 without padding, as used by authenticator apps.

Decoding is forgiving about the things people paste (lower case, spaces,
hyphen grouping, trailing ``=``) but rejects characters that are not part of
the alphabet, such as ``0``/``1``/``8``/``9``, instead of guessing.
"""

from __future__ import annotations

import base64
import binascii

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

_IGNORED = str.maketrans("", "", " \t\r\n-=")


class Base32Error(ValueError):
    pass


def encode(data: bytes) -> str:
    """Encode bytes to unpadded base32."""
    return base64.b32encode(data).decode("ascii").rstrip("=")


def clean(text: str) -> str:
    """Upper-case ``text`` and drop pasted separators and padding.

    Raises:
        Base32Error: if a character outside the alphabet remains.
    """
    cleaned = text.upper().translate(_IGNORED)
    for ch in cleaned:
        if ch not in ALPHABET:
            raise Base32Error(f"Invalid base32 character: {ch!r}")
    return cleaned


def decode(text: str) -> bytes:
    """Decode base32 text to bytes.

    Raises:
        Base32Error: on a character outside the alphabet or an impossible length.
    """
    cleaned = clean(text)
    padded = cleaned + "=" * (-len(cleaned) % 8)
    try:
        return base64.b32decode(padded)
    except binascii.Error as e:
        raise Base32Error(f"Invalid base32 length: {len(cleaned)}") from e
