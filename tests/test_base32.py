"""Tests for the base32 codec."""

from __future__ import annotations

import base64
import random

import pytest

from flowboard.auth.base32 import ALPHABET, Base32Error, clean, decode, encode


@pytest.mark.parametrize(
    ("raw", "encoded"),
    [
        (b"", ""),
        (b"f", "MY"),
        (b"fo", "MZXQ"),
        (b"foo", "MZXW6"),
        (b"foob", "MZXW6YQ"),
        (b"fooba", "MZXW6YTB"),
        (b"foobar", "MZXW6YTBOI"),
    ],
)
def test_rfc4648_vectors_without_padding(raw, encoded):
    assert encode(raw) == encoded
    assert decode(encoded) == raw


def test_matches_stdlib_and_round_trips():
    rnd = random.Random(42)
    for length in range(0, 65):
        data = rnd.randbytes(length)
        text = encode(data)
        assert text == base64.b32encode(data).decode().rstrip("=")
        assert set(text) <= set(ALPHABET)
        assert decode(text) == data


def test_decode_is_case_insensitive():
    assert decode("mzxw6ytboi") == b"foobar"


def test_decode_strips_pasted_whitespace_hyphens_and_padding():
    assert decode(" MZXW 6YTB-OI==\n") == b"foobar"


@pytest.mark.parametrize("bad", ["MZXW0", "MZXW1", "MZ8W6", "9ZXW6", "MZ.W6"])
def test_decode_rejects_out_of_alphabet_characters(bad):
    with pytest.raises(Base32Error):
        decode(bad)


def test_base32_error_is_value_error():
    with pytest.raises(ValueError, match="Invalid base32 character"):
        decode("ABC!")


def test_twenty_byte_secret_is_32_characters():
    assert len(encode(bytes(20))) == 32


def test_clean_normalises_for_authenticator_libraries():
    assert clean(" mzxw-6ytb oi==") == "MZXW6YTBOI"


@pytest.mark.parametrize("impossible", ["M", "MZX", "MZXW6Y"])
def test_decode_rejects_impossible_lengths(impossible):
    with pytest.raises(Base32Error, match="Invalid base32 length"):
        decode(impossible)
