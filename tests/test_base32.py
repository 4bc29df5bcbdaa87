"""Tests for Base32 normalization and strict decoding."""

from __future__ import annotations

import base64
import os

import pytest

from otpdesk.auth import base32
from otpdesk.errors import FormatError


def test_normalize_strips_whitespace_and_uppercases():
    assert base32.normalize(" jbsw y3dp\tehpk\n3pxp ") == "JBSWY3DPEHPK3PXP"


@pytest.mark.parametrize("text", ["JBSWY3DPEHPK3PXP", "MZXW6===", "A", "GEZDGNBV"])
def test_is_valid_accepts_base32(text):
    assert base32.is_valid(text)


@pytest.mark.parametrize("text", ["", "JBSW1", "MZ=XW6", "====", "jbswy3dp", "JBSW Y3DP"])
def test_is_valid_rejects(text):
    assert not base32.is_valid(text)


def test_decode_known_value():
    assert base32.decode("JBSWY3DPEHPK3PXP") == b"Hello!\xde\xad\xbe\xef"
    assert base32.decode("MZXW6===") == b"foo"
    assert base32.decode("MZXW6") == b"foo"


def test_decode_matches_stdlib():
    raw = os.urandom(20)
    text = base64.b32encode(raw).decode()
    assert base32.decode(text) == raw


def test_decode_drops_partial_trailing_bits():
    assert base32.decode("A") == b""
    assert base32.decode("AB") == b"\x00"


@pytest.mark.parametrize("text", ["JBSW1Y3DP", "JBSW Y3DP", "MZ=XW6", "jbswy3dp", "===="])
def test_decode_rejects_invalid_symbols(text):
    with pytest.raises(FormatError):
        base32.decode(text)


def test_format_error_is_value_error():
    with pytest.raises(ValueError):
        base32.decode("0")


@pytest.mark.parametrize("length", [1, 5, 10, 16, 20, 32])
def test_encode_matches_stdlib(length):
    raw = os.urandom(length)
    assert base32.encode(raw) == base64.b32encode(raw).decode()
    assert base32.encode(raw, pad=False) == base64.b32encode(raw).decode().rstrip("=")


@pytest.mark.parametrize("text", ["JBSWY3DPEHPK3PXP", "MZXW6===", "MZXW6YQ=", "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"])
def test_canonical_secret_survives_decode_then_encode(text):
    assert base32.encode(base32.decode(text)) == text


def test_unpadded_secret_survives_unpadded_reencode():
    assert base32.encode(base32.decode("MZXW6"), pad=False) == "MZXW6"
