"""Tests for the TOTP clock (RFC 6238)."""

from __future__ import annotations

from datetime import UTC, datetime

import pyotp
import pytest

from otpdesk.auth import base32
from otpdesk.auth.hotp import hotp
from otpdesk.auth.totp import (
    TOTP_STEP,
    counter_at,
    epoch_seconds,
    get_code,
    progress_at,
    seconds_remaining,
)
from otpdesk.errors import FormatError

RFC_KEY = b"12345678901234567890"

# RFC 6238 Appendix B (SHA1), last six digits of the 8-digit values
RFC6238_SHA1 = [
    (59, "287082"),
    (1111111109, "081804"),
    (1111111111, "050471"),
    (1234567890, "005924"),
    (2000000000, "279037"),
    (20000000000, "353130"),
]


def test_rfc_reference_time_59():
    assert counter_at(59) == 1
    assert hotp(RFC_KEY, counter_at(59)) == "287082"


@pytest.mark.parametrize("now,expected", RFC6238_SHA1)
def test_rfc6238_vectors(now, expected):
    assert hotp(RFC_KEY, counter_at(now, TOTP_STEP)) == expected


def test_get_code_matches_pyotp():
    secret = "JBSWY3DPEHPK3PXP"
    for now in (0, 59, 1700000000, 1700000029.9):
        assert get_code(secret, now) == pyotp.TOTP(secret).at(now)


def test_get_code_normalizes_secret():
    assert get_code(" jbsw y3dp ehpk 3pxp ", 1700000000) == get_code("JBSWY3DPEHPK3PXP", 1700000000)


def test_get_code_rejects_bad_secret():
    with pytest.raises(FormatError):
        get_code("not-base32!", 1700000000)


def test_counter_from_datetime():
    dt = datetime(2009, 2, 13, 23, 31, 30, tzinfo=UTC)  # 1234567890
    assert epoch_seconds(dt) == 1234567890
    assert counter_at(dt) == 1234567890 // 30


def test_naive_datetime_rejected():
    with pytest.raises(ValueError):
        counter_at(datetime(2020, 1, 1))


def test_progress_range_and_reset():
    base = 1700000010 - 1700000010 % TOTP_STEP
    previous = None
    for offset in range(TOTP_STEP):
        p = progress_at(base + offset)
        assert 0 <= p < 100
        if previous is not None:
            assert p > previous
        previous = p
    # Counter increments exactly where progress returns to 0
    assert counter_at(base + TOTP_STEP) == counter_at(base) + 1
    assert progress_at(base + TOTP_STEP) == 0
    assert progress_at(base + TOTP_STEP - 0.001) == pytest.approx(100 * 29 / 30)


def test_progress_uses_whole_seconds():
    assert progress_at(1700000010.9) == progress_at(1700000010)


def test_seconds_remaining():
    assert seconds_remaining(0) == 30
    assert seconds_remaining(29) == 1
    assert seconds_remaining(30) == 30
    assert seconds_remaining(45.5) == 15


def test_secret_roundtrip_into_code():
    secret = base32.encode(RFC_KEY)
    assert get_code(secret, 59) == "287082"
