"""TOTP (RFC 6238) clock: counter and window progress from wall-clock time.

The step is fixed for every account; nothing here is configurable per secret.
"""

from __future__ import annotations

import math
import time
from datetime import datetime

from otpdesk.auth import base32
from otpdesk.auth.hotp import hotp
from otpdesk.errors import FormatError

TOTP_STEP = 30

Timestamp = float | datetime


def epoch_seconds(now: Timestamp) -> int:
    """Whole seconds since the Unix epoch for a timestamp or aware datetime."""
    if isinstance(now, datetime):
        if now.tzinfo is None:
            raise ValueError("datetime must be timezone-aware")
        now = now.timestamp()
    return math.floor(now)


def counter_at(now: Timestamp, step: int = TOTP_STEP) -> int:
    return epoch_seconds(now) // step


def progress_at(now: Timestamp, step: int = TOTP_STEP) -> float:
    """Percentage of the current window that has elapsed, in [0, 100)."""
    return (epoch_seconds(now) % step) / step * 100


def seconds_remaining(now: Timestamp, step: int = TOTP_STEP) -> int:
    """Seconds until the current code rolls over (1..step)."""
    return step - epoch_seconds(now) % step


def get_code(secret: str, now: Timestamp | None = None) -> str:
    """Get the TOTP code for a raw (un-normalized) Base32 secret."""
    clean = base32.normalize(secret)
    if not base32.is_valid(clean):
        raise FormatError("Invalid 2FA secret format: must be valid Base32")
    key = base32.decode(clean)
    return hotp(key, counter_at(time.time() if now is None else now))
