"""HOTP (RFC 4226): HMAC-SHA1 with dynamic truncation to six digits."""

from __future__ import annotations

import struct

from cryptography.hazmat.primitives import hashes, hmac

from otpdesk.errors import CryptoError, EmptyKeyError

DIGITS = 6
_MODULUS = 10**DIGITS
_MAX_COUNTER = 2**64 - 1


def hotp(key: bytes, counter: int) -> str:
    """Return the zero-padded 6-digit code for ``key`` at ``counter``."""
    if not key:
        raise EmptyKeyError("HOTP key is empty")
    if not 0 <= counter <= _MAX_COUNTER:
        raise ValueError(f"Counter out of range: {counter}")

    try:
        mac = hmac.HMAC(key, hashes.SHA1())
        mac.update(struct.pack(">Q", counter))
        digest = mac.finalize()
    except Exception as exc:
        raise CryptoError(f"HMAC-SHA1 failed: {exc}") from exc

    offset = digest[19] & 0x0F
    value = struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF
    return str(value % _MODULUS).zfill(DIGITS)
