"""Base32 (RFC 4648) handling for 2FA secrets.

Secrets come from humans and from the verification API, so they are
normalized (whitespace removed, uppercased) before anything else.  Decoding
is strict: a symbol outside the alphabet raises ``FormatError`` instead of
being skipped, because a skipped symbol silently yields a different key.
"""

from __future__ import annotations

import re

from otpdesk.errors import FormatError

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_VALUES = {ch: i for i, ch in enumerate(ALPHABET)}
_SECRET_RE = re.compile(r"^[A-Z2-7]+=*$")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize(secret: str) -> str:
    """Strip all whitespace and uppercase."""
    return _WHITESPACE_RE.sub("", secret).upper()


def is_valid(text: str) -> bool:
    """True if already-normalized text is Base32 with optional trailing padding."""
    return bool(_SECRET_RE.match(text))


def decode(text: str) -> bytes:
    """Decode normalized Base32 text into raw key bytes.

    Leftover bits shorter than a byte are dropped, so ``"A"`` decodes to
    ``b""`` and it is up to the caller to reject an empty key.
    """
    body = text.rstrip("=")
    if not body:
        raise FormatError("Base32 secret is empty")

    out = bytearray()
    buffer = 0
    bits = 0
    for pos, ch in enumerate(body):
        value = _VALUES.get(ch)
        if value is None:
            raise FormatError(f"Invalid Base32 character {ch!r} at position {pos}")
        buffer = ((buffer << 5) | value) & 0xFFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
    return bytes(out)


def encode(raw: bytes, pad: bool = True) -> str:
    """Encode bytes as Base32 text, padded to a multiple of 8 unless ``pad`` is False."""
    chars: list[str] = []
    buffer = 0
    bits = 0
    for byte in raw:
        buffer = ((buffer << 8) | byte) & 0xFFFF
        bits += 8
        while bits >= 5:
            bits -= 5
            chars.append(ALPHABET[(buffer >> bits) & 0x1F])
    if bits:
        chars.append(ALPHABET[(buffer << (5 - bits)) & 0x1F])
    if pad and len(chars) % 8:
        chars.extend("=" * (8 - len(chars) % 8))
    return "".join(chars)
