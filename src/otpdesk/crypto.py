"""At-rest sealing of the session record (it holds every account's 2FA secret).

Sealing is opt-in: with no ``OTPDESK_MASTER_KEY`` the record is written as
plain JSON.  Tokens are base64(nonce + AES-256-GCM ciphertext) with the
record purpose bound in as associated data, so a token cut from some other
file cannot be replayed as a session.
"""

from __future__ import annotations

import base64
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from otpdesk.config import settings

_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM
_KEY_SIZE = 32
_SESSION_AAD = b"otpdesk:session:v1"


def is_enabled() -> bool:
    return bool(settings.otpdesk_master_key)


def _master_key() -> AESGCM:
    raw = settings.otpdesk_master_key
    if not raw:
        raise RuntimeError("OTPDESK_MASTER_KEY not set")
    key = base64.b64decode(raw)
    if len(key) != _KEY_SIZE:
        raise ValueError(f"OTPDESK_MASTER_KEY must be {_KEY_SIZE} bytes (base64-encoded)")
    return AESGCM(key)


def seal(plaintext: str, aad: bytes = _SESSION_AAD) -> str:
    nonce = os.urandom(_NONCE_SIZE)
    sealed = _master_key().encrypt(nonce, plaintext.encode("utf-8"), aad)
    return base64.b64encode(nonce + sealed).decode("ascii")


def unseal(token: str, aad: bytes = _SESSION_AAD) -> str:
    """Reverse seal(); raises InvalidTag on a wrong key, purpose or tampered token."""
    blob = base64.b64decode(token)
    if len(blob) <= _NONCE_SIZE:
        raise ValueError("Sealed token too short")
    return _master_key().decrypt(blob[:_NONCE_SIZE], blob[_NONCE_SIZE:], aad).decode("utf-8")
