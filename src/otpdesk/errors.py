"""Exception hierarchy shared by the OTP engine, session cache and API client."""

from __future__ import annotations


class OtpDeskError(Exception):
    """Base class for every error raised by otpdesk."""


class OtpError(OtpDeskError):
    """A code could not be derived for one secret."""


class FormatError(OtpError, ValueError):
    """Secret text is not valid Base32."""


class EmptyKeyError(OtpError):
    """HOTP was asked to run with a zero-length key."""


class CryptoError(OtpError):
    """The HMAC primitive failed."""


class StorageError(OtpDeskError):
    """Reading or writing the durable session record failed."""


class VerificationError(OtpDeskError):
    """The card verification API refused the card or could not be reached.

    ``rejected`` is True only when the server answered and explicitly
    refused the card; transport failures leave it False.
    """

    def __init__(self, message: str, *, rejected: bool = False, code: int | None = None) -> None:
        super().__init__(message)
        self.rejected = rejected
        self.code = code
