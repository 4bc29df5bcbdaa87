"""otpdesk — card-verified account console with live TOTP codes."""

__version__ = "0.1.0"
