"""Central configuration loaded from environment variables and ``.env``."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path.home() / ".otpdesk"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Verification API
    api_base_url: str = "http://127.0.0.1:3000"
    request_timeout: float = 15.0
    card_code_length: int = 32

    # Session cache
    data_dir: Path = Field(default_factory=lambda: DEFAULT_DATA_DIR)

    # Encryption (base64 of 32 random bytes; empty = store plaintext)
    otpdesk_master_key: str = ""

    # Code scheduler
    tick_interval: float = 1.0

    # Card expiration
    expiring_threshold_days: int = 3

    # Logging
    log_level: str = "INFO"

    @property
    def session_path(self) -> Path:
        return self.data_dir / "session.json"


settings = Settings()
