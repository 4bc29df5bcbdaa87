"""Pydantic models for data flowing between the API, the cache and the views."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# === Enums ===


class OtpSentinel(StrEnum):
    INVALID_FORMAT = "invalid-format"
    GENERATION_FAILED = "generation-failed"


class ExpirationStatus(StrEnum):
    VALID = "valid"
    EXPIRING = "expiring"
    EXPIRED = "expired"
    NO_CARD = "no_card"


# === Wire models (camelCase on the wire, snake_case in Python) ===


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CardInfo(_WireModel):
    """Card metadata returned by the verification API."""

    type: str = ""
    type_name: str = ""
    expire_time: str = ""
    expire_days: int = 0
    status: str = ""


class Account(_WireModel):
    """A managed account. Status fields are carried through untouched."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: int
    email: str
    two_factor_secret: str | None = None
    rent_type: str | None = None
    rent_type_name: str | None = None
    expire_time: str | None = None
    status: str | None = None
    status_name: str | None = None
    notes: str | None = None
    password: str | None = None
    feedback_status: str | None = None

    @property
    def has_secret(self) -> bool:
        return bool(self.two_factor_secret)


class CardSession(BaseModel):
    """Verified card metadata plus its ordered account list."""

    card_info: CardInfo
    accounts: list[Account] = Field(default_factory=list)


# === Scheduler output ===


@dataclass(frozen=True)
class CodeSnapshot:
    """One consolidated tick: every account's code at the same counter."""

    codes: Mapping[int, str]
    counter: int
    progress: float
    generated_at: datetime
