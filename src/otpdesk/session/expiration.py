"""Card expiration tracking.

An expired card, or one the server now refuses, resets the whole session.
A network failure during re-verification leaves everything as it was.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime

from otpdesk.auth.verification import VerificationClient
from otpdesk.config import settings
from otpdesk.errors import VerificationError
from otpdesk.models import CardInfo, ExpirationStatus
from otpdesk.session.store import SessionStore

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400


def parse_expire_time(value: str) -> datetime:
    """Parse the API's expireTime; naive values are taken as UTC."""
    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def evaluate(card_info: CardInfo | None, now: datetime | None = None) -> tuple[ExpirationStatus, int]:
    """Classify a card; returns (status, whole days left rounded up)."""
    if card_info is None:
        return ExpirationStatus.NO_CARD, 0
    now = now or datetime.now(UTC)

    try:
        expires = parse_expire_time(card_info.expire_time)
    except ValueError:
        logger.warning("Unparseable card expireTime %r", card_info.expire_time)
        return ExpirationStatus.VALID, card_info.expire_days

    remaining = (expires - now).total_seconds()
    days_left = math.ceil(remaining / _SECONDS_PER_DAY)
    if remaining <= 0:
        return ExpirationStatus.EXPIRED, days_left
    if days_left <= settings.expiring_threshold_days:
        return ExpirationStatus.EXPIRING, days_left
    return ExpirationStatus.VALID, days_left


@dataclass
class ExpirationResult:
    status: ExpirationStatus
    days_left: int
    card_info: CardInfo | None


class ExpirationMonitor:
    """Checks the cached card and resets the session when it is no longer usable."""

    def __init__(self, store: SessionStore, client: VerificationClient | None = None) -> None:
        self.store = store
        self.client = client

    def check(self, now: datetime | None = None, reverify: bool = True) -> ExpirationResult:
        session = self.store.load()
        card_info = session.card_info if session else None
        status, days_left = evaluate(card_info, now)

        if status == ExpirationStatus.EXPIRED:
            logger.warning("Card expired, clearing session")
            self.store.clear()
            return ExpirationResult(status, days_left, card_info)

        if status == ExpirationStatus.VALID and reverify and self.client is not None:
            card_code = self.store.last_card_code()
            if card_code:
                return self._reverify(card_code, session, status, days_left, now)

        return ExpirationResult(status, days_left, card_info)

    def _reverify(self, card_code, session, status, days_left, now) -> ExpirationResult:
        try:
            fresh = self.client.verify(card_code)
        except VerificationError as exc:
            if exc.rejected:
                logger.warning("Card no longer accepted (%s), clearing session", exc)
                self.store.clear()
                return ExpirationResult(ExpirationStatus.EXPIRED, 0, None)
            logger.warning("Card re-verification failed, keeping cached session: %s", exc)
            return ExpirationResult(status, days_left, session.card_info)

        # Only the card metadata is refreshed; the account list stays as cached.
        status, days_left = evaluate(fresh.card_info, now)
        if status == ExpirationStatus.EXPIRED:
            logger.warning("Server reports card expired, clearing session")
            self.store.clear()
            return ExpirationResult(status, days_left, fresh.card_info)
        self.store.save(session.model_copy(update={"card_info": fresh.card_info}))
        return ExpirationResult(status, days_left, fresh.card_info)
