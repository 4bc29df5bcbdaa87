"""Card verification against the account API.

A card code is redeemed with ``POST /api/card/verify``; a JSON body with
``code == 200`` carries the card metadata and the managed account list.
Anything else is a failure and must leave the session cache untouched.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from otpdesk.config import settings
from otpdesk.errors import VerificationError
from otpdesk.models import Account, CardInfo, CardSession
from otpdesk.session.store import SessionStore

logger = logging.getLogger(__name__)

CARD_VERIFY = "/api/card/verify"
SUCCESS_CODE = 200


def normalize_card_code(card_code: str) -> str:
    """Trim and length-check a card code before it goes on the wire."""
    code = card_code.strip()
    if len(code) != settings.card_code_length:
        raise VerificationError(f"Card code must be {settings.card_code_length} characters")
    return code


class VerificationClient:
    """Thin httpx wrapper around the card verification endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout if timeout is not None else settings.request_timeout,
            transport=transport,
        )

    def __enter__(self) -> VerificationClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def verify(self, card_code: str) -> CardSession:
        """Redeem a card code. Raises VerificationError on any failure."""
        code = normalize_card_code(card_code)
        logger.info("Verifying card against %s", self.base_url)

        try:
            resp = self._client.post(CARD_VERIFY, json={"cardCode": code})
            resp.raise_for_status()
            body: dict[str, Any] = resp.json()
        except httpx.HTTPStatusError as exc:
            raise VerificationError(
                f"HTTP {exc.response.status_code}: {exc.response.reason_phrase}"
            ) from exc
        except httpx.HTTPError as exc:
            raise VerificationError(f"Cannot reach verification server ({self.base_url}): {exc}") from exc
        except ValueError as exc:
            raise VerificationError(f"Malformed response from verification server: {exc}") from exc

        if not isinstance(body, dict):
            raise VerificationError("Malformed response from verification server")

        status = body.get("code")
        if status != SUCCESS_CODE:
            message = body.get("message") or "Verification failed"
            logger.warning("Card rejected (code=%s): %s", status, message)
            raise VerificationError(message, rejected=True, code=status)

        data = body.get("data") or {}
        try:
            session = CardSession(
                card_info=CardInfo.model_validate(data.get("cardInfo") or {}),
                accounts=[Account.model_validate(a) for a in data.get("accountList") or []],
            )
        except (ValidationError, AttributeError) as exc:
            raise VerificationError(f"Malformed card data: {exc}") from exc

        logger.info("Card verified: %s, %d accounts", session.card_info.type_name or "?", len(session.accounts))
        return session


def verify_and_store(client: VerificationClient, store: SessionStore, card_code: str) -> CardSession:
    """Verify a card and, only on success, cache the result with its card code."""
    session = client.verify(card_code)
    store.save(session, card_code=card_code.strip())
    return session
