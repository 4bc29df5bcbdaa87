"""Shared fixtures."""

from __future__ import annotations

import pytest

from otpdesk.models import Account, CardInfo, CardSession
from otpdesk.session.store import SessionStore

CARD_CODE = "C" * 32
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"  # b"12345678901234567890"


@pytest.fixture
def store(tmp_path) -> SessionStore:
    return SessionStore(tmp_path / "session.json")


@pytest.fixture
def card_session() -> CardSession:
    return CardSession(
        card_info=CardInfo(
            type="month",
            type_name="Monthly",
            expire_time="2030-01-01T00:00:00Z",
            expire_days=30,
            status="active",
        ),
        accounts=[
            Account(id=3, email="c@example.com", two_factor_secret=RFC_SECRET, status="active"),
            Account(id=1, email="a@example.com"),
            Account(id=2, email="b@example.com", two_factor_secret="JBSWY3DPEHPK3PXP", feedback_status="none"),
        ],
    )
