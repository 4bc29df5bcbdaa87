"""Durable cache of the verified card session.

The three records (card metadata, account list, last card code) live in one
JSON document that is replaced atomically, so a reader can never see card
metadata without its accounts or the other way round.  Every successful
write fires the store's ``changed`` signal after the file is in place.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from cryptography.exceptions import InvalidTag
from pydantic import ValidationError

from otpdesk import crypto
from otpdesk.config import settings
from otpdesk.errors import StorageError
from otpdesk.events import Callback, Signal, Subscription
from otpdesk.models import Account, CardInfo, CardSession

logger = logging.getLogger(__name__)

CARD_METADATA = "card_metadata"
ACCOUNT_LIST = "account_list"
LAST_CARD_CODE = "last_card_code"

_ENCRYPTED = "encrypted"


class SessionStore:
    """Single writer of the CardSession; views hold a reference and read."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or settings.session_path
        self.changed = Signal(f"session:{self.path.name}")
        self._lock = threading.Lock()
        self._signature = self._stat_signature()

    # --- reads ---

    def load(self) -> CardSession | None:
        """Return the cached session, or None if none was saved or it was cleared."""
        record = self._read_record()
        meta = record.get(CARD_METADATA)
        accounts = record.get(ACCOUNT_LIST)
        if meta is None or accounts is None:
            return None
        try:
            return CardSession(
                card_info=CardInfo.model_validate(meta),
                accounts=[Account.model_validate(a) for a in accounts],
            )
        except ValidationError as exc:
            raise StorageError(f"Corrupt session record in {self.path}: {exc}") from exc

    def last_card_code(self) -> str | None:
        return self._read_record().get(LAST_CARD_CODE)

    # --- writes ---

    def save(self, session: CardSession, card_code: str | None = None) -> None:
        """Persist card metadata and accounts (and optionally the card code) together."""
        with self._lock:
            record = self._read_record()
            record[CARD_METADATA] = session.card_info.model_dump(by_alias=True)
            record[ACCOUNT_LIST] = [a.model_dump(by_alias=True) for a in session.accounts]
            if card_code is not None:
                record[LAST_CARD_CODE] = card_code
            self._write_record(record)
        logger.info("Saved card session (%d accounts)", len(session.accounts))
        self.changed.emit()

    def remember_card_code(self, card_code: str) -> None:
        with self._lock:
            record = self._read_record()
            record[LAST_CARD_CODE] = card_code
            self._write_record(record)
        self.changed.emit()

    def clear(self) -> None:
        """Drop all three records at once."""
        with self._lock:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as exc:
                raise StorageError(f"Cannot remove {self.path}: {exc}") from exc
            self._signature = None
        logger.info("Cleared card session")
        self.changed.emit()

    # --- change notification ---

    def on_change(self, callback: Callback) -> Subscription:
        return self.changed.subscribe(callback)

    def check_external_change(self) -> bool:
        """Emit ``changed`` if another process rewrote the file since our last look."""
        signature = self._stat_signature()
        if signature == self._signature:
            return False
        self._signature = signature
        logger.debug("Session file changed on disk: %s", self.path)
        self.changed.emit()
        return True

    # --- internals ---

    def _stat_signature(self) -> tuple[int, int, int] | None:
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Cannot stat {self.path}: {exc}") from exc
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _read_record(self) -> dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}") from exc

        try:
            data = json.loads(text)
            if isinstance(data, dict) and _ENCRYPTED in data:
                data = json.loads(crypto.unseal(data[_ENCRYPTED]))
        except (ValueError, InvalidTag, RuntimeError) as exc:
            raise StorageError(f"Cannot decode session record in {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Session record in {self.path} is not an object")
        return data

    def _write_record(self, record: dict[str, Any]) -> None:
        try:
            payload = json.dumps(record, ensure_ascii=False)
            if crypto.is_enabled():
                payload = json.dumps({_ENCRYPTED: crypto.seal(payload)})
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Cannot serialize session record: {exc}") from exc

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".session-", suffix=".tmp", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
        self._signature = self._stat_signature()
