"""Account-codes view: keeps a CodeScheduler in step with the session cache."""

from __future__ import annotations

import logging

from otpdesk.codes.scheduler import CodeScheduler, PublishCallback
from otpdesk.errors import StorageError
from otpdesk.events import Subscription
from otpdesk.models import CardSession, CodeSnapshot
from otpdesk.session.store import SessionStore

logger = logging.getLogger(__name__)


class AccountCodesView:
    """Reads the store on mount and on every change signal; never writes to it.

    Must be mounted and shown from inside a running event loop, since
    showing a view with accounts starts the scheduler task.
    """

    def __init__(
        self,
        store: SessionStore,
        scheduler: CodeScheduler | None = None,
        on_publish: PublishCallback | None = None,
    ) -> None:
        self.store = store
        self.scheduler = scheduler or CodeScheduler(on_publish=on_publish)
        self.session: CardSession | None = None
        self._subscription: Subscription | None = None

    @property
    def mounted(self) -> bool:
        return self._subscription is not None

    @property
    def codes(self) -> CodeSnapshot | None:
        return self.scheduler.snapshot

    def mount(self) -> None:
        if self.mounted:
            return
        self._subscription = self.store.on_change(self.reload)
        self.reload()

    def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self.scheduler.set_visible(False)

    def show(self) -> None:
        self.scheduler.set_visible(True)

    def hide(self) -> None:
        self.scheduler.set_visible(False)

    def reload(self) -> None:
        """Re-read the store; an unreadable store empties the view and re-raises."""
        try:
            self.session = self.store.load()
        except StorageError:
            self.session = None
            self.scheduler.set_accounts([])
            raise
        accounts = self.session.accounts if self.session else []
        logger.debug("View reloaded: %d accounts", len(accounts))
        self.scheduler.set_accounts(accounts)
