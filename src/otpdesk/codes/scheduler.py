"""Live TOTP codes for every account, recomputed once per second.

``tick()`` is the pure per-batch step; ``CodeScheduler`` drives it from an
asyncio task that only exists while its view is visible and has accounts.

Each tick computes the full map before publishing it, so a reader never
sees some accounts at the new counter and others at the old one.  Ticks
never overlap: if a batch overruns the interval the missed ticks are
dropped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from types import MappingProxyType

from otpdesk.auth import base32
from otpdesk.auth.hotp import hotp
from otpdesk.auth.totp import TOTP_STEP, counter_at, progress_at
from otpdesk.config import settings
from otpdesk.errors import OtpError
from otpdesk.models import Account, CodeSnapshot, OtpSentinel

logger = logging.getLogger(__name__)

PublishCallback = Callable[[CodeSnapshot], None]


def tick(accounts: Iterable[Account], now: float) -> dict[int, str]:
    """Derive one code per account that has a secret; failures become sentinels."""
    counter = counter_at(now, TOTP_STEP)
    codes: dict[int, str] = {}
    for account in accounts:
        if not account.has_secret:
            continue

        clean = base32.normalize(account.two_factor_secret)
        if not base32.is_valid(clean):
            codes[account.id] = OtpSentinel.INVALID_FORMAT
            continue

        try:
            codes[account.id] = hotp(base32.decode(clean), counter)
        except (OtpError, ValueError):
            logger.error("Failed to generate TOTP for %s", account.email, exc_info=True)
            codes[account.id] = OtpSentinel.GENERATION_FAILED
    return codes


def build_snapshot(accounts: Sequence[Account], now: float) -> CodeSnapshot:
    return CodeSnapshot(
        codes=MappingProxyType(tick(accounts, now)),
        counter=counter_at(now, TOTP_STEP),
        progress=progress_at(now, TOTP_STEP),
        generated_at=datetime.fromtimestamp(now, UTC),
    )


class CodeScheduler:
    """Cancelable 1 Hz task bound to a view's visibility and account list."""

    def __init__(
        self,
        interval: float | None = None,
        clock: Callable[[], float] = time.time,
        on_publish: PublishCallback | None = None,
    ) -> None:
        self.interval = interval if interval is not None else settings.tick_interval
        self.clock = clock
        self.on_publish = on_publish
        self.skipped_ticks = 0
        self._accounts: tuple[Account, ...] = ()
        self._visible = False
        self._task: asyncio.Task[None] | None = None
        self._snapshot: CodeSnapshot | None = None

    @property
    def snapshot(self) -> CodeSnapshot | None:
        return self._snapshot

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def set_accounts(self, accounts: Sequence[Account]) -> None:
        self._accounts = tuple(accounts)
        if not self._accounts:
            self._snapshot = None
        self._reconcile()

    def set_visible(self, visible: bool) -> None:
        self._visible = visible
        self._reconcile()

    def _reconcile(self) -> None:
        if self._visible and self._accounts:
            self.start()
        else:
            self.stop()

    def start(self) -> None:
        """Start ticking on the running event loop (no-op if already running)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="otp-code-scheduler")
        logger.debug("Code scheduler started (%d accounts)", len(self._accounts))

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.debug("Code scheduler stopped")

    async def run_once(self) -> CodeSnapshot:
        """Compute a batch in a worker thread and publish it unless we were stopped meanwhile."""
        task = self._task
        accounts = self._accounts
        snapshot = await asyncio.to_thread(build_snapshot, accounts, self.clock())
        if task is not self._task or accounts is not self._accounts:
            logger.debug("Discarding tick computed for a stale scheduler state")
            return snapshot
        self._snapshot = snapshot
        if self.on_publish is not None:
            try:
                self.on_publish(snapshot)
            except Exception:
                logger.warning("Code publish callback failed", exc_info=True)
        return snapshot

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while True:
            await self.run_once()
            next_at += self.interval
            now = loop.time()
            if now > next_at:
                missed = int((now - next_at) // self.interval) + 1
                self.skipped_ticks += missed
                next_at += missed * self.interval
                logger.debug("Tick overran, skipping %d tick(s)", missed)
            await asyncio.sleep(next_at - now)
