"""Named broadcast signals with explicit subscribe/cancel handles.

A signal carries no payload: receivers go back to the owner (normally the
SessionStore) and re-read, so they never act on stale data.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by Signal.subscribe(); cancel() is idempotent."""
    signal: Signal
    callback: Callback
    active: bool = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self.signal._remove(self)


@dataclass
class Signal:
    name: str
    _subscribers: list[Subscription] = field(default_factory=list, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def subscribe(self, callback: Callback) -> Subscription:
        sub = Subscription(signal=self, callback=callback)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self) -> None:
        """Call every active subscriber in registration order."""
        with self._lock:
            subscribers = list(self._subscribers)
        logger.debug("[signal] %s -> %d subscribers", self.name, len(subscribers))
        for sub in subscribers:
            if not sub.active:
                continue
            try:
                sub.callback()
            except Exception:
                logger.warning("Subscriber of %s failed", self.name, exc_info=True)
