"""Minimal observer utility with per-subscriber fault isolation.

One failing subscriber never blocks delivery to the others: every callback
invocation runs in its own ``try`` block and faults are logged.
"""
from __future__ import annotations

import logging
from typing import Callable, Generic, List, Optional, TypeVar

from spa_settle.logger import get_logger

__all__ = ["Observable", "safe_call"]

T = TypeVar("T")


def safe_call(callback: Callable[[T], None], value: T, logger: logging.Logger) -> bool:
    """Invoke ``callback(value)``; log and swallow any exception.

    Returns False when the callback raised.
    """
    try:
        callback(value)
    except Exception:
        logger.exception("Subscriber %r failed", callback)
        return False
    return True


class Observable(Generic[T]):
    """List of subscribers notified synchronously in subscription order."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._subscribers: List[Callable[[T], None]] = []
        self.logger = logger or get_logger("observable")

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def notify(self, value: T) -> None:
        # snapshot: subscribers may unsubscribe while being notified
        for callback in list(self._subscribers):
            safe_call(callback, value, self.logger)

    def clear(self) -> None:
        self._subscribers.clear()

    def __len__(self) -> int:
        return len(self._subscribers)
