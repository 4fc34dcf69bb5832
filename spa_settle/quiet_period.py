"""
Single-shot, restartable "quiet period" result of one measurement window.

States: *idle* (no timer) → *armed* (quiet timer pending) → *resolved*
(terminal). The result future is set at most once.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from spa_settle.logger import get_logger
from spa_settle.models import PageLoadResult
from spa_settle.utils import now_ms

__all__ = ["QuietPeriodAwaiter", "DEFAULT_QUIET_TIME"]

DEFAULT_QUIET_TIME = 1000.0


class QuietPeriodAwaiter:
    """Resolves once no resource activity was seen for ``quiet_time`` ms.

    All timestamps are milliseconds taken from *clock*. The awaiter must be
    created while an event loop is running (or be given *loop*).
    """

    def __init__(
        self,
        quiet_time: float = DEFAULT_QUIET_TIME,
        start_time: Optional[float] = None,
        *,
        clock: Callable[[], float] = now_ms,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.quiet_time = quiet_time
        self._clock = clock
        self.start_time = clock() if start_time is None else start_time
        self.last_resource_timestamp: Optional[float] = None
        self.logger = logger or get_logger("quiet_period")
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[PageLoadResult] = self._loop.create_future()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._is_resolved = False

    @property
    def result(self) -> asyncio.Future[PageLoadResult]:
        return self._future

    @property
    def is_resolved(self) -> bool:
        return self._is_resolved

    @property
    def is_timer_armed(self) -> bool:
        return self._timer is not None

    def start_quiet_timer(self, resource_loaded_timestamp: float) -> None:
        """(Re)arm the quiet timer; the window restarts from now."""
        if self._is_resolved:
            return
        self.last_resource_timestamp = resource_loaded_timestamp
        self._cancel_timer()
        self._timer = self._loop.call_later(
            self.quiet_time / 1000.0, self._on_quiet_period_expired, resource_loaded_timestamp
        )

    def remove_quiet_timer(self) -> None:
        """Disarm the pending timer, if any. Does not resolve."""
        self._cancel_timer()

    def complete(self, are_resources_still_loading: bool) -> None:
        """Force the awaiter to its terminal state. No-op once resolved."""
        if self._is_resolved:
            return
        self._cancel_timer()

        end_timestamp = self._clock()
        if not are_resources_still_loading and self.last_resource_timestamp is not None:
            self.logger.debug("No resources loading. Using last resource timestamp.")
            end_timestamp = self.last_resource_timestamp

        load_time = end_timestamp - self.start_time
        self.logger.debug("QuietPeriodAwaiter: complete, load_time=%.1f ms", load_time)
        self._resolve(PageLoadResult(load_time, end_timestamp))

    def _on_quiet_period_expired(self, resource_loaded_timestamp: float) -> None:
        self._timer = None
        self.logger.debug("QuietPeriodAwaiter: quiet period expired")
        if self._is_resolved:
            return
        self._resolve(
            PageLoadResult(
                max(resource_loaded_timestamp - self.start_time, 0.0),
                resource_loaded_timestamp,
            )
        )

    def _resolve(self, result: PageLoadResult) -> None:
        self._is_resolved = True
        # the consumer may have cancelled the future
        if not self._future.done():
            self._future.set_result(result)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def __repr__(self) -> str:
        state = "resolved" if self._is_resolved else ("armed" if self._timer else "idle")
        return f"<QuietPeriodAwaiter {state} start={self.start_time:.1f} quiet={self.quiet_time}>"
