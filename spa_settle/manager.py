"""
SpaMetricsManager: decides when a route change has settled.

The manager consumes resource events from its monitors, keeps a reference
count of in-flight URLs and drives exactly one live
:class:`~spa_settle.quiet_period.QuietPeriodAwaiter` per measurement.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from spa_settle.config import SpaMetricsConfig, spa_config_from
from spa_settle.logger import get_logger
from spa_settle.models import PageLoadResult, ResourceState, ResourceStateEvent
from spa_settle.monitors import (
    FetchMonitor,
    MediaHost,
    MediaMonitor,
    Monitor,
    MonitoredTransport,
    PerformanceMonitor,
    ResourceTimingBuffer,
    ResourceTransport,
)
from spa_settle.quiet_period import QuietPeriodAwaiter
from spa_settle.utils import now_ms

__all__ = ["SpaMetricsManager"]


class SpaMetricsManager:
    """Coordinates the monitors and the quiet-period measurement.

    Parameters
    ----------
    config
        :class:`SpaMetricsConfig`; keyword *overrides* (``quiet_time=...``,
        ``ignore_urls=...``, ``max_resources_to_watch=...``,
        ``beacon_endpoint=...``) are applied on top of it.
    transport
        Transport whose requests the fetch monitor reports, see
        :attr:`transport`.
    media_host, timing_buffer
        Signal sources of the media and performance monitors. Fresh empty
        ones are created when omitted.
    clock
        Millisecond clock shared with the monitors and awaiters.
    logger
        Logger passed down to every component.
    """

    def __init__(
        self,
        config: Optional[SpaMetricsConfig] = None,
        *,
        transport: Optional[ResourceTransport] = None,
        media_host: Optional[MediaHost] = None,
        timing_buffer: Optional[ResourceTimingBuffer] = None,
        clock: Callable[[], float] = now_ms,
        logger: Optional[logging.Logger] = None,
        **overrides: Any,
    ) -> None:
        if overrides or config is None:
            config = spa_config_from(overrides, config)
        self.config = config
        self.logger = logger or get_logger("manager")
        self._clock = clock

        self.media_host = media_host if media_host is not None else MediaHost()
        self.timing_buffer = timing_buffer if timing_buffer is not None else ResourceTimingBuffer()

        ignore_urls = tuple(config.ignore_urls)
        self.fetch_monitor = FetchMonitor(
            self.on_resource_state_change, transport, ignore_urls, self.logger.getChild("fetch"), clock
        )
        self.media_monitor = MediaMonitor(
            self.on_resource_state_change, self.media_host, ignore_urls, self.logger.getChild("media"), clock
        )
        self.performance_monitor = PerformanceMonitor(
            self.on_resource_state_change, self.timing_buffer, ignore_urls, self.logger.getChild("performance")
        )

        self._is_monitoring = False
        self._loading_urls: Dict[str, int] = {}
        self._loading_count = 0
        self._quiet_period_awaiter: Optional[QuietPeriodAwaiter] = None

    # ------------------------------------------------------------------ #
    # Read-only views                                                     #
    # ------------------------------------------------------------------ #

    @property
    def monitors(self) -> Tuple[Monitor, ...]:
        return (self.fetch_monitor, self.media_monitor, self.performance_monitor)

    @property
    def is_monitoring(self) -> bool:
        return self._is_monitoring

    @property
    def loading_urls(self) -> Dict[str, int]:
        return dict(self._loading_urls)

    @property
    def loading_resources_count(self) -> int:
        return self._loading_count

    @property
    def current_awaiter(self) -> Optional[QuietPeriodAwaiter]:
        return self._quiet_period_awaiter

    @property
    def transport(self) -> Optional[MonitoredTransport]:
        """Monitored transport; requests made through it are measured."""
        return self.fetch_monitor.transport

    def wrap_transport(self, transport: ResourceTransport) -> MonitoredTransport:
        return self.fetch_monitor.wrap(transport)

    # ------------------------------------------------------------------ #
    # Lifecycle                                                           #
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        if self._is_monitoring:
            self.logger.warning("SpaMetricsManager: already monitoring.")
            return

        self._is_monitoring = True
        for monitor in self.monitors:
            monitor.start()
        self.logger.debug("SpaMetricsManager: started monitoring.")

    def stop(self) -> None:
        if not self._is_monitoring:
            return

        self._is_monitoring = False
        for monitor in self.monitors:
            monitor.stop()
        self._loading_urls.clear()
        self._loading_count = 0
        self.logger.debug("SpaMetricsManager: stopped monitoring.")

    async def __aenter__(self) -> SpaMetricsManager:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ------------------------------------------------------------------ #
    # Measurement                                                         #
    # ------------------------------------------------------------------ #

    def wait_for_page_load(self, start_time: float) -> asyncio.Future[PageLoadResult]:
        """Start a new measurement window anchored at *start_time* (ms).

        The previous window, if still pending, is completed first. Must be
        called while the event loop is running.
        """
        if self._quiet_period_awaiter is not None:
            self._quiet_period_awaiter.complete(are_resources_still_loading=self._loading_count > 0)

        awaiter = QuietPeriodAwaiter(
            self.config.quiet_time,
            start_time,
            clock=self._clock,
            logger=self.logger.getChild("quiet_period"),
        )
        self._quiet_period_awaiter = awaiter

        if self._loading_count == 0:
            awaiter.start_quiet_timer(start_time)
            self.logger.debug("No loading resources. Starting quiet timer.")

        return awaiter.result

    def on_resource_state_change(self, event: ResourceStateEvent) -> None:
        """Update the in-flight table and the quiet timer for one event."""
        if event.state is ResourceState.DISCOVERED:
            if self._loading_count >= self.config.max_resources_to_watch:
                self.logger.debug(
                    "SpaMetricsManager: max resources limit reached, ignoring %s", event.url
                )
                return

            self._loading_urls[event.url] = self._loading_urls.get(event.url, 0) + 1
            self._loading_count += 1
            self.logger.debug("Detected resource %s. Resetting quiet timer.", event.url)
            if self._quiet_period_awaiter is not None:
                self._quiet_period_awaiter.remove_quiet_timer()
            return

        count = self._loading_urls.get(event.url, 0)
        if count == 1:
            del self._loading_urls[event.url]
        elif count > 1:
            self._loading_urls[event.url] = count - 1
        if count > 0:
            self._loading_count -= 1

        if self._loading_count == 0 and self._quiet_period_awaiter is not None:
            self.logger.debug("No loading resources. Starting quiet timer.")
            self._quiet_period_awaiter.start_quiet_timer(event.timestamp)
