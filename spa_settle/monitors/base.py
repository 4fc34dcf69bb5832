"""
Base class of the signal monitors.

A monitor observes one source of resource-loading activity and reports it
as :class:`~spa_settle.models.ResourceStateEvent` through the callback given
at construction. Monitors never touch manager state.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

from spa_settle.logger import get_logger
from spa_settle.models import ResourceStateEvent
from spa_settle.observable import safe_call
from spa_settle.utils import IgnoreUrl, is_url_ignored

__all__ = ["Monitor", "ResourceStateCallback"]

ResourceStateCallback = Callable[[ResourceStateEvent], None]


class Monitor(ABC):
    """Owns the subscription lifecycle of one signal source."""

    #: short name used in log messages
    name: str = "Monitor"

    def __init__(
        self,
        on_resource_state_change: ResourceStateCallback,
        ignore_urls: Optional[Sequence[IgnoreUrl]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.on_resource_state_change = on_resource_state_change
        self.ignore_urls: Sequence[IgnoreUrl] = tuple(ignore_urls or ())
        self.logger = logger or get_logger(f"monitors.{self.name}")
        self._is_monitoring = False

    @property
    def is_monitoring(self) -> bool:
        return self._is_monitoring

    def start(self) -> None:
        if self._is_monitoring:
            self.logger.warning("%s: already monitoring.", self.name)
            return
        self._is_monitoring = True
        self._attach()
        self.logger.debug("%s: started monitoring.", self.name)

    def stop(self) -> None:
        if not self._is_monitoring:
            return
        self._is_monitoring = False
        self._detach()
        self.logger.debug("%s: stopped monitoring.", self.name)

    @abstractmethod
    def _attach(self) -> None:
        """Subscribe to the signal source."""

    @abstractmethod
    def _detach(self) -> None:
        """Drop every subscription made by :meth:`_attach`."""

    def is_ignored(self, url: str) -> bool:
        return is_url_ignored(url, self.ignore_urls)

    def _emit(self, event: ResourceStateEvent) -> None:
        """Deliver *event* unless stopped; callback faults are logged, not raised."""
        if not self._is_monitoring:
            return
        safe_call(self.on_resource_state_change, event, self.logger)
