"""
Performance monitor: reports passively loaded resources (stylesheets, fonts,
icons...) that only show up in the resource timing buffer.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, List, Optional, Sequence

from spa_settle.models import ResourceStateEvent, ResourceTimingEntry
from spa_settle.monitors.base import Monitor, ResourceStateCallback
from spa_settle.observable import Observable, safe_call
from spa_settle.utils import IgnoreUrl

__all__ = ["RESOURCE_TYPES_TO_MONITOR", "ResourceTimingBuffer", "PerformanceMonitor"]

#: initiator types the fetch and media monitors cannot see
RESOURCE_TYPES_TO_MONITOR = frozenset({"css", "font", "img", "link", "other"})

EntriesCallback = Callable[[List[ResourceTimingEntry]], None]


class ResourceTimingBuffer:
    """Bounded buffer of :class:`ResourceTimingEntry` with observers.

    Observers receive lists of new entries; ``observe(..., buffered=True)``
    first replays what is already buffered.
    """

    DEFAULT_SIZE = 250

    def __init__(self, max_size: int = DEFAULT_SIZE, logger: Optional[logging.Logger] = None) -> None:
        self._entries: Deque[ResourceTimingEntry] = deque(maxlen=max_size)
        self._observers: Observable[List[ResourceTimingEntry]] = Observable(logger)

    def add(self, entry: ResourceTimingEntry) -> None:
        self._entries.append(entry)
        self._observers.notify([entry])

    def get_entries(self) -> List[ResourceTimingEntry]:
        return list(self._entries)

    def observe(self, callback: EntriesCallback, *, buffered: bool = False) -> Callable[[], None]:
        if buffered and self._entries:
            safe_call(callback, self.get_entries(), self._observers.logger)
        return self._observers.subscribe(callback)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class PerformanceMonitor(Monitor):
    """Reports resource timing entries as LOADED events."""

    name = "PerformanceMonitor"

    def __init__(
        self,
        on_resource_state_change: ResourceStateCallback,
        buffer: ResourceTimingBuffer,
        ignore_urls: Optional[Sequence[IgnoreUrl]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(on_resource_state_change, ignore_urls, logger)
        self.buffer = buffer
        self._unsubscribe: Optional[Callable[[], None]] = None

    def _attach(self) -> None:
        self._unsubscribe = self.buffer.observe(self._on_entries, buffered=True)

    def _detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_entries(self, entries: List[ResourceTimingEntry]) -> None:
        for entry in entries:
            safe_call(self._handle_entry, entry, self.logger)

    def _handle_entry(self, entry: ResourceTimingEntry) -> None:
        if entry.initiator_type not in RESOURCE_TYPES_TO_MONITOR:
            return
        if self.is_ignored(entry.name):
            return

        load_time = entry.duration
        self._emit(ResourceStateEvent.loaded(entry.name, entry.response_end, load_time))
        self.logger.debug(
            "%s: resource loaded %s (%s, %.1f ms)", self.name, entry.name, entry.initiator_type, load_time
        )
