"""
Media monitor: reports resource loads of ``img``, ``audio`` and ``video`` elements.

The document is represented by a :class:`MediaHost`, which announces every
attached :class:`MediaElement`. Elements fire ``load`` or ``error`` once
their source has settled.
"""
from __future__ import annotations

import logging
import weakref
from typing import Callable, Dict, List, Optional, Sequence

from spa_settle.models import ResourceStateEvent
from spa_settle.monitors.base import Monitor, ResourceStateCallback
from spa_settle.observable import Observable
from spa_settle.utils import IgnoreUrl, now_ms

__all__ = ["MEDIA_KINDS", "MediaElement", "MediaHost", "MediaMonitor"]

MEDIA_KINDS = frozenset({"img", "audio", "video"})

_PENDING, _LOADED, _ERROR = "pending", "loaded", "error"


class MediaElement:
    """A media element with a single source URL."""

    def __init__(self, kind: str, src: str, *, lazy: bool = False) -> None:
        if kind not in MEDIA_KINDS:
            raise ValueError(f"unsupported media element: {kind!r}")
        self.kind = kind
        self.src = src
        self.lazy = lazy
        self.state = _PENDING
        self._events: Dict[str, Observable[MediaElement]] = {"load": Observable(), "error": Observable()}

    @property
    def is_loaded(self) -> bool:
        return self.state == _LOADED

    @property
    def is_settled(self) -> bool:
        return self.state != _PENDING

    def add_listener(self, event: str, callback: Callable[[MediaElement], None]) -> Callable[[], None]:
        """Listen for ``"load"`` or ``"error"``; returns the remover."""
        return self._events[event].subscribe(callback)

    def listener_count(self, event: str) -> int:
        return len(self._events[event])

    def mark_loaded(self) -> None:
        self._settle(_LOADED, "load")

    def mark_failed(self) -> None:
        self._settle(_ERROR, "error")

    def _settle(self, state: str, event: str) -> None:
        if self.is_settled:
            return
        self.state = state
        self._events[event].notify(self)

    def __repr__(self) -> str:
        return f"<MediaElement {self.kind} {self.src!r} {self.state}>"


class MediaHost:
    """Set of media elements currently attached to the document."""

    def __init__(self) -> None:
        self.elements: List[MediaElement] = []
        self.element_added: Observable[MediaElement] = Observable()

    def attach(self, element: MediaElement) -> MediaElement:
        self.elements.append(element)
        self.element_added.notify(element)
        return element

    def clear(self) -> None:
        self.elements.clear()


class MediaMonitor(Monitor):
    """Reports DISCOVERED/LOADED for media elements of a :class:`MediaHost`.

    Each element is reported once; lazy images are skipped; an element that
    has already loaded yields a single LOADED with ``load_time=0``.
    """

    name = "MediaMonitor"

    def __init__(
        self,
        on_resource_state_change: ResourceStateCallback,
        host: MediaHost,
        ignore_urls: Optional[Sequence[IgnoreUrl]] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        super().__init__(on_resource_state_change, ignore_urls, logger)
        self.host = host
        self.clock = clock
        self._monitored: "weakref.WeakSet[MediaElement]" = weakref.WeakSet()
        self._listener_removers: List[Callable[[], None]] = []
        self._unsubscribe_host: Optional[Callable[[], None]] = None

    def _attach(self) -> None:
        for element in list(self.host.elements):
            self._attach_element(element)
        self._unsubscribe_host = self.host.element_added.subscribe(self._attach_element)

    def _detach(self) -> None:
        if self._unsubscribe_host is not None:
            self._unsubscribe_host()
            self._unsubscribe_host = None
        for remove in self._listener_removers:
            remove()
        self._listener_removers.clear()

    def _attach_element(self, element: MediaElement) -> None:
        if element in self._monitored:
            return
        if self.is_ignored(element.src):
            return
        if element.kind == "img" and element.lazy:
            return

        self._monitored.add(element)
        if element.is_loaded:
            self._emit(ResourceStateEvent.loaded(element.src, self.clock(), 0.0))
            return
        if element.is_settled:
            # failed before we saw it: nothing is loading
            return

        self._emit(ResourceStateEvent.discovered(element.src))
        start = self.clock()
        removers: List[Callable[[], None]] = []

        def settled(el: MediaElement, failed: bool) -> None:
            for remove in removers:
                remove()
                if remove in self._listener_removers:
                    self._listener_removers.remove(remove)
            end = self.clock()
            self._emit(ResourceStateEvent.loaded(el.src, end, end - start, failed=failed))

        removers.append(element.add_listener("load", lambda el: settled(el, False)))
        removers.append(element.add_listener("error", lambda el: settled(el, True)))
        self._listener_removers.extend(removers)
