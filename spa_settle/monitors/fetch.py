"""
Fetch monitor: reports requests made through a wrapped resource transport.

Instead of patching a global HTTP client, requests go through an explicit
:class:`MonitoredTransport` decorator around any :class:`ResourceTransport`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence, Union, runtime_checkable

from aiohttp import ClientSession

from spa_settle.models import ResourceStateEvent
from spa_settle.monitors.base import Monitor, ResourceStateCallback
from spa_settle.utils import IgnoreUrl, now_ms

__all__ = [
    "FetchedResource",
    "ResourceTransport",
    "AiohttpTransport",
    "MonitoredTransport",
    "FetchMonitor",
]


@dataclass(slots=True)
class FetchedResource:
    """Fully read response (text for HTML/JSON/CSS, bytes otherwise)."""

    url: str
    status: int
    content_type: str
    content: Union[str, bytes]

    @property
    def ok(self) -> bool:
        return self.status < 400


@runtime_checkable
class ResourceTransport(Protocol):
    """Narrow interface of anything that loads a resource over the network."""

    async def request(self, method: str, url: str, **kwargs: Any) -> FetchedResource: ...


class AiohttpTransport:
    """:class:`ResourceTransport` on top of an :class:`aiohttp.ClientSession`."""

    _TEXT_TYPES = ("html", "json", "css", "javascript", "text/")

    def __init__(self, session: ClientSession) -> None:
        self.session = session

    async def request(self, method: str, url: str, **kwargs: Any) -> FetchedResource:
        async with self.session.request(method, url, raise_for_status=False, **kwargs) as resp:
            ctype = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
            if any(t in ctype for t in self._TEXT_TYPES):
                content: Union[str, bytes] = await resp.text()
            else:
                content = await resp.read()
            return FetchedResource(str(resp.url), resp.status, ctype, content)

    async def get(self, url: str, **kwargs: Any) -> FetchedResource:
        return await self.request("GET", url, **kwargs)


class MonitoredTransport:
    """Decorator reporting every request of *transport* to its monitor.

    While the monitor is stopped, or for ignored URLs, requests pass through
    untouched.
    """

    def __init__(self, transport: ResourceTransport, monitor: FetchMonitor) -> None:
        self._transport = transport
        self._monitor = monitor

    @property
    def wrapped(self) -> ResourceTransport:
        return self._transport

    async def request(self, method: str, url: str, **kwargs: Any) -> FetchedResource:
        monitor = self._monitor
        if not monitor.is_monitoring or monitor.is_ignored(url):
            return await self._transport.request(method, url, **kwargs)

        start = monitor.clock()
        monitor._emit(ResourceStateEvent.discovered(url))
        failed = True
        try:
            response = await self._transport.request(method, url, **kwargs)
            failed = not response.ok
            return response
        finally:
            # also runs on exceptions and cancellation: the request has settled
            end = monitor.clock()
            monitor._emit(ResourceStateEvent.loaded(url, end, end - start, failed=failed))

    async def get(self, url: str, **kwargs: Any) -> FetchedResource:
        return await self.request("GET", url, **kwargs)


class FetchMonitor(Monitor):
    """Reports DISCOVERED at request start and LOADED when it settles."""

    name = "FetchMonitor"

    def __init__(
        self,
        on_resource_state_change: ResourceStateCallback,
        transport: Optional[ResourceTransport] = None,
        ignore_urls: Optional[Sequence[IgnoreUrl]] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        super().__init__(on_resource_state_change, ignore_urls, logger)
        self.clock = clock
        self._monitored = MonitoredTransport(transport, self) if transport is not None else None

    @property
    def transport(self) -> Optional[MonitoredTransport]:
        """Monitored view of the transport given at construction."""
        return self._monitored

    def wrap(self, transport: ResourceTransport) -> MonitoredTransport:
        """Monitored view of any other transport."""
        return MonitoredTransport(transport, self)

    def _attach(self) -> None:
        # the wrapper checks is_monitoring on every request
        pass

    def _detach(self) -> None:
        pass
