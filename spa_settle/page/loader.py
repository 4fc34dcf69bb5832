"""
PageLoader: loads one route the way a browser would, feeding every
sub-resource to the signal source that observes it.

* the document and ``as="fetch"`` preloads → monitored transport (fetch monitor)
* media elements → :class:`HtmlMediaHost` (media monitor)
* stylesheets, fonts, icons → resource timing buffer (performance monitor)
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from aiohttp import ClientError

from spa_settle.logger import get_logger
from spa_settle.models import ResourceTimingEntry
from spa_settle.monitors.fetch import ResourceTransport
from spa_settle.monitors.media import MediaElement
from spa_settle.monitors.performance import ResourceTimingBuffer
from spa_settle.page.media_host import HtmlMediaHost
from spa_settle.parser.html_parser import ParsedPage, PassiveRef, parse_html
from spa_settle.utils import now_ms

__all__ = ["PageLoad", "PageLoader"]


@dataclass(slots=True)
class PageLoad:
    """What happened while loading one route."""

    url: str
    status: Optional[int] = None
    page: Optional[ParsedPage] = None
    media: List[MediaElement] = field(default_factory=list)
    failed_resources: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is not None and self.status < 400


class PageLoader:
    """Loads route documents and their sub-resources."""

    def __init__(
        self,
        monitored_transport: ResourceTransport,
        raw_transport: ResourceTransport,
        media_host: HtmlMediaHost,
        timing_buffer: ResourceTimingBuffer,
        *,
        clock: Callable[[], float] = now_ms,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.monitored_transport = monitored_transport
        self.raw_transport = raw_transport
        self.media_host = media_host
        self.timing_buffer = timing_buffer
        self.clock = clock
        self.logger = logger or get_logger("loader")

    async def load(self, url: str) -> PageLoad:
        result = PageLoad(url)
        # a new document replaces the media elements of the previous one
        self.media_host.clear()
        try:
            resp = await self.monitored_transport.request("GET", url)
        except (ClientError, asyncio.TimeoutError) as exc:
            self.logger.warning("Failed %s: %s", url, exc)
            return result

        result.status = resp.status
        if not resp.ok:
            self.logger.warning("Route %s -> HTTP %s", url, resp.status)
            return result
        if "html" not in resp.content_type:
            self.logger.debug("Route %s is %s, no sub-resources", url, resp.content_type or "untyped")
            return result

        page = parse_html(resp)
        result.page = page
        self.logger.debug(
            "Route %s: %d media, %d passive, %d fetches",
            url, len(page.media), len(page.passive), len(page.fetches),
        )

        outcomes = await asyncio.gather(
            self.media_host.load(page.media),
            *(self._load_passive(ref) for ref in page.passive),
            *(self._fetch(u) for u in page.fetches),
        )
        result.media = outcomes[0]
        result.failed_resources = [u for u in outcomes[1:] if u]
        result.failed_resources.extend(el.src for el in result.media if el.state == "error")
        return result

    async def _load_passive(self, ref: PassiveRef) -> Optional[str]:
        """Load *ref* and record its timing entry; returns the URL on failure."""
        start = self.clock()
        failed: Optional[str] = ref.url
        try:
            resp = await self.raw_transport.request("GET", ref.url)
            if resp.ok:
                failed = None
        except (ClientError, asyncio.TimeoutError) as exc:
            self.logger.warning("Resource %s failed: %s", ref.url, exc)
        finally:
            self.timing_buffer.add(ResourceTimingEntry(ref.url, ref.initiator_type, start, self.clock()))
        return failed

    async def _fetch(self, url: str) -> Optional[str]:
        try:
            resp = await self.monitored_transport.request("GET", url)
        except (ClientError, asyncio.TimeoutError) as exc:
            self.logger.warning("Fetch %s failed: %s", url, exc)
            return url
        return None if resp.ok else url
