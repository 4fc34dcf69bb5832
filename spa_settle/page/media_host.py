"""
Media host backed by real HTTP loads.

Elements parsed from a route document are attached to the host (the media
monitor sees them) and their sources are then loaded through a plain,
unmonitored transport so that each physical resource is reported by exactly
one monitor.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from aiohttp import ClientError

from spa_settle.logger import get_logger
from spa_settle.monitors.fetch import ResourceTransport
from spa_settle.monitors.media import MediaElement, MediaHost
from spa_settle.parser.html_parser import MediaRef

__all__ = ["HtmlMediaHost"]


class HtmlMediaHost(MediaHost):
    """:class:`MediaHost` that loads ``src`` of every attached element."""

    def __init__(self, transport: ResourceTransport, logger: Optional[logging.Logger] = None) -> None:
        super().__init__()
        self.transport = transport
        self.logger = logger or get_logger("media_host")

    async def load(self, refs: Iterable[MediaRef]) -> List[MediaElement]:
        """Attach one element per reference and wait until all have settled.

        Lazy images are attached but never loaded.
        """
        elements = [self.attach(MediaElement(ref.kind, ref.url, lazy=ref.lazy)) for ref in refs]
        eager = [el for el in elements if not (el.kind == "img" and el.lazy)]
        await asyncio.gather(*(self._load_element(el) for el in eager))
        return elements

    async def _load_element(self, element: MediaElement) -> None:
        try:
            resp = await self.transport.request("GET", element.src)
        except (ClientError, asyncio.TimeoutError) as exc:
            self.logger.warning("Media %s failed: %s", element.src, exc)
            element.mark_failed()
            return
        except asyncio.CancelledError:
            # aborted navigation: the element must not stay pending
            element.mark_failed()
            raise
        if resp.ok:
            element.mark_loaded()
        else:
            self.logger.debug("Media %s -> HTTP %s", element.src, resp.status)
            element.mark_failed()
