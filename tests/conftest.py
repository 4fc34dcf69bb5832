# File: tests/conftest.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import List

import pytest
import pytest_asyncio
from aiohttp import web

from spa_settle.models import ResourceStateEvent
from spa_settle.monitors.fetch import FetchedResource

#: delay of the slow image served by the test application (seconds)
SLOW_IMAGE_DELAY: float = 0.2


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


class EventRecorder:
    """Callable collecting emitted ResourceStateEvents."""

    def __init__(self) -> None:
        self.events: List[ResourceStateEvent] = []

    def __call__(self, event: ResourceStateEvent) -> None:
        self.events.append(event)

    @property
    def states(self) -> List[str]:
        return [e.state.value for e in self.events]


class StubTransport:
    """In-memory ResourceTransport."""

    def __init__(self, status: int = 200, exc: Exception | None = None, delay: float = 0.0) -> None:
        self.status = status
        self.exc = exc
        self.delay = delay
        self.calls: List[str] = []

    async def request(self, method: str, url: str, **kwargs) -> FetchedResource:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return FetchedResource(url, self.status, "text/plain", "ok")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture()
def make_transport():
    """Factory of in-memory transports: make_transport(status=..., exc=..., delay=...)."""
    return StubTransport


@pytest.fixture()
def slow_image_delay() -> float:
    return SLOW_IMAGE_DELAY


@pytest.fixture()
def test_logger() -> logging.Logger:
    """Logger outside the project hierarchy, so caplog always sees it."""
    lg = logging.getLogger("tests.spa_settle")
    lg.propagate = True
    return lg


# --------------------------------------------------------------------------- #
#                            Test-server fixtures                             #
# --------------------------------------------------------------------------- #

INDEX_HTML = """<!DOCTYPE html>
<html><head>
  <title>Home</title>
  <link rel="stylesheet" href="/static/app.css">
  <link rel="preload" as="fetch" href="/api/items">
</head><body>
  <img src="/static/slow.png">
  <img src="/static/below-the-fold.png" loading="lazy">
</body></html>"""

ABOUT_HTML = """<!DOCTYPE html>
<html><head><title>About</title></head>
<body><p>Nothing to load here.</p></body></html>"""


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


@pytest_asyncio.fixture
async def spa_server(unused_tcp_port: int) -> AsyncIterator[str]:
    app = web.Application()

    async def index(_):
        return web.Response(text=INDEX_HTML, content_type="text/html")

    async def about(_):
        return web.Response(text=ABOUT_HTML, content_type="text/html")

    async def css(_):
        return web.Response(text="body { color: black; }", content_type="text/css")

    async def items(_):
        return web.json_response({"items": [1, 2, 3]})

    async def slow_png(_):
        await asyncio.sleep(SLOW_IMAGE_DELAY)
        return web.Response(body=b"\x89PNG\r\n", content_type="image/png")

    async def png(_):
        return web.Response(body=b"\x89PNG\r\n", content_type="image/png")

    app.router.add_get("/", index)
    app.router.add_get("/about", about)
    app.router.add_get("/static/app.css", css)
    app.router.add_get("/api/items", items)
    app.router.add_get("/static/slow.png", slow_png)
    app.router.add_get("/static/below-the-fold.png", png)

    async for url in _serve_app(app, unused_tcp_port):
        yield url
