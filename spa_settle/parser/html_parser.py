# === FILE: spa_settle/parser/html_parser.py ===
"""HTML parsing utilities for spa_settle.

``parse_html()`` turns a route document into the list of sub-resources a
browser would load for it, split by the signal source that observes them:

* media: ``<img>``, ``<audio>``, ``<video>`` (and their ``<source>``
  children); observed by the media monitor.
* passive: stylesheets, icons, fonts and other ``<link>`` preloads;
  visible only through the resource timing buffer.
* fetches: ``<link rel="preload" as="fetch">`` data requests made by the
  application itself; observed by the fetch monitor.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from spa_settle.utils import absolute_url

__all__: Sequence[str] = ("MediaRef", "PassiveRef", "ParsedPage", "parse_html")


@dataclass(slots=True)
class MediaRef:
    kind: str
    url: str
    lazy: bool = False


@dataclass(slots=True)
class PassiveRef:
    url: str
    initiator_type: str


@dataclass(slots=True)
class ParsedPage:
    """Lightweight representation of a route document."""

    url: str
    title: str
    media: list[MediaRef] = field(default_factory=list)
    passive: list[PassiveRef] = field(default_factory=list)
    fetches: list[str] = field(default_factory=list)

    @property
    def resource_count(self) -> int:
        return len(self.media) + len(self.passive) + len(self.fetches)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SKIPPED_SCHEMES = ("data:", "blob:", "javascript:", "mailto:", "about:")
_PRELOAD_INITIATORS = {"font": "font", "image": "img", "style": "link"}


def _attr(tag: Tag, name: str) -> Optional[str]:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _media_src(tag: Tag) -> Optional[str]:
    src = _attr(tag, "src")
    if src:
        return src
    # <video>/<audio> without src: first <source> child wins, as in browsers
    for source in tag.find_all("source"):
        if isinstance(source, Tag):
            src = _attr(source, "src")
            if src:
                return src
    return None


def _link_initiator(tag: Tag) -> Optional[str]:
    """Initiator type of a ``<link>``; None for links we do not load."""
    rel = {r.lower() for r in (_attr(tag, "rel") or "").split()}
    as_ = (_attr(tag, "as") or "").lower()
    if "stylesheet" in rel:
        return "link"
    if "preload" in rel or "prefetch" in rel:
        if as_ == "fetch":
            return "fetch"
        return _PRELOAD_INITIATORS.get(as_, "other")
    if rel & {"icon", "shortcut", "apple-touch-icon", "manifest"}:
        return "link"
    return None


# ---------------------------------------------------------------------------
# Public function
# ---------------------------------------------------------------------------


def parse_html(page: Any, base_url: str = "") -> ParsedPage:
    """Parse raw HTML (string) or any object with ``url`` and ``content``.

    Relative URLs are resolved against the page URL (or *base_url*); each
    URL is listed once per category, in document order.
    """
    if hasattr(page, "content") and hasattr(page, "url"):
        html = page.content
        base_url = str(page.url)
    else:
        html = str(page)
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")

    soup = BeautifulSoup(html, "html.parser")

    base_tag = soup.find("base", href=True)
    if isinstance(base_tag, Tag):
        href = _attr(base_tag, "href")
        if href:
            base_url = absolute_url(base_url, href)

    title_tag = soup.find("title")
    parsed = ParsedPage(url=base_url, title=title_tag.get_text(strip=True) if title_tag else "")

    seen: set[tuple[str, str]] = set()

    def _keep(category: str, raw: Optional[str]) -> Optional[str]:
        if not raw or raw.lower().startswith(_SKIPPED_SCHEMES):
            return None
        url = absolute_url(base_url, raw)
        if (category, url) in seen:
            return None
        seen.add((category, url))
        return url

    for tag in soup.find_all(["img", "audio", "video"]):
        if not isinstance(tag, Tag):
            continue
        url = _keep("media", _media_src(tag))
        if url:
            lazy = (_attr(tag, "loading") or "").lower() == "lazy"
            parsed.media.append(MediaRef(tag.name, url, lazy))

    for tag in soup.find_all("link", href=True):
        if not isinstance(tag, Tag):
            continue
        initiator = _link_initiator(tag)
        if initiator is None:
            continue
        if initiator == "fetch":
            url = _keep("fetch", _attr(tag, "href"))
            if url:
                parsed.fetches.append(url)
            continue
        url = _keep("passive", _attr(tag, "href"))
        if url:
            parsed.passive.append(PassiveRef(url, initiator))

    return parsed

