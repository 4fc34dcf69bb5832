# File: spa_settle/utils.py
"""spa_settle.utils: clock, URL ignore-list matching and beacon origin helpers."""

from __future__ import annotations

import re
import time
from re import Pattern
from typing import Iterable, Optional, Sequence, Union
from urllib.parse import urljoin

from yarl import URL

__all__: Sequence[str] = (
    "IgnoreUrl",
    "now_ms",
    "is_url_ignored",
    "origin_of",
    "beacon_ignore_entry",
    "absolute_url",
)

#: An ignore-list entry: exact string or compiled regular expression.
IgnoreUrl = Union[str, Pattern[str]]


def now_ms() -> float:
    """Monotonic high-resolution timestamp in milliseconds.

    Every timestamp that flows through the manager (``start_time``, event
    timestamps, resource timing entries) is taken from this clock.
    """
    return time.perf_counter() * 1000.0


def is_url_ignored(url: str, ignore_urls: Optional[Iterable[IgnoreUrl]]) -> bool:
    """Return True if *url* matches any entry of *ignore_urls*.

    Strings match by equality, patterns by :meth:`re.Pattern.search`.
    """
    if not ignore_urls:
        return False
    for entry in ignore_urls:
        if isinstance(entry, str):
            if url == entry:
                return True
        elif entry.search(url):
            return True
    return False


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` of an absolute URL.

    Raises :class:`ValueError` when *url* is not absolute.
    """
    parsed = URL(url)
    if not parsed.is_absolute() or not parsed.scheme:
        raise ValueError(f"not an absolute URL: {url!r}")
    return str(parsed.origin())


def beacon_ignore_entry(beacon_endpoint: str) -> IgnoreUrl:
    """Ignore-list entry excluding the telemetry endpoint's own traffic.

    An origin-anchored pattern when the endpoint parses as an absolute URL,
    the raw literal otherwise.
    """
    try:
        origin = origin_of(beacon_endpoint)
    except ValueError:
        return beacon_endpoint
    return re.compile("^" + re.escape(origin))


def absolute_url(base_url: str, href: str) -> str:
    """Resolve *href* against *base_url*, dropping the fragment."""
    return urljoin(base_url, href.strip()).split("#", 1)[0]
