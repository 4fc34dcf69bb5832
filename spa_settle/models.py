"""
Data models shared by the monitors, the quiet-period awaiter and the manager.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResourceState(str, Enum):
    """Lifecycle state of a tracked resource."""

    DISCOVERED = "discovered"
    LOADED = "loaded"


@dataclass(frozen=True, slots=True)
class ResourceStateEvent:
    """Normalized resource activity emitted by a monitor.

    DISCOVERED events carry only ``url``. LOADED events also carry
    ``timestamp`` (ms, same clock as the measurement ``start_time``) and
    ``load_time`` (ms). ``failed`` marks a load that settled with an error or
    an abort; it still ends tracking like a successful load.
    """

    state: ResourceState
    url: str
    timestamp: Optional[float] = None
    load_time: Optional[float] = None
    failed: bool = False

    def __post_init__(self) -> None:
        if self.state is ResourceState.LOADED and (self.timestamp is None or self.load_time is None):
            raise ValueError("LOADED events require timestamp and load_time")

    @classmethod
    def discovered(cls, url: str) -> ResourceStateEvent:
        return cls(ResourceState.DISCOVERED, url)

    @classmethod
    def loaded(
        cls, url: str, timestamp: float, load_time: float, *, failed: bool = False
    ) -> ResourceStateEvent:
        return cls(ResourceState.LOADED, url, timestamp, load_time, failed)


@dataclass(frozen=True, slots=True)
class PageLoadResult:
    """Outcome of one measurement window."""

    load_time: float
    timestamp_of_last_loaded_resource: float


@dataclass(frozen=True, slots=True)
class ResourceTimingEntry:
    """One entry of the resource timing buffer.

    ``start_time`` and ``response_end`` are absolute timestamps in ms.
    """

    name: str
    initiator_type: str
    start_time: float
    response_end: float

    @property
    def duration(self) -> float:
        return self.response_end - self.start_time
