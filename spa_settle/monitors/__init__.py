"""spa_settle.monitors: sources of resource-loading activity."""

from .base import Monitor, ResourceStateCallback
from .fetch import AiohttpTransport, FetchedResource, FetchMonitor, MonitoredTransport, ResourceTransport
from .media import MediaElement, MediaHost, MediaMonitor
from .performance import PerformanceMonitor, ResourceTimingBuffer

__all__ = [
    "Monitor",
    "ResourceStateCallback",
    "AiohttpTransport",
    "FetchedResource",
    "FetchMonitor",
    "MonitoredTransport",
    "ResourceTransport",
    "MediaElement",
    "MediaHost",
    "MediaMonitor",
    "PerformanceMonitor",
    "ResourceTimingBuffer",
]
