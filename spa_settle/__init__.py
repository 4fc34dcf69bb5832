# spa_settle/__init__.py
"""
spa_settle package initializer.

Measures how long a single-page-application route change takes to settle:
monitors report resource activity, :class:`SpaMetricsManager` waits for a
quiet period and returns the load time.
"""
__version__ = "0.1.0"

from spa_settle.config import MeasureConfig, SpaMetricsConfig
from spa_settle.manager import SpaMetricsManager
from spa_settle.models import PageLoadResult, ResourceState, ResourceStateEvent
from spa_settle.quiet_period import QuietPeriodAwaiter

__all__ = [
    "__version__",
    "MeasureConfig",
    "PageLoadResult",
    "QuietPeriodAwaiter",
    "ResourceState",
    "ResourceStateEvent",
    "SpaMetricsConfig",
    "SpaMetricsManager",
]
