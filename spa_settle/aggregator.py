# File: spa_settle/aggregator.py
"""spa_settle.aggregator: сводный отчёт по измерениям маршрутов."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from statistics import mean
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class RouteMeasurement:
    """Результат измерения одного маршрута."""

    route: str
    url: str
    load_time: Optional[float] = None
    timestamp_of_last_loaded_resource: Optional[float] = None
    status: Optional[int] = None
    timed_out: bool = False
    media: int = 0
    passive: int = 0
    fetches: int = 0
    failed_resources: List[str] = field(default_factory=list)

    @property
    def settled(self) -> bool:
        return self.load_time is not None and not self.timed_out


@dataclass(slots=True)
class MeasurementReport:
    """Измерения всех маршрутов одного запуска и статистика по ним."""

    base_url: str
    quiet_time: float
    routes: List[RouteMeasurement] = field(default_factory=list)

    @property
    def summary(self) -> Dict[str, Any]:
        times = [r.load_time for r in self.routes if r.settled and r.load_time is not None]
        return {
            "routes": len(self.routes),
            "settled": len(times),
            "timed_out": sum(1 for r in self.routes if r.timed_out),
            "min_load_time": min(times) if times else None,
            "max_load_time": max(times) if times else None,
            "mean_load_time": round(mean(times), 3) if times else None,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "quiet_time": self.quiet_time,
            "summary": self.summary,
            "routes": [asdict(r) for r in self.routes],
        }

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление отчёта."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def aggregate_results(
    base_url: str, quiet_time: float, measurements: List[RouteMeasurement]
) -> MeasurementReport:
    """Собирает измерения в MeasurementReport (порядок маршрутов сохраняется)."""
    return MeasurementReport(base_url=base_url, quiet_time=quiet_time, routes=list(measurements))
