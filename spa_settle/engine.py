# File: spa_settle/engine.py
"""spa_settle.engine: оркестрация измерения маршрутов и агрегации результатов."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from aiohttp import ClientSession, ClientTimeout

from spa_settle.aggregator import MeasurementReport, RouteMeasurement, aggregate_results
from spa_settle.config import MeasureConfig, load_config
from spa_settle.logger import get_logger
from spa_settle.manager import SpaMetricsManager
from spa_settle.monitors.fetch import AiohttpTransport
from spa_settle.page.loader import PageLoader
from spa_settle.page.media_host import HtmlMediaHost
from spa_settle.utils import absolute_url, now_ms

__all__ = ["Engine", "measure_route", "measure_routes"]


async def measure_route(
    manager: SpaMetricsManager,
    loader: PageLoader,
    route: str,
    url: str,
    navigation_timeout: float,
    clock: Callable[[], float] = now_ms,
) -> RouteMeasurement:
    """Переход на один маршрут: окно измерения открывается до загрузки документа."""
    measurement = RouteMeasurement(route=route, url=url)
    settled = manager.wait_for_page_load(clock())
    load_task = asyncio.create_task(loader.load(url))

    try:
        result = await asyncio.wait_for(settled, timeout=navigation_timeout)
    except asyncio.TimeoutError:
        manager.logger.warning("Route %s did not settle within %s s", route, navigation_timeout)
        measurement.timed_out = True
        load_task.cancel()
    else:
        measurement.load_time = round(result.load_time, 3)
        measurement.timestamp_of_last_loaded_resource = round(result.timestamp_of_last_loaded_resource, 3)

    done = await asyncio.gather(load_task, return_exceptions=True)
    load = done[0]
    if isinstance(load, BaseException):
        if not isinstance(load, asyncio.CancelledError):
            manager.logger.error("Loading %s failed: %s", url, load)
        return measurement

    measurement.status = load.status
    measurement.failed_resources = list(load.failed_resources)
    if load.page is not None:
        measurement.media = len(load.page.media)
        measurement.passive = len(load.page.passive)
        measurement.fetches = len(load.page.fetches)
    return measurement


async def measure_routes(config: MeasureConfig, logger: Optional[logging.Logger] = None) -> MeasurementReport:
    """Открывает сессию aiohttp, запускает менеджер и измеряет маршруты по порядку."""
    logger = logger or get_logger("engine")
    base = str(config.base_url).rstrip("/") + "/"
    timeout = ClientTimeout(total=config.timeout)
    measurements: List[RouteMeasurement] = []

    async with ClientSession(timeout=timeout, headers={"User-Agent": config.user_agent}) as session:
        raw = AiohttpTransport(session)
        media_host = HtmlMediaHost(raw, logger.getChild("media_host"))
        manager = SpaMetricsManager(
            config.spa, transport=raw, media_host=media_host, logger=logger.getChild("manager")
        )
        loader = PageLoader(
            manager.transport, raw, media_host, manager.timing_buffer, logger=logger.getChild("loader")
        )

        async with manager:
            for route in config.routes:
                url = absolute_url(base, route.lstrip("/"))
                logger.info("Measuring %s", url)
                measurement = await measure_route(manager, loader, route, url, config.navigation_timeout)
                if measurement.settled:
                    logger.info("%s settled in %.1f ms", route, measurement.load_time)
                measurements.append(measurement)

    return aggregate_results(base.rstrip("/"), config.spa.quiet_time, measurements)


class Engine:
    """Фасад для CLI и тестов: загрузка конфига, запуск измерений и агрегация результатов."""

    @staticmethod
    def load_config(path: Optional[str]) -> MeasureConfig:
        """Загружает конфиг из YAML/JSON."""
        return load_config(path)

    def __init__(self, config: MeasureConfig) -> None:
        self.config = config
        self.logger = get_logger("engine")

    def run(self) -> MeasurementReport:
        """Запускает измерения в новом цикле событий и возвращает отчёт."""
        self.logger.info("Starting measurement…")
        try:
            return asyncio.run(measure_routes(self.config, self.logger))
        except Exception as exc:
            self.logger.error("Measurement failed: %s", exc)
            raise
