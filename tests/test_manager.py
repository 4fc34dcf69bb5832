# File: tests/test_manager.py
from __future__ import annotations

import asyncio
import logging
import re
import time

import pytest

from spa_settle.config import SpaMetricsConfig
from spa_settle.manager import SpaMetricsManager
from spa_settle.models import ResourceStateEvent, ResourceTimingEntry
from spa_settle.monitors import MediaElement, MonitoredTransport
from spa_settle.utils import now_ms

URL = "https://app.example.com/api/data"


def test_defaults():
    manager = SpaMetricsManager()
    assert manager.config.quiet_time == 5000
    assert manager.config.max_resources_to_watch == 100
    assert manager.config.ignore_urls == []
    assert not manager.is_monitoring
    assert manager.loading_resources_count == 0
    assert manager.current_awaiter is None
    assert manager.transport is None


def test_custom_config_and_overrides():
    manager = SpaMetricsManager(quiet_time=2000, ignore_urls=[re.compile("test")])
    assert manager.config.quiet_time == 2000
    assert manager.config.ignore_urls[0].pattern == "test"
    assert len(manager.config.ignore_urls) == 1
    assert all(m.is_ignored("https://example.com/test/1") for m in manager.monitors)

    base = SpaMetricsConfig(quiet_time=700)
    derived = SpaMetricsManager(base, max_resources_to_watch=3)
    assert derived.config.quiet_time == 700
    assert derived.config.max_resources_to_watch == 3


def test_beacon_traffic_is_ignored_by_every_monitor():
    manager = SpaMetricsManager(beacon_endpoint="https://rum.example.com/ingest")
    for monitor in manager.monitors:
        assert monitor.is_ignored("https://rum.example.com/any/path")
        assert not monitor.is_ignored(URL)


def test_start_stop_idempotent(test_logger, caplog):
    manager = SpaMetricsManager(logger=test_logger)
    manager.start()
    with caplog.at_level(logging.WARNING, logger=test_logger.name):
        manager.start()
    assert "already monitoring" in caplog.text
    assert manager.is_monitoring
    assert all(m.is_monitoring for m in manager.monitors)

    manager.stop()
    manager.stop()
    assert not manager.is_monitoring
    assert not any(m.is_monitoring for m in manager.monitors)


def test_reference_counts_per_url():
    manager = SpaMetricsManager()
    manager.on_resource_state_change(ResourceStateEvent.discovered(URL))
    manager.on_resource_state_change(ResourceStateEvent.discovered(URL))
    assert manager.loading_urls == {URL: 2}
    assert manager.loading_resources_count == 2

    manager.on_resource_state_change(ResourceStateEvent.loaded(URL, 10, 5))
    assert manager.loading_urls == {URL: 1}

    manager.on_resource_state_change(ResourceStateEvent.loaded(URL, 20, 5))
    assert manager.loading_urls == {}
    assert manager.loading_resources_count == 0


def test_untracked_loaded_does_not_go_negative():
    manager = SpaMetricsManager()
    manager.on_resource_state_change(ResourceStateEvent.loaded(URL, 10, 5))
    assert manager.loading_resources_count == 0
    assert manager.loading_urls == {}


def test_capacity_cap(test_logger, caplog):
    manager = SpaMetricsManager(max_resources_to_watch=2, logger=test_logger)
    with caplog.at_level(logging.DEBUG, logger=test_logger.name):
        for i in range(3):
            manager.on_resource_state_change(ResourceStateEvent.discovered(f"{URL}/{i}"))

    assert manager.loading_resources_count == 2
    assert f"{URL}/2" not in manager.loading_urls
    assert "max resources limit reached" in caplog.text

    manager.on_resource_state_change(ResourceStateEvent.loaded(f"{URL}/0", 10, 5))
    manager.on_resource_state_change(ResourceStateEvent.discovered(f"{URL}/2"))
    assert manager.loading_resources_count == 2
    assert manager.loading_urls == {f"{URL}/1": 1, f"{URL}/2": 1}


def test_loading_urls_is_a_copy():
    manager = SpaMetricsManager()
    manager.on_resource_state_change(ResourceStateEvent.discovered(URL))
    view = manager.loading_urls
    view.clear()
    assert manager.loading_urls == {URL: 1}


@pytest.mark.asyncio()
async def test_resolves_after_quiet_time_without_activity():
    manager = SpaMetricsManager(quiet_time=100)
    manager.start()
    started = time.perf_counter()

    result = await asyncio.wait_for(manager.wait_for_page_load(now_ms()), timeout=1)

    assert 0.09 <= time.perf_counter() - started < 0.5
    assert result.load_time == 0
    manager.stop()


@pytest.mark.asyncio()
async def test_discovery_disarms_and_settling_rearms(clock):
    manager = SpaMetricsManager(quiet_time=30, clock=clock)
    manager.start()
    start = clock()
    future = manager.wait_for_page_load(start)
    awaiter = manager.current_awaiter
    assert awaiter.is_timer_armed

    manager.on_resource_state_change(ResourceStateEvent.discovered(URL))
    assert not awaiter.is_timer_armed

    await asyncio.sleep(0.06)
    assert not future.done()

    manager.on_resource_state_change(ResourceStateEvent.loaded(URL, clock.advance(45), 45))
    assert awaiter.is_timer_armed

    result = await asyncio.wait_for(future, timeout=1)
    assert result.load_time == 45
    assert result.timestamp_of_last_loaded_resource == start + 45


@pytest.mark.asyncio()
async def test_untracked_loaded_rearms_when_idle(clock):
    manager = SpaMetricsManager(quiet_time=1000, clock=clock)
    start = clock()
    manager.wait_for_page_load(start)
    awaiter = manager.current_awaiter

    manager.on_resource_state_change(ResourceStateEvent.loaded("https://cdn.example.com/a.css", start + 70, 10))

    assert awaiter.is_timer_armed
    assert awaiter.last_resource_timestamp == start + 70
    awaiter.complete(False)


@pytest.mark.asyncio()
async def test_new_measurement_supersedes_pending_one(clock):
    manager = SpaMetricsManager(quiet_time=20, clock=clock)
    first = manager.wait_for_page_load(clock())
    manager.on_resource_state_change(ResourceStateEvent.discovered(URL))
    clock.advance(40)

    second = manager.wait_for_page_load(clock())

    assert first.done()
    assert first.result().load_time == 40
    assert not second.done()
    # still one resource in flight: the new window is not armed
    assert not manager.current_awaiter.is_timer_armed

    manager.on_resource_state_change(ResourceStateEvent.loaded(URL, clock.advance(5), 45))
    result = await asyncio.wait_for(second, timeout=1)
    assert result.load_time == 5


@pytest.mark.asyncio()
async def test_supersession_of_idle_measurement_uses_last_timestamp(clock):
    manager = SpaMetricsManager(quiet_time=1000, clock=clock)
    start = clock()
    first = manager.wait_for_page_load(start)
    clock.advance(250)

    manager.wait_for_page_load(clock())

    assert first.result().load_time == 0
    assert first.result().timestamp_of_last_loaded_resource == start
    manager.current_awaiter.complete(False)


@pytest.mark.asyncio()
async def test_fetch_through_monitored_transport(make_transport):
    stub = make_transport(delay=0.05)
    manager = SpaMetricsManager(quiet_time=50, transport=stub)
    assert isinstance(manager.transport, MonitoredTransport)

    async with manager:
        future = manager.wait_for_page_load(now_ms())
        response = await manager.transport.get(URL)
        assert response.ok
        assert manager.loading_resources_count == 0
        result = await asyncio.wait_for(future, timeout=1)

    assert result.load_time >= 40
    assert stub.calls == [URL]
    assert not manager.is_monitoring


@pytest.mark.asyncio()
async def test_wrap_transport_reports_to_the_manager(make_transport):
    manager = SpaMetricsManager(quiet_time=50)
    wrapped = manager.wrap_transport(make_transport())
    async with manager:
        future = manager.wait_for_page_load(now_ms())
        await wrapped.request("GET", URL)
        await asyncio.wait_for(future, timeout=1)
        assert manager.current_awaiter.last_resource_timestamp is not None


@pytest.mark.asyncio()
async def test_media_and_timing_sources_feed_the_manager(clock):
    manager = SpaMetricsManager(quiet_time=1000, clock=clock)
    manager.start()
    manager.wait_for_page_load(clock())

    element = manager.media_host.attach(MediaElement("img", "https://app.example.com/a.png"))
    assert manager.loading_urls == {"https://app.example.com/a.png": 1}

    manager.timing_buffer.add(ResourceTimingEntry("https://app.example.com/a.css", "css", clock(), clock() + 5))
    assert manager.loading_resources_count == 1

    clock.advance(80)
    element.mark_loaded()
    assert manager.loading_resources_count == 0
    assert manager.current_awaiter.last_resource_timestamp == clock()

    manager.current_awaiter.complete(False)
    manager.stop()


def test_stop_clears_table_and_detaches_sources():
    manager = SpaMetricsManager()
    manager.start()
    manager.media_host.attach(MediaElement("img", "https://app.example.com/a.png"))
    assert manager.loading_resources_count == 1

    manager.stop()
    assert manager.loading_urls == {}
    assert manager.loading_resources_count == 0

    manager.media_host.attach(MediaElement("img", "https://app.example.com/b.png"))
    assert manager.loading_resources_count == 0


def test_restart_tracks_resources_again():
    manager = SpaMetricsManager()
    manager.start()
    manager.stop()
    manager.start()

    element = manager.media_host.attach(MediaElement("img", "https://app.example.com/new.png"))
    assert manager.loading_urls == {"https://app.example.com/new.png": 1}
    # a single host subscription survives the restart
    assert len(manager.media_host.element_added) == 1

    element.mark_loaded()
    assert manager.loading_urls == {}
    manager.stop()


@pytest.mark.asyncio()
async def test_wait_after_stop_completes_on_timer_only(clock):
    manager = SpaMetricsManager(quiet_time=30, clock=clock)
    manager.start()
    manager.stop()
    start = clock()

    future = manager.wait_for_page_load(start)
    manager.media_host.attach(MediaElement("img", "https://app.example.com/late.png"))
    manager.timing_buffer.add(ResourceTimingEntry("https://app.example.com/late.css", "css", start, start + 500))
    assert manager.loading_urls == {}

    result = await asyncio.wait_for(future, timeout=1)
    assert result.load_time == 0
    assert result.timestamp_of_last_loaded_resource == start
