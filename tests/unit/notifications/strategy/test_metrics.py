"""Tests for the system metrics collector."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import psutil
import pytest

from qa_notify.broker.message import QueueMessage
from qa_notify.config.models import MetricsConfig
from qa_notify.notifications.models import FALLBACK_METRICS
from qa_notify.notifications.strategy import SystemMetricsCollector
from tests.fixtures.notification_mocks import FakeQueueProvider


class FakeClock:
    def __init__(self) -> None:
        self.now: float = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_process() -> Iterator[MagicMock]:
    process = MagicMock()
    process.memory_percent.return_value = 12.3456
    process.net_connections.return_value = [object(), object(), object()]
    with patch("qa_notify.notifications.strategy.metrics.psutil.Process", return_value=process):
        yield process


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def collector(clock: FakeClock, fake_process: MagicMock) -> SystemMetricsCollector:
    return SystemMetricsCollector(MetricsConfig(cache_ttl=5.0, window_size=10), clock=clock)


class TestSnapshot:
    """Test the collected values."""

    async def test_empty_window(self, collector: SystemMetricsCollector) -> None:
        metrics = await collector.get_metrics()

        assert metrics.queue_size == 0
        assert metrics.response_time == 0.0
        assert metrics.error_rate == 0.0
        assert metrics.active_connections == 3
        assert metrics.memory_usage == 12.35

    async def test_window_average_and_error_rate(self, collector: SystemMetricsCollector) -> None:
        collector.record_dispatch(100.0, True)
        collector.record_dispatch(300.0, False)

        metrics = await collector.get_metrics()

        assert metrics.response_time == 200.0
        assert metrics.error_rate == 50.0

    async def test_window_keeps_latest_samples(self, clock: FakeClock, fake_process: MagicMock) -> None:
        collector = SystemMetricsCollector(MetricsConfig(window_size=2), clock=clock)
        collector.record_dispatch(1000.0, False)
        collector.record_dispatch(10.0, True)
        collector.record_dispatch(30.0, True)

        metrics = await collector.get_metrics()

        assert metrics.response_time == 20.0
        assert metrics.error_rate == 0.0

    async def test_negative_durations_clamped(self, collector: SystemMetricsCollector) -> None:
        collector.record_dispatch(-5.0, True)

        assert (await collector.get_metrics()).response_time == 0.0

    async def test_access_denied_counts_zero_connections(
        self,
        collector: SystemMetricsCollector,
        fake_process: MagicMock,
    ) -> None:
        fake_process.net_connections.side_effect = psutil.AccessDenied()

        assert (await collector.get_metrics()).active_connections == 0


class TestQueueDepth:
    """Test the broker-backed queue size."""

    async def test_reads_connected_provider(self, clock: FakeClock, fake_process: MagicMock) -> None:
        provider = FakeQueueProvider()
        await provider.connect()
        await provider.create_queue("notifications")
        for _ in range(4):
            _ = await provider.publish_to_queue("notifications", QueueMessage())
        collector = SystemMetricsCollector(provider=provider, queue_name="notifications", clock=clock)

        assert (await collector.get_metrics()).queue_size == 4

    async def test_disconnected_provider_reports_zero(self, clock: FakeClock, fake_process: MagicMock) -> None:
        collector = SystemMetricsCollector(provider=FakeQueueProvider(), clock=clock)

        assert (await collector.get_metrics()).queue_size == 0


class TestCaching:
    """Test the TTL cache and the fallback."""

    async def test_cached_within_ttl(self, collector: SystemMetricsCollector, clock: FakeClock) -> None:
        first = await collector.get_metrics()
        collector.record_dispatch(500.0, False)
        clock.now += 4.9

        assert await collector.get_metrics() is first

    async def test_refreshed_after_ttl(self, collector: SystemMetricsCollector, clock: FakeClock) -> None:
        first = await collector.get_metrics()
        collector.record_dispatch(500.0, False)
        clock.now += 5.0

        second = await collector.get_metrics()

        assert second is not first
        assert second.error_rate == 100.0

    async def test_clear_cache(self, collector: SystemMetricsCollector) -> None:
        first = await collector.get_metrics()
        collector.clear_cache()

        assert await collector.get_metrics() is not first

    async def test_failure_returns_fallback(self, clock: FakeClock, fake_process: MagicMock) -> None:
        provider = FakeQueueProvider()
        await provider.connect()
        # connected but the queue was never declared
        collector = SystemMetricsCollector(provider=provider, queue_name="missing", clock=clock)

        assert await collector.get_metrics() is FALLBACK_METRICS

    async def test_fallback_not_cached(self, clock: FakeClock, fake_process: MagicMock) -> None:
        fake_process.memory_percent.side_effect = [RuntimeError("procfs gone"), 10.0]
        collector = SystemMetricsCollector(clock=clock)

        assert await collector.get_metrics() is FALLBACK_METRICS
        assert (await collector.get_metrics()).memory_usage == 10.0
