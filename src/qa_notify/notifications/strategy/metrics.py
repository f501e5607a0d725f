"""Cached system load snapshots for the strategy."""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

import psutil

from qa_notify.broker.protocols import QueueProvider
from qa_notify.config.models import MetricsConfig
from qa_notify.notifications.models import FALLBACK_METRICS, SystemMetrics
from qa_notify.utils.sanitization import sanitize_exception

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class _DispatchSample:
    duration_ms: float
    success: bool


class SystemMetricsCollector:
    """Builds SystemMetrics from the broker, the process and recent dispatches.

    Snapshots are cached for ``cache_ttl`` seconds. Any failure while
    collecting yields ``FALLBACK_METRICS`` instead of an error.
    """

    def __init__(
        self,
        config: MetricsConfig | None = None,
        *,
        provider: QueueProvider | None = None,
        queue_name: str = "notifications",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the collector.

        Args:
            config: Cache TTL and window size
            provider: Broker used for queue depth; depth is 0 without one
            queue_name: Queue whose depth is reported
            clock: Monotonic clock used for the cache
        """
        self._config: MetricsConfig = config or MetricsConfig()
        self._provider: QueueProvider | None = provider
        self._queue_name: str = queue_name
        self._clock: Callable[[], float] = clock
        self._samples: deque[_DispatchSample] = deque(maxlen=self._config.window_size)
        self._cached: SystemMetrics | None = None
        self._cached_at: float = 0.0
        self._process: psutil.Process | None = None

    def record_dispatch(self, duration_ms: float, success: bool) -> None:
        """Add one dispatch outcome to the rolling window."""
        self._samples.append(_DispatchSample(duration_ms=max(duration_ms, 0.0), success=success))

    def clear_cache(self) -> None:
        self._cached = None
        self._cached_at = 0.0

    async def get_metrics(self) -> SystemMetrics:
        """Current snapshot, recomputed when the cache has expired."""
        now = self._clock()
        if self._cached is not None and now - self._cached_at < self._config.cache_ttl:
            return self._cached

        try:
            metrics = await self._collect()
        except Exception as exc:
            logger.warning("Metrics collection failed, using fallback: %s", sanitize_exception(exc))
            return FALLBACK_METRICS

        self._cached = metrics
        self._cached_at = now
        return metrics

    async def _collect(self) -> SystemMetrics:
        process = self._get_process()
        response_time, error_rate = self._window_stats()
        return SystemMetrics(
            queue_size=await self._queue_size(),
            response_time=response_time,
            error_rate=error_rate,
            active_connections=self._connection_count(process),
            memory_usage=round(process.memory_percent(), 2),
        )

    def _get_process(self) -> psutil.Process:
        if self._process is None:
            self._process = psutil.Process()
        return self._process

    async def _queue_size(self) -> int:
        if self._provider is None or not self._provider.is_connected():
            return 0
        info = await self._provider.get_queue_info(self._queue_name)
        return info.message_count

    @staticmethod
    def _connection_count(process: psutil.Process) -> int:
        try:
            return len(process.net_connections(kind="inet"))
        except psutil.AccessDenied:
            # some platforms require privileges to list sockets
            return 0

    def _window_stats(self) -> tuple[float, float]:
        if not self._samples:
            return 0.0, 0.0
        total = len(self._samples)
        average = sum(sample.duration_ms for sample in self._samples) / total
        failures = sum(1 for sample in self._samples if not sample.success)
        return round(average, 2), round(failures * 100.0 / total, 2)
