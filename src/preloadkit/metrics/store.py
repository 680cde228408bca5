"""Keyed store of elapsed-time samples.

Every timed operation writes here; reporting and regression tooling read.

Usage:
    metrics = MetricsStore()
    start = monotonic_ms()
    ...
    metrics.record_since("Button", start)
    metrics.get_metrics()  # {"Button": 3.2}

    # Wrap a loader so each call is timed
    timed_loader = metrics.monitor("Chart", load_chart)
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

from preloadkit.metrics.models import Clock, MetricSample, monotonic_ms
from preloadkit.types import Loader, call_loader

logger = logging.getLogger(__name__)

ERROR_SUFFIX = ":error"


class MetricsStore:
    """In-memory metric store.

    Keeps the latest sample per key for simple lookup plus a bounded ring
    of recent samples per key. Each write touches a single key only.

    Args:
        history_limit: Samples retained per key (oldest evicted first).
        clock: Millisecond clock used by record_since() and monitor().
    """

    def __init__(self, history_limit: int = 50, clock: Clock | None = None) -> None:
        if history_limit < 1:
            raise ValueError(f"history_limit must be positive, got {history_limit}")
        self._history_limit = history_limit
        self._clock = clock or monotonic_ms
        self._latest: dict[str, MetricSample] = {}
        self._samples: dict[str, deque[MetricSample]] = {}

    @property
    def clock(self) -> Clock:
        return self._clock

    def record(self, key: str, elapsed_ms: float) -> MetricSample:
        """Record an elapsed time for key.

        Args:
            key: Metric key.
            elapsed_ms: Duration in milliseconds.

        Returns:
            The stored sample.
        """
        sample = MetricSample(key=key, elapsed_ms=elapsed_ms, recorded_at=time.time())
        self._latest[key] = sample
        ring = self._samples.get(key)
        if ring is None:
            ring = deque(maxlen=self._history_limit)
            self._samples[key] = ring
        ring.append(sample)
        logger.debug("metric %s: %.2fms", key, elapsed_ms)
        return sample

    def record_since(self, key: str, start_ms: float) -> MetricSample:
        """Record the time elapsed between start_ms and now."""
        return self.record(key, self._clock() - start_ms)

    def get(self, key: str) -> MetricSample | None:
        """Latest sample for key, or None if nothing was recorded."""
        return self._latest.get(key)

    def samples(self, key: str) -> list[MetricSample]:
        """Recent samples for key, oldest first."""
        return list(self._samples.get(key, ()))

    def keys(self) -> list[str]:
        return list(self._latest)

    def get_metrics(self) -> dict[str, float]:
        """Latest elapsed time per key."""
        return {key: sample.elapsed_ms for key, sample in self._latest.items()}

    def clear(self) -> None:
        """Drop all samples."""
        self._latest.clear()
        self._samples.clear()

    def monitor(self, key: str, loader: Loader) -> Callable[[], Awaitable[Any]]:
        """Wrap loader so every call records its duration.

        Successful calls are recorded under key, failed calls under
        "<key>:error". Failures are re-raised unchanged.
        """

        async def timed() -> Any:
            start = self._clock()
            try:
                result = await call_loader(loader)
            except Exception:
                self.record_since(key + ERROR_SUFFIX, start)
                raise
            self.record_since(key, start)
            return result

        return timed

    def __len__(self) -> int:
        return len(self._latest)
