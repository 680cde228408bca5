"""Elapsed-time metrics shared by the loader cache and the benchmark engine."""

from preloadkit.metrics.models import (
    Clock,
    MemoryProbe,
    MetricSample,
    monotonic_ms,
    traced_memory,
)
from preloadkit.metrics.store import ERROR_SUFFIX, MetricsStore

__all__ = [
    "MetricsStore",
    "MetricSample",
    "ERROR_SUFFIX",
    # Probes
    "Clock",
    "MemoryProbe",
    "monotonic_ms",
    "traced_memory",
]
