"""Metric sample model and host probes.

Usage:
    sample = MetricSample(key="component:Button", elapsed_ms=12.5, recorded_at=time.time())
    start = monotonic_ms()
"""

from __future__ import annotations

import time
import tracemalloc
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

Clock = Callable[[], float]
"""Monotonic clock returning milliseconds."""

MemoryProbe = Callable[[], int]
"""Returns current memory usage in bytes, or 0 when unknown."""


@dataclass(frozen=True, slots=True)
class MetricSample:
    """Elapsed-time sample for a single keyed operation.

    Attributes:
        key: Metric key (e.g. "Button" or "Button:error").
        elapsed_ms: Duration of the operation in milliseconds.
        recorded_at: Unix timestamp when the sample was taken.
    """

    key: str
    elapsed_ms: float
    recorded_at: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "key": self.key,
            "elapsed_ms": self.elapsed_ms,
            "recorded_at": self.recorded_at,
        }


def monotonic_ms() -> float:
    """High resolution monotonic clock in milliseconds."""
    return time.perf_counter() * 1000.0


def traced_memory() -> int:
    """Current memory traced by tracemalloc, 0 if tracing is not active."""
    if not tracemalloc.is_tracing():
        return 0
    current, _peak = tracemalloc.get_traced_memory()
    return current
