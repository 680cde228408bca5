"""Benchmark data models.

These models are plain dataclasses and convert to/from JSON-serializable
dicts so benchmark state can be exported and restored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from preloadkit.types import Loader

if TYPE_CHECKING:
    from preloadkit.config import BenchmarkSettings


@dataclass
class BenchmarkConfig:
    """Configuration for a single benchmark run.

    Hooks are zero-argument callables, sync or async.
    """

    description: str = ""
    iterations: int = 100
    """Measured iterations."""
    warmup_iterations: int = 10
    """Untimed iterations run before measuring."""
    timeout: float = 30000.0
    """Per-iteration limit in milliseconds. Exceeding it fails the whole run."""
    setup: Loader | None = None
    teardown: Loader | None = None
    before_each: Loader | None = None
    after_each: Loader | None = None

    def __post_init__(self) -> None:
        if self.iterations < 0:
            raise ValueError(f"iterations must be >= 0, got {self.iterations}")
        if self.warmup_iterations < 0:
            raise ValueError(f"warmup_iterations must be >= 0, got {self.warmup_iterations}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def from_settings(cls, settings: BenchmarkSettings, **overrides: Any) -> BenchmarkConfig:
        """Build a config from settings defaults, applying explicit overrides."""
        values: dict[str, Any] = {
            "iterations": settings.iterations,
            "warmup_iterations": settings.warmup_iterations,
            "timeout": settings.timeout_ms,
        }
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True, slots=True)
class MemoryUsage:
    """Memory probe readings in bytes. All 0 when no probe is available."""

    before: int = 0
    after: int = 0
    peak: int = 0


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    """Timing distribution of one benchmark run. Times are in milliseconds.

    Attributes:
        name: Benchmark name; results with the same name share history and baseline.
        iterations: Iterations actually measured (may be fewer than configured on failure).
        total_time: Sum of measured iteration times.
        average_time: total_time / iterations, 0 when nothing was measured.
        min_time: Fastest iteration.
        max_time: Slowest iteration.
        std_dev: Population standard deviation of iteration times.
        ops_per_second: 1000 / average_time, 0 when nothing was measured.
        memory: Memory readings before, after and at peak.
        success: False if setup, a hook, the workload or the timeout failed the run.
        error: Failure message when success is False.
    """

    name: str
    iterations: int
    total_time: float
    average_time: float
    min_time: float
    max_time: float
    std_dev: float
    ops_per_second: float
    memory: MemoryUsage = field(default_factory=MemoryUsage)
    success: bool = True
    error: str | None = None

    @classmethod
    def failed(cls, name: str, error: str) -> BenchmarkResult:
        """Result for a benchmark that could not run at all."""
        return cls(
            name=name,
            iterations=0,
            total_time=0.0,
            average_time=0.0,
            min_time=0.0,
            max_time=0.0,
            std_dev=0.0,
            ops_per_second=0.0,
            success=False,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        result: dict[str, Any] = {
            "name": self.name,
            "iterations": self.iterations,
            "total_time": self.total_time,
            "average_time": self.average_time,
            "min_time": self.min_time,
            "max_time": self.max_time,
            "std_dev": self.std_dev,
            "ops_per_second": self.ops_per_second,
            "memory": {
                "before": self.memory.before,
                "after": self.memory.after,
                "peak": self.memory.peak,
            },
            "success": self.success,
        }
        if self.error is not None:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchmarkResult:
        """Create from dictionary (for deserialization)."""
        memory = data.get("memory") or {}
        return cls(
            name=data["name"],
            iterations=data["iterations"],
            total_time=data["total_time"],
            average_time=data["average_time"],
            min_time=data["min_time"],
            max_time=data["max_time"],
            std_dev=data["std_dev"],
            ops_per_second=data["ops_per_second"],
            memory=MemoryUsage(
                before=memory.get("before", 0),
                after=memory.get("after", 0),
                peak=memory.get("peak", 0),
            ),
            success=data.get("success", True),
            error=data.get("error"),
        )


@dataclass
class BenchmarkTest:
    """One entry of a benchmark suite."""

    name: str
    fn: Loader
    config: BenchmarkConfig | None = None


@dataclass
class BenchmarkSuiteResult:
    """Aggregate of a sequential suite run."""

    name: str
    results: list[BenchmarkResult] = field(default_factory=list)
    total_time: float = 0.0
    """Wall time of the whole suite in milliseconds."""
    passed_tests: int = 0
    failed_tests: int = 0
    timestamp: float = 0.0
    """Unix timestamp when the suite finished."""


class Severity(Enum):
    """Magnitude tier of a significant change."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Metric(Enum):
    """Result metrics compared against a baseline."""

    AVERAGE_TIME = "average_time"
    PEAK_MEMORY = "peak_memory"
    OPS_PER_SECOND = "ops_per_second"


@dataclass(frozen=True, slots=True)
class RegressionFinding:
    """Significant change of one metric relative to the baseline.

    Derived on demand, never stored.
    """

    metric: Metric
    current: float
    baseline: float
    change: float
    """current - baseline, in the metric's unit."""
    change_percent: float
    """Relative change in percent (30.0 means +30%)."""
    is_regression: bool
    """True when the change is for the worse (slower, heavier, or fewer ops/sec)."""
    severity: Severity
