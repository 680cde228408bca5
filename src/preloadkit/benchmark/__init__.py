"""Benchmark engine: runner, regression detection and reporting."""

from preloadkit.benchmark.models import (
    BenchmarkConfig,
    BenchmarkResult,
    BenchmarkSuiteResult,
    BenchmarkTest,
    MemoryUsage,
    Metric,
    RegressionFinding,
    Severity,
)
from preloadkit.benchmark.regression import (
    TRACKED_METRICS,
    RegressionDetector,
    classify_severity,
    compare_metric,
)
from preloadkit.benchmark.report import format_bytes, generate_report
from preloadkit.benchmark.runner import (
    BenchmarkRunner,
    BenchmarkSetupFailure,
    BenchmarkTimeout,
)
from preloadkit.benchmark.snapshot import BenchmarkSnapshot

__all__ = [
    # Runner
    "BenchmarkRunner",
    "BenchmarkTimeout",
    "BenchmarkSetupFailure",
    # Models
    "BenchmarkConfig",
    "BenchmarkResult",
    "BenchmarkSuiteResult",
    "BenchmarkTest",
    "MemoryUsage",
    "BenchmarkSnapshot",
    # Regression
    "RegressionDetector",
    "RegressionFinding",
    "Metric",
    "Severity",
    "TRACKED_METRICS",
    "classify_severity",
    "compare_metric",
    # Reporting
    "generate_report",
    "format_bytes",
]
