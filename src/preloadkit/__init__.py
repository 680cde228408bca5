"""preloadkit: adaptive preloading and performance-regression benchmarks.

Usage:
    from preloadkit import (
        BenchmarkRunner, Category, ComponentRegistry, DeviceContext,
        PreloadScheduler, RegistryEntry,
    )

    async def load_chart():
        ...

    registry = ComponentRegistry()
    registry.register(RegistryEntry("Chart", load_chart, priority=7, category=Category.FEATURE))

    scheduler = PreloadScheduler(registry)
    await scheduler.smart_preload(DeviceContext(connection="fast", memory="high"))

    runner = BenchmarkRunner()
    result = await runner.run_benchmark("chart", load_chart)
"""

__version__ = "0.1.0"

# Benchmarks
from preloadkit.benchmark import (
    BenchmarkConfig,
    BenchmarkResult,
    BenchmarkRunner,
    BenchmarkSetupFailure,
    BenchmarkSuiteResult,
    BenchmarkTest,
    BenchmarkTimeout,
    RegressionDetector,
    RegressionFinding,
    Severity,
    generate_report,
)

# Configuration
from preloadkit.config import BenchmarkSettings, PreloadSettings

# Loading
from preloadkit.loading import LoadCache, LoaderFailure, LoadTimeoutError

# Metrics
from preloadkit.metrics import MetricSample, MetricsStore

# Registry
from preloadkit.registry import Category, ComponentRegistry, NotFoundError, RegistryEntry

# Composition root
from preloadkit.runtime import Preloader, get_default, reset_default, run_sync

# Scheduling
from preloadkit.scheduling import (
    DeviceContext,
    PreloadReport,
    PreloadScheduler,
    RetryPolicy,
    SchedulerConfig,
)
from preloadkit.types import Loader

__all__ = [
    # Version
    "__version__",
    "Loader",
    # Metrics
    "MetricsStore",
    "MetricSample",
    # Loading
    "LoadCache",
    "LoaderFailure",
    "LoadTimeoutError",
    # Registry
    "ComponentRegistry",
    "RegistryEntry",
    "Category",
    "NotFoundError",
    # Scheduling
    "PreloadScheduler",
    "SchedulerConfig",
    "RetryPolicy",
    "DeviceContext",
    "PreloadReport",
    # Benchmarks
    "BenchmarkRunner",
    "BenchmarkConfig",
    "BenchmarkResult",
    "BenchmarkSuiteResult",
    "BenchmarkTest",
    "BenchmarkTimeout",
    "BenchmarkSetupFailure",
    "RegressionDetector",
    "RegressionFinding",
    "Severity",
    "generate_report",
    # Configuration
    "PreloadSettings",
    "BenchmarkSettings",
    # Composition root
    "Preloader",
    "get_default",
    "reset_default",
    "run_sync",
]
