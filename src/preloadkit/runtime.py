"""Composition root wiring the preload and benchmark components together.

Every component is an ordinary object that can be built in isolation;
this module is the only place a process-wide instance exists.

Usage:
    preloader = Preloader()
    preloader.registry.register(RegistryEntry("Chart", load_chart, priority=7))
    await preloader.scheduler.smart_preload(DeviceContext(connection="slow"))

    # Process-wide instance for application code
    preloader = get_default()
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Coroutine
from typing import Any, TypeVar

from preloadkit.benchmark import BenchmarkRunner
from preloadkit.config import BenchmarkSettings, PreloadSettings
from preloadkit.loading import LoadCache
from preloadkit.metrics import MetricsStore
from preloadkit.registry import ComponentRegistry
from preloadkit.scheduling import PreloadScheduler, RouteTable, SchedulerConfig

T = TypeVar("T")


class Preloader:
    """Metrics store, load cache, registry, scheduler and benchmark runner
    sharing one configuration.

    The scheduler is attached to the registry, so eager entries start
    preloading on registration.

    Args:
        preload_settings: Cache and scheduler settings. Read from PRELOAD_* if omitted.
        benchmark_settings: Runner settings. Read from BENCHMARK_* if omitted.
        routes: Route table for route preloading.
    """

    def __init__(
        self,
        preload_settings: PreloadSettings | None = None,
        benchmark_settings: BenchmarkSettings | None = None,
        routes: RouteTable | None = None,
    ) -> None:
        settings = preload_settings or PreloadSettings()
        self.metrics = MetricsStore(history_limit=settings.metrics_history)
        self.cache = LoadCache(self.metrics)
        self.registry = ComponentRegistry()
        self.scheduler = PreloadScheduler(
            self.registry,
            cache=self.cache,
            routes=routes,
            config=SchedulerConfig.from_settings(settings),
        )
        self.scheduler.attach()
        self.benchmarks = BenchmarkRunner(
            clock=self.metrics.clock, settings=benchmark_settings or BenchmarkSettings()
        )


class _DefaultHolder:
    """Lazily created process-wide Preloader."""

    _instance: Preloader | None = None
    _lock = threading.Lock()

    @classmethod
    def get(cls) -> Preloader:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = Preloader()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None


def get_default() -> Preloader:
    """Get the process-wide Preloader, creating it if necessary."""
    return _DefaultHolder.get()


def reset_default() -> None:
    """Drop the process-wide Preloader. The next get_default() builds a new one."""
    _DefaultHolder.reset()


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion from synchronous code."""
    return asyncio.run(coro)
