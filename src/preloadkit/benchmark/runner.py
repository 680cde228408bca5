"""Benchmark runner with history, baselines and regression checks.

Usage:
    runner = BenchmarkRunner()
    result = await runner.run_benchmark("parse", parse_payload, BenchmarkConfig(iterations=50))
    runner.set_baseline("parse", result)

    later = await runner.run_benchmark("parse", parse_payload, BenchmarkConfig(iterations=50))
    findings = runner.detect_regression(later)

    suite = await runner.run_suite("codecs", [BenchmarkTest("encode", encode), ...])
    print(runner.generate_report(suite))

Failures never escape run_benchmark(): they are captured in
BenchmarkResult.error so a suite keeps going past a broken test.
"""

from __future__ import annotations

import logging
import statistics
import time
from collections import deque
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from preloadkit.benchmark.models import (
    BenchmarkConfig,
    BenchmarkResult,
    BenchmarkSuiteResult,
    BenchmarkTest,
    MemoryUsage,
    RegressionFinding,
)
from preloadkit.benchmark.regression import RegressionDetector
from preloadkit.benchmark.report import generate_report
from preloadkit.benchmark.snapshot import BenchmarkSnapshot
from preloadkit.config import BenchmarkSettings
from preloadkit.metrics import Clock, MemoryProbe, monotonic_ms, traced_memory
from preloadkit.types import Loader, call_loader

logger = logging.getLogger(__name__)


class BenchmarkTimeout(Exception):
    """A single iteration exceeded the configured timeout."""

    def __init__(self, name: str, iteration: int, elapsed: float, timeout: float) -> None:
        self.name = name
        self.iteration = iteration
        self.elapsed = elapsed
        self.timeout = timeout
        super().__init__(
            f"{name}: iteration {iteration} took {elapsed:.2f}ms, exceeding timeout {timeout}ms"
        )


class BenchmarkSetupFailure(Exception):
    """setup, teardown or a per-iteration hook raised."""

    def __init__(self, phase: str, original: BaseException) -> None:
        self.phase = phase
        self.original = original
        super().__init__(f"{phase} failed: {original}")


class BenchmarkRunner:
    """Runs workloads repeatedly and keeps per-name results.

    Args:
        history_limit: Results kept per name (oldest evicted first).
        clock: Millisecond clock. Defaults to a perf_counter clock.
        memory_probe: Returns current memory in bytes. Defaults to
            tracemalloc's traced memory (0 unless tracing is on).
        settings: Defaults for configs, history and regression threshold.
    """

    def __init__(
        self,
        history_limit: int | None = None,
        clock: Clock | None = None,
        memory_probe: MemoryProbe | None = None,
        settings: BenchmarkSettings | None = None,
    ) -> None:
        self._settings = settings or BenchmarkSettings()
        self._history_limit = history_limit or self._settings.history_limit
        self._clock = clock or monotonic_ms
        self._memory_probe = memory_probe or traced_memory
        self._baselines: dict[str, BenchmarkResult] = {}
        self._history: dict[str, deque[BenchmarkResult]] = {}
        self._detector = RegressionDetector(
            self._baselines, threshold=self._settings.regression_threshold
        )

    @property
    def detector(self) -> RegressionDetector:
        return self._detector

    def default_config(self, **overrides: Any) -> BenchmarkConfig:
        """Config built from settings, with explicit overrides applied."""
        return BenchmarkConfig.from_settings(self._settings, **overrides)

    # --- Running ---

    async def run_benchmark(
        self, name: str, workload: Loader, config: BenchmarkConfig | None = None
    ) -> BenchmarkResult:
        """Run workload and record the result in name's history.

        Order: setup, warmup iterations (untimed), measured iterations,
        teardown. Teardown is attempted even when an earlier phase failed.
        """
        config = config or self.default_config()
        times: list[float] = []
        memory_before = self._read_memory()
        memory_peak = memory_before
        error: BaseException | None = None

        logger.debug("Benchmark start: %s (%d iterations)", name, config.iterations)
        try:
            if config.setup is not None:
                await self._call_hook("setup", config.setup)

            for _ in range(config.warmup_iterations):
                await self._call_hook("before_each", config.before_each)
                await call_loader(workload)
                await self._call_hook("after_each", config.after_each)

            for iteration in range(config.iterations):
                await self._call_hook("before_each", config.before_each)

                start = self._clock()
                await call_loader(workload)
                elapsed = self._clock() - start
                times.append(elapsed)

                memory_peak = max(memory_peak, self._read_memory())

                if elapsed > config.timeout:
                    raise BenchmarkTimeout(name, iteration, elapsed, config.timeout)

                await self._call_hook("after_each", config.after_each)
        except Exception as e:
            error = e
        finally:
            # Also runs when the benchmark is cancelled
            if config.teardown is not None:
                error = await self._run_teardown(name, config.teardown, error)

        if error is not None:
            logger.warning("Benchmark failed: %s (%s)", name, error)

        memory = MemoryUsage(before=memory_before, after=self._read_memory(), peak=memory_peak)
        result = self._summarize(name, times, memory, error)
        self._save_to_history(name, result)
        logger.debug("Benchmark done: %s avg=%.3fms", name, result.average_time)
        return result

    async def run_suite(self, name: str, tests: Iterable[BenchmarkTest]) -> BenchmarkSuiteResult:
        """Run tests one after another (never concurrently) and aggregate."""
        results: list[BenchmarkResult] = []
        start = self._clock()

        for test in tests:
            try:
                result = await self.run_benchmark(test.name, test.fn, test.config)
            except Exception as e:
                logger.warning("Benchmark could not run: %s (%s)", test.name, e)
                result = BenchmarkResult.failed(test.name, str(e))
            results.append(result)

        passed = sum(1 for r in results if r.success)
        return BenchmarkSuiteResult(
            name=name,
            results=results,
            total_time=self._clock() - start,
            passed_tests=passed,
            failed_tests=len(results) - passed,
            timestamp=time.time(),
        )

    async def _run_teardown(
        self, name: str, teardown: Loader, error: BaseException | None
    ) -> BaseException | None:
        """Run teardown. Its failure becomes the run error only if nothing failed earlier."""
        try:
            await self._call_hook("teardown", teardown)
        except BenchmarkSetupFailure as e:
            if error is None:
                return e
            logger.warning("Benchmark %s: %s (after earlier failure)", name, e)
        return error

    async def _call_hook(self, phase: str, hook: Loader | None) -> None:
        if hook is None:
            return
        try:
            await call_loader(hook)
        except Exception as e:
            raise BenchmarkSetupFailure(phase, e) from e

    def _read_memory(self) -> int:
        # Unavailable probe reads as 0
        try:
            return int(self._memory_probe())
        except Exception:
            logger.debug("Memory probe unavailable", exc_info=True)
            return 0

    @staticmethod
    def _summarize(
        name: str, times: list[float], memory: MemoryUsage, error: BaseException | None
    ) -> BenchmarkResult:
        """Compute statistics. Zero measured iterations yield all-zero times."""
        if times:
            total = sum(times)
            average = total / len(times)
            minimum, maximum = min(times), max(times)
            std_dev = statistics.pstdev(times, mu=average)
        else:
            total = average = minimum = maximum = std_dev = 0.0

        return BenchmarkResult(
            name=name,
            iterations=len(times),
            total_time=total,
            average_time=average,
            min_time=minimum,
            max_time=maximum,
            std_dev=std_dev,
            ops_per_second=1000.0 / average if average > 0 else 0.0,
            memory=memory,
            success=error is None,
            error=str(error) if error is not None else None,
        )

    # --- History and baselines ---

    def _save_to_history(self, name: str, result: BenchmarkResult) -> None:
        ring = self._history.get(name)
        if ring is None:
            ring = deque(maxlen=self._history_limit)
            self._history[name] = ring
        ring.append(result)

    def history(self, name: str) -> list[BenchmarkResult]:
        """Results recorded for name, oldest first."""
        return list(self._history.get(name, ()))

    def latest(self, name: str) -> BenchmarkResult | None:
        ring = self._history.get(name)
        return ring[-1] if ring else None

    def set_baseline(self, name: str, result: BenchmarkResult) -> None:
        """Designate result as the comparison point for name. Replaces any previous one."""
        self._baselines[name] = result

    def get_baseline(self, name: str) -> BenchmarkResult | None:
        return self._baselines.get(name)

    def clear_baseline(self, name: str) -> bool:
        return self._baselines.pop(name, None) is not None

    def detect_regression(
        self, current: BenchmarkResult, threshold: float | None = None
    ) -> list[RegressionFinding]:
        """Compare current to the baseline stored under current.name.

        Args:
            current: Fresh result.
            threshold: Relative change counted as significant. Defaults to
                settings.regression_threshold (0.10).
        """
        return self._detector.detect(current, threshold)

    def generate_report(self, suite: BenchmarkSuiteResult) -> str:
        """Markdown report of suite annotated with baseline comparisons."""
        return generate_report(suite, self._detector)

    # --- Snapshots ---

    def export_data(self) -> dict[str, Any]:
        """Baselines and history as a JSON-serializable dict."""
        return self._snapshot().model_dump()

    def import_data(self, data: Mapping[str, Any]) -> None:
        """Restore state exported by export_data().

        Sections present in data replace the current ones; missing sections
        are left untouched. History longer than the limit keeps the newest.
        """
        snapshot = BenchmarkSnapshot.parse(dict(data))
        self._apply_snapshot(
            snapshot,
            replace_baselines="baselines" in data,
            replace_history="history" in data,
        )

    def save_snapshot(self, path: str | Path) -> None:
        """Write baselines and history to a JSON file."""
        self._snapshot().write(path)
        logger.info("Saved benchmark snapshot to %s", path)

    def load_snapshot(self, path: str | Path) -> None:
        """Replace baselines and history with those stored in a JSON file."""
        snapshot = BenchmarkSnapshot.read(path)
        self._apply_snapshot(snapshot, replace_baselines=True, replace_history=True)
        logger.info(
            "Loaded benchmark snapshot from %s (%d baselines)", path, len(self._baselines)
        )

    def _snapshot(self) -> BenchmarkSnapshot:
        return BenchmarkSnapshot.from_state(
            self._baselines, {name: list(ring) for name, ring in self._history.items()}
        )

    def _apply_snapshot(
        self, snapshot: BenchmarkSnapshot, replace_baselines: bool, replace_history: bool
    ) -> None:
        if replace_baselines:
            # Mutate in place, the detector holds a reference
            self._baselines.clear()
            self._baselines.update(snapshot.baseline_results())
        if replace_history:
            self._history = {
                name: deque(results, maxlen=self._history_limit)
                for name, results in snapshot.history_results().items()
            }
