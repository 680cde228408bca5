"""Shared test fixtures."""

import asyncio
import sys

import pytest

# Ensure src is in path
sys.path.insert(0, "src")

from preloadkit import ComponentRegistry, LoadCache, MetricsStore, PreloadScheduler, reset_default


class CountingLoader:
    """Async loader that counts invocations and appends its name to a shared log."""

    def __init__(
        self,
        name: str,
        value: object = None,
        delay: float = 0.0,
        fail_times: int = 0,
        log: list[str] | None = None,
    ) -> None:
        self.name = name
        self.value = value if value is not None else f"module:{name}"
        self.delay = delay
        self.fail_times = fail_times
        self.log = log
        self.calls = 0

    async def __call__(self) -> object:
        self.calls += 1
        if self.log is not None:
            self.log.append(self.name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.calls <= self.fail_times:
            raise RuntimeError(f"{self.name} failed (call {self.calls})")
        return self.value


class FakeClock:
    """Millisecond clock advanced manually by tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def loader_cls():
    return CountingLoader


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def metrics():
    """Fresh MetricsStore instance."""
    return MetricsStore()


@pytest.fixture
def cache(metrics):
    """Fresh LoadCache writing to the metrics fixture."""
    return LoadCache(metrics)


@pytest.fixture
def registry():
    """Fresh ComponentRegistry instance."""
    return ComponentRegistry()


@pytest.fixture
def scheduler(registry, cache):
    """PreloadScheduler over the registry and cache fixtures."""
    return PreloadScheduler(registry, cache=cache)


@pytest.fixture(autouse=True)
def _isolated_default():
    """Keep the process-wide Preloader from leaking between tests."""
    reset_default()
    yield
    reset_default()
