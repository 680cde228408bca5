"""Tests for preload scheduling strategies.

Critical Invariants:
- Priority selection is >= threshold, highest first, ties in registration order
- Route preloading touches exactly the mapped names; unknown routes are a no-op
- smart_preload is equivalent to a priority preload with the chosen threshold
- One failing unit never aborts its batch
- Concurrency limiting works
"""

import asyncio

import pytest
from hypothesis import given
from hypothesis import strategies as st

from preloadkit import run_sync
from preloadkit.loading import LoaderFailure, LoadTimeoutError
from preloadkit.registry import Category, ComponentRegistry, NotFoundError, RegistryEntry
from preloadkit.scheduling import (
    DeviceContext,
    PreloadReport,
    PreloadScheduler,
    RetryPolicy,
    SchedulerConfig,
    choose_priority_threshold,
)


def build(loader_cls, specs, log=None, **scheduler_kwargs):
    """Registry + scheduler from (name, priority, category) specs."""
    registry = ComponentRegistry()
    loaders = {}
    for name, priority, category in specs:
        loaders[name] = loader_cls(name, log=log)
        registry.register(RegistryEntry(name, loaders[name], priority=priority, category=category))
    return PreloadScheduler(registry, **scheduler_kwargs), loaders


CATALOG = [
    ("Button", 10, Category.UI),
    ("Input", 10, Category.UI),
    ("Card", 9, Category.UI),
    ("Table", 7, Category.UI),
    ("BasicForm", 6, Category.FEATURE),
    ("EnhancedDataTable", 5, Category.FEATURE),
    ("PerformanceMonitor", 4, Category.UTILITY),
    ("VirtualList", 3, Category.UTILITY),
    ("Dashboard", 1, Category.PAGE),
    ("Playground", 0, Category.PAGE),
]


# Strategy tests


@pytest.mark.asyncio
async def test_priority_selection_and_invocation_order(loader_cls):
    """A(10), B(5), C(7) with threshold 7 selects exactly A then C."""
    log: list[str] = []
    scheduler, loaders = build(
        loader_cls,
        [("A", 10, Category.UI), ("B", 5, Category.UI), ("C", 7, Category.UI)],
        log=log,
    )

    assert [e.name for e in scheduler.select_by_priority(7)] == ["A", "C"]

    report = await scheduler.preload_by_priority(7)

    assert log == ["A", "C"]
    assert report.loaded == ["A", "C"]
    assert loaders["B"].calls == 0


@pytest.mark.asyncio
async def test_priority_ties_keep_registration_order(loader_cls):
    log: list[str] = []
    scheduler, _ = build(
        loader_cls,
        [("Z", 5, Category.UI), ("X", 8, Category.UI), ("Y", 5, Category.UI)],
        log=log,
    )

    await scheduler.preload_by_priority(0)

    assert log == ["X", "Z", "Y"]


@pytest.mark.asyncio
async def test_preload_by_category(loader_cls):
    scheduler, loaders = build(loader_cls, CATALOG)

    report = await scheduler.preload_by_category(Category.FEATURE)

    assert report.loaded == ["BasicForm", "EnhancedDataTable"]
    assert loaders["Button"].calls == 0


@pytest.mark.asyncio
async def test_route_preloads_exactly_mapped_names(loader_cls):
    scheduler, loaders = build(
        loader_cls,
        [
            ("DataTable", 5, Category.FEATURE),
            ("Chart", 5, Category.FEATURE),
            ("StatCard", 5, Category.UI),
            ("Button", 10, Category.UI),
        ],
    )

    report = await scheduler.preload_for_route("/dashboard")

    assert report.loaded == ["DataTable", "Chart", "StatCard"]
    assert loaders["Button"].calls == 0
    assert all(loaders[name].calls == 1 for name in report.loaded)


@pytest.mark.asyncio
async def test_unknown_route_is_a_no_op(loader_cls):
    scheduler, loaders = build(loader_cls, CATALOG)

    report = await scheduler.preload_for_route("/nowhere")

    assert report.requested == []
    assert all(loader.calls == 0 for loader in loaders.values())


@pytest.mark.asyncio
async def test_custom_route_table(loader_cls):
    scheduler, _ = build(loader_cls, CATALOG, routes={"/settings": ["Input", "Missing"]})

    report = await scheduler.preload_for_route("/settings")

    assert report.loaded == ["Input"]
    assert report.missing == ["Missing"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("context", "threshold"),
    [
        (DeviceContext(connection="slow", memory="low"), 5),
        (DeviceContext(connection="slow", memory="high"), 5),
        (DeviceContext(connection="fast", memory="low"), 5),
        (DeviceContext(connection="fast", memory="high"), 1),
    ],
    ids=["slow-low", "slow-high", "fast-low", "fast-high"],
)
async def test_smart_preload_matches_priority_preload(loader_cls, context, threshold):
    """smart_preload(context) behaves exactly like preload_by_priority(threshold)."""
    smart_log: list[str] = []
    direct_log: list[str] = []
    smart, _ = build(loader_cls, CATALOG, log=smart_log)
    direct, _ = build(loader_cls, CATALOG, log=direct_log)

    smart_report = await smart.smart_preload(context)
    direct_report = await direct.preload_by_priority(threshold)

    assert smart_log == direct_log
    assert smart_report.loaded == direct_report.loaded


@pytest.mark.asyncio
async def test_smart_preload_runs_route_first(loader_cls):
    log: list[str] = []
    scheduler, _ = build(
        loader_cls,
        [("Button", 10, Category.UI), ("Filter", 2, Category.UI), ("Pagination", 2, Category.UI)],
        log=log,
        routes={"/tables": ["Filter", "Pagination"]},
    )

    report = await scheduler.smart_preload(DeviceContext(connection="slow", route="/tables"))

    assert log == ["Filter", "Pagination", "Button"]
    assert report.loaded == ["Filter", "Pagination", "Button"]


@pytest.mark.asyncio
async def test_smart_preload_uses_configured_thresholds(loader_cls):
    config = SchedulerConfig(aggressive_priority=9, conservative_priority=10)
    scheduler, _ = build(loader_cls, CATALOG, config=config)

    report = await scheduler.smart_preload(DeviceContext())

    assert report.loaded == ["Button", "Input", "Card"]


# Failure handling tests


@pytest.mark.asyncio
async def test_preload_one_unknown_name_raises(scheduler):
    with pytest.raises(NotFoundError):
        await scheduler.preload_one("Ghost")


@pytest.mark.asyncio
async def test_preload_one_propagates_loader_failure(registry, scheduler, loader_cls):
    registry.register(RegistryEntry("Flaky", loader_cls("Flaky", fail_times=1)))

    with pytest.raises(LoaderFailure):
        await scheduler.preload_one("Flaky")


@pytest.mark.asyncio
async def test_batch_isolates_failures(registry, scheduler, loader_cls):
    """CRITICAL: one failing unit must not abort siblings.

    Why: A broken optional widget must not stop critical UI from preloading.
    """
    registry.register_batch(
        [
            RegistryEntry("Good", loader_cls("Good", delay=0.01)),
            RegistryEntry("Bad", loader_cls("Bad", fail_times=1)),
            RegistryEntry("AlsoGood", loader_cls("AlsoGood")),
        ]
    )

    report = await scheduler.preload_batch(["Good", "Bad", "AlsoGood", "Unknown"])

    assert report.loaded == ["Good", "AlsoGood"]
    assert list(report.failed) == ["Bad"]
    assert isinstance(report.failed["Bad"], LoaderFailure)
    assert report.missing == ["Unknown"]
    assert not report.ok
    assert scheduler.is_preloaded("Good")
    assert not scheduler.is_preloaded("Bad")


@pytest.mark.asyncio
async def test_batch_reports_loaded_values(registry, scheduler, loader_cls):
    registry.register(RegistryEntry("Card", loader_cls("Card", value="card-module")))

    report = await scheduler.preload_batch(["Card"])

    assert report.ok
    assert report.values == {"Card": "card-module"}


# Concurrency, retry and timeout tests


@pytest.mark.asyncio
async def test_max_concurrent_limits_loaders_in_flight():
    in_flight = 0
    peak = 0

    def make_loader(name):
        async def load():
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return name

        return load

    registry = ComponentRegistry()
    registry.register_batch(RegistryEntry(f"unit{i}", make_loader(i), priority=i) for i in range(6))
    scheduler = PreloadScheduler(registry, config=SchedulerConfig(max_concurrent=2))

    report = await scheduler.preload_by_priority(0)

    assert len(report.loaded) == 6
    assert peak == 2


def test_concurrency_limit_works_across_event_loops(loader_cls):
    """CRITICAL: a limited scheduler keeps working when each batch runs on a new loop.

    Why: run_sync() starts a fresh event loop per call; a limit bound to the
    first loop would fail every unit that waits for a slot afterwards.
    """
    scheduler, loaders = build(
        loader_cls,
        [(f"u{i}", 4 - i, Category.UI) for i in range(4)],
        config=SchedulerConfig(max_concurrent=1),
    )

    first = run_sync(scheduler.preload_by_priority(0))
    scheduler.cache.clear_cache()
    second = run_sync(scheduler.preload_by_priority(0))

    assert first.loaded == ["u0", "u1", "u2", "u3"]
    assert second.loaded == ["u0", "u1", "u2", "u3"]
    assert second.failed == {}
    assert all(loader.calls == 2 for loader in loaders.values())


@pytest.mark.asyncio
async def test_retry_policy_retries_failed_loader(registry, loader_cls):
    pytest.importorskip("tenacity")
    loader = loader_cls("Remote", fail_times=2)
    registry.register(RegistryEntry("Remote", loader))
    config = SchedulerConfig(retry_policy=RetryPolicy(max_attempts=3))
    scheduler = PreloadScheduler(registry, config=config)

    assert await scheduler.preload_one("Remote") == "module:Remote"
    assert loader.calls == 3


@pytest.mark.asyncio
async def test_retry_policy_exhausted_raises_last_failure(registry, loader_cls):
    pytest.importorskip("tenacity")
    loader = loader_cls("Remote", fail_times=5)
    registry.register(RegistryEntry("Remote", loader))
    config = SchedulerConfig(retry_policy=RetryPolicy(max_attempts=2, backoff="linear", base_delay=0.001))
    scheduler = PreloadScheduler(registry, config=config)

    with pytest.raises(LoaderFailure):
        await scheduler.preload_one("Remote")
    assert loader.calls == 2


@pytest.mark.asyncio
async def test_load_timeout_counts_unit_as_failed(registry, loader_cls):
    registry.register_batch(
        [
            RegistryEntry("Slow", loader_cls("Slow", delay=0.05)),
            RegistryEntry("Fast", loader_cls("Fast")),
        ]
    )
    scheduler = PreloadScheduler(registry, config=SchedulerConfig(load_timeout=0.001))

    report = await scheduler.preload_batch(["Slow", "Fast"])

    assert report.loaded == ["Fast"]
    assert isinstance(report.failed["Slow"], LoadTimeoutError)


# Eager registration tests


@pytest.mark.asyncio
async def test_attached_scheduler_preloads_eager_entries(registry, scheduler, loader_cls):
    scheduler.attach()
    eager = loader_cls("Button")
    lazy = loader_cls("Chart")

    registry.register(RegistryEntry("Button", eager, eager=True))
    registry.register(RegistryEntry("Chart", lazy))
    await scheduler.flush_eager()

    assert scheduler.is_preloaded("Button")
    assert eager.calls == 1
    assert lazy.calls == 0


def test_eager_registration_without_loop_is_deferred(registry, scheduler, loader_cls):
    scheduler.attach()
    eager = loader_cls("Input")

    registry.register(RegistryEntry("Input", eager, eager=True))
    assert eager.calls == 0

    report = asyncio.run(scheduler.flush_eager())

    assert report.loaded == ["Input"]
    assert eager.calls == 1


# Models and introspection


@pytest.mark.asyncio
async def test_get_stats_counts_preloaded(loader_cls):
    scheduler, _ = build(loader_cls, CATALOG)
    await scheduler.preload_by_priority(9)

    stats = scheduler.get_stats()

    assert stats["total"] == len(CATALOG)
    assert stats["preloaded"] == 3
    assert stats["pending"] == 0


@pytest.mark.asyncio
async def test_forget_unregisters_and_drops_state(loader_cls):
    scheduler, _ = build(loader_cls, CATALOG)
    await scheduler.preload_one("Card")

    scheduler.forget("Card")

    assert "Card" not in scheduler.registry
    assert not scheduler.is_preloaded("Card")


def test_device_context_rejects_unknown_signals():
    with pytest.raises(ValueError, match="connection"):
        DeviceContext(connection="4g")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="memory"):
        DeviceContext(memory="medium")  # type: ignore[arg-type]


def test_report_merge_deduplicates_names():
    first = PreloadReport(loaded=["A"], missing=["X"], values={"A": 1})
    second = PreloadReport(loaded=["A", "B"], failed={"C": RuntimeError()}, missing=["X"])

    first.merge(second)

    assert first.loaded == ["A", "B"]
    assert list(first.failed) == ["C"]
    assert first.missing == ["X"]
    assert first.values == {"A": 1}


def test_report_merge_prefers_loaded_over_failed():
    first = PreloadReport(failed={"A": RuntimeError("route phase")})
    second = PreloadReport(loaded=["A"], values={"A": "module:A"})

    first.merge(second)
    second.merge(PreloadReport(failed={"A": RuntimeError("late")}))

    assert first.loaded == ["A"]
    assert first.failed == {}
    assert first.requested == ["A"]
    assert second.failed == {}


@pytest.mark.asyncio
async def test_smart_preload_reports_unit_recovered_after_route_failure(registry, cache, loader_cls):
    """A unit failing in the route phase and loading in the priority phase is loaded only.

    Why: requested must list each unit once, with its final outcome.
    """
    flaky = loader_cls("Flaky", fail_times=1)
    registry.register(RegistryEntry("Flaky", flaky, priority=10))
    scheduler = PreloadScheduler(registry, cache=cache, routes={"/reports": ["Flaky"]})

    report = await scheduler.smart_preload(DeviceContext(connection="slow", route="/reports"))

    assert flaky.calls == 2
    assert report.loaded == ["Flaky"]
    assert report.failed == {}
    assert report.requested == ["Flaky"]


@given(
    connection=st.sampled_from(["slow", "fast"]),
    memory=st.sampled_from(["low", "high"]),
    aggressive=st.integers(min_value=0, max_value=10),
    conservative=st.integers(min_value=0, max_value=10),
)
def test_threshold_is_aggressive_only_for_capable_devices(connection, memory, aggressive, conservative):
    """Property: only fast + high memory earns the aggressive threshold."""
    context = DeviceContext(connection=connection, memory=memory)

    threshold = choose_priority_threshold(context, aggressive=aggressive, conservative=conservative)

    expected = aggressive if (connection, memory) == ("fast", "high") else conservative
    assert threshold == expected
