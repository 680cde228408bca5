"""Preload scheduler: decides what to load eagerly and when.

Every strategy resolves to a list of registry entries and hands each one
to the LoadCache. Batches are best-effort: a failing unit never aborts
its siblings and the batch call never raises for it.

Usage:
    scheduler = PreloadScheduler(registry)
    await scheduler.preload_one("Chart")
    await scheduler.preload_by_priority(7)
    await scheduler.preload_for_route("/dashboard")
    await scheduler.smart_preload(DeviceContext(connection="slow", memory="low"))

    # Bounded concurrency and retries (retry requires tenacity: pip install preloadkit[retry])
    config = SchedulerConfig(max_concurrent=3, retry_policy=RetryPolicy(max_attempts=3))
    scheduler = PreloadScheduler(registry, config=config)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from preloadkit.loading import LoadCache, LoaderFailure, LoadTimeoutError
from preloadkit.registry import Category, ComponentRegistry, RegistryEntry
from preloadkit.scheduling.models import (
    DEFAULT_ROUTES,
    DeviceContext,
    PreloadReport,
    RetryPolicy,
    RouteTable,
    SchedulerConfig,
    choose_priority_threshold,
)

# Optional tenacity import for retry functionality
try:
    import tenacity

    TENACITY_AVAILABLE = True
except ImportError:
    TENACITY_AVAILABLE = False

logger = logging.getLogger(__name__)


class PreloadScheduler:
    """Selects registry entries by name, priority, category, route or device
    signals and preloads them through a shared LoadCache.

    Args:
        registry: Catalog to select from. Only attach() and forget() write to it.
        cache: Deduplicating cache. A private one is created if omitted.
        routes: Route -> names table for route preloading. Defaults to DEFAULT_ROUTES.
        config: Concurrency, retry, timeout and smart-policy thresholds.
    """

    def __init__(
        self,
        registry: ComponentRegistry,
        cache: LoadCache | None = None,
        routes: RouteTable | None = None,
        config: SchedulerConfig | None = None,
    ) -> None:
        self._registry = registry
        self._cache = cache if cache is not None else LoadCache()
        self._routes: RouteTable = routes if routes is not None else DEFAULT_ROUTES
        self._config = config or SchedulerConfig()
        self._deferred: list[str] = []
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def registry(self) -> ComponentRegistry:
        return self._registry

    @property
    def cache(self) -> LoadCache:
        return self._cache

    @property
    def routes(self) -> RouteTable:
        return self._routes

    # --- Eager registration hook ---

    def attach(self) -> None:
        """Preload eager entries as soon as they are registered."""
        self._registry.set_eager_hook(self._schedule_eager)

    def _schedule_eager(self, name: str) -> None:
        """Start a background preload, or defer it until flush_eager()."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, deferring eager preload: %s", name)
            self._deferred.append(name)
            return

        task = loop.create_task(self.preload_batch([name]))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def flush_eager(self) -> PreloadReport:
        """Preload eager entries registered while no event loop was running,
        and wait for background eager preloads already started."""
        names, self._deferred = self._deferred, []
        report = await self.preload_batch(names)
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        return report

    # --- Strategies ---

    async def preload_one(self, name: str) -> Any:
        """Preload a single unit.

        Raises:
            NotFoundError: name is not registered.
            LoaderFailure: the loader failed (after retries, if configured).
        """
        entry = self._registry.require(name)
        return await self._load(entry)

    async def preload_batch(self, names: Iterable[str]) -> PreloadReport:
        """Preload the named units in parallel. Unknown names are reported as missing."""
        entries: list[RegistryEntry] = []
        missing: list[str] = []
        for name in names:
            entry = self._registry.get(name)
            if entry is None:
                logger.warning("Cannot preload unregistered component: %s", name)
                missing.append(name)
            else:
                entries.append(entry)

        report = await self._preload_entries(entries)
        report.missing.extend(missing)
        return report

    def select_by_priority(self, min_priority: int) -> list[RegistryEntry]:
        """Entries with priority >= min_priority, highest first.

        Ties keep registration order.
        """
        selected = [e for e in self._registry.entries() if e.priority >= min_priority]
        return sorted(selected, key=lambda e: e.priority, reverse=True)

    async def preload_by_priority(self, min_priority: int = 0) -> PreloadReport:
        """Preload every entry with priority >= min_priority, highest invoked first."""
        return await self._preload_entries(self.select_by_priority(min_priority))

    async def preload_by_category(self, category: Category | str) -> PreloadReport:
        """Preload every entry in category, in registration order."""
        return await self._preload_entries(self._registry.by_category(category))

    def names_for_route(self, route: str) -> list[str]:
        """Names mapped to route. Unknown routes map to nothing."""
        return list(self._routes.get(route, ()))

    async def preload_for_route(self, route: str) -> PreloadReport:
        """Preload the units mapped to route. Unknown routes are a no-op."""
        names = self.names_for_route(route)
        if not names:
            logger.debug("No preload mapping for route: %s", route)
        return await self.preload_batch(names)

    async def smart_preload(self, context: DeviceContext | None = None) -> PreloadReport:
        """Preload according to device signals.

        Capable devices (fast connection, high memory) preload everything
        above the aggressive threshold; all others only high-priority units.
        A route in the context is preloaded first.
        """
        context = context or DeviceContext()
        report = PreloadReport()

        if context.route:
            report.merge(await self.preload_for_route(context.route))

        threshold = choose_priority_threshold(
            context,
            aggressive=self._config.aggressive_priority,
            conservative=self._config.conservative_priority,
        )
        logger.info(
            "Smart preload: connection=%s memory=%s -> min priority %d",
            context.connection,
            context.memory,
            threshold,
        )
        report.merge(await self.preload_by_priority(threshold))
        return report

    # --- Execution ---

    async def _preload_entries(self, entries: list[RegistryEntry]) -> PreloadReport:
        """Preload entries best-effort; invocation follows list order."""
        max_concurrent = self._config.max_concurrent
        # Per batch, so the limit binds to the loop running it
        semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent is not None else None

        results = await asyncio.gather(
            *(self._load(entry, semaphore) for entry in entries), return_exceptions=True
        )

        report = PreloadReport()
        for entry, result in zip(entries, results, strict=True):
            if isinstance(result, BaseException):
                report.failed[entry.name] = result
            else:
                report.loaded.append(entry.name)
                report.values[entry.name] = result
        return report

    async def _load(
        self, entry: RegistryEntry, semaphore: asyncio.Semaphore | None = None
    ) -> Any:
        """Preload one entry under the batch concurrency limit and retry policy."""
        name = entry.name
        # Settled or in-flight loads do not take a concurrency slot
        if semaphore is None or self._cache.is_preloaded(name) or self._cache.is_pending(name):
            return await self._load_with_retry(entry)

        async with semaphore:
            return await self._load_with_retry(entry)

    async def _load_with_retry(self, entry: RegistryEntry) -> Any:
        """Load entry with retry policy.

        Uses tenacity for retry logic when max_attempts > 1.
        Requires tenacity to be installed: pip install preloadkit[retry]
        """
        policy = self._config.retry_policy
        timeout = self._config.load_timeout

        if policy.max_attempts <= 1:
            return await self._cache.preload(entry.name, entry.loader, timeout=timeout)

        if not TENACITY_AVAILABLE:
            msg = "Retry policy requires tenacity. Install with: pip install preloadkit[retry]"
            raise ImportError(msg)

        async for attempt in self._build_retryer(policy):
            with attempt:
                return await self._cache.preload(entry.name, entry.loader, timeout=timeout)

        raise LoaderFailure(entry.name)  # pragma: no cover

    def _build_retryer(self, policy: RetryPolicy) -> tenacity.AsyncRetrying:
        """Build a tenacity retryer from RetryPolicy configuration."""
        stop = tenacity.stop_after_attempt(policy.max_attempts)

        wait: tenacity.wait.wait_base
        if policy.backoff == "exponential":
            wait = tenacity.wait_exponential(multiplier=policy.base_delay, min=policy.base_delay)
        elif policy.backoff == "linear":
            wait = tenacity.wait_incrementing(start=policy.base_delay, increment=policy.base_delay)
        else:
            wait = tenacity.wait_none()

        # A timed-out load is still pending; retrying would only rejoin it
        retry = tenacity.retry_if_exception(
            lambda e: isinstance(e, LoaderFailure) and not isinstance(e, LoadTimeoutError)
        )

        return tenacity.AsyncRetrying(stop=stop, wait=wait, retry=retry, reraise=True)

    # --- Introspection ---

    def get_stats(self) -> dict[str, Any]:
        """Registry counts plus preloaded and in-flight counts."""
        stats = self._registry.get_stats()
        names = self._registry.names()
        stats["preloaded"] = sum(1 for name in names if self._cache.is_preloaded(name))
        stats["pending"] = sum(1 for name in names if self._cache.is_pending(name))
        return stats

    def is_preloaded(self, name: str) -> bool:
        return self._cache.is_preloaded(name)

    def forget(self, name: str) -> None:
        """Unregister name and drop its cached load state."""
        self._registry.unregister(name)
        self._cache.forget(name)

