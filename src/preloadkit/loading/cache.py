"""Load cache with in-flight deduplication.

Guarantees at most one loader invocation per key while it is in flight.
Concurrent callers share the pending result; a successful load short-
circuits every later request; a failed load may be retried.

Usage:
    cache = LoadCache()
    value = await cache.preload("Chart", load_chart)
    cache.is_preloaded("Chart")  # True

    # Give up waiting after 2 seconds (the load keeps running)
    await cache.preload("Map", load_map, timeout=2.0)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import Any

from preloadkit.loading.models import (
    NOT_STARTED,
    LoaderFailure,
    LoadState,
    LoadTimeoutError,
    Pending,
    Settled,
)
from preloadkit.metrics import ERROR_SUFFIX, MetricsStore
from preloadkit.types import Loader, call_loader

logger = logging.getLogger(__name__)


class LoadCache:
    """Keyed arena of load states.

    Every settlement writes a metric sample: the key on success,
    "<key>:error" on failure.

    Args:
        metrics: Store receiving load timings. A private store is created if omitted.
        timeout: Default seconds a caller waits before LoadTimeoutError.
            None waits indefinitely.
    """

    def __init__(self, metrics: MetricsStore | None = None, timeout: float | None = None) -> None:
        self._metrics = metrics if metrics is not None else MetricsStore()
        self._timeout = timeout
        self._entries: dict[str, LoadState] = {}

    @property
    def metrics(self) -> MetricsStore:
        return self._metrics

    def preload(self, key: str, loader: Loader, *, timeout: float | None = None) -> Awaitable[Any]:
        """Start (or join) the load for key.

        Must be called from a running event loop.

        Args:
            key: Deduplication key.
            loader: Invoked only if no load for key is pending or succeeded.
            timeout: Seconds to wait before raising LoadTimeoutError.
                Falls back to the cache default.

        Returns:
            Awaitable resolving to the loader's value. Raises LoaderFailure
            when the loader fails.
        """
        state = self._entries.get(key, NOT_STARTED)

        if isinstance(state, Pending):
            logger.debug("Joining in-flight preload: %s", key)
            # Shield so one cancelled waiter does not cancel the shared load
            waiter: Awaitable[Any] = asyncio.shield(state.future)
        elif isinstance(state, Settled) and state.ok:
            done = asyncio.get_running_loop().create_future()
            done.set_result(state.value)
            return done
        else:
            task = asyncio.ensure_future(self._run(key, loader))
            self._entries[key] = Pending(task)
            waiter = asyncio.shield(task)

        effective = timeout if timeout is not None else self._timeout
        if effective is None:
            return waiter
        return self._wait(key, waiter, effective)

    async def batch_preload(self, items: Iterable[tuple[str, Loader]]) -> list[Any]:
        """Preload several keys, waiting until every one settles.

        Returns:
            One entry per item: the loaded value or the LoaderFailure raised.
        """
        waiters = [self.preload(key, loader) for key, loader in items]
        return list(await asyncio.gather(*waiters, return_exceptions=True))

    async def _run(self, key: str, loader: Loader) -> Any:
        """Invoke loader and settle key's state."""
        start = self._metrics.clock()
        try:
            value = await call_loader(loader)
        except asyncio.CancelledError:
            self._settle(key, None)
            raise
        except Exception as e:
            self._metrics.record_since(key + ERROR_SUFFIX, start)
            self._settle(key, Settled(error=e))
            logger.warning("Preload failed: %s (%s)", key, e)
            raise LoaderFailure(key, e) from e

        sample = self._metrics.record_since(key, start)
        self._settle(key, Settled(value=value))
        logger.debug("Preload complete: %s in %.2fms", key, sample.elapsed_ms)
        return value

    def _settle(self, key: str, state: Settled | None) -> None:
        """Replace key's Pending state, unless the cache was cleared meanwhile."""
        current = self._entries.get(key)
        if not isinstance(current, Pending) or current.future is not asyncio.current_task():
            return
        if state is None:
            del self._entries[key]
        else:
            self._entries[key] = state

    async def _wait(self, key: str, waiter: Awaitable[Any], timeout: float) -> Any:
        try:
            return await asyncio.wait_for(waiter, timeout)
        except TimeoutError:
            logger.warning("Gave up waiting for preload: %s after %ss", key, timeout)
            raise LoadTimeoutError(key, timeout) from None

    def state(self, key: str) -> LoadState:
        """Current load state of key."""
        return self._entries.get(key, NOT_STARTED)

    def is_preloaded(self, key: str) -> bool:
        """True once a load of key has succeeded."""
        state = self._entries.get(key)
        return isinstance(state, Settled) and state.ok

    def is_pending(self, key: str) -> bool:
        return isinstance(self._entries.get(key), Pending)

    def last_error(self, key: str) -> BaseException | None:
        """Error of the most recent failed load, if the key is in that state."""
        state = self._entries.get(key)
        if isinstance(state, Settled):
            return state.error
        return None

    def pending_keys(self) -> list[str]:
        return [key for key, state in self._entries.items() if isinstance(state, Pending)]

    def preloaded_keys(self) -> list[str]:
        return [
            key for key, state in self._entries.items() if isinstance(state, Settled) and state.ok
        ]

    def forget(self, key: str) -> None:
        """Drop key's state. A pending load keeps running but is no longer tracked."""
        self._entries.pop(key, None)

    def clear_cache(self) -> None:
        """Reset both in-flight and completed entries."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
