"""Load state models and loader errors.

Each key in the LoadCache is in exactly one state:

    NotStarted -> Pending(future) -> Settled(value | error)

A Settled state holding an error does not count as preloaded; the next
request for that key starts a fresh Pending load.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, TypeAlias


@dataclass(frozen=True, slots=True)
class NotStarted:
    """No load has been requested for the key (or it was forgotten)."""


@dataclass(frozen=True, slots=True)
class Pending:
    """A loader invocation is in flight. At most one per key."""

    future: asyncio.Future[Any]


@dataclass(frozen=True, slots=True)
class Settled:
    """Loader finished, successfully or not."""

    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


LoadState: TypeAlias = NotStarted | Pending | Settled

NOT_STARTED = NotStarted()


class LoaderFailure(Exception):
    """A loader rejected. The original exception is kept as __cause__.

    Attributes:
        key: Key of the failed load.
        original: Exception raised by the loader, if any.
    """

    def __init__(
        self, key: str, original: BaseException | None = None, message: str | None = None
    ) -> None:
        self.key = key
        self.original = original
        if message is None:
            detail = f": {original}" if original is not None else ""
            message = f"Preload of {key!r} failed{detail}"
        super().__init__(message)


class LoadTimeoutError(LoaderFailure):
    """Caller stopped waiting for a load. The load itself keeps running."""

    def __init__(self, key: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(key, message=f"Preload of {key!r} not settled after {timeout}s")
