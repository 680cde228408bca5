"""Shared type aliases and the loader calling convention."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

Loader: TypeAlias = Callable[[], Awaitable[Any] | Any]
"""Zero-argument unit of deferred work.

Usually an async function (the stand-in for a dynamic import). Plain
callables are accepted too; their return value is used as-is.
"""


async def call_loader(loader: Loader) -> Any:
    """Invoke loader and await its result if it returned an awaitable.

    Runs inside a coroutine so a loader raising synchronously surfaces as a
    failed await rather than an exception at the call site.
    """
    result = loader()
    if inspect.isawaitable(result):
        result = await result
    return result
