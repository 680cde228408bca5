"""Deduplicating load cache."""

from preloadkit.loading.cache import LoadCache
from preloadkit.loading.models import (
    NOT_STARTED,
    LoaderFailure,
    LoadState,
    LoadTimeoutError,
    NotStarted,
    Pending,
    Settled,
)

__all__ = [
    "LoadCache",
    # States
    "LoadState",
    "NotStarted",
    "Pending",
    "Settled",
    "NOT_STARTED",
    # Errors
    "LoaderFailure",
    "LoadTimeoutError",
]
