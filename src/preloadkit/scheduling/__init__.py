"""Preload scheduling: selection strategies and device-aware policy."""

from preloadkit.scheduling.models import (
    DEFAULT_ROUTES,
    Connection,
    DeviceContext,
    MemoryClass,
    PreloadReport,
    RetryPolicy,
    RouteTable,
    SchedulerConfig,
    choose_priority_threshold,
)
from preloadkit.scheduling.scheduler import PreloadScheduler

__all__ = [
    # Scheduler
    "PreloadScheduler",
    # Models
    "DeviceContext",
    "Connection",
    "MemoryClass",
    "PreloadReport",
    "RetryPolicy",
    "SchedulerConfig",
    "RouteTable",
    "DEFAULT_ROUTES",
    # Policy
    "choose_priority_threshold",
]
