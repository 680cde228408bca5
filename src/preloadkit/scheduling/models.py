"""Scheduling models and configuration.

Types for device-aware policy selection, route tables, retry and
scheduler configuration, and batch outcomes.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, TypeAlias

if TYPE_CHECKING:
    from preloadkit.config import PreloadSettings

Connection: TypeAlias = Literal["slow", "fast"]
MemoryClass: TypeAlias = Literal["low", "high"]

RouteTable: TypeAlias = Mapping[str, Sequence[str]]
"""Route path -> ordered registry names to preload for it."""

DEFAULT_ROUTES: RouteTable = {
    "/": ("Button", "Card", "Input"),
    "/dashboard": ("DataTable", "Chart", "StatCard"),
    "/forms": ("Form", "Input", "Select", "DatePicker"),
    "/tables": ("DataTable", "Pagination", "Filter"),
}


@dataclass(frozen=True, slots=True)
class DeviceContext:
    """Device signals supplied by the caller to smart preloading.

    The scheduler never senses network or memory itself.
    """

    connection: Connection = "fast"
    memory: MemoryClass = "high"
    route: str | None = None
    """Optional route whose units are preloaded before the priority policy runs."""

    def __post_init__(self) -> None:
        if self.connection not in ("slow", "fast"):
            raise ValueError(f"connection must be 'slow' or 'fast', got {self.connection!r}")
        if self.memory not in ("low", "high"):
            raise ValueError(f"memory must be 'low' or 'high', got {self.memory!r}")

    @property
    def is_capable(self) -> bool:
        """Fast connection and plenty of memory."""
        return self.connection == "fast" and self.memory == "high"


def choose_priority_threshold(
    context: DeviceContext, aggressive: int = 1, conservative: int = 5
) -> int:
    """Pick the minimum priority to preload for a device.

    Capable devices (fast and high memory) get the aggressive threshold,
    every other combination the conservative one.
    """
    return aggressive if context.is_capable else conservative


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Configuration for retrying failed loaders.

    Useful for loaders that fetch over a flaky network.
    """

    max_attempts: int = 1
    """Maximum attempts (1 = no retry). Default: no retry."""

    backoff: Literal["none", "linear", "exponential"] = "none"
    """Backoff strategy between retries."""

    base_delay: float = 0.1
    """Base delay in seconds for backoff calculation."""


@dataclass
class SchedulerConfig:
    """Configuration for preload scheduler behavior."""

    max_concurrent: int | None = None
    """Max loaders in flight per batch call. None = unlimited (default)."""

    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    """Retry policy for failed loaders. Default: no retry."""

    load_timeout: float | None = None
    """Seconds to wait on a single unit before counting it failed. None = wait forever."""

    aggressive_priority: int = 1
    """Threshold used by smart preloading on capable devices."""

    conservative_priority: int = 5
    """Threshold used by smart preloading on constrained devices."""

    @classmethod
    def from_settings(cls, settings: PreloadSettings) -> SchedulerConfig:
        """Build a config from environment-backed settings."""
        return cls(
            max_concurrent=settings.max_concurrent,
            retry_policy=RetryPolicy(max_attempts=settings.retry_attempts),
            load_timeout=settings.load_timeout,
            aggressive_priority=settings.aggressive_priority,
            conservative_priority=settings.conservative_priority,
        )


@dataclass
class PreloadReport:
    """Outcome of a batch preload. Produced once every unit has settled."""

    loaded: list[str] = field(default_factory=list)
    """Units whose loader succeeded (or had already succeeded), in selection order."""

    failed: dict[str, BaseException] = field(default_factory=dict)
    """Units whose loader failed, with the failure."""

    missing: list[str] = field(default_factory=list)
    """Requested names that are not registered."""

    values: dict[str, Any] = field(default_factory=dict)
    """Loaded values keyed by unit name."""

    @property
    def requested(self) -> list[str]:
        """Every name this report covers."""
        return [*self.loaded, *self.failed, *self.missing]

    @property
    def ok(self) -> bool:
        return not self.failed and not self.missing

    def merge(self, other: PreloadReport) -> None:
        """Merge other report into this one, mutating self in place.

        A unit that loaded in either report counts as loaded, not failed.
        """
        for name in other.loaded:
            if name not in self.loaded:
                self.loaded.append(name)
            self.failed.pop(name, None)
        for name, error in other.failed.items():
            if name not in self.loaded:
                self.failed[name] = error
        for name in other.missing:
            if name not in self.missing:
                self.missing.append(name)
        self.values.update(other.values)
