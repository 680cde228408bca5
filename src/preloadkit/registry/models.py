"""Registry models: preloadable units and their categories."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from preloadkit.types import Loader


class Category(Enum):
    """Coarse grouping used by category-driven preloading."""

    UI = "ui"
    PAGE = "page"
    FEATURE = "feature"
    UTILITY = "utility"


@dataclass(frozen=True, slots=True)
class RegistryEntry:
    """A named preloadable unit.

    Immutable once registered; replace it by registering the same name again.
    """

    name: str
    loader: Loader
    priority: int = 0
    """Higher loads first. Priority-threshold preloading selects priority >= threshold."""
    category: Category = Category.UI
    dependencies: tuple[str, ...] = ()
    """Informational only. Not preloaded transitively."""
    renderable: bool = True
    """Whether the unit can be rendered server side."""
    eager: bool = False
    """Preload immediately on registration when a scheduler is attached."""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("RegistryEntry.name must be non-empty")
        if not isinstance(self.category, Category):
            object.__setattr__(self, "category", Category(self.category))
        if not isinstance(self.dependencies, tuple):
            object.__setattr__(self, "dependencies", tuple(self.dependencies))
