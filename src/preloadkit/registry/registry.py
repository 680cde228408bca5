"""Catalog of named preloadable units.

Usage:
    registry = ComponentRegistry()
    registry.register(RegistryEntry("Chart", load_chart, priority=7, category=Category.FEATURE))
    registry.register_batch([...])

    entry = registry.get("Chart")       # None if unknown
    entry = registry.require("Chart")   # NotFoundError if unknown
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator

from preloadkit.registry.models import Category, RegistryEntry

logger = logging.getLogger(__name__)

EagerHook = Callable[[str], None]
"""Called with the entry name when an eager entry is registered."""


class NotFoundError(KeyError):
    """Requested registry name is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Component {self.name!r} is not registered"


class ComponentRegistry:
    """Name -> RegistryEntry map preserving registration order.

    Re-registering a name replaces the entry (last write wins) and keeps
    its original position in the registration order.

    Args:
        on_eager: Hook invoked for entries with eager=True. Usually installed
            by PreloadScheduler.attach().
    """

    def __init__(self, on_eager: EagerHook | None = None) -> None:
        self._entries: dict[str, RegistryEntry] = {}
        self._on_eager = on_eager

    def set_eager_hook(self, hook: EagerHook | None) -> None:
        self._on_eager = hook

    def register(self, entry: RegistryEntry) -> None:
        """Register entry, replacing any entry with the same name."""
        if entry.name in self._entries:
            logger.debug("Replacing registry entry: %s", entry.name)
        self._entries[entry.name] = entry

        if entry.eager and self._on_eager is not None:
            self._on_eager(entry.name)

    def register_batch(self, entries: Iterable[RegistryEntry]) -> None:
        """Register entries in order."""
        for entry in entries:
            self.register(entry)

    def get(self, name: str) -> RegistryEntry | None:
        return self._entries.get(name)

    def require(self, name: str) -> RegistryEntry:
        """Get entry or raise NotFoundError."""
        entry = self._entries.get(name)
        if entry is None:
            raise NotFoundError(name)
        return entry

    def get_all(self) -> dict[str, RegistryEntry]:
        """Snapshot of all entries in registration order."""
        return dict(self._entries)

    def names(self) -> list[str]:
        return list(self._entries)

    def entries(self) -> list[RegistryEntry]:
        return list(self._entries.values())

    def unregister(self, name: str) -> bool:
        """Remove entry. Returns True if it existed."""
        return self._entries.pop(name, None) is not None

    def by_category(self, category: Category | str) -> list[RegistryEntry]:
        """Entries in category, in registration order."""
        category = Category(category)
        return [entry for entry in self._entries.values() if entry.category is category]

    def dependencies_of(self, name: str) -> tuple[str, ...]:
        """Declared dependencies of name. Raises NotFoundError if unknown."""
        return self.require(name).dependencies

    def get_stats(self) -> dict[str, object]:
        """Entry count overall and per category."""
        by_category: dict[str, int] = {}
        for entry in self._entries.values():
            by_category[entry.category.value] = by_category.get(entry.category.value, 0) + 1
        return {"total": len(self._entries), "by_category": by_category}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(list(self._entries.values()))
