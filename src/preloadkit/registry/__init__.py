"""Component registry: named units with loader, priority and category."""

from preloadkit.registry.models import Category, RegistryEntry
from preloadkit.registry.registry import ComponentRegistry, EagerHook, NotFoundError

__all__ = [
    "ComponentRegistry",
    "RegistryEntry",
    "Category",
    "EagerHook",
    "NotFoundError",
]
