"""Content module - Items, the item factory and the cached repository."""

from flatcms_core.content.item import Item, ItemMetadata
from flatcms_core.content.factory import ItemFactory
from flatcms_core.content.repository import ItemRepository, build_repository

__all__ = [
    "Item",
    "ItemMetadata",
    "ItemFactory",
    "ItemRepository",
    "build_repository",
]
