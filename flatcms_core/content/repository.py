"""FlatCMS Repository - Cached Content Item Queries.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from flatcms_core.cache.cache import CacheConfig, FileCache
from flatcms_core.cache.keys import CacheKeyBuilder, QueryType
from flatcms_core.config import RepositoryConfig
from flatcms_core.content.factory import ItemFactory
from flatcms_core.content.item import Item
from flatcms_core.store.backend import PersistedStore
from flatcms_core.store.file import LocalFileSystem

logger = logging.getLogger(__name__)

# Fields read through a dedicated accessor; anything else is front matter
ITEM_FIELDS: Dict[str, Callable[[Item], Any]] = {
    "slug": Item.slug,
    "title": Item.title,
    "author": Item.author,
    "status": Item.status,
    "featured": Item.featured,
    "tags": Item.tags,
    "categories": Item.categories,
}


def item_value(item: Item, field: str) -> Any:
    """Get the value of a named field, falling back to custom metadata."""
    accessor = ITEM_FIELDS.get(field)
    if accessor is None:
        return item.meta(field)
    return accessor(item)


def matches_criteria(item: Item, criteria: Mapping[str, Any]) -> bool:
    """Check an item against every criterion.

    A list, tuple or set criterion matches when the item value is one of
    its members; any other criterion must be equal to the item value.
    """
    for field, expected in criteria.items():
        actual = item_value(item, field)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


def searchable_text(item: Item) -> str:
    """Lowercased title, raw body, tags and categories joined by spaces."""
    parts = [
        item.title(),
        item.raw_body(),
        " ".join(str(tag) for tag in item.tags()),
        " ".join(str(category) for category in item.categories()),
    ]
    return " ".join(parts).lower()


class ItemRepository:
    """Read-through cached access to content items.

    Every lookup is answered from the cache when possible and is otherwise
    resolved against the content directory and then cached. Cached results
    are trusted until they expire or are cleared; files are not re-checked.

    Single-item lookups that find nothing are not cached. Collection-level
    lookups cache empty results like any other.

    Example:
        repo = build_repository(RepositoryConfig(base_path="/srv/content"))

        repo.find_by_slug("posts", "hello-world")
        repo.find_by({"status": "published", "tags": ["python", "rust"]})
        repo.search("flat file")

        repo.clear_cache("collection", "posts")
        repo.clear_cache()  # flushes the whole cache
    """

    def __init__(
        self,
        filesystem: PersistedStore,
        factory: ItemFactory,
        cache: FileCache,
        config: RepositoryConfig,
    ):
        """Initialize repository.

        Args:
            filesystem: Persisted store holding the content
            factory: Builds items from files
            cache: Cache for query results
            config: Repository configuration
        """
        self._fs = filesystem
        self._factory = factory
        self._cache = cache
        self.config = config
        self._keys = CacheKeyBuilder(config.cache_key_prefix)

    @property
    def base_path(self) -> str:
        return self.config.base_path

    @property
    def cache(self) -> FileCache:
        return self._cache

    def find_by_path(self, path: str) -> Optional[Item]:
        """Find an item by its path relative to the content root.

        Args:
            path: Relative file path, e.g. ``posts/hello.md``

        Returns:
            Item or None
        """
        cache_key = self._keys.build(QueryType.ITEM_PATH, path)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        full_path = f"{self.base_path}/{path.lstrip('/')}"
        item = self._factory.create_from_file(full_path)

        if item is not None:
            self._cache.put(cache_key, item, self.config.cache_ttl)

        return item

    def find_by_slug(self, collection: str, slug: str) -> Optional[Item]:
        """Find an item by slug within a collection.

        Dated file names match too: ``2024-01-01-hello.md`` has slug ``hello``,
        while ``say-hello.md`` does not.

        Args:
            collection: Collection name
            slug: Item slug

        Returns:
            Item or None
        """
        cache_key = self._keys.build(QueryType.ITEM_SLUG, f"{collection}/{slug}")

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        # "*hello.md" also matches "say-hello.md"; keep exact slugs only
        pattern = f"{self.base_path}/{collection}/*{slug}.{self.config.extension_pattern}"
        matches = [path for path in self._fs.glob(pattern) if self._factory.slug_for(path) == slug]
        if not matches:
            return None

        item = self._factory.create_from_file(matches[0])

        if item is not None:
            self._cache.put(cache_key, item, self.config.cache_ttl)

        return item

    def find_by_collection(self, collection: str) -> List[Item]:
        """Find all items in a collection.

        An unknown collection yields an empty list and is not cached; an
        existing but empty collection caches its empty list.

        Args:
            collection: Collection name

        Returns:
            Items in the collection
        """
        cache_key = self._keys.build(QueryType.COLLECTION, collection)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        collection_path = f"{self.base_path}/{collection}"
        if not self._fs.is_directory(collection_path):
            return []

        items = self._factory.create_from_directory(collection_path)
        self._cache.put(cache_key, items, self.config.cache_ttl)
        return items

    def find_all(self) -> List[Item]:
        """Find all items across all collections."""
        cache_key = self._keys.build(QueryType.ALL_ITEMS)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        items: List[Item] = []
        for collection in self.get_collections():
            items.extend(self.find_by_collection(collection))

        self._cache.put(cache_key, items, self.config.cache_ttl)
        return items

    def all(self) -> List[Item]:
        """Alias of find_all()."""
        return self.find_all()

    def find_by(self, criteria: Mapping[str, Any]) -> List[Item]:
        """Find items matching every criterion.

        Filters the cached full item set on each call.

        Args:
            criteria: Field name -> expected value or list of accepted values

        Returns:
            Matching items
        """
        return [item for item in self.find_all() if matches_criteria(item, criteria)]

    def search(self, query: str, collections: Optional[Iterable[str]] = None) -> List[Item]:
        """Case-insensitive substring search.

        Matches against title, raw body, tags and categories.

        Args:
            query: Text to look for
            collections: Restrict to these collections, default all

        Returns:
            Matching items
        """
        collections = list(collections or [])
        if collections:
            items: List[Item] = []
            for collection in collections:
                items.extend(self.find_by_collection(collection))
        else:
            items = self.find_all()

        needle = query.lower()
        return [item for item in items if needle in searchable_text(item)]

    def get_collections(self) -> List[str]:
        """List collection names.

        Collections are the non-hidden sub-directories of the content root.
        """
        cache_key = self._keys.build(QueryType.COLLECTIONS_LIST)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        collections: List[str] = []
        if self._fs.is_directory(self.base_path):
            for path in self._fs.glob(f"{self.base_path}/*"):
                name = os.path.basename(path)
                if self._fs.is_directory(path) and not name.startswith("."):
                    collections.append(name)

        self._cache.put(cache_key, collections, self.config.cache_ttl)
        return collections

    def clear_cache(
        self,
        query: Union[QueryType, str, None] = None,
        identifier: Optional[str] = None,
    ) -> bool:
        """Invalidate cached queries.

        With a query type, removes the single entry for that type and
        identifier (``clear_cache("collection", "posts")``). ``all_items``
        and ``collections_list`` take no identifier and are cleared by type
        alone. Without arguments the whole cache store is flushed.

        Returns:
            True if the cache reported success

        Raises:
            ValueError: If the query type is unknown, or needs an
                identifier and none was given
        """
        if query is None:
            logger.info("Flushing content cache")
            return self._cache.flush()

        query = QueryType(query)
        if query.needs_identifier and not identifier:
            raise ValueError(f"Clearing {query.value} entries requires an identifier")

        cache_key = self._keys.build(query, identifier)
        return self._cache.forget(cache_key)


def build_repository(
    config: RepositoryConfig,
    filesystem: Optional[PersistedStore] = None,
    cache_config: Optional[CacheConfig] = None,
) -> ItemRepository:
    """Wire a repository over the local disk.

    Args:
        config: Repository configuration
        filesystem: Store adapter, defaults to LocalFileSystem
        cache_config: Cache configuration, defaults to the repository ttl

    Returns:
        ItemRepository

    Raises:
        ValueError: If the content root does not exist
    """
    filesystem = filesystem or LocalFileSystem()
    config.validate_paths(filesystem)
    cache_config = cache_config or CacheConfig(name="content", default_ttl=config.cache_ttl)
    cache = FileCache(config.cache_path, filesystem, cache_config)
    factory = ItemFactory(filesystem, config)
    return ItemRepository(filesystem, factory, cache, config)


__all__ = [
    "ItemRepository",
    "build_repository",
    "item_value",
    "matches_criteria",
    "ITEM_FIELDS",
]
