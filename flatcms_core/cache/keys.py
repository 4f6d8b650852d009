"""FlatCMS Cache Keys - Query Namespaces and Key Derivation.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Optional, Union


class QueryType(Enum):
    """Repository queries that own a cache namespace."""

    ITEM_PATH = "item_path"
    ITEM_SLUG = "item_slug"
    COLLECTION = "collection"
    ALL_ITEMS = "all_items"
    COLLECTIONS_LIST = "collections_list"

    @property
    def needs_identifier(self) -> bool:
        """Whether keys of this type carry a hashed identifier."""
        return self not in (QueryType.ALL_ITEMS, QueryType.COLLECTIONS_LIST)


def hash_identifier(identifier: str) -> str:
    """Hash the variable part of a key. Not used for security."""
    return hashlib.md5(identifier.encode("utf-8")).hexdigest()


class CacheKeyBuilder:
    """Derives cache keys for repository queries.

    The namespace stays readable and the identifier is hashed, so keys
    have bounded length and never contain path separators:

        builder = CacheKeyBuilder()
        builder.build(QueryType.COLLECTION, "posts")
        # 'cms_collection_<md5 of "posts">'
        builder.build(QueryType.ALL_ITEMS)
        # 'cms_all_items'
    """

    def __init__(self, prefix: str = "cms"):
        """Initialize key builder.

        Args:
            prefix: Prefix shared by every key of this repository
        """
        self.prefix = prefix

    def build(
        self,
        query: Union[QueryType, str],
        identifier: Optional[str] = None,
    ) -> str:
        """Make the cache key for a query.

        Args:
            query: Query type or its string value
            identifier: Path, "collection/slug" pair or collection name

        Returns:
            Cache key
        """
        namespace = query.value if isinstance(query, QueryType) else str(query)
        key = f"{self.prefix}_{namespace}"
        if identifier:
            key += f"_{hash_identifier(identifier)}"
        return key

    def __repr__(self) -> str:
        return f"CacheKeyBuilder(prefix={self.prefix!r})"


__all__ = ["QueryType", "CacheKeyBuilder", "hash_identifier"]
