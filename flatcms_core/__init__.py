"""FlatCMS - File-Backed Content Repository with a Persisted TTL Cache.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Content items are markdown files with YAML front matter, grouped into
collections (directories). Lookups go through a read-through cache that
persists one file per query result:
- TTL entries with lazy expiry and an optional background sweeper
- Storage failures degrade to cache misses, never exceptions
- Hashed, namespaced keys with targeted invalidation
- Lookup by path, slug, collection, field criteria and full text

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                          FlatCMS                                │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │ Repository  │  │   Factory   │  │    Item     │   CONTENT   │
    │  │ find/search │  │ front matter│  │  metadata   │   LAYER     │
    │  └──────┬──────┘  └──────┬──────┘  └─────────────┘             │
    │         │                │                                      │
    │  ┌──────┴──────┐  ┌──────┴───────────────────────┐             │
    │  │  FileCache  │  │          Serializers          │   CACHE     │
    │  │ TTL entries │──│  pickle / json / msgpack      │   LAYER     │
    │  └──────┬──────┘  └───────────────────────────────┘             │
    │         │                                                       │
    │  ┌──────┴────────────────────────────────────────┐             │
    │  │              Persisted Stores                  │   STORAGE   │
    │  │        ┌──────────────┐  ┌────────┐           │   LAYER     │
    │  │        │ Local disk   │  │ Memory │           │             │
    │  │        └──────────────┘  └────────┘           │             │
    │  └───────────────────────────────────────────────┘             │
    └─────────────────────────────────────────────────────────────────┘

Example Usage:
    from flatcms_core import RepositoryConfig, build_repository

    repo = build_repository(RepositoryConfig(base_path="/srv/content"))
    post = repo.find_by_slug("posts", "hello-world")
    featured = repo.find_by({"featured": True})

    # Standalone cache
    from flatcms_core import FileCache, LocalFileSystem

    cache = FileCache("/tmp/cache", LocalFileSystem())
    cache.put("user:1", {"name": "Ada"}, ttl=300)
    cache.forever("build", "2024.1")
"""

__version__ = "1.0.0"
__author__ = "BlackRoad OS"

from flatcms_core.cache.entry import CacheEntry
from flatcms_core.cache.keys import CacheKeyBuilder, QueryType
from flatcms_core.cache.cache import (
    FileCache,
    CacheConfig,
    CacheStats,
    CacheResult,
    CacheErrorKind,
)
from flatcms_core.store.backend import (
    PersistedStore,
    StorageError,
    StorageStats,
)
from flatcms_core.store.memory import MemoryStore
from flatcms_core.store.file import LocalFileSystem
from flatcms_core.protocol.serializer import (
    Serializer,
    SerializationError,
    JSONSerializer,
    PickleSerializer,
    MsgPackSerializer,
)
from flatcms_core.config import RepositoryConfig
from flatcms_core.content.item import Item, ItemMetadata
from flatcms_core.content.factory import ItemFactory
from flatcms_core.content.repository import ItemRepository, build_repository

__all__ = [
    # Cache
    "FileCache",
    "CacheConfig",
    "CacheStats",
    "CacheResult",
    "CacheErrorKind",
    "CacheEntry",
    "CacheKeyBuilder",
    "QueryType",
    # Storage
    "PersistedStore",
    "StorageError",
    "StorageStats",
    "MemoryStore",
    "LocalFileSystem",
    # Protocol
    "Serializer",
    "SerializationError",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    # Content
    "RepositoryConfig",
    "Item",
    "ItemMetadata",
    "ItemFactory",
    "ItemRepository",
    "build_repository",
]
