"""FlatCMS Config - Repository Configuration.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from flatcms_core.store.backend import PersistedStore


@dataclass
class RepositoryConfig:
    """Content repository configuration.

    Attributes:
        base_path: Content root; each sub-directory is a collection
        cache_path: Cache directory, defaults to ``<base_path>/.cache``
        cache_ttl: TTL in seconds for cached queries
        extensions: Content file extensions
        resource_path: Prefix applied to resource fields
        resource_fields: Front matter fields holding resource paths
        excerpt_words: Words kept in generated excerpts
        cache_key_prefix: Prefix of every cache key
    """

    base_path: str
    cache_path: Optional[str] = None
    cache_ttl: int = 3600
    extensions: Tuple[str, ...] = ("md", "markdown")
    resource_path: str = "/resources"
    resource_fields: Tuple[str, ...] = ("image", "thumbnail", "featured_image")
    excerpt_words: int = 30
    cache_key_prefix: str = "cms"

    def __post_init__(self):
        if not self.base_path:
            raise ValueError("Configuration key 'base_path' is required")
        self.base_path = self.base_path.rstrip("/") or "/"
        if not self.cache_path:
            self.cache_path = f"{self.base_path}/.cache"
        if self.cache_ttl < 0:
            raise ValueError(f"cache_ttl must be >= 0, got {self.cache_ttl}")
        if not self.extensions:
            raise ValueError("At least one content extension is required")
        self.extensions = tuple(ext.lstrip(".") for ext in self.extensions)
        self.resource_fields = tuple(self.resource_fields)

    @property
    def extension_pattern(self) -> str:
        """Glob fragment matching any content extension, e.g. ``{md,markdown}``."""
        if len(self.extensions) == 1:
            return self.extensions[0]
        return "{" + ",".join(self.extensions) + "}"

    def validate_paths(self, filesystem: Optional[PersistedStore] = None) -> None:
        """Check that the content root exists.

        Args:
            filesystem: Store to check against, defaults to the local disk

        Raises:
            ValueError: If base_path is not a directory
        """
        is_directory = filesystem.is_directory if filesystem is not None else os.path.isdir
        if not is_directory(self.base_path):
            raise ValueError(f"Content path does not exist: {self.base_path}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RepositoryConfig":
        """Create from a flat settings mapping.

        Accepts ``cms_base_path`` as an alias of ``base_path`` and a nested
        ``resources`` block with ``path`` and ``fields``.

        Args:
            data: Settings

        Returns:
            RepositoryConfig instance

        Raises:
            ValueError: If required settings are missing or invalid
        """
        base_path = data.get("base_path") or data.get("cms_base_path")
        if not base_path:
            raise ValueError("Configuration key 'cms_base_path' is required")

        resources = data.get("resources") or {}
        kwargs: dict = {
            "base_path": str(base_path),
            "cache_path": data.get("cache_path"),
        }
        if "cache_ttl" in data:
            try:
                kwargs["cache_ttl"] = int(data["cache_ttl"])
            except (TypeError, ValueError):
                raise ValueError(f"Invalid cache_ttl: {data['cache_ttl']!r}")
        if "extensions" in data:
            kwargs["extensions"] = tuple(data["extensions"])
        if "path" in resources:
            kwargs["resource_path"] = resources["path"]
        if "fields" in resources:
            kwargs["resource_fields"] = tuple(resources["fields"])
        if "excerpt_words" in data:
            kwargs["excerpt_words"] = int(data["excerpt_words"])
        if "cache_key_prefix" in data:
            kwargs["cache_key_prefix"] = data["cache_key_prefix"]

        return cls(**kwargs)


__all__ = ["RepositoryConfig"]
