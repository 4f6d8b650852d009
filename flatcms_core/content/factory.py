"""FlatCMS Item Factory - Content Items from Markdown Files.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import frontmatter
import yaml

from flatcms_core.config import RepositoryConfig
from flatcms_core.content.item import Item, ItemMetadata
from flatcms_core.store.backend import PersistedStore, StorageError

logger = logging.getLogger(__name__)

DATED_FILENAME = re.compile(r"^(\d{4}-\d{2}-\d{2})-(.+)$")
HTML_TAG = re.compile(r"<[^>]+>")


class ItemFactory:
    """Builds content items from files with YAML front matter.

    File names may carry a date prefix: ``2024-03-01-hello-world.md``
    yields slug ``hello-world`` dated 2024-03-01.

    Example:
        factory = ItemFactory(LocalFileSystem(), config)
        item = factory.create_from_file("/content/posts/2024-03-01-hello.md")
        items = factory.create_from_directory("/content/posts")
    """

    def __init__(self, filesystem: PersistedStore, config: RepositoryConfig):
        self._fs = filesystem
        self.config = config

    def create_from_file(self, filepath: str) -> Optional[Item]:
        """Create an item from a file.

        Args:
            filepath: Content file path

        Returns:
            Item, or None if the file is missing or cannot be parsed
        """
        if not self._fs.exists(filepath):
            return None

        try:
            content = self._fs.read(filepath).decode("utf-8")
            post = frontmatter.loads(content)
            metadata = self._build_metadata(filepath, dict(post.metadata), post.content)
        except (StorageError, ValueError, yaml.YAMLError) as e:
            logger.warning(f"Skipping unreadable content file {filepath}: {e}")
            return None

        return Item(metadata, post.content)

    def create_from_content(self, content: str, filename: str = "untitled.md") -> Item:
        """Create an item from a content string.

        Args:
            content: Markdown with optional front matter
            filename: Name used to derive slug and date

        Returns:
            Item

        Raises:
            ValueError: If required metadata is missing
        """
        post = frontmatter.loads(content)
        front_matter = dict(post.metadata)
        name = self._strip_extension(filename)
        slug, file_date = self._extract_slug_and_date(name)

        data = self._process_resource_paths(front_matter)
        data.update({
            "slug": slug,
            "date": file_date or front_matter.get("date") or datetime.now(),
            "date_published": front_matter.get("date_published") or front_matter.get("date") or file_date,
            "date_modified": datetime.now(),
            "filename": name,
        })
        self._add_excerpt(data, post.content)

        return Item(ItemMetadata.from_dict(data), post.content)

    def create_from_directory(self, directory: str) -> List[Item]:
        """Create items from every content file in a directory.

        Args:
            directory: Directory path

        Returns:
            Items, grouped by extension in configured order

        Raises:
            ValueError: If the directory does not exist
        """
        if not self._fs.is_directory(directory):
            raise ValueError(f"Directory does not exist: {directory}")

        items = []
        for extension in self.config.extensions:
            pattern = f"{directory.rstrip('/')}/*.{extension}"
            for path in self._fs.glob(pattern):
                item = self.create_from_file(path)
                if item is not None:
                    items.append(item)

        logger.debug(f"Loaded {len(items)} items from {directory}")
        return items

    def _build_metadata(self, filepath: str, front_matter: Dict[str, Any], body: str) -> ItemMetadata:
        name = self._strip_extension(os.path.basename(filepath))
        slug, file_date = self._extract_slug_and_date(name)

        date = file_date or front_matter.get("date")
        if date is None:
            date = datetime.fromtimestamp(self._fs.created(filepath))

        data = self._process_resource_paths(front_matter)
        data.update({
            "slug": slug,
            "date": date,
            "date_published": front_matter.get("date_published") or front_matter.get("date") or file_date,
            "date_modified": datetime.fromtimestamp(self._fs.last_modified(filepath)),
            "filepath": filepath,
            "filename": name,
            "filesize": self._fs.size(filepath),
        })
        self._add_excerpt(data, body)
        return ItemMetadata.from_dict(data)

    def slug_for(self, filepath: str) -> str:
        """Slug a content file would get, without reading it."""
        name = self._strip_extension(os.path.basename(filepath))
        return self._extract_slug_and_date(name)[0]

    @staticmethod
    def _strip_extension(filename: str) -> str:
        return os.path.splitext(filename)[0]

    @staticmethod
    def _extract_slug_and_date(name: str) -> Tuple[str, Optional[str]]:
        """Split ``YYYY-MM-DD-slug`` into slug and date."""
        match = DATED_FILENAME.match(name)
        if match:
            return match.group(2), match.group(1)
        return name, None

    def _process_resource_paths(self, front_matter: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(front_matter)
        prefix = self.config.resource_path
        for name in self.config.resource_fields:
            value = data.get(name)
            if isinstance(value, str) and not value.startswith(prefix):
                data[name] = prefix.rstrip("/") + "/" + value.lstrip("/")
        return data

    def _add_excerpt(self, data: Dict[str, Any], body: str) -> None:
        if not data.get("excerpt") and body.strip():
            data["excerpt"] = generate_excerpt(body, self.config.excerpt_words)


def generate_excerpt(text: str, words: int = 30) -> str:
    """Plain-text excerpt of the first ``words`` words.

    Args:
        text: Markdown or HTML
        words: Word limit

    Returns:
        Excerpt, with an ellipsis when truncated
    """
    plain = HTML_TAG.sub("", text)
    parts = plain.split()
    if len(parts) <= words:
        return " ".join(parts)
    return " ".join(parts[:words]) + "..."


__all__ = ["ItemFactory", "generate_excerpt"]
