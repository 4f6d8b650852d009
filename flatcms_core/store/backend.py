"""FlatCMS Persisted Store - Abstract File Storage Interface.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised by store adapters when a primitive file operation fails."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


@dataclass
class StorageStats:
    """Store adapter statistics.

    Attributes:
        reads: Number of read operations
        writes: Number of write operations
        deletes: Number of delete operations
        globs: Number of glob operations
        errors: Number of errors
    """

    reads: int = 0
    writes: int = 0
    deletes: int = 0
    globs: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def record_error(self, error: str) -> None:
        """Record an error."""
        self.errors += 1
        self.last_error = error
        self.last_error_at = datetime.now()


class PersistedStore(ABC):
    """Primitive file operations consumed by the cache and the repository.

    Implementations:
    - LocalFileSystem: the real disk
    - MemoryStore: in-process dictionary of path -> bytes

    Read-style failures raise StorageError. ``write``, ``delete`` and
    ``make_directory`` report success through their return value but may
    also raise StorageError for failures they cannot classify.
    """

    def __init__(self):
        self._stats = StorageStats()

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if a file or directory exists."""
        pass

    @abstractmethod
    def read(self, path: str) -> bytes:
        """Read a file.

        Args:
            path: File path

        Returns:
            File contents

        Raises:
            StorageError: If the file is missing or unreadable
        """
        pass

    @abstractmethod
    def write(self, path: str, data: bytes) -> bool:
        """Write a file, creating its directory when needed.

        Args:
            path: File path
            data: Contents

        Returns:
            True if successful
        """
        pass

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Delete a file. Deleting an absent path succeeds."""
        pass

    @abstractmethod
    def glob(self, pattern: str) -> List[str]:
        """List paths matching a shell pattern.

        ``{a,b}`` alternation is supported, e.g. ``posts/*.{md,markdown}``.

        Args:
            pattern: Glob pattern

        Returns:
            Sorted list of matching paths
        """
        pass

    @abstractmethod
    def is_directory(self, path: str) -> bool:
        """Check if path is a directory."""
        pass

    @abstractmethod
    def make_directory(self, path: str, mode: int = 0o755, recursive: bool = True) -> bool:
        """Create a directory.

        Returns:
            True if the directory exists afterwards
        """
        pass

    @abstractmethod
    def last_modified(self, path: str) -> float:
        """Get modification time as epoch seconds."""
        pass

    @abstractmethod
    def created(self, path: str) -> float:
        """Get creation (or inode change) time as epoch seconds."""
        pass

    @abstractmethod
    def size(self, path: str) -> int:
        """Get file size in bytes."""
        pass

    def get_stats(self) -> StorageStats:
        """Get store statistics."""
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats = StorageStats()


def expand_braces(pattern: str) -> List[str]:
    """Expand ``{a,b}`` alternations in a glob pattern.

    Nested groups are expanded left to right:

        >>> expand_braces("posts/*.{md,markdown}")
        ['posts/*.md', 'posts/*.markdown']

    Args:
        pattern: Pattern possibly containing brace groups

    Returns:
        List of plain glob patterns
    """
    start = pattern.find("{")
    if start == -1:
        return [pattern]

    depth = 0
    for end in range(start, len(pattern)):
        char = pattern[end]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                break
    else:
        # Unbalanced brace, treat literally
        return [pattern]

    # Split the group body on top-level commas only
    body = pattern[start + 1:end]
    options: List[str] = []
    depth = 0
    current = ""
    for char in body:
        if char == "," and depth == 0:
            options.append(current)
            current = ""
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current += char
    options.append(current)

    prefix, suffix = pattern[:start], pattern[end + 1:]
    expanded: List[str] = []
    for option in options:
        expanded.extend(expand_braces(prefix + option + suffix))
    return expanded


__all__ = ["PersistedStore", "StorageError", "StorageStats", "expand_braces"]
