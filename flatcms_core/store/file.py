"""FlatCMS File Store - Local Disk Storage Adapter.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import glob as globlib
import logging
import os
import threading
from pathlib import Path
from typing import List

from flatcms_core.store.backend import PersistedStore, StorageError, expand_braces

logger = logging.getLogger(__name__)


class LocalFileSystem(PersistedStore):
    """Persisted store backed by the local filesystem.

    Features:
    - Atomic writes (temp file + rename)
    - Parent directories created on write
    - Brace alternation in glob patterns

    Example:
        fs = LocalFileSystem()
        fs.write("/var/cache/site/a.cache", b"data")
        fs.glob("/var/content/posts/*.{md,markdown}")
    """

    def __init__(self):
        super().__init__()
        self._lock = threading.RLock()

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def read(self, path: str) -> bytes:
        """Read a file.

        Args:
            path: File path

        Returns:
            File contents

        Raises:
            StorageError: If the file is missing or unreadable
        """
        self._stats.reads += 1
        if not os.path.isfile(path):
            raise StorageError(f"File does not exist: {path}", path)

        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Failed to read file: {path}", path) from e

    def write(self, path: str, data: bytes) -> bool:
        """Write a file atomically.

        Args:
            path: File path
            data: Contents

        Returns:
            True if successful
        """
        target = Path(path)
        temp_path = target.with_name(f".{target.name}.{os.getpid()}.{threading.get_ident()}.tmp")

        try:
            with self._lock:
                if not target.parent.is_dir():
                    target.parent.mkdir(mode=0o755, parents=True, exist_ok=True)

                with open(temp_path, "wb") as f:
                    f.write(data)

                os.replace(temp_path, target)
                self._stats.writes += 1
                return True

        except OSError as e:
            logger.error(f"Error writing {path}: {e}")
            self._stats.record_error(str(e))

            if temp_path.exists():
                temp_path.unlink()

            return False

    def delete(self, path: str) -> bool:
        """Delete a file or empty directory.

        Args:
            path: Path to delete

        Returns:
            True if the path is gone afterwards
        """
        try:
            with self._lock:
                if not os.path.lexists(path):
                    return True

                if os.path.isdir(path):
                    os.rmdir(path)
                else:
                    os.unlink(path)
                self._stats.deletes += 1
                return True

        except OSError as e:
            logger.error(f"Error deleting {path}: {e}")
            self._stats.record_error(str(e))
            return False

    def glob(self, pattern: str) -> List[str]:
        self._stats.globs += 1
        matches = set()
        for expanded in expand_braces(pattern):
            matches.update(globlib.glob(expanded))
        return sorted(matches)

    def is_directory(self, path: str) -> bool:
        return os.path.isdir(path)

    def make_directory(self, path: str, mode: int = 0o755, recursive: bool = True) -> bool:
        """Create a directory.

        Args:
            path: Directory path
            mode: Permission bits
            recursive: Create missing parents

        Returns:
            True if the directory exists afterwards
        """
        if self.is_directory(path):
            return True

        try:
            if recursive:
                os.makedirs(path, mode=mode, exist_ok=True)
            else:
                os.mkdir(path, mode)
            return True
        except OSError as e:
            logger.error(f"Error creating directory {path}: {e}")
            self._stats.record_error(str(e))
            return False

    def last_modified(self, path: str) -> float:
        return self._stat(path).st_mtime

    def created(self, path: str) -> float:
        return self._stat(path).st_ctime

    def size(self, path: str) -> int:
        return self._stat(path).st_size

    def _stat(self, path: str) -> os.stat_result:
        try:
            return os.stat(path)
        except OSError as e:
            raise StorageError(f"File does not exist: {path}", path) from e

    def __repr__(self) -> str:
        return "LocalFileSystem()"


__all__ = ["LocalFileSystem"]
