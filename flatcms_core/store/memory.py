"""FlatCMS Memory Store - In-Memory Storage Adapter.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import fnmatch
import logging
import posixpath
import threading
import time
from typing import Dict, List, Optional, Set

from flatcms_core.store.backend import PersistedStore, StorageError, expand_braces

logger = logging.getLogger(__name__)


class MemoryStore(PersistedStore):
    """In-memory persisted store.

    Files are kept in a dict of normalised POSIX path -> bytes. A directory
    exists if it was created explicitly or if any file lives beneath it.

    Writes and deletes can be made to fail for testing:

        store = MemoryStore()
        store.fail_write_paths.add("/cache/abc.cache")
        store.fail_writes = True

    Example:
        store = MemoryStore()
        store.write("/content/posts/hello.md", b"# Hello")
        store.glob("/content/posts/*.{md,markdown}")
    """

    def __init__(self):
        super().__init__()
        self._files: Dict[str, bytes] = {}
        self._mtimes: Dict[str, float] = {}
        self._dirs: Set[str] = {"/"}
        self._lock = threading.RLock()

        self.fail_writes = False
        self.fail_deletes = False
        self.fail_write_paths: Set[str] = set()

    @staticmethod
    def _norm(path: str) -> str:
        return posixpath.normpath(path)

    def exists(self, path: str) -> bool:
        path = self._norm(path)
        return path in self._files or self.is_directory(path)

    def read(self, path: str) -> bytes:
        path = self._norm(path)
        with self._lock:
            self._stats.reads += 1
            if path not in self._files:
                raise StorageError(f"File does not exist: {path}", path)
            return self._files[path]

    def write(self, path: str, data: bytes) -> bool:
        path = self._norm(path)
        with self._lock:
            if self.fail_writes or path in self.fail_write_paths:
                self._stats.record_error(f"write refused: {path}")
                raise StorageError(f"Failed to write file: {path}", path)

            self.make_directory(posixpath.dirname(path))
            self._files[path] = bytes(data)
            self._mtimes[path] = time.time()
            self._stats.writes += 1
            return True

    def delete(self, path: str) -> bool:
        path = self._norm(path)
        with self._lock:
            if self.fail_deletes:
                self._stats.record_error(f"delete refused: {path}")
                raise StorageError(f"Failed to delete file: {path}", path)

            if path in self._files:
                del self._files[path]
                self._mtimes.pop(path, None)
                self._stats.deletes += 1
            else:
                self._dirs.discard(path)
            return True

    def glob(self, pattern: str) -> List[str]:
        with self._lock:
            self._stats.globs += 1
            candidates = set(self._files) | self._implicit_dirs()
            matches = set()
            for expanded in expand_braces(pattern):
                parts = self._norm(expanded).split("/")
                for candidate in candidates:
                    if self._match_segments(candidate.split("/"), parts):
                        matches.add(candidate)
            return sorted(matches)

    @staticmethod
    def _match_segments(path_parts: List[str], pattern_parts: List[str]) -> bool:
        # "*" never crosses a directory separator, as with glob(3)
        if len(path_parts) != len(pattern_parts):
            return False
        for name, pat in zip(path_parts, pattern_parts):
            if name.startswith(".") and not pat.startswith("."):
                return False
            if not fnmatch.fnmatchcase(name, pat):
                return False
        return True

    def _implicit_dirs(self) -> Set[str]:
        dirs = set(self._dirs)
        for path in self._files:
            parent = posixpath.dirname(path)
            while parent not in dirs:
                dirs.add(parent)
                parent = posixpath.dirname(parent)
        return dirs

    def is_directory(self, path: str) -> bool:
        path = self._norm(path)
        with self._lock:
            if path in self._dirs:
                return True
            prefix = path.rstrip("/") + "/"
            return any(f.startswith(prefix) for f in self._files)

    def make_directory(self, path: str, mode: int = 0o755, recursive: bool = True) -> bool:
        path = self._norm(path)
        with self._lock:
            parent = posixpath.dirname(path)
            if not recursive and not self.is_directory(parent):
                return False
            while path not in self._dirs:
                self._dirs.add(path)
                path = posixpath.dirname(path)
            return True

    def last_modified(self, path: str) -> float:
        return self._mtime(path)

    def created(self, path: str) -> float:
        return self._mtime(path)

    def size(self, path: str) -> int:
        path = self._norm(path)
        if path not in self._files:
            raise StorageError(f"File does not exist: {path}", path)
        return len(self._files[path])

    def _mtime(self, path: str) -> float:
        path = self._norm(path)
        if path not in self._mtimes:
            raise StorageError(f"File does not exist: {path}", path)
        return self._mtimes[path]

    def files(self, prefix: Optional[str] = None) -> List[str]:
        """List stored file paths, optionally under a directory."""
        with self._lock:
            if prefix is None:
                return sorted(self._files)
            root = self._norm(prefix).rstrip("/") + "/"
            return sorted(f for f in self._files if f.startswith(root))

    def __repr__(self) -> str:
        return f"MemoryStore(files={len(self._files)})"


__all__ = ["MemoryStore"]
