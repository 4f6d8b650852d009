"""FlatCMS Cache - File-Backed TTL Cache.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from flatcms_core.cache.entry import CacheEntry
from flatcms_core.protocol.serializer import SerializationError, get_serializer
from flatcms_core.store.backend import PersistedStore, StorageError

logger = logging.getLogger(__name__)

# Failures a store adapter or serializer may raise while persisting a record
_WRITE_ERRORS = (StorageError, SerializationError, OSError)


class CacheErrorKind(Enum):
    """Why a lookup produced no value other than a plain miss."""

    STORAGE_UNAVAILABLE = auto()    # Store raised while reading
    CORRUPT_ENTRY = auto()          # Record could not be decoded


@dataclass
class CacheResult:
    """Outcome of a cache lookup.

    Attributes:
        hit: Whether a live value was found
        value: The cached value on a hit
        error: Failure kind when the miss was caused by an error
        expired: Whether the miss was caused by an expired entry
    """

    hit: bool
    value: Any = None
    error: Optional[CacheErrorKind] = None
    expired: bool = False


@dataclass
class CacheConfig:
    """Cache configuration.

    Attributes:
        name: Cache name used in log messages
        default_ttl: TTL in seconds for puts without an explicit ttl
        serializer: Serializer format name
        file_extension: Suffix of entry files
        cleanup_interval: Seconds between background sweeps, None disables
        delete_corrupt: Remove entry files that fail to decode
    """

    name: str = "cache"
    default_ttl: float = 3600
    serializer: str = "pickle"
    file_extension: str = ".cache"
    cleanup_interval: Optional[float] = None
    delete_corrupt: bool = True


@dataclass
class CacheStats:
    """Cache statistics.

    Attributes:
        hits: Number of cache hits
        misses: Number of cache misses
        writes: Number of successful puts
        deletes: Number of entry files removed
        expirations: Number of entries evicted because they expired
        corrupt_entries: Number of undecodable entries encountered
        errors: Number of storage errors
        started_at: When cache started
    """

    hits: int = 0
    misses: int = 0
    writes: int = 0
    deletes: int = 0
    expirations: int = 0
    corrupt_entries: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    started_at: Optional[datetime] = None

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def record_error(self, error: str) -> None:
        self.errors += 1
        self.last_error = error

    def reset(self) -> None:
        """Reset statistics."""
        self.hits = 0
        self.misses = 0
        self.writes = 0
        self.deletes = 0
        self.expirations = 0
        self.corrupt_entries = 0
        self.errors = 0
        self.last_error = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "writes": self.writes,
            "deletes": self.deletes,
            "expirations": self.expirations,
            "corrupt_entries": self.corrupt_entries,
            "errors": self.errors,
            "hit_rate": self.hit_rate,
        }


class FileCache:
    """TTL key/value cache persisted one file per key.

    Each key lives at ``<path>/<md5(key)>.cache`` holding a serialized
    ``{value, expires_at, created_at}`` record. Expired entries are removed
    lazily when looked up; ``sweep()`` (optionally on a background thread)
    removes them eagerly.

    Storage failures never escape: reads degrade to a miss and writes
    return False. ``lookup()`` reports the failure kind for callers that
    need to tell a miss from a broken store, and every failure is logged
    and counted in ``get_stats()``.

    Example:
        cache = FileCache("/var/cache/site", LocalFileSystem())

        cache.put("user:1", {"name": "Ada"}, ttl=300)
        cache.get("user:1")

        cache.forever("build", "2024.1")
        cache.increment("views")
    """

    def __init__(
        self,
        path: str,
        filesystem: PersistedStore,
        config: Optional[CacheConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize cache.

        Args:
            path: Cache root directory, created if absent
            filesystem: Persisted store adapter
            config: Cache configuration
            clock: Time source returning epoch seconds
        """
        self.path = path.rstrip("/") or "/"
        self.config = config or CacheConfig()
        self._fs = filesystem
        self._clock = clock or time.time
        self._serializer = get_serializer(self.config.serializer)

        # Serialises read-modify-write sequences within this process
        self._lock = threading.RLock()
        self._stats = CacheStats(started_at=datetime.now())

        self._cleanup_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        self._ensure_directory()

    def _ensure_directory(self) -> None:
        try:
            if not self._fs.is_directory(self.path):
                if not self._fs.make_directory(self.path, 0o755, True):
                    logger.error(f"Cache {self.config.name}: could not create {self.path}")
        except StorageError as e:
            logger.error(f"Cache {self.config.name}: could not create {self.path}: {e}")
            self._stats.record_error(str(e))

    def _get_path(self, key: str) -> str:
        """Get entry file path for key."""
        digest = hashlib.md5(key.encode("utf-8")).hexdigest()
        return f"{self.path}/{digest}{self.config.file_extension}"

    # Lookups

    def lookup(self, key: str) -> CacheResult:
        """Look up a key, reporting why a miss happened.

        Expired entries are deleted as a side effect.

        Args:
            key: Cache key

        Returns:
            CacheResult
        """
        path = self._get_path(key)
        entry, error = self._load(path)

        if entry is None:
            self._stats.misses += 1
            return CacheResult(hit=False, error=error)

        if entry.is_expired(self._clock()):
            self._delete_path(path)
            self._stats.expirations += 1
            self._stats.misses += 1
            return CacheResult(hit=False, expired=True)

        self._stats.hits += 1
        return CacheResult(hit=True, value=entry.value)

    def get(self, key: str, default: Any = None) -> Any:
        """Get value from cache.

        Args:
            key: Cache key
            default: Default value if absent or expired

        Returns:
            Cached value or default
        """
        result = self.lookup(key)
        return result.value if result.hit else default

    def has(self, key: str) -> bool:
        """Check if key holds a live value. Expired entries are deleted."""
        return self.lookup(key).hit

    def many(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Get multiple values.

        Args:
            keys: Keys to fetch

        Returns:
            Dict of key -> value, None for absent keys, in input order
        """
        return {key: self.get(key) for key in keys}

    # Writes

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        """Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Seconds to live, 0 for never expiring, None for the default

        Returns:
            True if the entry was persisted
        """
        ttl = self.config.default_ttl if ttl is None else ttl
        if ttl < 0:
            logger.warning(f"Cache {self.config.name}: refusing negative ttl {ttl} for {key!r}")
            return False

        entry = CacheEntry.create(value, ttl, now=self._clock())

        try:
            data = self._serializer.serialize(entry.to_dict())
            written = self._fs.write(self._get_path(key), data)
        except _WRITE_ERRORS as e:
            logger.error(f"Error writing {key}: {e}")
            self._stats.record_error(str(e))
            return False

        if written:
            self._stats.writes += 1
        return bool(written)

    def forever(self, key: str, value: Any) -> bool:
        """Store a value that never expires."""
        return self.put(key, value, 0)

    def add(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        """Store a value only if the key is absent.

        Returns:
            False if the key already holds a live value
        """
        with self._lock:
            if self.has(key):
                return False
            return self.put(key, value, ttl)

    def increment(self, key: str, delta: int = 1) -> int:
        """Increment an integer value, treating absent as 0.

        The result is written back with the default ttl.

        Args:
            key: Cache key
            delta: Amount to add

        Returns:
            New value
        """
        with self._lock:
            current = self.get(key, 0)
            try:
                current = int(current)
            except (TypeError, ValueError):
                logger.warning(f"Cache {self.config.name}: {key!r} is not an integer, restarting at 0")
                current = 0

            new_value = current + delta
            self.put(key, new_value)
            return new_value

    def decrement(self, key: str, delta: int = 1) -> int:
        """Decrement an integer value, treating absent as 0."""
        return self.increment(key, -delta)

    def put_many(
        self,
        values: Mapping[str, Any],
        ttl: Optional[float] = None,
        atomic: bool = False,
    ) -> bool:
        """Store multiple values.

        By default stops at the first failed put and leaves the earlier
        puts in place. With ``atomic=True`` every key written by the batch
        is restored to its previous persisted state when a put fails.

        Args:
            values: Dict of key -> value
            ttl: TTL for all values
            atomic: Roll back the batch on failure

        Returns:
            True if every value was stored
        """
        if not atomic:
            for key, value in values.items():
                if not self.put(key, value, ttl):
                    return False
            return True

        with self._lock:
            snapshots: List[Tuple[str, Optional[bytes]]] = []
            for key, value in values.items():
                path = self._get_path(key)
                try:
                    previous = self._fs.read(path) if self._fs.exists(path) else None
                except StorageError as e:
                    logger.error(f"Error reading {key} before batch write: {e}")
                    self._stats.record_error(str(e))
                    self._rollback(snapshots)
                    return False

                snapshots.append((path, previous))
                if not self.put(key, value, ttl):
                    self._rollback(snapshots)
                    return False
            return True

    def _rollback(self, snapshots: List[Tuple[str, Optional[bytes]]]) -> None:
        for path, previous in reversed(snapshots):
            try:
                if previous is None:
                    self._fs.delete(path)
                else:
                    self._fs.write(path, previous)
            except (StorageError, OSError) as e:
                logger.error(f"Error rolling back {path}: {e}")
                self._stats.record_error(str(e))

    def remember(self, key: str, ttl: Optional[float], factory: Callable[[], Any]) -> Any:
        """Get value or compute and store it.

        None results are returned but not cached.

        Args:
            key: Cache key
            ttl: TTL for a computed value
            factory: Computes the value on a miss

        Returns:
            Cached or computed value
        """
        result = self.lookup(key)
        if result.hit:
            return result.value

        value = factory()
        if value is not None:
            self.put(key, value, ttl)
        return value

    # Deletes

    def forget(self, key: str) -> bool:
        """Delete a key. Forgetting an absent key succeeds."""
        return self._delete_path(self._get_path(key))

    def flush(self) -> bool:
        """Delete every file in the cache directory.

        Subdirectories are left alone. Temp files left by interrupted
        writes are removed too. Not atomic: on failure some files may
        already be gone.

        Returns:
            False if any deletion failed
        """
        try:
            paths = self._fs.glob(f"{self.path}/{{*,.*.tmp}}")
        except StorageError as e:
            logger.error(f"Cache {self.config.name}: flush could not list {self.path}: {e}")
            self._stats.record_error(str(e))
            return False

        for path in paths:
            if self._fs.is_directory(path):
                continue
            if not self._delete_path(path):
                return False

        logger.info(f"Cache {self.config.name} flushed")
        return True

    def sweep(self) -> int:
        """Remove expired (and undecodable) entries from disk.

        Returns:
            Number of entry files removed
        """
        removed = 0
        try:
            paths = self._fs.glob(f"{self.path}/*{self.config.file_extension}")
        except StorageError as e:
            logger.error(f"Cache {self.config.name}: sweep could not list {self.path}: {e}")
            self._stats.record_error(str(e))
            return 0

        now = self._clock()
        with self._lock:
            for path in paths:
                entry, error = self._load(path)
                if entry is not None and entry.is_expired(now):
                    if self._delete_path(path):
                        self._stats.expirations += 1
                        removed += 1
                elif error is CacheErrorKind.CORRUPT_ENTRY and self.config.delete_corrupt:
                    removed += 1

        if removed:
            logger.debug(f"Cache {self.config.name}: swept {removed} entries")
        return removed

    # Internals

    def _load(self, path: str) -> Tuple[Optional[CacheEntry], Optional[CacheErrorKind]]:
        """Read and decode an entry file."""
        try:
            if not self._fs.exists(path):
                return None, None
            data = self._fs.read(path)
        except (StorageError, OSError) as e:
            if not self._fs.exists(path):
                # Removed between the existence check and the read
                return None, None
            logger.error(f"Error reading {path}: {e}")
            self._stats.record_error(str(e))
            return None, CacheErrorKind.STORAGE_UNAVAILABLE

        try:
            return CacheEntry.from_dict(self._serializer.deserialize(data)), None
        except (SerializationError, ValueError) as e:
            logger.warning(f"Corrupt cache entry {path}: {e}")
            self._stats.corrupt_entries += 1
            if self.config.delete_corrupt:
                self._delete_path(path)
            return None, CacheErrorKind.CORRUPT_ENTRY

    def _delete_path(self, path: str) -> bool:
        try:
            if not self._fs.exists(path):
                return True
            deleted = self._fs.delete(path)
        except (StorageError, OSError) as e:
            logger.error(f"Error deleting {path}: {e}")
            self._stats.record_error(str(e))
            return False

        if deleted:
            self._stats.deletes += 1
        return bool(deleted)

    # Background sweeping

    def start(self) -> None:
        """Start the background sweeper if a cleanup interval is configured."""
        if self._cleanup_thread is not None or not self.config.cleanup_interval:
            return

        self._stop_event.clear()
        self._cleanup_thread = threading.Thread(
            target=self._cleanup_loop,
            daemon=True,
            name=f"Cache-{self.config.name}-cleanup",
        )
        self._cleanup_thread.start()
        logger.info(f"Cache {self.config.name} started")

    def stop(self) -> None:
        """Stop the background sweeper."""
        self._stop_event.set()
        if self._cleanup_thread:
            self._cleanup_thread.join(timeout=5.0)
            self._cleanup_thread = None
            logger.info(f"Cache {self.config.name} stopped")

    def _cleanup_loop(self) -> None:
        while not self._stop_event.wait(self.config.cleanup_interval):
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Cleanup error: {e}")

    def get_stats(self) -> CacheStats:
        return self._stats

    def reset_stats(self) -> None:
        self._stats.reset()

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __enter__(self) -> "FileCache":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"FileCache(name={self.config.name!r}, path={self.path!r})"


__all__ = [
    "FileCache",
    "CacheConfig",
    "CacheStats",
    "CacheResult",
    "CacheErrorKind",
]
