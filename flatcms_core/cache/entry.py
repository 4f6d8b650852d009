"""FlatCMS Entry - Persisted Cache Entry with Expiration.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class CacheEntry:
    """A persisted cache record.

    Attributes:
        value: Cached payload, any serializable shape
        expires_at: Absolute expiry as epoch seconds, None for never
        created_at: Creation time as epoch seconds
    """

    value: Any
    expires_at: Optional[float] = None
    created_at: float = 0.0

    @classmethod
    def create(cls, value: Any, ttl: float, now: Optional[float] = None) -> "CacheEntry":
        """Build an entry for a put.

        A ttl of 0 means the entry never expires.

        Args:
            value: Value to cache
            ttl: Time to live in seconds, >= 0
            now: Current time (defaults to time.time())

        Returns:
            CacheEntry instance
        """
        if ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")
        now = time.time() if now is None else now
        expires_at = now + ttl if ttl > 0 else None
        return cls(value=value, expires_at=expires_at, created_at=now)

    @property
    def is_forever(self) -> bool:
        return self.expires_at is None

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check if entry has expired.

        An entry is still live at exactly ``expires_at``.
        """
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return now > self.expires_at

    def remaining_ttl(self, now: Optional[float] = None) -> Optional[float]:
        """Get remaining TTL in seconds, None for entries that never expire."""
        if self.expires_at is None:
            return None
        now = time.time() if now is None else now
        return max(0.0, self.expires_at - now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "expires_at": self.expires_at,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CacheEntry":
        """Create from a decoded record.

        Args:
            data: Dictionary data

        Returns:
            CacheEntry instance

        Raises:
            ValueError: If the record does not have the entry shape
        """
        if not isinstance(data, dict) or "value" not in data or "created_at" not in data:
            raise ValueError("Not a cache entry record")

        expires_at = data.get("expires_at")
        if expires_at is not None and not isinstance(expires_at, (int, float)):
            raise ValueError(f"Invalid expires_at: {expires_at!r}")

        return cls(
            value=data["value"],
            expires_at=expires_at,
            created_at=data["created_at"],
        )

    def __repr__(self) -> str:
        if self.expires_at is None:
            return f"CacheEntry(created_at={self.created_at:.0f}, forever)"
        return f"CacheEntry(created_at={self.created_at:.0f}, expires_at={self.expires_at:.0f})"


__all__ = ["CacheEntry"]
