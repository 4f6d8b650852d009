"""FlatCMS Serializer - Cache Record Serialization.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
import logging
import pickle
from abc import ABC, abstractmethod
from typing import Any, Optional

logger = logging.getLogger(__name__)


class SerializationError(Exception):
    """Raised when a value cannot be encoded or bytes cannot be decoded."""


class Serializer(ABC):
    """Abstract serializer for cache records.

    Implementations handle different serialization formats.
    """

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Get format name."""
        pass

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Serialize value to bytes.

        Args:
            value: Value to serialize

        Returns:
            Serialized bytes

        Raises:
            SerializationError: If the value cannot be encoded
        """
        pass

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes to value.

        Args:
            data: Serialized bytes

        Returns:
            Deserialized value

        Raises:
            SerializationError: If the data is malformed
        """
        pass


class JSONSerializer(Serializer):
    """JSON serializer.

    Human-readable cache files. Limited to JSON-compatible types, so
    content items cannot be stored with it.
    """

    @property
    def format_name(self) -> str:
        return "json"

    def serialize(self, value: Any) -> bytes:
        try:
            return json.dumps(value).encode("utf-8")
        except (TypeError, ValueError, RecursionError) as e:
            raise SerializationError(f"Cannot encode value as JSON: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise SerializationError(f"Invalid JSON record: {e}") from e


class PickleSerializer(Serializer):
    """Pickle serializer.

    Supports any Python object, including content items and lists of them.
    Not safe for untrusted data; the cache directory must be private.
    """

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        """Initialize pickle serializer.

        Args:
            protocol: Pickle protocol version
        """
        self.protocol = protocol

    @property
    def format_name(self) -> str:
        return "pickle"

    def serialize(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=self.protocol)
        except (pickle.PicklingError, AttributeError, TypeError, RecursionError) as e:
            raise SerializationError(f"Cannot pickle value: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError,
                IndexError, KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Invalid pickle record: {e}") from e


class MsgPackSerializer(Serializer):
    """MessagePack serializer.

    Compact binary format for caches holding plain data (counters,
    collection name lists). Requires the msgpack package.
    """

    @property
    def format_name(self) -> str:
        return "msgpack"

    def serialize(self, value: Any) -> bytes:
        try:
            import msgpack
        except ImportError:
            raise ImportError("msgpack package not installed")
        try:
            return msgpack.packb(value, use_bin_type=True)
        except (OverflowError, TypeError, ValueError, RecursionError) as e:
            raise SerializationError(f"Cannot encode value as msgpack: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        try:
            import msgpack
        except ImportError:
            raise ImportError("msgpack package not installed")
        try:
            return msgpack.unpackb(data, raw=False)
        except (msgpack.UnpackException, ValueError, TypeError) as e:
            raise SerializationError(f"Invalid msgpack record: {e}") from e


class SerializerRegistry:
    """Registry of serializers."""

    def __init__(self):
        self._serializers: dict[str, Serializer] = {}
        self._default: str = "pickle"

        self.register(JSONSerializer())
        self.register(PickleSerializer())
        self.register(MsgPackSerializer())

    def register(self, serializer: Serializer) -> None:
        """Register a serializer."""
        self._serializers[serializer.format_name] = serializer

    def get(self, format_name: str) -> Serializer:
        """Get serializer by format.

        Args:
            format_name: Format name

        Returns:
            Serializer instance

        Raises:
            KeyError: If format not found
        """
        if format_name not in self._serializers:
            raise KeyError(f"Unknown serializer format: {format_name}")
        return self._serializers[format_name]

    def get_default(self) -> Serializer:
        return self._serializers[self._default]

    def list_formats(self) -> list[str]:
        return list(self._serializers.keys())


# Global registry
_registry = SerializerRegistry()


def get_serializer(format_name: Optional[str] = None) -> Serializer:
    """Get serializer by format.

    Args:
        format_name: Format name or None for default

    Returns:
        Serializer instance
    """
    if format_name is None:
        return _registry.get_default()
    return _registry.get(format_name)


__all__ = [
    "Serializer",
    "SerializationError",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    "SerializerRegistry",
    "get_serializer",
]
