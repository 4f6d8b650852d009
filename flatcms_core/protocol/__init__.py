"""Protocol module - Cache record serialization."""

from flatcms_core.protocol.serializer import (
    Serializer,
    SerializationError,
    JSONSerializer,
    PickleSerializer,
    MsgPackSerializer,
    get_serializer,
)

__all__ = [
    "Serializer",
    "SerializationError",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    "get_serializer",
]
