"""Tests for serializers.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import pytest

from flatcms_core.protocol.serializer import (
    JSONSerializer,
    MsgPackSerializer,
    PickleSerializer,
    SerializationError,
    get_serializer,
)


class TestSerializers:
    """Tests for serializer formats."""

    def test_default_is_pickle(self):
        assert get_serializer().format_name == "pickle"

    def test_unknown_format(self):
        with pytest.raises(KeyError):
            get_serializer("yaml")

    def test_pickle_malformed(self):
        with pytest.raises(SerializationError):
            PickleSerializer().deserialize(b"\x80\x05truncated")

    def test_json_malformed(self):
        with pytest.raises(SerializationError):
            JSONSerializer().deserialize(b"{not json")

    def test_json_rejects_objects(self):
        with pytest.raises(SerializationError):
            JSONSerializer().serialize({"value": object()})

    def test_json_rejects_circular_values(self):
        looped = {}
        looped["self"] = looped
        with pytest.raises(SerializationError):
            JSONSerializer().serialize(looped)

    def test_pickle_rejects_lambdas(self):
        with pytest.raises(SerializationError):
            PickleSerializer().serialize(lambda: None)

    def test_msgpack(self):
        pytest.importorskip("msgpack")
        serializer = MsgPackSerializer()

        data = serializer.serialize({"value": ["posts", "pages"], "expires_at": None, "created_at": 1.5})
        assert serializer.deserialize(data) == {"value": ["posts", "pages"], "expires_at": None, "created_at": 1.5}

        with pytest.raises(SerializationError):
            serializer.deserialize(b"\xc1")

        with pytest.raises(SerializationError):
            serializer.serialize(2 ** 70)
