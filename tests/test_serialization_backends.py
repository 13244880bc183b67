#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import threading

import pytest

from sendtoremote.core.data.backends import CompressionCodecFactory, PickleBackend
from sendtoremote.core.data.config import CompressionAlgorithm
from sendtoremote.core.utils.exceptions import SerializationError


@pytest.mark.parametrize("compression", ["zlib", CompressionAlgorithm.GZIP])
def test_pickle_backend_roundtrip_with_compression(compression):
    backend = PickleBackend(compression=compression, compression_level=6)
    payload = {"numbers": list(range(500)), "nested": {"ok": True}}

    blob = backend.serialize(payload)

    assert isinstance(blob, bytes)
    assert len(blob) < len(PickleBackend().serialize(payload))
    assert backend.deserialize(blob) == payload


def test_pickle_backend_invalid_data_raises_serialization_error():
    backend = PickleBackend(safe_mode=True)

    with pytest.raises(SerializationError):
        backend.deserialize(b"not-a-pickle-payload")


def test_wrong_compression_raises_serialization_error():
    blob = PickleBackend().serialize([1, 2, 3])

    with pytest.raises(SerializationError):
        PickleBackend(compression="zlib").deserialize(blob)


def test_unpicklable_value_raises_serialization_error():
    with pytest.raises(SerializationError) as excinfo:
        PickleBackend().serialize({"lock": threading.Lock()})

    assert excinfo.value.operation == "serialize"
    assert excinfo.value.data_type == "dict"


def test_payload_size_limit():
    backend = PickleBackend(max_payload_bytes=64)

    with pytest.raises(SerializationError, match="too large"):
        backend.serialize(b"x" * 1024)
    with pytest.raises(SerializationError, match="too large"):
        backend.deserialize(PickleBackend().serialize(b"x" * 1024))


def test_dump_to_replaces_file_atomically(tmp_path):
    backend = PickleBackend()
    target = tmp_path / "nested" / "record.pkl"

    backend.dump_to(target, {"version": 1})
    backend.dump_to(target, {"version": 2})

    assert backend.load_from(target) == {"version": 2}
    assert [path.name for path in target.parent.iterdir()] == ["record.pkl"]


def test_failed_dump_leaves_previous_file(tmp_path):
    backend = PickleBackend()
    target = tmp_path / "record.pkl"
    backend.dump_to(target, "kept")

    with pytest.raises(SerializationError):
        backend.dump_to(target, threading.Lock())

    assert backend.load_from(target) == "kept"


def test_load_from_missing_file(tmp_path):
    with pytest.raises(SerializationError, match="Cannot read"):
        PickleBackend().load_from(tmp_path / "absent.pkl")


def test_invalid_backend_settings():
    with pytest.raises(ValueError):
        PickleBackend(protocol=99)
    with pytest.raises(ValueError):
        PickleBackend(compression_level=12)
    with pytest.raises(ValueError):
        PickleBackend(compression="lzma")


def test_codec_factory_covers_every_algorithm():
    for algorithm in CompressionAlgorithm:
        codec = CompressionCodecFactory.create(algorithm)
        assert codec.decompress(codec.compress(b"abc", 6)) == b"abc"


class _Stubborn:
    def __reduce__(self):
        raise ValueError("no pickle")


def test_any_pickling_failure_becomes_serialization_error():
    with pytest.raises(SerializationError) as excinfo:
        PickleBackend().serialize([_Stubborn()])

    assert isinstance(excinfo.value.cause, ValueError)


def test_truncated_payload_is_rejected():
    blob = PickleBackend().serialize({"a": 1})

    with pytest.raises(SerializationError, match="truncated"):
        PickleBackend().deserialize(blob[:-1])
