"""
Serialization backends for descriptors and execution records.
"""

from .backends import CompressionCodec, CompressionCodecFactory, PickleBackend
from .config import DEFAULT_MAX_PAYLOAD_BYTES, CompressionAlgorithm

__all__ = [
    "CompressionAlgorithm",
    "CompressionCodec",
    "CompressionCodecFactory",
    "DEFAULT_MAX_PAYLOAD_BYTES",
    "PickleBackend",
]
