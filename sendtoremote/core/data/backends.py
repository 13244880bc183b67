import gzip
import os
import pickle
import tempfile
import zlib
from pathlib import Path
from typing import Any, Dict, Protocol, Union, runtime_checkable

from .config import DEFAULT_MAX_PAYLOAD_BYTES, CompressionAlgorithm
from ..utils.exceptions import SerializationError


@runtime_checkable
class CompressionCodec(Protocol):
    """Protocol for compression/decompression strategies."""

    def compress(self, data: bytes, level: int) -> bytes:
        """Compress raw bytes."""
        ...

    def decompress(self, data: bytes) -> bytes:
        """Decompress raw bytes."""
        ...


class NoCompressionCodec:
    """No-op compression strategy."""

    def compress(self, data: bytes, level: int) -> bytes:
        return data

    def decompress(self, data: bytes) -> bytes:
        return data


class ZlibCompressionCodec:
    """Zlib compression strategy."""

    def compress(self, data: bytes, level: int) -> bytes:
        return zlib.compress(data, level=level)

    def decompress(self, data: bytes) -> bytes:
        return zlib.decompress(data)


class GzipCompressionCodec:
    """Gzip compression strategy."""

    def compress(self, data: bytes, level: int) -> bytes:
        return gzip.compress(data, compresslevel=level)

    def decompress(self, data: bytes) -> bytes:
        return gzip.decompress(data)


class CompressionCodecFactory:
    """Factory for compression codecs."""

    _CODEC_MAP: Dict[CompressionAlgorithm, CompressionCodec] = {
        CompressionAlgorithm.NONE: NoCompressionCodec(),
        CompressionAlgorithm.ZLIB: ZlibCompressionCodec(),
        CompressionAlgorithm.GZIP: GzipCompressionCodec(),
    }

    @classmethod
    def create(cls, algorithm: CompressionAlgorithm) -> CompressionCodec:
        return cls._CODEC_MAP.get(algorithm, NoCompressionCodec())


class PickleBackend:
    """
    Pickle-based serialization backend.

    Used for invocation descriptors, argument checks and execution records.
    Payloads larger than ``max_payload_bytes`` are refused in both directions.
    """

    def __init__(self, protocol: int = 4, safe_mode: bool = True,
                 compression: Union[CompressionAlgorithm, str] = CompressionAlgorithm.NONE,
                 compression_level: int = 6,
                 max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES):
        if protocol not in range(0, pickle.HIGHEST_PROTOCOL + 1):
            raise ValueError(
                f"Unsupported pickle protocol {protocol}. "
                f"Supported range: 0-{pickle.HIGHEST_PROTOCOL}"
            )
        if not 0 <= compression_level <= 9:
            raise ValueError("compression_level must be in the range 0-9")
        if max_payload_bytes <= 0:
            raise ValueError("max_payload_bytes must be positive")

        self.protocol = protocol
        self.safe_mode = safe_mode
        self.compression = CompressionAlgorithm.parse(compression)
        self.compression_level = compression_level
        self.max_payload_bytes = max_payload_bytes
        self._compression_codec = CompressionCodecFactory.create(self.compression)

    def serialize(self, obj: Any) -> bytes:
        """Serialize object using pickle"""
        try:
            data = pickle.dumps(obj, protocol=self.protocol)
        except Exception as e:
            # Custom __reduce__/__getstate__ hooks can raise any exception.
            raise SerializationError(
                f"Pickle serialization failed: {e}",
                operation="serialize",
                data_type=type(obj).__name__,
                serialization_format="pickle",
                cause=e,
            ) from e
        self._check_size(len(data), "serialize")
        return self._compression_codec.compress(data, self.compression_level)

    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes using pickle"""
        if not data:
            return None
        try:
            data = self._compression_codec.decompress(data)

            if self.safe_mode:
                # Perform safety checks before deserialization
                self._validate_pickle_data(data)
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, ValueError, zlib.error, OSError,
                ImportError, AttributeError) as e:
            raise SerializationError(
                f"Pickle deserialization failed: {e}",
                operation="deserialize",
                serialization_format="pickle",
                cause=e,
            ) from e

    def dump_to(self, path: Union[str, Path], obj: Any) -> Path:
        """
        Serialize ``obj`` and replace ``path`` with it atomically.

        The file is written next to its destination and renamed into place, so
        readers never observe a half-written payload.
        """
        target = Path(path)
        data = self.serialize(obj)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=str(target.parent))
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        return target

    def load_from(self, path: Union[str, Path]) -> Any:
        """Read and deserialize a payload written by ``dump_to``."""
        target = Path(path)
        try:
            data = target.read_bytes()
        except OSError as e:
            raise SerializationError(
                f"Cannot read {target}: {e}",
                operation="deserialize",
                serialization_format="pickle",
                cause=e,
            ) from e
        return self.deserialize(data)

    def _check_size(self, size: int, operation: str) -> None:
        if size > self.max_payload_bytes:
            raise SerializationError(
                f"Pickle payload too large: {size} bytes (limit {self.max_payload_bytes})",
                operation=operation,
                serialization_format="pickle",
            )

    def _validate_pickle_data(self, data: bytes) -> None:
        """Refuse oversized or truncated payloads before handing them to ``pickle.loads``."""
        self._check_size(len(data), "deserialize")
        # Every pickle stream ends with the STOP opcode.
        if not data.endswith(pickle.STOP):
            raise SerializationError(
                "Invalid pickle data: truncated or not a pickle stream",
                operation="deserialize",
                serialization_format="pickle",
            )
