#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Serialization settings for descriptors and execution records.
"""

from enum import Enum
from typing import Union

# Records beyond this size are refused rather than written partially.
DEFAULT_MAX_PAYLOAD_BYTES = 4 * 1024 * 1024 * 1024


class CompressionAlgorithm(str, Enum):
    """Compression applied to pickled payloads."""
    NONE = "none"
    ZLIB = "zlib"
    GZIP = "gzip"

    @classmethod
    def parse(cls, value: Union[str, "CompressionAlgorithm"]) -> "CompressionAlgorithm":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                "Unsupported compression '{0}'; expected one of {1}".format(
                    value, ", ".join(member.value for member in cls)
                )
            ) from None


__all__ = ["CompressionAlgorithm", "DEFAULT_MAX_PAYLOAD_BYTES"]
