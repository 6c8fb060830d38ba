"""
Lossless byte encoding for embedding vectors.

Layout: 4-byte magic ``GRV1``, little-endian uint32 element count, then
``count`` little-endian float64 values.
"""

import struct
from typing import List, Sequence

import numpy as np

from ..core.errors import CodecError

MAGIC = b"GRV1"
_HEADER = struct.Struct("<4sI")
_DTYPE = np.dtype("<f8")


def encode(vector: Sequence[float]) -> bytes:
    """Encode a vector of doubles to bytes."""
    values = np.asarray(vector, dtype=_DTYPE)
    if values.ndim != 1:
        raise CodecError(f"Expected a one-dimensional vector, got shape {values.shape}")
    return _HEADER.pack(MAGIC, values.shape[0]) + values.tobytes()


def decode(payload: bytes) -> List[float]:
    """Decode bytes produced by encode() back to the exact same doubles."""
    if payload is None:
        raise CodecError("Vector payload is missing")

    payload = bytes(payload)
    if len(payload) < _HEADER.size:
        raise CodecError(f"Vector payload too short ({len(payload)} bytes)")

    magic, count = _HEADER.unpack_from(payload)
    if magic != MAGIC:
        raise CodecError("Vector payload has an unknown format")

    expected = _HEADER.size + count * _DTYPE.itemsize
    if len(payload) != expected:
        raise CodecError(
            f"Vector payload length mismatch: expected {expected} bytes for {count} values, got {len(payload)}"
        )
    if count == 0:
        return []

    return np.frombuffer(payload, dtype=_DTYPE, offset=_HEADER.size, count=count).tolist()


class VectorCodec:
    """Object wrapper around encode/decode for injection into stores."""

    def encode(self, vector: Sequence[float]) -> bytes:
        return encode(vector)

    def decode(self, payload: bytes) -> List[float]:
        return decode(payload)
