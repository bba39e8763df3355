from __future__ import annotations

from typing import Sequence

import numpy as np


def as_bits(bits: Sequence[int] | np.ndarray) -> np.ndarray:
    """
    Normalize any integer sequence to a flat uint8 array of 0/1 via (x & 1).
    """
    arr = np.asarray(bits).reshape(-1)
    if arr.size == 0:
        return np.zeros((0,), dtype=np.uint8)
    if not np.issubdtype(arr.dtype, np.integer) and arr.dtype != np.bool_:
        raise TypeError(f"bits must be integers, got dtype {arr.dtype}")
    return (arr.astype(np.int64) & 1).astype(np.uint8)


def as_llr(llr: Sequence[float] | np.ndarray) -> np.ndarray:
    arr = np.asarray(llr, dtype=np.float64).reshape(-1)
    return arr


def bytes_to_bits(data: bytes, msb_first: bool = True) -> np.ndarray:
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("data must be bytes-like")
    if not data:
        return np.zeros((0,), dtype=np.uint8)
    arr = np.frombuffer(bytes(data), dtype=np.uint8)
    return np.unpackbits(arr, bitorder="big" if msb_first else "little")


def bits_to_bytes(bits: Sequence[int] | np.ndarray, msb_first: bool = True) -> bytes:
    b = as_bits(bits)
    if b.size % 8 != 0:
        raise ValueError(f"Bit length must be multiple of 8, got {b.size}")
    return np.packbits(b, bitorder="big" if msb_first else "little").tobytes()
