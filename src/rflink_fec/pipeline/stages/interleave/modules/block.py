from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from rflink_fec.errors import InterleaverAllocationError, InterleaverReleasedError

logger = logging.getLogger(__name__)

# distinct (rows, cols) shapes kept for the stream tx/rx surface
_CACHE_SIZE = 16


class BlockInterleaver:
    """
    Rectangular block interleaver over rows*cols elements.

    Write row-major into [rows][cols], read column-major:
      perm[r*cols + c] = c*rows + r
      inv[perm[i]] = i

    apply:   out[perm[i]] = in[i]
    deapply: out[inv[i]]  = in[i]

    Elements past rows*cols are copied through untouched. Input dtype is kept,
    so the same instance deinterleaves hard bits and float LLRs. Input shorter
    than rows*cols raises ValueError: partial blocks go through the module-level
    tx()/rx(), which pad to whole blocks.

    Two positions adjacent in the interleaved stream and in the same column
    come from original indices exactly cols apart, so a burst of up to rows
    positions lands in distinct rows.
    """

    def __init__(self, rows: int, cols: int):
        for name, v in (("rows", rows), ("cols", cols)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be int")
            if v <= 0:
                raise ValueError(f"{name} must be > 0")

        self.rows = rows
        self.cols = cols
        self._perm: Optional[np.ndarray] = None
        self._inv: Optional[np.ndarray] = None

        try:
            perm, inv = _build_tables(rows, cols)
        except MemoryError as e:
            raise InterleaverAllocationError(
                f"cannot allocate interleaver tables for rows={rows}, cols={cols}"
            ) from e

        self._perm = perm
        self._inv = inv
        logger.debug("block interleaver built: rows=%d cols=%d size=%d", rows, cols, self.size)

    @property
    def size(self) -> int:
        return self.rows * self.cols

    @property
    def released(self) -> bool:
        return self._perm is None

    @property
    def perm(self) -> np.ndarray:
        return self._tables()[0]

    @property
    def inv(self) -> np.ndarray:
        return self._tables()[1]

    def apply(self, data: Sequence | np.ndarray) -> np.ndarray:
        return self._permute(data, self._tables()[0])

    def deapply(self, data: Sequence | np.ndarray) -> np.ndarray:
        return self._permute(data, self._tables()[1])

    def release(self) -> None:
        """
        Drop the permutation tables. The instance is unusable afterward.
        """
        if self._perm is not None:
            logger.debug("block interleaver released: rows=%d cols=%d", self.rows, self.cols)
        self._perm = None
        self._inv = None

    def _tables(self) -> Tuple[np.ndarray, np.ndarray]:
        if self._perm is None or self._inv is None:
            raise InterleaverReleasedError("interleaver used after release()")
        return self._perm, self._inv

    def _permute(self, data: Sequence | np.ndarray, table: np.ndarray) -> np.ndarray:
        src = np.asarray(data).reshape(-1)
        n = self.size
        if src.size < n:
            raise ValueError(f"input length {src.size} shorter than block size {n}")
        out = src.copy()
        out[table] = src[:n]
        return out

    def __repr__(self) -> str:
        state = "released" if self.released else "ready"
        return f"BlockInterleaver(rows={self.rows}, cols={self.cols}, {state})"


def _build_tables(rows: int, cols: int) -> Tuple[np.ndarray, np.ndarray]:
    size = rows * cols
    write_idx = np.arange(size, dtype=np.int64)
    r, c = np.divmod(write_idx, cols)
    perm = c * rows + r
    inv = np.empty(size, dtype=np.int64)
    inv[perm] = write_idx
    perm.setflags(write=False)
    inv.setflags(write=False)
    return perm, inv


# ----------------------------
# Normalized module surface
# ----------------------------

@dataclass(frozen=True)
class Config:
    """
    Rectangular block interleaver applied block by block.

    rows: number of rows in the matrix (burst length fully dispersed)
    cols: number of columns (spacing between dispersed errors)
    pad: bit used to pad the last block

    Behavior:
    - tx pads so total length is a multiple of rows*cols
    - rx inverts, returning the padded length
    - trimming is done by the pipeline using the known coded length
    """
    rows: int = 8
    cols: int = 16
    pad: int = 0


@lru_cache(maxsize=_CACHE_SIZE)
def _shared_interleaver(rows: int, cols: int) -> BlockInterleaver:
    """
    Interleaver reused by tx/rx for (rows, cols). Never handed to callers, so
    nothing outside this module can release it.
    """
    return BlockInterleaver(rows, cols)


def tx(data: Sequence | np.ndarray, *, cfg: Any) -> np.ndarray:
    rows, cols, pad = _get_params(cfg)
    src = np.asarray(data).reshape(-1)
    if src.size == 0:
        return src.copy()

    itl = _shared_interleaver(rows, cols)
    n = itl.size
    n_blocks = -(-src.size // n)
    total = n_blocks * n
    if total != src.size:
        src = np.concatenate([src, np.full(total - src.size, pad, dtype=src.dtype)])

    out = np.empty_like(src)
    for k in range(n_blocks):
        out[k * n:(k + 1) * n] = itl.apply(src[k * n:(k + 1) * n])
    return out


def rx(data: Sequence | np.ndarray, *, cfg: Any) -> np.ndarray:
    rows, cols, _pad = _get_params(cfg)
    src = np.asarray(data).reshape(-1)
    if src.size == 0:
        return src.copy()

    itl = _shared_interleaver(rows, cols)
    n = itl.size
    if src.size % n != 0:
        raise ValueError(f"rx: length {src.size} not divisible by block size {n}")

    out = np.empty_like(src)
    for k in range(src.size // n):
        out[k * n:(k + 1) * n] = itl.deapply(src[k * n:(k + 1) * n])
    return out


def padded_len(n: int, *, cfg: Any) -> int:
    """
    Length tx() produces for n input elements: n rounded up to whole blocks.
    """
    if n < 0:
        raise ValueError("n must be >= 0")
    rows, cols, _pad = _get_params(cfg)
    size = rows * cols
    return -(-n // size) * size


def _get_params(cfg: Any) -> Tuple[int, int, int]:
    rows = getattr(cfg, "rows", None)
    cols = getattr(cfg, "cols", None)
    pad = getattr(cfg, "pad", None)

    for name, v in (("rows", rows), ("cols", cols), ("pad", pad)):
        if v is None:
            raise AttributeError(f"cfg missing required attribute: {name}")
        if not isinstance(v, int):
            raise TypeError(f"cfg.{name} must be int")

    if rows <= 0 or cols <= 0:
        raise ValueError("cfg.rows and cfg.cols must be > 0")
    if pad not in (0, 1):
        raise ValueError("cfg.pad must be 0 or 1")

    return rows, cols, pad
