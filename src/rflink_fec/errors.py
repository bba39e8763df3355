"""
FEC-specific exception hierarchy.

Caller mistakes (wrong types, odd coded lengths, bad config) raise the builtin
TypeError / ValueError / AttributeError like every other stage module does.
The classes here cover conditions that are not plain argument errors.
"""
from __future__ import annotations


class FECError(Exception):
    """Base exception for all FEC errors."""


class CapacityExceededError(FECError):
    """Decode request is longer than the configured maximum number of trellis steps."""

    def __init__(self, message: str, n_steps: int | None = None, max_steps: int | None = None):
        super().__init__(message)
        self.n_steps = n_steps
        self.max_steps = max_steps


class InterleaverAllocationError(FECError, MemoryError):
    """Interleaver permutation tables could not be allocated."""


class InterleaverReleasedError(FECError, RuntimeError):
    """Interleaver used after release()."""
