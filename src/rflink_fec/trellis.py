"""
Trellis of a rate-1/2 feedforward convolutional code.

State convention:
  - a state holds the last K-1 input bits, newest bit in the LSB
  - the full K-bit register for a transition is (state << 1) | bit
  - each output bit is parity(register & g)
  - next state drops the oldest bit: register & (2^(K-1) - 1)

Consequences used by the decoder:
  - the two predecessors of state ns are ns >> 1 and (ns >> 1) | 2^(K-2)
  - both transitions into ns carry input bit ns & 1
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import NamedTuple, Tuple

import numpy as np


def _parity(x: int) -> int:
    return bin(x).count("1") & 1


class TrellisTables(NamedTuple):
    # [state, bit] -> next state
    next_state: np.ndarray
    # [state, bit] -> output pair index (out0 << 1) | out1
    outputs: np.ndarray
    # [next_state, k] -> predecessor state, k=0 is the lower-numbered one
    predecessors: np.ndarray
    # [next_state, k] -> output pair index of predecessors[next_state, k] -> next_state
    pred_outputs: np.ndarray


@dataclass(frozen=True, slots=True)
class Trellis:
    """
    K/g0/g1 default to the common K=7, (133,171) octal code.
    """
    K: int = 7
    g0: int = 0o133
    g1: int = 0o171

    def __post_init__(self) -> None:
        for name in ("K", "g0", "g1"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"Trellis.{name} must be int")
        if self.K < 2 or self.K > 16:
            raise ValueError("Trellis.K must be in [2,16]")
        for name in ("g0", "g1"):
            g = getattr(self, name)
            if g <= 0 or g >= (1 << self.K):
                raise ValueError(f"Trellis.{name} must be in [1, 2^K)")

    @property
    def n_states(self) -> int:
        return 1 << (self.K - 1)

    @property
    def state_mask(self) -> int:
        return self.n_states - 1

    def step(self, state: int, bit: int) -> Tuple[int, int, int]:
        """
        One encoder cycle: (state, bit) -> (next_state, out0, out1).
        """
        full = ((state << 1) | (bit & 1)) & ((1 << self.K) - 1)
        return full & self.state_mask, _parity(full & self.g0), _parity(full & self.g1)

    @property
    def tables(self) -> TrellisTables:
        return _build_tables(self.K, self.g0, self.g1)


@lru_cache(maxsize=None)
def _build_tables(K: int, g0: int, g1: int) -> TrellisTables:
    n_states = 1 << (K - 1)
    trellis = Trellis(K=K, g0=g0, g1=g1)

    next_state = np.zeros((n_states, 2), dtype=np.int64)
    outputs = np.zeros((n_states, 2), dtype=np.int64)
    for s in range(n_states):
        for b in (0, 1):
            ns, o0, o1 = trellis.step(s, b)
            next_state[s, b] = ns
            outputs[s, b] = (o0 << 1) | o1

    ns_all = np.arange(n_states, dtype=np.int64)
    low = ns_all >> 1
    high = low | (n_states >> 1)
    predecessors = np.stack([low, high], axis=1)
    bits = ns_all & 1
    pred_outputs = np.stack([outputs[low, bits], outputs[high, bits]], axis=1)

    for arr in (next_state, outputs, predecessors, pred_outputs):
        arr.setflags(write=False)

    return TrellisTables(
        next_state=next_state,
        outputs=outputs,
        predecessors=predecessors,
        pred_outputs=pred_outputs,
    )
