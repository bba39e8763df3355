from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from rflink_fec.errors import CapacityExceededError
from rflink_fec.trellis import Trellis
from rflink_fec.utils.bitops import as_bits, as_llr

logger = logging.getLogger(__name__)

_DEFAULT_TRELLIS = Trellis()

# LLR magnitudes above this are rescaled so branch costs and metrics stay finite
_LLR_RESCALE_ABOVE = 1e100

# Output pair index (out0 << 1) | out1 -> (out0, out1)
_PAIR_BITS = np.array([[0, 0], [0, 1], [1, 0], [1, 1]], dtype=np.int64)


def conv_encode_bits(
    bits: Sequence[int] | np.ndarray,
    *,
    trellis: Trellis = _DEFAULT_TRELLIS,
    tail: bool = False,
) -> np.ndarray:
    """
    Convolutional encode (rate 1/2). Returns a flat uint8 array [a0,b0,a1,b1,...].

    The register starts at 0 on every call. Inputs are taken as bits via (x & 1).
    With tail=True, K-1 zero bits are appended so the encoder ends in state 0.
    """
    seq = as_bits(bits)
    if tail:
        seq = np.concatenate([seq, np.zeros(trellis.K - 1, dtype=np.uint8)])

    tables = trellis.tables
    next_state = tables.next_state.tolist()
    outputs = tables.outputs.tolist()

    out: list[int] = []
    state = 0
    for b in seq.tolist():
        pair = outputs[state][b]
        out.append(pair >> 1)
        out.append(pair & 1)
        state = next_state[state][b]

    return np.asarray(out, dtype=np.uint8)


def viterbi_decode_hard(
    rx: Sequence[int] | np.ndarray,
    *,
    trellis: Trellis = _DEFAULT_TRELLIS,
    tail: bool = False,
    max_steps: Optional[int] = None,
    return_metric: bool = False,
) -> Union[np.ndarray, Tuple[np.ndarray, float]]:
    """
    Hard-decision Viterbi for the code produced by conv_encode_bits().

    rx: 0/1 bits of even length (pairs per input bit).

    Branch cost is the Hamming distance (0, 1 or 2) between the received pair
    and the pair a transition would emit. Output is delay-free: on a clean
    channel decoded[t] == input[t]. If tail=True, traceback starts from state 0
    and the K-1 flush bits are stripped.
    """
    r = as_bits(rx)
    if r.size % 2 != 0:
        raise ValueError("rx bit length must be even (rate 1/2 pairs)")

    pairs = r.reshape(-1, 2).astype(np.int64)
    # [t, pair_index] -> number of mismatched bits
    costs = (pairs[:, None, :] != _PAIR_BITS[None, :, :]).sum(axis=2).astype(np.float64)
    return _decode(costs, trellis=trellis, tail=tail, max_steps=max_steps, return_metric=return_metric)


def viterbi_decode_soft(
    llr: Sequence[float] | np.ndarray,
    *,
    trellis: Trellis = _DEFAULT_TRELLIS,
    tail: bool = False,
    max_steps: Optional[int] = None,
    return_metric: bool = False,
) -> Union[np.ndarray, Tuple[np.ndarray, float]]:
    """
    Soft-decision Viterbi. llr holds one log-likelihood ratio per coded bit,
    positive meaning bit 0 is more likely.

    Branch cost is the negated agreement -(s(e0)*l0 + s(e1)*l1) with s(0)=+1,
    s(1)=-1, so the decoder minimises negative log-likelihood. Costs may be
    negative. Everything else is identical to viterbi_decode_hard().

    The ML path does not change under positive scaling of all LLRs, so inputs
    with huge magnitudes are scaled down before costs are formed. The returned
    metric is in the caller's units (it may overflow to -inf for such inputs).
    """
    l = as_llr(llr)
    if l.size % 2 != 0:
        raise ValueError("llr length must be even (rate 1/2 pairs)")
    if not np.all(np.isfinite(l)):
        raise ValueError("llr values must be finite")

    scale = 1.0
    peak = float(np.max(np.abs(l))) if l.size else 0.0
    if peak > _LLR_RESCALE_ABOVE:
        scale = peak
        l = l / peak

    pairs = l.reshape(-1, 2)
    signs = 1.0 - 2.0 * _PAIR_BITS.astype(np.float64)
    # [t, pair_index] -> -(agreement)
    costs = -(pairs @ signs.T)
    return _decode(
        costs, trellis=trellis, tail=tail, max_steps=max_steps,
        return_metric=return_metric, scale=scale,
    )


def _decode(
    costs: np.ndarray,
    *,
    trellis: Trellis,
    tail: bool,
    max_steps: Optional[int],
    return_metric: bool,
    scale: float = 1.0,
):
    n_steps = costs.shape[0]
    if max_steps is not None and n_steps > max_steps:
        raise CapacityExceededError(
            f"decode of {n_steps} steps exceeds max_steps={max_steps}",
            n_steps=n_steps,
            max_steps=max_steps,
        )

    decoded, end_state, metric = _viterbi(costs, trellis=trellis, tail=tail)
    if scale != 1.0:
        with np.errstate(over="ignore"):
            metric = float(np.float64(metric) * scale)
    logger.debug(
        "viterbi: steps=%d end_state=%d metric=%.3f tail=%s",
        n_steps, end_state, metric, tail,
    )

    if tail:
        if decoded.size < (trellis.K - 1):
            decoded = decoded[:0]
        else:
            decoded = decoded[: decoded.size - (trellis.K - 1)]

    if return_metric:
        return decoded, metric
    return decoded


def _viterbi(costs: np.ndarray, *, trellis: Trellis, tail: bool) -> Tuple[np.ndarray, int, float]:
    """
    Shared add-compare-select + traceback over branch costs[t, pair_index].

    Returns (decoded_bits, end_state, end_metric).
    """
    n_steps = costs.shape[0]
    n_states = trellis.n_states
    tables = trellis.tables
    pred = tables.predecessors
    pred_out = tables.pred_outputs

    metric = np.full(n_states, np.inf, dtype=np.float64)
    metric[0] = 0.0

    if n_steps == 0:
        return np.zeros((0,), dtype=np.uint8), 0, 0.0

    survivors = np.empty((n_steps, n_states), dtype=np.int32)
    # sum of the per-step minima removed from metric
    offset = 0.0

    for t in range(n_steps):
        bm = costs[t]
        cand0 = metric[pred[:, 0]] + bm[pred_out[:, 0]]
        cand1 = metric[pred[:, 1]] + bm[pred_out[:, 1]]
        # strict: a tie keeps the lower-numbered predecessor
        take_high = cand1 < cand0
        metric = np.where(take_high, cand1, cand0)
        survivors[t] = np.where(take_high, pred[:, 1], pred[:, 0])

        # keep the best state at 0 so accumulated metrics stay bounded
        best = float(metric.min())
        metric -= best
        offset += best

    # argmin returns the lowest index among equal metrics
    end_state = 0 if tail else int(np.argmin(metric))
    end_metric = float(metric[end_state]) + offset

    decoded = np.empty(n_steps, dtype=np.uint8)
    s = end_state
    for t in range(n_steps - 1, -1, -1):
        decoded[t] = s & 1
        s = int(survivors[t, s])

    if s != 0:
        raise ValueError("Viterbi traceback failed")

    return decoded, end_state, end_metric


# ----------------------------
# Normalized module surface
# ----------------------------

@dataclass(frozen=True)
class Config:
    """
    Bit-level convolutional FEC (rate 1/2) with Viterbi decoding.

    Input/Output of tx/rx are flat 0/1 bit arrays; rx_soft takes one LLR per
    coded bit (positive = bit 0 more likely).

    tail:
      - if True, encoder appends K-1 zeros; decoder assumes end state 0 and strips K-1 bits
      - if False, coded length is exactly 2x input and decoder picks the best end state

    max_steps:
      - None decodes any length
      - an int makes longer decode requests raise CapacityExceededError

    K/g0/g1 default to the common K=7, (133,171) octal code.
    """
    K: int = 7
    g0: int = 0o133
    g1: int = 0o171
    tail: bool = False
    max_steps: Optional[int] = None


def tx(bits: Sequence[int] | np.ndarray, *, cfg: Any) -> np.ndarray:
    """
    Encode input bits into coded bits.
    """
    return conv_encode_bits(bits, trellis=_get_trellis(cfg), tail=_get_tail(cfg))


def rx(bits: Sequence[int] | np.ndarray, *, cfg: Any) -> np.ndarray:
    """
    Hard-decision decode of coded bits.
    """
    return viterbi_decode_hard(
        bits,
        trellis=_get_trellis(cfg),
        tail=_get_tail(cfg),
        max_steps=_get_max_steps(cfg),
    )


def rx_soft(llr: Sequence[float] | np.ndarray, *, cfg: Any) -> np.ndarray:
    """
    Soft-decision decode of per-bit LLRs.
    """
    return viterbi_decode_soft(
        llr,
        trellis=_get_trellis(cfg),
        tail=_get_tail(cfg),
        max_steps=_get_max_steps(cfg),
    )


def coded_len(n_bits: int, *, cfg: Any) -> int:
    """
    Number of coded bits tx() produces for n_bits input bits.
    """
    if n_bits < 0:
        raise ValueError("n_bits must be >= 0")
    trellis = _get_trellis(cfg)
    flush = trellis.K - 1 if _get_tail(cfg) else 0
    return 2 * (n_bits + flush)


def _get_trellis(cfg: Any) -> Trellis:
    K = getattr(cfg, "K", None)
    g0 = getattr(cfg, "g0", None)
    g1 = getattr(cfg, "g1", None)

    for name, v in (("K", K), ("g0", g0), ("g1", g1)):
        if v is None:
            raise AttributeError(f"cfg missing required attribute: {name}")
        if not isinstance(v, int):
            raise TypeError(f"cfg.{name} must be int")

    if (K, g0, g1) == (_DEFAULT_TRELLIS.K, _DEFAULT_TRELLIS.g0, _DEFAULT_TRELLIS.g1):
        return _DEFAULT_TRELLIS
    return Trellis(K=K, g0=g0, g1=g1)


def _get_tail(cfg: Any) -> bool:
    tail = getattr(cfg, "tail", None)
    if tail is None:
        raise AttributeError("cfg missing required attribute: tail")
    if not isinstance(tail, bool):
        raise TypeError("cfg.tail must be bool")
    return tail


def _get_max_steps(cfg: Any) -> Optional[int]:
    max_steps = getattr(cfg, "max_steps", None)
    if max_steps is None:
        return None
    if not isinstance(max_steps, int) or isinstance(max_steps, bool):
        raise TypeError("cfg.max_steps must be int or None")
    if max_steps <= 0:
        raise ValueError("cfg.max_steps must be > 0")
    return max_steps
