from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from rflink_fec.pipeline.config import FECPipelineConfig
from rflink_fec.pipeline.stages.bit_fec import stage as bit_fec_stage
from rflink_fec.pipeline.stages.interleave import stage as interleave_stage
from rflink_fec.utils.bitops import as_bits, as_llr, bits_to_bytes, bytes_to_bits

logger = logging.getLogger(__name__)


@dataclass
class FECPipeline:
    """
    Source bits -> encode -> interleave -> (channel) -> deinterleave -> decode.

    The channel side is external: whatever sits between tx() and rx() must hand
    back the same number of coded bits (or LLRs) that tx() produced.
    """
    cfg: FECPipelineConfig = field(default_factory=FECPipelineConfig)

    def coded_len(self, msg_len: int) -> int:
        """
        Coded bits for msg_len source bits, before interleaver padding.
        """
        return bit_fec_stage.coded_len(msg_len, cfg=self.cfg.bit_fec)

    def tx(self, bits: Sequence[int] | np.ndarray) -> np.ndarray:
        coded = bit_fec_stage.tx(as_bits(bits), cfg=self.cfg.bit_fec)
        if self.cfg.interleave is None:
            return coded
        out = interleave_stage.tx(coded, cfg=self.cfg.interleave)
        logger.debug("fec tx: coded=%d interleaved=%d", coded.size, out.size)
        return out

    def rx(self, bits: Sequence[int] | np.ndarray, *, msg_len: int) -> np.ndarray:
        """
        Hard-decision receive of msg_len source bits.
        """
        coded = self._deinterleave(as_bits(bits), msg_len)
        return bit_fec_stage.rx(coded, cfg=self.cfg.bit_fec)

    def rx_soft(self, llr: Sequence[float] | np.ndarray, *, msg_len: int) -> np.ndarray:
        """
        Soft-decision receive of msg_len source bits from per-bit LLRs.
        """
        coded = self._deinterleave(as_llr(llr), msg_len)
        return bit_fec_stage.rx_soft(coded, cfg=self.cfg.bit_fec)

    def tx_bytes(self, data: bytes) -> np.ndarray:
        """
        Encode packed bytes (MSB-first) into coded bits.
        """
        return self.tx(bytes_to_bits(data))

    def rx_bytes(self, bits: Sequence[int] | np.ndarray, *, msg_len: int) -> bytes:
        """
        Hard-decision receive of msg_len bytes.
        """
        return bits_to_bytes(self.rx(bits, msg_len=8 * msg_len))

    def _deinterleave(self, data: np.ndarray, msg_len: int) -> np.ndarray:
        n_coded = self.coded_len(msg_len)
        if self.cfg.interleave is not None:
            expected = interleave_stage.padded_len(n_coded, cfg=self.cfg.interleave)
            if data.size != expected:
                raise ValueError(
                    f"rx: got {data.size} interleaved values, expected {expected} for msg_len={msg_len}"
                )
            data = interleave_stage.rx(data, cfg=self.cfg.interleave)
        if data.size < n_coded:
            raise ValueError(f"rx: got {data.size} coded values, need {n_coded} for msg_len={msg_len}")
        # interleaver padding sits past the coded stream
        return data[:n_coded]
