from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from rflink_fec.pipeline.stages.bit_fec.stage import Config as BitFECStageConfig
from rflink_fec.pipeline.stages.interleave.stage import Config as InterleaveStageConfig


@dataclass(frozen=True)
class FECPipelineConfig:
    """
    End-to-end FEC chain configuration.

    TX: bit_fec encode -> interleave
    RX: deinterleave -> bit_fec decode (hard or soft)

    interleave=None skips the interleaver.
    """
    bit_fec: BitFECStageConfig = field(default_factory=BitFECStageConfig)
    interleave: Optional[InterleaveStageConfig] = field(default_factory=InterleaveStageConfig)
