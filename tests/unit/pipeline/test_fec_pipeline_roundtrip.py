import random

import numpy as np
import pytest

from rflink_fec.pipeline.config import FECPipelineConfig
from rflink_fec.pipeline.pipeline import FECPipeline
from rflink_fec.pipeline.stages.bit_fec.modules.conv_k7_r12 import Config as ConvConfig
from rflink_fec.pipeline.stages.bit_fec.stage import Config as BitFECStageConfig
from rflink_fec.pipeline.stages.interleave.modules.block import Config as BlockConfig
from rflink_fec.pipeline.stages.interleave.stage import Config as InterleaveStageConfig


def _make_pipeline(rows: int = 16, cols: int = 32, tail: bool = True, interleave: bool = True) -> FECPipeline:
    cfg = FECPipelineConfig(
        bit_fec=BitFECStageConfig(module="conv_k7_r12", module_cfg=ConvConfig(tail=tail)),
        interleave=(
            InterleaveStageConfig(module="block", module_cfg=BlockConfig(rows=rows, cols=cols))
            if interleave
            else None
        ),
    )
    return FECPipeline(cfg)


def _rand_bits(rng: random.Random, n: int) -> np.ndarray:
    return np.array([rng.getrandbits(1) for _ in range(n)], dtype=np.uint8)


@pytest.mark.parametrize("n_bits", [0, 1, 100, 240, 1000])
def test_pipeline_roundtrip_clean(n_bits):
    rng = random.Random(n_bits)
    msg = _rand_bits(rng, n_bits)
    p = _make_pipeline()

    tx_bits = p.tx(msg)
    assert tx_bits.size % (16 * 32) == 0

    assert np.array_equal(p.rx(tx_bits, msg_len=n_bits), msg)


def test_pipeline_default_config_roundtrip():
    p = FECPipeline()
    msg = np.array([1, 0, 1, 1] * 30, dtype=np.uint8)
    assert np.array_equal(p.rx(p.tx(msg), msg_len=msg.size), msg)


def test_pipeline_without_interleaver():
    p = _make_pipeline(interleave=False, tail=False)
    msg = np.array([1, 0, 1, 1], dtype=np.uint8)
    tx_bits = p.tx(msg)
    assert tx_bits.tolist() == [1, 1, 1, 0, 1, 1, 1, 0]
    assert p.coded_len(4) == 8
    assert np.array_equal(p.rx(tx_bits, msg_len=4), msg)


@pytest.mark.parametrize("start", [0, 37, 100, 255, 400])
def test_interleaver_lets_decoder_survive_a_burst(start):
    rng = random.Random(0xB0057 + start)
    msg = _rand_bits(rng, 240)
    p = _make_pipeline(rows=16, cols=32)

    tx_bits = p.tx(msg)
    bad = tx_bits.copy()
    bad[start:start + 16] ^= 1

    assert np.array_equal(p.rx(bad, msg_len=msg.size), msg)


def test_soft_pipeline_with_burst_of_erasures(bits_to_llr):
    rng = random.Random(0x50F7)
    msg = _rand_bits(rng, 240)
    p = _make_pipeline(rows=16, cols=32)

    llr = bits_to_llr(p.tx(msg), 6.0)
    # a fade wipes out a contiguous run in the channel
    llr[50:66] = 0.0
    # and a few strongly wrong values in another burst
    llr[300:308] *= -1.0

    assert np.array_equal(p.rx_soft(llr, msg_len=msg.size), msg)


def test_pipeline_bytes_roundtrip():
    p = _make_pipeline()
    payload = b"rflink fec"
    tx_bits = p.tx_bytes(payload)
    tx_bits[5] ^= 1
    assert p.rx_bytes(tx_bits, msg_len=len(payload)) == payload


def test_pipeline_rx_rejects_short_input():
    p = _make_pipeline(interleave=False)
    with pytest.raises(ValueError):
        p.rx(np.zeros(10, dtype=np.uint8), msg_len=100)


def test_pipeline_rx_rejects_wrong_interleaved_length():
    p = FECPipeline()
    tx_bits = p.tx(np.zeros(100, dtype=np.uint8))
    # an extra whole block would deinterleave cleanly but is not what tx sent
    with pytest.raises(ValueError):
        p.rx(np.concatenate([tx_bits, np.zeros(128, dtype=np.uint8)]), msg_len=100)
