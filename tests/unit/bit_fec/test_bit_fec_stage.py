import numpy as np
import pytest

from rflink_fec.pipeline.stages.bit_fec import stage as bit_fec_stage


@pytest.mark.parametrize("module_name", bit_fec_stage.available_modules())
def test_bit_fec_stage_roundtrip_all_modules(module_name: str):
    mod = bit_fec_stage._import_bit_fec_module(module_name)

    # Project invariant: module Config must be default-constructible
    try:
        module_cfg = mod.Config()
    except TypeError as e:
        pytest.fail(
            f"bit_fec module '{module_name}' Config() must be default-constructible. Error: {e}"
        )

    cfg = bit_fec_stage.Config(module=module_name, module_cfg=module_cfg)

    msg = np.array([1, 0, 0, 1, 1, 0, 1] * 20, dtype=np.uint8)
    enc = bit_fec_stage.tx(msg, cfg=cfg)
    assert enc.size == bit_fec_stage.coded_len(msg.size, cfg=cfg)

    assert np.array_equal(bit_fec_stage.rx(enc, cfg=cfg), msg)

    llr = 4.0 * (1.0 - 2.0 * enc.astype(np.float64))
    assert np.array_equal(bit_fec_stage.rx_soft(llr, cfg=cfg), msg)


def test_bit_fec_stage_default_module_cfg():
    cfg = bit_fec_stage.Config()
    assert "conv_k7_r12" in bit_fec_stage.available_modules()
    assert bit_fec_stage.tx([1, 0, 1, 1], cfg=cfg).tolist() == [1, 1, 1, 0, 1, 1, 1, 0]


def test_bit_fec_stage_unknown_module():
    with pytest.raises(ModuleNotFoundError):
        bit_fec_stage.tx([1], cfg=bit_fec_stage.Config(module="nope"))


def test_bit_fec_stage_empty_module_name():
    with pytest.raises(ValueError):
        bit_fec_stage.tx([1], cfg=bit_fec_stage.Config(module=""))
