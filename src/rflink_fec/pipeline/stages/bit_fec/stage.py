from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence
import importlib
import pkgutil

import numpy as np


@dataclass(frozen=True)
class Config:
    """
    Bit-FEC stage config.

    module: bit-FEC module name (e.g. "conv_k7_r12")
    module_cfg: instance of that module's Config (or None -> defaults)
    """
    module: str = "conv_k7_r12"
    module_cfg: Any = None


def available_modules() -> list[str]:
    """
    Enumerate available bit-FEC modules under pipeline/stages/bit_fec/modules.
    """
    pkg = importlib.import_module(f"{__package__}.modules")
    names = [m.name for m in pkgutil.iter_modules(pkg.__path__)]
    return sorted([n for n in names if not n.startswith("_")])


def _import_bit_fec_module(name: str):
    if not isinstance(name, str) or not name:
        raise ValueError("cfg.module must be a non-empty string")
    return importlib.import_module(f"{__package__}.modules.{name}")


def _resolve_module_and_cfg(cfg: Config):
    mod = _import_bit_fec_module(cfg.module)

    if not hasattr(mod, "Config"):
        raise AttributeError(f"bit_fec module '{cfg.module}' missing Config")
    for fn in ("tx", "rx", "rx_soft", "coded_len"):
        if not hasattr(mod, fn):
            raise AttributeError(f"bit_fec module '{cfg.module}' missing {fn}")

    module_cfg = cfg.module_cfg if cfg.module_cfg is not None else mod.Config()
    return mod, module_cfg


def tx(bits: Sequence[int] | np.ndarray, *, cfg: Config) -> np.ndarray:
    """
    Stage TX: encode source bits into coded bits.
    """
    mod, module_cfg = _resolve_module_and_cfg(cfg)
    return mod.tx(bits, cfg=module_cfg)


def rx(bits: Sequence[int] | np.ndarray, *, cfg: Config) -> np.ndarray:
    """
    Stage RX: hard-decision decode of received coded bits.
    """
    mod, module_cfg = _resolve_module_and_cfg(cfg)
    return mod.rx(bits, cfg=module_cfg)


def rx_soft(llr: Sequence[float] | np.ndarray, *, cfg: Config) -> np.ndarray:
    """
    Stage RX: soft-decision decode of per-bit LLRs (positive = bit 0 more likely).
    """
    mod, module_cfg = _resolve_module_and_cfg(cfg)
    return mod.rx_soft(llr, cfg=module_cfg)


def coded_len(n_bits: int, *, cfg: Config) -> int:
    mod, module_cfg = _resolve_module_and_cfg(cfg)
    return mod.coded_len(n_bits, cfg=module_cfg)
