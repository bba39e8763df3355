from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence
import importlib
import pkgutil

import numpy as np

_REQUIRED = ("Config", "tx", "rx", "padded_len")


@dataclass(frozen=True)
class Config:
    """
    Interleave stage config.

    module: interleaver module name (e.g. "block")
    module_cfg: instance of that module's Config (or None -> defaults)

    TX carries hard bits only. RX also carries soft values (float LLRs) on
    their way to the soft decoder, so the dtype is kept end to end.
    """
    module: str = "block"
    module_cfg: Any = None


def available_modules() -> list[str]:
    """
    Enumerate available interleaver modules under pipeline/stages/interleave/modules.
    """
    pkg = importlib.import_module(f"{__package__}.modules")
    names = [m.name for m in pkgutil.iter_modules(pkg.__path__)]
    return sorted([n for n in names if not n.startswith("_")])


def _import_interleave_module(name: str):
    if not isinstance(name, str) or not name:
        raise ValueError("cfg.module must be a non-empty string")
    return importlib.import_module(f"{__package__}.modules.{name}")


def _resolve_module_and_cfg(cfg: Config):
    mod = _import_interleave_module(cfg.module)

    missing = [a for a in _REQUIRED if not hasattr(mod, a)]
    if missing:
        raise AttributeError(f"interleave module '{cfg.module}' missing {', '.join(missing)}")

    module_cfg = cfg.module_cfg if cfg.module_cfg is not None else mod.Config()
    return mod, module_cfg


def _as_tx_bits(data: Sequence | np.ndarray) -> np.ndarray:
    arr = np.asarray(data).reshape(-1)
    if arr.size and not (np.issubdtype(arr.dtype, np.integer) or arr.dtype == np.bool_):
        raise TypeError(f"interleave tx expects coded bits, got dtype {arr.dtype}")
    return arr


def _as_rx_values(data: Sequence | np.ndarray) -> np.ndarray:
    arr = np.asarray(data).reshape(-1)
    if arr.size and not (
        np.issubdtype(arr.dtype, np.integer)
        or np.issubdtype(arr.dtype, np.floating)
        or arr.dtype == np.bool_
    ):
        raise TypeError(f"interleave rx expects bits or real LLRs, got dtype {arr.dtype}")
    return arr


def tx(data: Sequence | np.ndarray, *, cfg: Config) -> np.ndarray:
    """
    Stage TX: interleave coded bits (returns padded length).
    """
    bits = _as_tx_bits(data)
    mod, module_cfg = _resolve_module_and_cfg(cfg)
    return mod.tx(bits, cfg=module_cfg)


def rx(data: Sequence | np.ndarray, *, cfg: Config) -> np.ndarray:
    """
    Stage RX: deinterleave received bits or LLRs (returns padded length, same dtype).
    """
    values = _as_rx_values(data)
    mod, module_cfg = _resolve_module_and_cfg(cfg)
    return mod.rx(values, cfg=module_cfg)


def padded_len(n: int, *, cfg: Config) -> int:
    """
    Number of elements tx() emits for n coded bits.
    """
    mod, module_cfg = _resolve_module_and_cfg(cfg)
    return mod.padded_len(n, cfg=module_cfg)
