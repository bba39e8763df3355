from __future__ import annotations

import random

import numpy as np
import pytest


@pytest.fixture
def rng() -> random.Random:
    """
    Seeded stdlib RNG so noisy-channel tests are reproducible.
    """
    return random.Random(0xFEC0)


@pytest.fixture
def np_rng() -> np.random.Generator:
    return np.random.default_rng(0xFEC1)


@pytest.fixture
def bits_to_llr():
    """
    Map hard bits to BPSK-style LLRs: 0 -> +magnitude, 1 -> -magnitude.
    """
    def _convert(bits, magnitude: float = 10.0) -> np.ndarray:
        b = np.asarray(bits, dtype=np.float64)
        return magnitude * (1.0 - 2.0 * b)

    return _convert
