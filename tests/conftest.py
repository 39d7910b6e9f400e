from __future__ import annotations

import numpy as np
import pytest

from search.minimax import clear_cache


@pytest.fixture()
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture(autouse=True)
def _fresh_minimax_cache():
    clear_cache()
    yield
