"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from coopsurv.survival import simulate_cohort


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def small_survival_data(rng):
    """Twelve subjects, two covariates, tied and censored times included."""
    time = np.array([2.0, 3.0, 3.0, 5.0, 6.0, 7.0, 7.0, 9.0, 10.0, 12.0, 13.0, 15.0])
    event = np.array([1, 1, 0, 1, 1, 1, 1, 0, 1, 0, 1, 1], dtype=float)
    X = rng.standard_normal((12, 2))
    return time, event, X


@pytest.fixture
def two_block_cohort():
    """100 subjects, two blocks of 20 features, one signal feature per block."""
    return simulate_cohort(100, (20, 20), hazard_ratio=2.0, censoring=0.3, seed=7)


@pytest.fixture
def three_block_cohort():
    """60 subjects, three small blocks."""
    return simulate_cohort(60, (3, 4, 2), hazard_ratio=1.5, censoring=0.2, seed=11)
