"""
Parameter payloads and shared constants for penalized survival results.

Each dataclass is a frozen payload carried inside a Result[P] envelope.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray


# Penalty strengths searched by default during cross-validation.
DEFAULT_LAMBDA_GRID: tuple[float, ...] = (0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9)

# The cooperative pilot fit gets maxit // PILOT_DIVISOR iterations.
PILOT_DIVISOR = 10

# Objective value substituted for non-finite evaluations during annealing.
BIG_OBJECTIVE = 1.0e35


@dataclass(frozen=True)
class AnnealingSchedule:
    """Temperature schedule of the simulated annealer.

    temp is the starting temperature; the temperature at evaluation k is
    temp / log(k + e - 1) and is held for tmax proposals.
    """

    temp: float = 10.0
    tmax: int = 10


@dataclass(frozen=True)
class OptimizerResult:
    """Outcome of one optimizer run."""

    x: NDArray                   # (p,) best point found
    fun: float                   # objective at x
    n_evaluations: int           # objective evaluations used
    converged: bool              # only meaningful for deterministic solvers


@dataclass(frozen=True)
class BaselineHazardParams:
    """Covariate-free Cox baseline hazard.

    time / cumulative_hazard cover every distinct event time; grid and
    increments are their first difference (the last time point dropped).
    """

    time: NDArray                # (m,) distinct event times, ascending
    cumulative_hazard: NDArray   # (m,) H0(t)
    n_risk: NDArray              # (m,) number at risk at each time
    n_events: NDArray            # (m,) events at each time
    grid: NDArray                # (m-1,) time[:-1]
    increments: NDArray          # (m-1,) diff(H0), non-negative
    ties: str                    # "efron" or "breslow"


@dataclass(frozen=True)
class PenalizedCoxParams:
    """Adaptive-lasso / cooperative Cox fit."""

    coefficients: NDArray        # (p,) final coefficient vector
    pilot: NDArray               # (p,) pilot estimate
    adaptive_weights: NDArray    # (p,) 1/|pilot|, capped
    block_sizes: tuple[int, ...]
    feature_names: tuple[str, ...]
    time_grid: NDArray           # (m,) baseline grid
    baseline_increments: NDArray  # (m,)
    hazard: NDArray              # (n_query, m)
    survival: NDArray            # (n_query, m)
    objective_value: float       # penalized objective at the unnormalized optimum
    lam: float
    alpha: float
    topology: str | None         # None for single-block fits
    normalized: bool
    n_observations: int
    n_events: int


@dataclass(frozen=True)
class CrossValParams:
    """Cross-validated metric tables over a penalty grid."""

    lam_grid: NDArray            # (g,)
    best_lam: float
    best_index: int
    criterion: str
    tables: dict[str, NDArray]   # metric name -> (folds, g)
    means: dict[str, NDArray]    # metric name -> (g,), NaN-aware fold means
    fold_chunks: tuple[NDArray, ...]
    n_unvalidated: int           # subjects never used for validation
    alpha: float
    folds: int


@dataclass(frozen=True)
class CoopTrainParams:
    """Output of the full cooperative training workflow."""

    model: Any                   # PenalizedCoxSolution
    cv: Any                      # CrossValSolution
    selected_lambda: float
    selected_features: tuple[str, ...]
    risk_scores: NDArray         # (n_train,) X_train @ b
    cindex: float                # Harrell's C on the training split
    train_indices: NDArray
    valid_indices: NDArray
    n_blocks: int


@dataclass(frozen=True)
class CoopTestParams:
    """Risk scores and discrimination on new data."""

    risk_scores: NDArray
    cindex: float
    n_observations: int


def empty_float() -> NDArray:
    return np.array([], dtype=np.float64)
