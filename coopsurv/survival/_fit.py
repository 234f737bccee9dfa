"""
Single-block and cooperative adaptive-lasso Cox fitting.

Both modes run the same stages:

    pilot      minimize −l(b) on the full (concatenated) design
    weights    w_j = 1/|pilot_j|, capped when pilot_j == 0
    penalized  minimize the adaptive-lasso or cooperative objective
    baseline   covariate-free Cox cumulative hazard of the training cohort
    predict    hazard and survival curves for the query rows

Each optimizer run starts from its own Uniform(0, 1) draw and its output is
optionally rescaled to unit norm. The pilot budget is maxit for a single
block and maxit // 10 for cooperative fits.

fit_reverse_cox is the unpenalized comparator: one optimizer run on the
backward-risk-set likelihood, then the same baseline and predict stages.
"""

from __future__ import annotations

import warnings
from typing import Callable

import numpy as np
from numpy.typing import NDArray

from coopsurv.core.compute.timing import Timer
from coopsurv.core.protocols import Objective, Optimizer
from coopsurv.core.result import Result
from coopsurv.survival._baseline import baseline_cumulative_hazard, survival_surface
from coopsurv.survival._common import PILOT_DIVISOR, BaselineHazardParams, PenalizedCoxParams
from coopsurv.survival._objectives import (
    AdaptiveLassoObjective,
    CooperativeObjective,
    PilotObjective,
    ReverseRiskSetObjective,
    build_weights,
)
from coopsurv.survival._optimizers import normalize_coefficients, starting_point
from coopsurv.survival.design import SurvivalDesign


def fit_coxlasso(
    design: SurvivalDesign,
    X_new: NDArray,
    *,
    lam: float,
    maxit: int,
    normalize: bool,
    ties: str,
    optimizer: Optimizer,
    rng: np.random.Generator,
) -> Result[PenalizedCoxParams]:
    """Single-block adaptive-lasso Cox fit (design must hold one block)."""
    X = design.X

    def make_objective(weights: NDArray) -> Objective:
        return AdaptiveLassoObjective(design.time, design.event, X, lam, weights)

    return _fit(
        design, X_new, make_objective,
        method="coxlasso",
        lam=lam,
        alpha=0.0,
        topology=None,
        maxit=maxit,
        pilot_maxit=maxit,
        normalize=normalize,
        ties=ties,
        optimizer=optimizer,
        rng=rng,
    )


def fit_cooplasso(
    design: SurvivalDesign,
    X_new: NDArray,
    *,
    lam: float,
    alpha: float,
    maxit: int,
    normalize: bool,
    topology: str,
    ties: str,
    optimizer: Optimizer,
    rng: np.random.Generator,
) -> Result[PenalizedCoxParams]:
    """Cooperative adaptive-lasso Cox fit over the design's 2 or 3 blocks."""

    def make_objective(weights: NDArray) -> Objective:
        return CooperativeObjective(
            design.time, design.event, design.blocks,
            lam, weights, alpha, topology,
        )

    return _fit(
        design, X_new, make_objective,
        method="cooplasso",
        lam=lam,
        alpha=alpha,
        topology=topology,
        maxit=maxit,
        pilot_maxit=max(1, maxit // PILOT_DIVISOR),
        normalize=normalize,
        ties=ties,
        optimizer=optimizer,
        rng=rng,
    )


def _normalize_stage(b: NDArray, stage: str, normalize: bool, warn_list: list[str]) -> NDArray:
    if not normalize:
        return b
    b, ok = normalize_coefficients(b)
    if not ok:
        msg = f"{stage} coefficients have zero or non-finite norm; left unnormalized"
        warnings.warn(msg, RuntimeWarning, stacklevel=4)
        warn_list.append(msg)
    return b


def _predict_stage(
    design: SurvivalDesign,
    eta: NDArray,
    ties: str,
    timer: Timer,
    warn_list: list[str],
) -> tuple[BaselineHazardParams, NDArray, NDArray]:
    with timer.section('baseline'):
        baseline = baseline_cumulative_hazard(design.time, design.event, ties)

    if len(baseline.grid) == 0:
        msg = (
            "Fewer than two distinct event times in the training cohort; "
            "the prediction time grid is empty"
        )
        warnings.warn(msg, RuntimeWarning, stacklevel=4)
        warn_list.append(msg)

    with timer.section('prediction'):
        hazard, survival = survival_surface(baseline.grid, baseline.increments, eta)
    return baseline, hazard, survival


def fit_reverse_cox(
    design: SurvivalDesign,
    X_new: NDArray,
    *,
    maxit: int,
    normalize: bool,
    ties: str,
    optimizer: Optimizer,
    rng: np.random.Generator,
) -> Result[PenalizedCoxParams]:
    """Single-stage unpenalized fit of the backward-risk-set likelihood."""
    timer = Timer()
    timer.start()
    warn_list: list[str] = []

    with timer.section('fit'):
        objective = ReverseRiskSetObjective(design.time, design.X)
        run = optimizer.minimize(objective, starting_point(design.p, rng), maxit, rng)
        beta = _normalize_stage(run.x, "Fitted", normalize, warn_list)

    baseline, hazard, survival = _predict_stage(
        design, X_new @ beta, ties, timer, warn_list
    )

    timer.stop()

    params = PenalizedCoxParams(
        coefficients=beta,
        pilot=run.x,
        adaptive_weights=np.zeros(design.p),
        block_sizes=design.block_sizes,
        feature_names=design.all_feature_names,
        time_grid=baseline.grid,
        baseline_increments=baseline.increments,
        hazard=hazard,
        survival=survival,
        objective_value=run.fun,
        lam=0.0,
        alpha=0.0,
        topology=None,
        normalized=normalize,
        n_observations=design.n,
        n_events=design.n_events,
    )

    return Result(
        params=params,
        info={
            'method': 'reverse_cox',
            'optimizer': optimizer.name,
            'maxit': maxit,
            'evaluations': run.n_evaluations,
            'converged': run.converged,
            'ties': ties,
            'n_blocks': design.n_blocks,
        },
        timing=timer.result(),
        backend_name='cpu_reverse_cox',
        warnings=tuple(warn_list),
    )


def _fit(
    design: SurvivalDesign,
    X_new: NDArray,
    make_objective: Callable[[NDArray], Objective],
    *,
    method: str,
    lam: float,
    alpha: float,
    topology: str | None,
    maxit: int,
    pilot_maxit: int,
    normalize: bool,
    ties: str,
    optimizer: Optimizer,
    rng: np.random.Generator,
) -> Result[PenalizedCoxParams]:
    timer = Timer()
    timer.start()
    warn_list: list[str] = []
    p = design.p

    with timer.section('pilot'):
        pilot_objective = PilotObjective(design.time, design.event, design.X)
        pilot_run = optimizer.minimize(
            pilot_objective, starting_point(p, rng), pilot_maxit, rng
        )
        pilot = _normalize_stage(pilot_run.x, "Pilot", normalize, warn_list)

    weights = build_weights(pilot, warn_list)

    with timer.section('penalized'):
        objective = make_objective(weights)
        run = optimizer.minimize(objective, starting_point(p, rng), maxit, rng)
        beta = _normalize_stage(run.x, "Penalized", normalize, warn_list)

    baseline, hazard, survival = _predict_stage(
        design, X_new @ beta, ties, timer, warn_list
    )

    timer.stop()

    params = PenalizedCoxParams(
        coefficients=beta,
        pilot=pilot,
        adaptive_weights=weights,
        block_sizes=design.block_sizes,
        feature_names=design.all_feature_names,
        time_grid=baseline.grid,
        baseline_increments=baseline.increments,
        hazard=hazard,
        survival=survival,
        objective_value=run.fun,
        lam=float(lam),
        alpha=float(alpha),
        topology=topology,
        normalized=normalize,
        n_observations=design.n,
        n_events=design.n_events,
    )

    return Result(
        params=params,
        info={
            'method': method,
            'optimizer': optimizer.name,
            'maxit': maxit,
            'pilot_maxit': pilot_maxit,
            'pilot_evaluations': pilot_run.n_evaluations,
            'evaluations': run.n_evaluations,
            'converged': run.converged,
            'ties': ties,
            'n_blocks': design.n_blocks,
        },
        timing=timer.result(),
        backend_name=f"cpu_{method}",
        warnings=tuple(warn_list),
    )
