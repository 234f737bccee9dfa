"""
Public API for penalized Cox regression.

    partial_loglik(beta, time, event, X) → float
    baseline_hazard(time, event) → BaselineHazardSolution
    coxlasso(time, event, X, X_new) → PenalizedCoxSolution
    cooplasso(time, event, blocks, new_blocks) → PenalizedCoxSolution
    cv_cooplasso(time, event, blocks) → CrossValSolution
    reverse_cox(time, event, X, X_new) → PenalizedCoxSolution

Each function validates inputs, creates a SurvivalDesign, resolves the
optimizer and random generator, dispatches to the fitting code, and wraps
the Result in a Solution.
"""

from __future__ import annotations

from typing import Literal, Mapping, Sequence

import numpy as np

from coopsurv.core.compute.timing import Timer
from coopsurv.core.exceptions import BlockCountError, DimensionError, ValidationError
from coopsurv.core.protocols import Optimizer
from coopsurv.core.result import Result
from coopsurv.core.validation import check_array, check_positive
from coopsurv.survival._baseline import baseline_cumulative_hazard
from coopsurv.survival._common import DEFAULT_LAMBDA_GRID
from coopsurv.survival._crossval import cross_validate
from coopsurv.survival._fit import fit_cooplasso, fit_coxlasso, fit_reverse_cox
from coopsurv.survival._likelihood import CoxPartialLikelihood
from coopsurv.survival._metrics import DEFAULT_METRICS, MetricFn
from coopsurv.survival._objectives import COOPERATIVE_BLOCK_COUNTS, TOPOLOGIES
from coopsurv.survival._optimizers import get_optimizer
from coopsurv.survival.design import SurvivalDesign, stack_blocks
from coopsurv.survival.solution import (
    BaselineHazardSolution,
    CrossValSolution,
    PenalizedCoxSolution,
)

__all__ = [
    "partial_loglik",
    "baseline_hazard",
    "coxlasso",
    "cooplasso",
    "cv_cooplasso",
    "reverse_cox",
]


def _check_ties(ties: str) -> None:
    if ties not in ("efron", "breslow"):
        raise ValidationError(
            f"ties must be 'efron' or 'breslow', got '{ties}'"
        )


def _check_maxit(maxit: int) -> None:
    if int(maxit) != maxit or maxit < 1:
        raise ValidationError(f"maxit must be a positive integer, got {maxit}")


def _check_topology(topology: str) -> None:
    if topology not in TOPOLOGIES:
        raise ValidationError(
            f"topology must be 'chain' or 'full', got {topology!r}"
        )


def _check_cooperative_blocks(design: SurvivalDesign) -> None:
    if design.n_blocks not in COOPERATIVE_BLOCK_COUNTS:
        raise BlockCountError(
            f"cooperative fitting requires 2 or 3 feature blocks, "
            f"got {design.n_blocks}",
            n_blocks=design.n_blocks,
            allowed=COOPERATIVE_BLOCK_COUNTS,
        )


def partial_loglik(beta, time, event, X) -> float:
    """Cox partial log-likelihood for one coefficient vector.

    Parameters
    ----------
    beta : array-like
        (p,) coefficients.
    time : array-like
        (n,) observed times.
    event : array-like
        (n,) event indicator.
    X : array-like
        (n, p) design matrix, or (n,) for a single covariate.

    Returns
    -------
    float

    Raises
    ------
    DimensionError
        If time, event and X disagree on the subject count, or beta does
        not have one entry per column of X.
    """
    design = SurvivalDesign.for_survival(time, event, [check_array(X, "X")])
    beta = check_array(beta, "beta").ravel()
    if len(beta) != design.p:
        raise DimensionError(
            f"beta: expected {design.p} coefficients, got {len(beta)}"
        )
    return CoxPartialLikelihood(design.time, design.event, design.X)(beta)


def baseline_hazard(
    time,
    event,
    *,
    ties: Literal["efron", "breslow"] = "efron",
) -> BaselineHazardSolution:
    """Cumulative baseline hazard of a covariate-free Cox model.

    Matches R's survival::basehaz(coxph(Surv(time, event) ~ 1)).

    Parameters
    ----------
    time : array-like
        Time to event or censoring.
    event : array-like
        Event indicator (1=event, 0=censored).
    ties : str
        "efron" (default) or "breslow".

    Returns
    -------
    BaselineHazardSolution
    """
    design = SurvivalDesign.for_survival(
        time, event, np.zeros((len(np.atleast_1d(time)), 1))
    )
    _check_ties(ties)

    timer = Timer()
    timer.start()

    params = baseline_cumulative_hazard(design.time, design.event, ties)

    timer.stop()

    result = Result(
        params=params,
        info={"method": "Null-model Cox baseline hazard", "ties": ties},
        timing=timer.result(),
        backend_name="cpu_basehaz",
        warnings=(),
    )

    return BaselineHazardSolution(_result=result)


def coxlasso(
    time,
    event,
    X,
    X_new=None,
    *,
    lam: float,
    maxit: int = 1000,
    normalize: bool = True,
    ties: Literal["efron", "breslow"] = "efron",
    optimizer: str | Optimizer | None = None,
    feature_names: Sequence[str] | None = None,
    seed=None,
) -> PenalizedCoxSolution:
    """Adaptive-lasso Cox regression on a single feature block.

    A pilot Cox fit supplies the adaptive weights 1/|b̂_j|; the penalized
    objective −l(b)/n + lam·Σ w_j|b_j| is then minimized and hazard and
    survival curves are built for the rows of ``X_new``.

    Parameters
    ----------
    time : array-like
        Time to event or censoring.
    event : array-like
        Event indicator (1=event, 0=censored).
    X : array-like
        Covariate matrix (n, p). No intercept.
    X_new : array-like or None
        Rows to predict for. Defaults to ``X``.
    lam : float
        Penalty strength, > 0.
    maxit : int
        Optimizer budget for both the pilot and the penalized fit.
    normalize : bool
        Rescale each coefficient vector to unit Euclidean norm.
    ties : str
        Baseline hazard tie handling: "efron" (default) or "breslow".
    optimizer : str, Optimizer or None
        "sann" (default), "powell", "nelder-mead", "proximal", or an
        object implementing the Optimizer protocol.
    feature_names : sequence of str, optional
        Names of the columns of ``X``.
    seed : int, numpy.random.Generator or None
        Source of randomness for starting points and annealing.

    Returns
    -------
    PenalizedCoxSolution
    """
    names = None if feature_names is None else [feature_names]
    design = SurvivalDesign.for_survival(
        time, event, [check_array(X, "X")], feature_names=names
    )
    check_positive(lam, "lam")
    _check_maxit(maxit)
    _check_ties(ties)

    if X_new is None:
        X_query = design.X
    else:
        X_query = stack_blocks([check_array(X_new, "X_new")], design.block_sizes, "X_new")

    result = fit_coxlasso(
        design, X_query,
        lam=lam,
        maxit=int(maxit),
        normalize=normalize,
        ties=ties,
        optimizer=get_optimizer(optimizer),
        rng=np.random.default_rng(seed),
    )

    return PenalizedCoxSolution(_result=result)


def cooplasso(
    time,
    event,
    blocks,
    new_blocks=None,
    *,
    lam: float,
    alpha: float,
    maxit: int = 1000,
    normalize: bool = True,
    topology: Literal["chain", "full"] = "chain",
    ties: Literal["efron", "breslow"] = "efron",
    optimizer: str | Optimizer | None = None,
    feature_names: Sequence[Sequence[str]] | None = None,
    seed=None,
) -> PenalizedCoxSolution:
    """Cooperative adaptive-lasso Cox regression over 2 or 3 feature blocks.

    Adds α·‖Z_k b_k − Z_l b_l‖² agreement penalties between block linear
    predictors to the per-block adaptive-lasso objectives. With
    ``topology="chain"`` only adjacent blocks are compared.

    Parameters
    ----------
    time, event : array-like
        Survival outcome.
    blocks : sequence of array-like
        Two or three (n, p_k) feature matrices on the same subjects.
    new_blocks : sequence of array-like or None
        Rows to predict for, one matrix per block. Defaults to ``blocks``.
    lam : float
        Penalty strength, > 0.
    alpha : float
        Cooperation strength, >= 0. alpha=0 decouples the blocks.
    maxit : int
        Penalized fit budget; the pilot gets maxit // 10.
    normalize : bool
        Rescale each coefficient vector to unit Euclidean norm.
    topology : str
        "chain" (default) or "full".
    ties : str
        Baseline hazard tie handling.
    optimizer : str, Optimizer or None
        See :func:`coxlasso`.
    feature_names : sequence of sequence of str, optional
        One name list per block.
    seed : int, numpy.random.Generator or None
        Source of randomness.

    Returns
    -------
    PenalizedCoxSolution

    Raises
    ------
    BlockCountError
        If fewer than 2 or more than 3 blocks are supplied.
    """
    design = SurvivalDesign.for_survival(time, event, blocks, feature_names=feature_names)
    _check_cooperative_blocks(design)
    check_positive(lam, "lam")
    check_positive(alpha, "alpha", allow_zero=True)
    _check_maxit(maxit)
    _check_topology(topology)
    _check_ties(ties)

    X_query = design.X if new_blocks is None else stack_blocks(new_blocks, design.block_sizes)

    result = fit_cooplasso(
        design, X_query,
        lam=lam,
        alpha=alpha,
        maxit=int(maxit),
        normalize=normalize,
        topology=topology,
        ties=ties,
        optimizer=get_optimizer(optimizer),
        rng=np.random.default_rng(seed),
    )

    return PenalizedCoxSolution(_result=result)


def cv_cooplasso(
    time,
    event,
    blocks,
    *,
    lam_grid: Sequence[float] = DEFAULT_LAMBDA_GRID,
    folds: int = 5,
    alpha: float = 0.5,
    maxit: int = 100,
    normalize: bool = True,
    topology: Literal["chain", "full"] = "chain",
    ties: Literal["efron", "breslow"] = "efron",
    optimizer: str | Optimizer | None = None,
    metrics: Mapping[str, MetricFn] | None = None,
    criterion: str = "mse",
    seed=None,
) -> CrossValSolution:
    """Choose the penalty strength by K-fold cross-validation.

    One block is fit with :func:`coxlasso`, two or three with
    :func:`cooplasso`. Each validation subject is scored with its predicted
    survival probability at the grid time nearest its own observed time.

    Parameters
    ----------
    time, event : array-like
        Survival outcome.
    blocks : array-like or sequence of array-like
        One to three feature blocks.
    lam_grid : sequence of float
        Candidate penalty strengths, all > 0.
    folds : int
        Number of validation chunks, 2 <= folds <= n.
    alpha : float
        Cooperation strength (ignored for a single block).
    maxit : int
        Optimizer budget per fit.
    metrics : mapping or None
        name -> fn(event, predicted). Defaults to mae, auc, cindex, mse.
    criterion : str
        Metric minimized to select lambda (default "mse").
    seed : int, numpy.random.Generator or None
        Source of randomness for fold assignment and every fit.

    Returns
    -------
    CrossValSolution
    """
    design = SurvivalDesign.for_survival(time, event, blocks)
    if design.n_blocks > max(COOPERATIVE_BLOCK_COUNTS):
        raise BlockCountError(
            f"cross-validation accepts 1 to 3 feature blocks, got {design.n_blocks}",
            n_blocks=design.n_blocks,
            allowed=(1,) + COOPERATIVE_BLOCK_COUNTS,
        )

    lam_grid = tuple(float(lam) for lam in lam_grid)
    if len(lam_grid) == 0:
        raise ValidationError("lam_grid: must contain at least one value")
    for lam in lam_grid:
        check_positive(lam, "lam_grid")
    if int(folds) != folds or not 2 <= folds <= design.n:
        raise ValidationError(
            f"folds must be an integer in [2, {design.n}], got {folds}"
        )
    check_positive(alpha, "alpha", allow_zero=True)
    _check_maxit(maxit)
    _check_topology(topology)
    _check_ties(ties)

    result = cross_validate(
        design,
        lam_grid=lam_grid,
        folds=int(folds),
        alpha=alpha,
        maxit=int(maxit),
        normalize=normalize,
        topology=topology,
        ties=ties,
        optimizer=get_optimizer(optimizer),
        metrics=dict(DEFAULT_METRICS if metrics is None else metrics),
        criterion=criterion,
        rng=np.random.default_rng(seed),
    )

    return CrossValSolution(_result=result)


def reverse_cox(
    time,
    event,
    X,
    X_new=None,
    *,
    maxit: int = 1000,
    normalize: bool = True,
    ties: Literal["efron", "breslow"] = "efron",
    optimizer: str | Optimizer | None = None,
    feature_names: Sequence[str] | None = None,
    seed=None,
) -> PenalizedCoxSolution:
    """Unpenalized comparator fit with backward-looking risk sets.

    Maximizes Σ_i [η_i − log Σ_{j: T_j ≤ T_i} exp(η_j)] over every subject
    (censoring plays no part in the coefficients) in a single optimizer
    run, then builds hazard and survival curves on the same null-model
    baseline as :func:`coxlasso`. Useful as a reference point against
    the penalized fits.

    Parameters
    ----------
    time, event : array-like
        Survival outcome; ``event`` only enters the baseline hazard.
    X : array-like
        Covariate matrix (n, p).
    X_new : array-like or None
        Rows to predict for. Defaults to ``X``.
    maxit : int
        Optimizer budget.
    normalize : bool
        Rescale the coefficients to unit Euclidean norm.
    ties : str
        Baseline hazard tie handling.
    optimizer : str, Optimizer or None
        See :func:`coxlasso`.
    feature_names : sequence of str, optional
        Names of the columns of ``X``.
    seed : int, numpy.random.Generator or None
        Source of randomness.

    Returns
    -------
    PenalizedCoxSolution
        With ``lam == 0`` and ``pilot`` equal to the raw optimizer output.
    """
    names = None if feature_names is None else [feature_names]
    design = SurvivalDesign.for_survival(
        time, event, [check_array(X, "X")], feature_names=names
    )
    _check_maxit(maxit)
    _check_ties(ties)

    if X_new is None:
        X_query = design.X
    else:
        X_query = stack_blocks([check_array(X_new, "X_new")], design.block_sizes, "X_new")

    result = fit_reverse_cox(
        design, X_query,
        maxit=int(maxit),
        normalize=normalize,
        ties=ties,
        optimizer=get_optimizer(optimizer),
        rng=np.random.default_rng(seed),
    )

    return PenalizedCoxSolution(_result=result)
