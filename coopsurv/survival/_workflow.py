"""
Train / test workflow for cooperative Cox models.

train_cooplearning:
    1. Randomly split the subjects into a training part
       (round(n · train_fraction) subjects) and a held-out part.
    2. Cross-validate lambda on the training part.
    3. Refit the cooperative model at the selected lambda, predicting
       survival curves for the held-out part.
    4. Score the training part with risk = X @ b and Harrell's C.

test_cooplearning:
    Risk scores and Harrell's C of a trained model on new subjects.

Higher risk scores mean shorter expected survival.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from coopsurv.core.compute.timing import Timer
from coopsurv.core.exceptions import BlockCountError, ValidationError
from coopsurv.core.protocols import Optimizer
from coopsurv.core.result import Result
from coopsurv.survival._common import DEFAULT_LAMBDA_GRID, CoopTestParams, CoopTrainParams
from coopsurv.survival._metrics import harrell_cindex
from coopsurv.survival._objectives import COOPERATIVE_BLOCK_COUNTS
from coopsurv.survival.design import SurvivalDesign
from coopsurv.survival.solution import CoopTestSolution, CoopTrainSolution
from coopsurv.survival.solvers import cooplasso, cv_cooplasso

logger = logging.getLogger(__name__)


def train_cooplearning(
    blocks,
    time,
    event,
    *,
    lam_grid: Sequence[float] = DEFAULT_LAMBDA_GRID,
    folds: int = 5,
    alpha: float = 1.0,
    maxit: int = 100,
    train_fraction: float = 0.9,
    topology: str = "chain",
    optimizer: str | Optimizer | None = None,
    feature_names: Sequence[Sequence[str]] | None = None,
    seed=123,
) -> CoopTrainSolution:
    """Select lambda by cross-validation and train a cooperative Cox model.

    Parameters
    ----------
    blocks : sequence of array-like
        Two or three (n, p_k) feature matrices on the same subjects.
    time, event : array-like
        Survival outcome.
    lam_grid : sequence of float
        Candidate penalty strengths.
    folds : int
        Cross-validation folds on the training part.
    alpha : float
        Cooperation strength.
    maxit : int
        Optimizer budget for every fit.
    train_fraction : float
        Share of subjects used for training, in (0, 1].
    topology : str
        "chain" (default) or "full".
    optimizer : str, Optimizer or None
        See :func:`coopsurv.survival.coxlasso`.
    feature_names : sequence of sequence of str, optional
        One name list per block; used to report the selected features.
    seed : int, numpy.random.Generator or None
        Source of randomness for the split, the folds and every fit.

    Returns
    -------
    CoopTrainSolution
    """
    design = SurvivalDesign.for_survival(time, event, blocks, feature_names=feature_names)
    if design.n_blocks not in COOPERATIVE_BLOCK_COUNTS:
        raise BlockCountError(
            f"cooperative training requires 2 or 3 feature blocks, "
            f"got {design.n_blocks}",
            n_blocks=design.n_blocks,
            allowed=COOPERATIVE_BLOCK_COUNTS,
        )
    if not 0.0 < train_fraction <= 1.0:
        raise ValidationError(
            f"train_fraction must be in (0, 1], got {train_fraction}"
        )

    timer = Timer()
    timer.start()

    rng = np.random.default_rng(seed)
    order = rng.permutation(design.n)
    n_train = int(round(design.n * train_fraction))
    train_idx = np.sort(order[:n_train])
    valid_idx = np.sort(order[n_train:])
    train = design.subset(train_idx)
    valid = design.subset(valid_idx)
    cv_rng, fit_rng = rng.spawn(2)

    logger.info(
        "cross-validating lambda on %d of %d subjects (%d held out)",
        train.n, design.n, valid.n,
    )
    with timer.section('crossval'):
        cv = cv_cooplasso(
            train.time, train.event, list(train.blocks),
            lam_grid=lam_grid,
            folds=folds,
            alpha=alpha,
            maxit=maxit,
            topology=topology,
            optimizer=optimizer,
            seed=cv_rng,
        )
    logger.info("optimal lambda: %g", cv.best_lam)

    with timer.section('training'):
        model = cooplasso(
            train.time, train.event, list(train.blocks), list(valid.blocks),
            lam=cv.best_lam,
            alpha=alpha,
            maxit=maxit,
            normalize=True,
            topology=topology,
            optimizer=optimizer,
            feature_names=train.feature_names,
            seed=fit_rng,
        )

    risk = train.X @ model.coefficients
    cindex = harrell_cindex(train.time, train.event, risk)

    timer.stop()

    params = CoopTrainParams(
        model=model,
        cv=cv,
        selected_lambda=cv.best_lam,
        selected_features=model.selected_features,
        risk_scores=risk,
        cindex=cindex,
        train_indices=train_idx,
        valid_indices=valid_idx,
        n_blocks=design.n_blocks,
    )

    result = Result(
        params=params,
        info={"method": "train_cooplearning", "train_fraction": train_fraction},
        timing=timer.result(),
        backend_name="cpu_cooplearning",
        warnings=cv.warnings + model.warnings,
    )

    return CoopTrainSolution(_result=result)


def test_cooplearning(
    training: CoopTrainSolution,
    blocks,
    time,
    event,
) -> CoopTestSolution:
    """Risk scores and Harrell's C of a trained model on new subjects.

    Parameters
    ----------
    training : CoopTrainSolution
        Output of :func:`train_cooplearning`.
    blocks : sequence of array-like
        Test feature blocks, same layout and column order as in training.
    time, event : array-like
        Test survival outcome.

    Returns
    -------
    CoopTestSolution
    """
    design = SurvivalDesign.for_survival(time, event, blocks)

    timer = Timer()
    timer.start()

    risk = training.model.risk_score(list(design.blocks))
    cindex = harrell_cindex(design.time, design.event, risk)

    timer.stop()

    result = Result(
        params=CoopTestParams(
            risk_scores=risk,
            cindex=cindex,
            n_observations=design.n,
        ),
        info={"method": "test_cooplearning"},
        timing=timer.result(),
        backend_name="cpu_cooplearning",
        warnings=(),
    )

    return CoopTestSolution(_result=result)


# Not a pytest test function despite the name.
test_cooplearning.__test__ = False
