"""
Cross-validated selection of the penalty strength λ.

Fold scheme:
    One random permutation of the subjects is drawn. Fold f takes the next
    min(n // folds, remaining) subjects off the front as its validation
    chunk; everyone else trains. When n is not divisible by folds, the
    n mod folds subjects left over are never validated.

Per fold and λ:
    fit on the training subjects, look up each validation subject's
    survival probability at the grid time nearest to its own observed
    time, replace NaN predictions by 0, and score with every metric.

Selection:
    NaN-aware mean of the criterion over folds; the first λ attaining the
    minimum wins. Undefined metric values are excluded, never fatal.

Every (fold, λ) fit draws from its own child generator spawned from the
sweep's generator, so the tables do not depend on evaluation order.
"""

from __future__ import annotations

import logging
import warnings
from collections import Counter
from typing import Mapping, Sequence

import numpy as np
from numpy.typing import NDArray

from coopsurv.core.compute.timing import Timer
from coopsurv.core.exceptions import CoopSurvError, ValidationError
from coopsurv.core.protocols import Optimizer
from coopsurv.core.result import Result
from coopsurv.survival._baseline import nearest_time_index
from coopsurv.survival._common import CrossValParams
from coopsurv.survival._fit import fit_cooplasso, fit_coxlasso
from coopsurv.survival._metrics import MetricFn
from coopsurv.survival.design import SurvivalDesign

logger = logging.getLogger(__name__)


def fold_chunks(
    n: int,
    folds: int,
    rng: np.random.Generator,
) -> tuple[tuple[NDArray, ...], NDArray]:
    """Validation chunks drawn without replacement from one permutation.

    Returns
    -------
    (chunks, leftover)
        chunks holds ``folds`` index arrays of size at most n // folds;
        leftover holds the subjects that are never validated.
    """
    pool = rng.permutation(n)
    size = n // folds
    chunks = []
    for _ in range(folds):
        m = min(size, len(pool))
        chunks.append(pool[:m])
        pool = pool[m:]
    return tuple(chunks), pool


def predict_at_own_time(grid: NDArray, survival: NDArray, times: NDArray) -> NDArray:
    """Survival of row i at the grid time nearest to times[i] (NaN on an empty grid)."""
    times = np.asarray(times, dtype=np.float64)
    if len(grid) == 0:
        return np.full(len(times), np.nan)
    idx = nearest_time_index(grid, times)
    return survival[np.arange(len(times)), idx].astype(np.float64)


def cross_validate(
    design: SurvivalDesign,
    *,
    lam_grid: Sequence[float],
    folds: int,
    alpha: float,
    maxit: int,
    normalize: bool,
    topology: str,
    ties: str,
    optimizer: Optimizer,
    metrics: Mapping[str, MetricFn],
    criterion: str,
    rng: np.random.Generator,
) -> Result[CrossValParams]:
    """Run the fold × λ sweep and pick the λ minimizing the criterion."""
    if criterion not in metrics:
        raise ValidationError(
            f"criterion {criterion!r} is not one of the metrics {sorted(metrics)}"
        )

    timer = Timer()
    timer.start()

    lam_grid = np.asarray(lam_grid, dtype=np.float64)
    g = len(lam_grid)
    n = design.n
    single_block = design.n_blocks == 1

    chunks, leftover = fold_chunks(n, folds, rng)
    fit_rngs = rng.spawn(folds * g)

    tables = {name: np.full((folds, g), np.nan) for name in metrics}
    fit_messages: Counter[str] = Counter()
    n_replaced = 0
    all_idx = np.arange(n)

    for f, valid_idx in enumerate(chunks):
        train_mask = np.ones(n, dtype=bool)
        train_mask[valid_idx] = False
        train = design.subset(all_idx[train_mask])
        valid = design.subset(valid_idx)
        X_valid = valid.X

        logger.info(
            "fold %d/%d: %d training, %d validation subjects",
            f + 1, folds, train.n, valid.n,
        )

        for i, lam in enumerate(lam_grid):
            fit_rng = fit_rngs[f * g + i]
            with timer.section('fits'), warnings.catch_warnings():
                warnings.simplefilter("ignore", RuntimeWarning)
                if single_block:
                    fit = fit_coxlasso(
                        train, X_valid,
                        lam=float(lam), maxit=maxit, normalize=normalize,
                        ties=ties, optimizer=optimizer, rng=fit_rng,
                    )
                else:
                    fit = fit_cooplasso(
                        train, X_valid,
                        lam=float(lam), alpha=alpha, maxit=maxit,
                        normalize=normalize, topology=topology, ties=ties,
                        optimizer=optimizer, rng=fit_rng,
                    )
            fit_messages.update(fit.warnings)

            predicted = predict_at_own_time(
                fit.params.time_grid, fit.params.survival, valid.time
            )
            missing = np.isnan(predicted)
            if missing.any():
                n_replaced += int(np.sum(missing))
                predicted[missing] = 0.0

            with timer.section('scoring'):
                for name, fn in metrics.items():
                    tables[name][f, i] = fn(valid.event, predicted)

            logger.debug(
                "fold %d lambda=%g %s=%.6g",
                f + 1, lam, criterion, tables[criterion][f, i],
            )

    warn_list = [f"{msg} ({count} fits)" for msg, count in fit_messages.items()]
    if n_replaced:
        warn_list.append(
            f"{n_replaced} undefined survival predictions were scored as 0"
        )
    for name, table in tables.items():
        n_undefined = int(np.sum(np.isnan(table)))
        if n_undefined:
            warn_list.append(
                f"Metric '{name}' undefined in {n_undefined} of {table.size} "
                f"fold/lambda cells; excluded from its average"
            )
    for msg in warn_list:
        warnings.warn(msg, RuntimeWarning, stacklevel=3)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        means = {name: np.nanmean(table, axis=0) for name, table in tables.items()}

    criterion_means = means[criterion]
    if np.all(np.isnan(criterion_means)):
        raise CoopSurvError(
            f"criterion '{criterion}' is undefined for every lambda in the grid"
        )
    best_index = int(np.nanargmin(criterion_means))
    best_lam = float(lam_grid[best_index])

    logger.info("selected lambda=%g (%s=%.6g)", best_lam, criterion, criterion_means[best_index])

    timer.stop()

    params = CrossValParams(
        lam_grid=lam_grid,
        best_lam=best_lam,
        best_index=best_index,
        criterion=criterion,
        tables=tables,
        means=means,
        fold_chunks=chunks,
        n_unvalidated=len(leftover),
        alpha=float(alpha),
        folds=folds,
    )

    return Result(
        params=params,
        info={
            'method': 'cv_coxlasso' if single_block else 'cv_cooplasso',
            'optimizer': optimizer.name,
            'maxit': maxit,
            'n_fits': folds * g,
            'topology': None if single_block else topology,
        },
        timing=timer.result(),
        backend_name='cpu_crossval',
        warnings=tuple(warn_list),
    )
