"""
Scoring functions for cross-validation and model evaluation.

Cross-validation metrics take (event, predicted) where predicted is the
survival probability at the grid time nearest each subject's own time and
event is the 0/1 indicator. This compares a point-in-time probability with
a binary "event ever observed" flag and ignores censoring weights, so
"mse" is a proxy for the Brier score rather than the integrated,
IPCW-weighted version. Any callable fn(event, predicted) -> float can be
used in its place; return NaN when the metric is undefined.

harrell_cindex is the usual survival C-statistic for risk scores.
"""

from __future__ import annotations

from typing import Callable, Mapping

import numpy as np
from numpy.typing import NDArray
from scipy import stats

MetricFn = Callable[[NDArray, NDArray], float]


def mean_absolute_error(event: NDArray, predicted: NDArray) -> float:
    """Mean |event − predicted|."""
    return float(np.mean(np.abs(event - predicted)))


def mean_squared_error(event: NDArray, predicted: NDArray) -> float:
    """Mean (event − predicted)², the Brier-score proxy used for selection."""
    return float(np.mean((event - predicted) ** 2))


def roc_auc(event: NDArray, predicted: NDArray) -> float:
    """Area under the ROC curve with event == 1 as the positive class.

    Mann-Whitney form with mid-ranks for tied scores. NaN when only one
    class is present.
    """
    event = np.asarray(event)
    positive = event == 1
    n_pos = int(np.sum(positive))
    n_neg = len(event) - n_pos
    if n_pos == 0 or n_neg == 0:
        return float('nan')
    ranks = stats.rankdata(predicted)
    u = np.sum(ranks[positive]) - n_pos * (n_pos + 1) / 2.0
    return float(u / (n_pos * n_neg))


def concordance(response: NDArray, predicted: NDArray) -> float:
    """Concordance between a numeric response and a predictor.

    Over all pairs with different responses: a pair is concordant when the
    predictor orders it the same way as the response; ties in the
    predictor count one half. NaN when no pair has different responses.
    """
    response = np.asarray(response, dtype=np.float64)
    predicted = np.asarray(predicted, dtype=np.float64)
    dy = np.sign(response[:, np.newaxis] - response[np.newaxis, :])
    dx = np.sign(predicted[:, np.newaxis] - predicted[np.newaxis, :])
    comparable = dy > 0
    total = int(np.sum(comparable))
    if total == 0:
        return float('nan')
    concordant = np.sum(comparable & (dx > 0))
    tied = np.sum(comparable & (dx == 0))
    return float((concordant + 0.5 * tied) / total)


def harrell_cindex(time: NDArray, event: NDArray, risk: NDArray) -> float:
    """Harrell's concordance statistic for risk scores.

    C = P(risk_i > risk_j | T_i < T_j, event_i = 1)

    Higher risk is expected to mean shorter survival. Ties in risk count
    one half; returns 0.5 when no pair is comparable.
    """
    time = np.asarray(time, dtype=np.float64)
    event = np.asarray(event, dtype=np.float64)
    risk = np.asarray(risk, dtype=np.float64)

    comparable = (event[:, np.newaxis] == 1) & (time[:, np.newaxis] < time[np.newaxis, :])
    diff = risk[:, np.newaxis] - risk[np.newaxis, :]

    concordant = int(np.sum(comparable & (diff > 0)))
    discordant = int(np.sum(comparable & (diff < 0)))
    tied_risk = int(np.sum(comparable & (diff == 0)))

    total = concordant + discordant + tied_risk
    if total == 0:
        return 0.5

    return (concordant + 0.5 * tied_risk) / total


DEFAULT_METRICS: Mapping[str, MetricFn] = {
    'mae': mean_absolute_error,
    'auc': roc_auc,
    'cindex': concordance,
    'mse': mean_squared_error,
}
