"""
Cox partial log-likelihood with inclusive risk sets, and its
reversed-risk-set counterpart.

    l(β) = Σ_i δ_i [ (Zβ)_i − log Σ_{j: T_j ≥ T_i} exp((Zβ)_j) ]

The risk set of subject i contains every subject whose time is greater
than or equal to T_i, including i itself and anyone tied with it. There is
no Efron/Breslow correction: tied events simply share the same
denominator.

Algorithm:
    Sort subjects by ascending time once (per dataset).
    Reverse cumulative sums of exp(η − max η) give every risk-set total
    in O(n); for a run of tied times the total at the first member of the
    run is used for all of them.

Score:
    U(β) = Σ_i δ_i [ z_i − S1_i / S0_i ],
    S0_i = Σ_{j ∈ R_i} exp(η_j),  S1_i = Σ_{j ∈ R_i} exp(η_j) z_j

References:
    Cox, D. R. (1972). Regression models and life-tables. JRSS-B, 34(2), 187-220.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


class CoxPartialLikelihood:
    """Partial log-likelihood of one design matrix, with the time order cached.

    Parameters
    ----------
    time : NDArray
        (n,) observed times.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    X : NDArray
        (n, p) design matrix row-aligned with time.
    """

    __slots__ = ('_event', '_X', '_first', 'n', 'p')

    def __init__(self, time: NDArray, event: NDArray, X: NDArray) -> None:
        order = np.argsort(time, kind="stable")
        t_sorted = time[order]
        self._event = np.asarray(event, dtype=np.float64)[order]
        self._X = np.asarray(X, dtype=np.float64)[order]
        # First sorted position whose time equals t_i: start of i's risk set
        self._first = np.searchsorted(t_sorted, t_sorted, side="left")
        self.n, self.p = self._X.shape

    def _log_risk(self, eta: NDArray) -> tuple[NDArray, NDArray]:
        shift = float(np.max(eta))
        w = np.exp(eta - shift)
        s0 = np.cumsum(w[::-1])[::-1][self._first]
        return shift + np.log(s0), w

    def __call__(self, beta: NDArray) -> float:
        """Partial log-likelihood at beta."""
        eta = self._X @ beta
        log_risk, _ = self._log_risk(eta)
        return float(np.sum(self._event * (eta - log_risk)))

    def value_and_gradient(self, beta: NDArray) -> tuple[float, NDArray]:
        """Partial log-likelihood and its score vector at beta."""
        eta = self._X @ beta
        log_risk, w = self._log_risk(eta)
        value = float(np.sum(self._event * (eta - log_risk)))

        s0 = np.cumsum(w[::-1])[::-1][self._first]
        s1 = np.cumsum((self._X * w[:, np.newaxis])[::-1], axis=0)[::-1][self._first]
        mean_z = s1 / s0[:, np.newaxis]
        grad = (self._event[:, np.newaxis] * (self._X - mean_z)).sum(axis=0)
        return value, grad


class ReverseRiskSetLikelihood:
    """Log-likelihood whose risk sets look backwards in time.

        l(β) = Σ_i [ (Zβ)_i − log Σ_{j: T_j ≤ T_i} exp((Zβ)_j) ]

    Every subject contributes, censored or not. Forward cumulative sums in
    time order give the risk-set totals; tied times all use the total at
    the last member of their run.

    Parameters
    ----------
    time : NDArray
        (n,) observed times.
    X : NDArray
        (n, p) design matrix row-aligned with time.
    """

    __slots__ = ('_X', '_last', 'n', 'p')

    def __init__(self, time: NDArray, X: NDArray) -> None:
        order = np.argsort(time, kind="stable")
        t_sorted = time[order]
        self._X = np.asarray(X, dtype=np.float64)[order]
        self._last = np.searchsorted(t_sorted, t_sorted, side="right") - 1
        self.n, self.p = self._X.shape

    def __call__(self, beta: NDArray) -> float:
        return self.value_and_gradient(beta)[0]

    def value_and_gradient(self, beta: NDArray) -> tuple[float, NDArray]:
        eta = self._X @ beta
        shift = float(np.max(eta))
        w = np.exp(eta - shift)
        s0 = np.cumsum(w)[self._last]
        s1 = np.cumsum(self._X * w[:, np.newaxis], axis=0)[self._last]
        value = float(np.sum(eta - shift - np.log(s0)))
        grad = (self._X - s1 / s0[:, np.newaxis]).sum(axis=0)
        return value, grad
