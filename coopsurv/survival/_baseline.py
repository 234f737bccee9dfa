"""
Baseline hazard and survival-curve reconstruction.

1. Covariate-free Cox fit, i.e. the null-model cumulative hazard at each
   distinct event time t_j with d_j events and n_j subjects at risk:

       breslow:  ΔH_j = d_j / n_j                      (Nelson-Aalen)
       efron:    ΔH_j = Σ_{k=0}^{d_j−1} 1 / (n_j − k)  (R's default for coxph)

2. First difference of H aligned to the grid with the last point dropped:
   increment_i = H(t_{i+1}) − H(t_i) at grid point t_i.

3. Subject hazard with linear predictor η: h_i(t) = increment(t) · exp(η_i).

4. Cumulative hazard by the trapezoid rule written as
   Δt·min(h_k, h_{k−1}) + ½·Δt·|h_k − h_{k−1}|, starting at 0, and
   S(t) = exp(−cumulative).

References:
    Breslow, N. (1972). Discussion of Professor Cox's paper. JRSS-B, 34, 216-217.
    Efron, B. (1977). The efficiency of Cox's likelihood function for
        censored data. JASA, 72(359), 557-565.
    R Core Team. survival::basehaz, survfit.coxph
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from coopsurv.core.exceptions import ValidationError
from coopsurv.survival._common import BaselineHazardParams, empty_float


def baseline_cumulative_hazard(
    time: NDArray,
    event: NDArray,
    ties: str = "efron",
) -> BaselineHazardParams:
    """Null-model Cox cumulative baseline hazard.

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring.
    event : NDArray
        (n,) event indicator (1=event, 0=censored).
    ties : str
        "efron" (default) or "breslow".

    Returns
    -------
    BaselineHazardParams
    """
    if ties not in ("efron", "breslow"):
        raise ValidationError(
            f"ties must be 'efron' or 'breslow', got '{ties}'"
        )

    n_total = len(time)
    t_sorted = np.sort(time)

    event_times = time[event == 1]
    if len(event_times) == 0:
        return BaselineHazardParams(
            time=empty_float(),
            cumulative_hazard=empty_float(),
            n_risk=empty_float(),
            n_events=empty_float(),
            grid=empty_float(),
            increments=empty_float(),
            ties=ties,
        )

    unique_times, d = np.unique(event_times, return_counts=True)
    # Number at risk: subjects with time >= t_j
    n_risk = n_total - np.searchsorted(t_sorted, unique_times, side="left")

    if ties == "breslow":
        jumps = d / n_risk
    else:
        jumps = np.array([
            np.sum(1.0 / (n_j - np.arange(d_j)))
            for n_j, d_j in zip(n_risk, d)
        ])

    cumhaz = np.cumsum(jumps)
    grid, increments = differentiate_cumulative(unique_times, cumhaz)

    return BaselineHazardParams(
        time=unique_times.astype(np.float64),
        cumulative_hazard=cumhaz,
        n_risk=n_risk.astype(np.float64),
        n_events=d.astype(np.float64),
        grid=grid,
        increments=increments,
        ties=ties,
    )


def differentiate_cumulative(time: NDArray, cumhaz: NDArray) -> tuple[NDArray, NDArray]:
    """Discrete hazard increments of a cumulative curve.

    Returns (time[:-1], diff(cumhaz)); the series shortens by one.
    """
    if len(time) == 0:
        return empty_float(), empty_float()
    return np.asarray(time[:-1], dtype=np.float64), np.diff(cumhaz)


def integrate_hazard(grid: NDArray, hazard: NDArray) -> NDArray:
    """Per-step trapezoid contributions along the last axis (first entry 0).

    Parameters
    ----------
    grid : NDArray
        (m,) ascending times.
    hazard : NDArray
        (..., m) hazard values on the grid.
    """
    hazard = np.asarray(hazard, dtype=np.float64)
    out = np.zeros_like(hazard)
    if hazard.shape[-1] < 2:
        return out
    dt = np.diff(grid)
    right, left = hazard[..., 1:], hazard[..., :-1]
    lower = np.minimum(right, left)
    # equal ends (including two infinite ones) contribute no gap term
    with np.errstate(invalid='ignore'):
        gap = np.where(right == left, 0.0, np.abs(right - left))
    out[..., 1:] = dt * lower + 0.5 * dt * gap
    return out


def survival_surface(
    grid: NDArray,
    increments: NDArray,
    eta: NDArray,
) -> tuple[NDArray, NDArray]:
    """Hazard and survival curves for linear predictors eta.

    Parameters
    ----------
    grid : NDArray
        (m,) baseline time grid.
    increments : NDArray
        (m,) baseline hazard increments on the grid.
    eta : NDArray
        (k,) linear predictors.

    Returns
    -------
    (hazard, survival)
        Both (len(eta), len(grid)). A linear predictor that overflows exp
        gives an infinite hazard and survival 0 after the first grid time.
    """
    eta = np.asarray(eta, dtype=np.float64).ravel()
    with np.errstate(over='ignore', invalid='ignore'):
        hazard = np.exp(eta)[:, np.newaxis] * np.asarray(increments)[np.newaxis, :]
        survival = np.exp(-np.cumsum(integrate_hazard(grid, hazard), axis=-1))
    return hazard, survival


def nearest_time_index(grid: NDArray, query) -> NDArray:
    """Index of the grid time closest to each query time.

    Midpoints resolve to the earlier grid time, including midpoints that
    are off by rounding (distances within a relative 1e-12 count as
    tied). Queries outside the grid clamp to the nearest end.

    Raises
    ------
    ValidationError
        If the grid is empty.
    """
    grid = np.asarray(grid, dtype=np.float64)
    if len(grid) == 0:
        raise ValidationError("grid: cannot look up times on an empty time grid")
    query = np.atleast_1d(np.asarray(query, dtype=np.float64))
    dist = np.abs(grid[np.newaxis, :] - query[:, np.newaxis])
    scale = np.maximum(np.abs(query), np.max(np.abs(grid)))[:, np.newaxis]
    near = dist <= dist.min(axis=1, keepdims=True) + 1e-12 * scale
    # argmax returns the first True, i.e. the earlier time on a tie
    return np.argmax(near, axis=1)
