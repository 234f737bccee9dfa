"""
Objectives for pilot and penalized Cox fits (all to be minimized).

Pilot (unpenalized):
    f(b) = −l(b; T, δ, Z)

Reverse risk set (unpenalized comparator):
    f(b) = −Σ_i [ (Zb)_i − log Σ_{j: T_j ≤ T_i} exp((Zb)_j) ]

Adaptive lasso (Zhang & Lu, 2007):
    f(b) = −(1/n)·l(b; T, δ, Z) + λ Σ_j w_j |b_j|,   w_j = 1/|b̂_j|

Cooperative (2 or 3 blocks, sub-vectors b_k of the concatenated b):
    f(b) = Σ_k −(1/n)·l(b_k; T, δ, Z_k) + λ Σ_j w_j |b_j|
           + α Σ_{(k,l) ∈ pairs} ‖Z_k b_k − Z_l b_l‖²

With topology "chain" the pairs are adjacent blocks only, (1,2) and, for
three blocks, (2,3); blocks 1 and 3 are never compared directly, so the
result depends on block order. Topology "full" compares every pair.

Every objective splits into a differentiable part (smooth) and a weighted
L1 part (l1_weights) so derivative-free and proximal solvers can share it.

References:
    Zhang, H. H., & Lu, W. (2007). Adaptive Lasso for Cox's proportional
        hazards model. Biometrika, 94(3), 691-703.
    Ding, D. Y., Li, S., Narasimhan, B., & Tibshirani, R. (2022).
        Cooperative learning for multiview analysis. PNAS, 119(38).
"""

from __future__ import annotations

import warnings
from itertools import combinations
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from coopsurv.core.exceptions import BlockCountError, ValidationError
from coopsurv.survival._likelihood import CoxPartialLikelihood, ReverseRiskSetLikelihood

COOPERATIVE_BLOCK_COUNTS = (2, 3)
TOPOLOGIES = ("chain", "full")


def adaptive_weights(pilot: NDArray) -> tuple[NDArray, bool]:
    """Per-coordinate adaptive-lasso weights 1/|pilot_j|.

    Coordinates with pilot_j == 0 would get an infinite weight; they are
    capped at the largest finite weight instead. If no weight is finite,
    every weight is 1.

    Returns
    -------
    (weights, capped)
        capped is True when at least one weight was replaced.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        weights = 1.0 / np.abs(np.asarray(pilot, dtype=np.float64))
    finite = np.isfinite(weights)
    if finite.all():
        return weights, False
    cap = float(np.max(weights[finite])) if finite.any() else 1.0
    return np.where(finite, weights, cap), True


def cooperation_pairs(n_blocks: int, topology: str = "chain") -> tuple[tuple[int, int], ...]:
    """Block index pairs whose linear predictors are pulled together."""
    if topology not in TOPOLOGIES:
        raise ValidationError(
            f"topology must be 'chain' or 'full', got {topology!r}"
        )
    if topology == "chain":
        return tuple((k, k + 1) for k in range(n_blocks - 1))
    return tuple(combinations(range(n_blocks), 2))


class _PenalizedObjective:
    """Shared plumbing: full value = smooth value + weighted L1."""

    _l1: NDArray

    @property
    def dim(self) -> int:
        return len(self._l1)

    @property
    def l1_weights(self) -> NDArray:
        return self._l1

    def smooth(self, b: NDArray) -> tuple[float, NDArray]:
        raise NotImplementedError

    def _smooth_value(self, b: NDArray) -> float:
        return self.smooth(b)[0]

    def __call__(self, b: NDArray) -> float:
        b = np.asarray(b, dtype=np.float64)
        return self._smooth_value(b) + float(np.sum(self._l1 * np.abs(b)))


class PilotObjective(_PenalizedObjective):
    """Negative partial log-likelihood, no penalty."""

    def __init__(self, time: NDArray, event: NDArray, X: NDArray) -> None:
        self._lik = CoxPartialLikelihood(time, event, X)
        self._l1 = np.zeros(X.shape[1], dtype=np.float64)

    def _smooth_value(self, b: NDArray) -> float:
        return -self._lik(b)

    def smooth(self, b: NDArray) -> tuple[float, NDArray]:
        value, grad = self._lik.value_and_gradient(b)
        return -value, -grad


class ReverseRiskSetObjective(_PenalizedObjective):
    """Negative backward-risk-set log-likelihood, no penalty."""

    def __init__(self, time: NDArray, X: NDArray) -> None:
        self._lik = ReverseRiskSetLikelihood(time, X)
        self._l1 = np.zeros(X.shape[1], dtype=np.float64)

    def smooth(self, b: NDArray) -> tuple[float, NDArray]:
        value, grad = self._lik.value_and_gradient(b)
        return -value, -grad


class AdaptiveLassoObjective(_PenalizedObjective):
    """Single-block adaptive-lasso Cox objective."""

    def __init__(
        self,
        time: NDArray,
        event: NDArray,
        X: NDArray,
        lam: float,
        weights: NDArray,
    ) -> None:
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (X.shape[1],):
            raise ValidationError(
                f"weights: expected shape ({X.shape[1]},), got {weights.shape}"
            )
        self._lik = CoxPartialLikelihood(time, event, X)
        self._n = len(time)
        self._l1 = lam * weights

    def _smooth_value(self, b: NDArray) -> float:
        return -self._lik(b) / self._n

    def smooth(self, b: NDArray) -> tuple[float, NDArray]:
        value, grad = self._lik.value_and_gradient(b)
        return -value / self._n, -grad / self._n


class CooperativeObjective(_PenalizedObjective):
    """Cooperative adaptive-lasso Cox objective over 2 or 3 blocks."""

    def __init__(
        self,
        time: NDArray,
        event: NDArray,
        blocks: Sequence[NDArray],
        lam: float,
        weights: NDArray,
        alpha: float,
        topology: str = "chain",
    ) -> None:
        if len(blocks) not in COOPERATIVE_BLOCK_COUNTS:
            raise BlockCountError(
                f"cooperative fitting requires 2 or 3 feature blocks, "
                f"got {len(blocks)}",
                n_blocks=len(blocks),
                allowed=COOPERATIVE_BLOCK_COUNTS,
            )
        sizes = [Z.shape[1] for Z in blocks]
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (sum(sizes),):
            raise ValidationError(
                f"weights: expected shape ({sum(sizes)},), got {weights.shape}"
            )

        bounds = np.cumsum([0] + sizes)
        self._slices = tuple(slice(bounds[k], bounds[k + 1]) for k in range(len(sizes)))
        self._blocks = tuple(blocks)
        self._liks = tuple(CoxPartialLikelihood(time, event, Z) for Z in blocks)
        self._n = len(time)
        self._alpha = float(alpha)
        self._pairs = cooperation_pairs(len(blocks), topology)
        self._l1 = lam * weights

    @property
    def pairs(self) -> tuple[tuple[int, int], ...]:
        return self._pairs

    def _linear_predictors(self, b: NDArray) -> list[NDArray]:
        return [Z @ b[s] for Z, s in zip(self._blocks, self._slices)]

    def cooperation_term(self, b: NDArray) -> float:
        """α Σ ‖Z_k b_k − Z_l b_l‖² over the configured pairs."""
        eta = self._linear_predictors(np.asarray(b, dtype=np.float64))
        return self._alpha * sum(
            float(np.sum((eta[k] - eta[l]) ** 2)) for k, l in self._pairs
        )

    def _smooth_value(self, b: NDArray) -> float:
        value = -sum(lik(b[s]) for lik, s in zip(self._liks, self._slices)) / self._n
        if self._alpha != 0.0:
            value += self.cooperation_term(b)
        return value

    def smooth(self, b: NDArray) -> tuple[float, NDArray]:
        b = np.asarray(b, dtype=np.float64)
        value = 0.0
        grad = np.zeros_like(b)
        for lik, s in zip(self._liks, self._slices):
            v, g = lik.value_and_gradient(b[s])
            value -= v / self._n
            grad[s] -= g / self._n

        if self._alpha != 0.0:
            eta = self._linear_predictors(b)
            for k, l in self._pairs:
                r = eta[k] - eta[l]
                value += self._alpha * float(np.sum(r ** 2))
                grad[self._slices[k]] += 2.0 * self._alpha * (self._blocks[k].T @ r)
                grad[self._slices[l]] -= 2.0 * self._alpha * (self._blocks[l].T @ r)
        return value, grad


def build_weights(pilot: NDArray, warn_list: list[str]) -> NDArray:
    """Adaptive weights from a pilot, recording a warning if any were capped."""
    weights, capped = adaptive_weights(pilot)
    if capped:
        msg = (
            "Pilot estimate has zero coordinates; their adaptive weights "
            "were capped at the largest finite weight"
        )
        warnings.warn(msg, RuntimeWarning, stacklevel=3)
        warn_list.append(msg)
    return weights
