"""
Minimization strategies for pilot and penalized Cox objectives.

SimulatedAnnealing (default):
    Metropolis annealing with Gaussian proposals, the scheme of
    Bélisle (1992) as used by R's optim(method="SANN"):

        T_k   = temp / log(k + e − 1),  held for tmax proposals
        x'    = x + (T_k / temp) · N(0, I)
        accept if Δf ≤ 0 or U < exp(−Δf / T_k)

    The budget counts objective evaluations and the best point ever
    visited is returned. Non-finite values count as 1e35.

ScipyMinimizer:
    Derivative-free local search through scipy.optimize.minimize
    (Powell or Nelder-Mead), started from the same random point.

ProximalGradient:
    ISTA on smooth(b) + Σ w_j |b_j| with backtracking line search.
    The objective is convex for α ≥ 0, so this gives a reference
    solution with exact zeros; it starts from b = 0 and ignores rng.

None of these raise on non-convergence.

References:
    Bélisle, C. J. P. (1992). Convergence theorems for a class of simulated
        annealing algorithms on R^d. J. Applied Probability, 29, 885-895.
    Beck, A., & Teboulle, M. (2009). A fast iterative shrinkage-thresholding
        algorithm for linear inverse problems. SIAM J. Imaging Sci., 2(1).
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray
from scipy import optimize

from coopsurv.core.exceptions import ValidationError
from coopsurv.core.protocols import Objective, Optimizer
from coopsurv.survival._common import AnnealingSchedule, BIG_OBJECTIVE, OptimizerResult

_E1 = math.e - 1.0


def _finite_or_big(value: float) -> float:
    return value if np.isfinite(value) else BIG_OBJECTIVE


class SimulatedAnnealing:
    """Budgeted simulated annealing, the default strategy."""

    def __init__(self, schedule: AnnealingSchedule | None = None) -> None:
        self.schedule = schedule if schedule is not None else AnnealingSchedule()
        if self.schedule.temp <= 0:
            raise ValidationError(f"temp must be > 0, got {self.schedule.temp}")
        if self.schedule.tmax < 1:
            raise ValidationError(f"tmax must be >= 1, got {self.schedule.tmax}")

    @property
    def name(self) -> str:
        return 'sann'

    def minimize(
        self,
        objective: Objective,
        x0: NDArray,
        maxit: int,
        rng: np.random.Generator,
    ) -> OptimizerResult:
        temp = self.schedule.temp
        tmax = self.schedule.tmax

        x = np.array(x0, dtype=np.float64)
        y = _finite_or_big(float(objective(x)))
        best_x, best_y = x.copy(), y
        n_eval = 1

        if x.size == 0:
            return OptimizerResult(x=best_x, fun=best_y, n_evaluations=n_eval, converged=True)

        scale = 1.0 / temp
        its = 1
        while its < maxit:
            t = temp / math.log(its + _E1)
            k = 1
            while k <= tmax and its < maxit:
                x_try = x + scale * t * rng.standard_normal(x.size)
                y_try = _finite_or_big(float(objective(x_try)))
                n_eval += 1
                dy = y_try - y
                if dy <= 0.0 or rng.random() < math.exp(-dy / t):
                    x, y = x_try, y_try
                    if y <= best_y:
                        best_x, best_y = x.copy(), y
                its += 1
                k += 1

        return OptimizerResult(x=best_x, fun=best_y, n_evaluations=n_eval, converged=False)

    def __repr__(self) -> str:
        return f"SimulatedAnnealing(temp={self.schedule.temp}, tmax={self.schedule.tmax})"


class ScipyMinimizer:
    """Derivative-free local search via scipy.optimize.minimize."""

    _METHODS = ("Powell", "Nelder-Mead")

    def __init__(self, method: str = "Powell") -> None:
        if method not in self._METHODS:
            raise ValidationError(
                f"method must be 'Powell' or 'Nelder-Mead', got {method!r}"
            )
        self.method = method

    @property
    def name(self) -> str:
        return f"scipy_{self.method.lower()}"

    def minimize(
        self,
        objective: Objective,
        x0: NDArray,
        maxit: int,
        rng: np.random.Generator,
    ) -> OptimizerResult:
        def fn(b):
            return _finite_or_big(float(objective(b)))

        res = optimize.minimize(
            fn,
            np.asarray(x0, dtype=np.float64),
            method=self.method,
            options={'maxiter': maxit, 'maxfev': maxit},
        )
        return OptimizerResult(
            x=np.asarray(res.x, dtype=np.float64),
            fun=float(res.fun),
            n_evaluations=int(res.nfev),
            converged=bool(res.success),
        )

    def __repr__(self) -> str:
        return f"ScipyMinimizer(method={self.method!r})"


class ProximalGradient:
    """Proximal gradient descent for smooth + weighted-L1 objectives."""

    def __init__(
        self,
        tol: float = 1e-8,
        step: float = 1.0,
        shrink: float = 0.5,
        min_step: float = 1e-14,
    ) -> None:
        if not 0.0 < shrink < 1.0:
            raise ValidationError(f"shrink must be in (0, 1), got {shrink}")
        if step <= 0:
            raise ValidationError(f"step must be > 0, got {step}")
        self.tol = tol
        self.step = step
        self.shrink = shrink
        self.min_step = min_step

    @property
    def name(self) -> str:
        return 'proximal_gradient'

    @staticmethod
    def _soft_threshold(z: NDArray, thresh: NDArray) -> NDArray:
        return np.sign(z) * np.maximum(np.abs(z) - thresh, 0.0)

    def minimize(
        self,
        objective: Objective,
        x0: NDArray,
        maxit: int,
        rng: np.random.Generator,
    ) -> OptimizerResult:
        w = objective.l1_weights
        x = np.zeros(objective.dim, dtype=np.float64)
        f, g = objective.smooth(x)
        n_eval = 1
        step = self.step
        converged = False

        for _ in range(max(1, maxit)):
            # Backtracking: shrink until the quadratic upper bound holds
            while True:
                x_new = self._soft_threshold(x - step * g, step * w)
                f_new, g_new = objective.smooth(x_new)
                n_eval += 1
                d = x_new - x
                bound = f + float(g @ d) + float(d @ d) / (2.0 * step)
                if np.isfinite(f_new) and f_new <= bound + 1e-12 * abs(bound):
                    break
                step *= self.shrink
                if step < self.min_step:
                    break

            if step < self.min_step:
                break

            change = float(np.max(np.abs(d))) if d.size else 0.0
            x, f, g = x_new, f_new, g_new
            if change < self.tol:
                converged = True
                break

        return OptimizerResult(
            x=x,
            fun=float(objective(x)),
            n_evaluations=n_eval,
            converged=converged,
        )

    def __repr__(self) -> str:
        return f"ProximalGradient(tol={self.tol})"


_REGISTRY = {
    'sann': SimulatedAnnealing,
    'powell': lambda: ScipyMinimizer("Powell"),
    'nelder-mead': lambda: ScipyMinimizer("Nelder-Mead"),
    'proximal': ProximalGradient,
}


def get_optimizer(optimizer: str | Optimizer | None) -> Optimizer:
    """Resolve an optimizer name or instance (None → SimulatedAnnealing)."""
    if optimizer is None:
        return SimulatedAnnealing()
    if isinstance(optimizer, str):
        key = optimizer.lower()
        if key not in _REGISTRY:
            raise ValidationError(
                f"Unknown optimizer {optimizer!r}. "
                f"Choose from {sorted(_REGISTRY)} or pass an Optimizer instance."
            )
        return _REGISTRY[key]()
    if not isinstance(optimizer, Optimizer):
        raise ValidationError(
            f"optimizer must provide name and minimize(), got {type(optimizer).__name__}"
        )
    return optimizer


def starting_point(dim: int, rng: np.random.Generator) -> NDArray:
    """Uniform(0, 1) initial coefficients."""
    return rng.uniform(0.0, 1.0, size=dim)


def normalize_coefficients(b: NDArray) -> tuple[NDArray, bool]:
    """Rescale to unit Euclidean norm.

    Returns (b, False) unchanged when the norm is zero or not finite.
    """
    norm = float(np.sqrt(np.sum(b ** 2)))
    if norm == 0.0 or not np.isfinite(norm):
        return b, False
    return b / norm, True
