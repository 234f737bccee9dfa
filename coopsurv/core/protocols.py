"""
Core protocols for coopsurv.

These define the structural interfaces that let optimizers and objectives
be swapped independently. We use Protocol (structural typing) rather than
ABC (nominal typing) so a user-supplied optimizer only needs the right
shape, not our base class.

Design Principles:
    - Minimal contracts: an optimizer can only minimize
    - Objectives expose their smooth/non-smooth split for solvers that
      need it; derivative-free solvers just call them
    - Randomness is always passed in, never global
"""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING, runtime_checkable

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from coopsurv.survival._common import OptimizerResult


@runtime_checkable
class Objective(Protocol):
    """
    Scalar objective over a coefficient vector, to be minimized.

    The full value is f(b) = smooth(b) + sum_j l1_weights[j] * |b_j|.
    """

    @property
    def dim(self) -> int:
        """Length of the coefficient vector."""
        ...

    @property
    def l1_weights(self) -> NDArray:
        """(dim,) non-negative weights of the L1 term (zeros if none)."""
        ...

    def __call__(self, b: NDArray) -> float:
        """Full objective value at b."""
        ...

    def smooth(self, b: NDArray) -> tuple[float, NDArray]:
        """Value and gradient of the differentiable part at b."""
        ...


@runtime_checkable
class Optimizer(Protocol):
    """
    Protocol for minimization strategies.

    Optimizers are stateless apart from their settings. They never raise
    on non-convergence; they return the best point found within budget.
    """

    @property
    def name(self) -> str:
        """
        Strategy identifier.

        Examples: 'sann', 'scipy_powell', 'proximal_gradient'
        """
        ...

    def minimize(
        self,
        objective: Objective,
        x0: NDArray,
        maxit: int,
        rng: np.random.Generator,
    ) -> 'OptimizerResult':
        """
        Minimize the objective starting from x0.

        Args:
            objective: Objective to minimize
            x0: Starting point, shape (objective.dim,)
            maxit: Iteration budget
            rng: Random source for any stochastic moves

        Returns:
            OptimizerResult with the best point and its value
        """
        ...
