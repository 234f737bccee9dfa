"""
Penalized and cooperative Cox survival regression.

Public API:
    partial_loglik(...) -> float
    baseline_hazard(...) -> BaselineHazardSolution
    coxlasso(...) -> PenalizedCoxSolution
    cooplasso(...) -> PenalizedCoxSolution
    reverse_cox(...) -> PenalizedCoxSolution
    cv_cooplasso(...) -> CrossValSolution
    train_cooplearning(...) -> CoopTrainSolution
    test_cooplearning(...) -> CoopTestSolution
    harrell_cindex(...) -> float
    simulate_cohort(...), simulate_multiomics(...) -> SimulatedCohort
"""

from coopsurv.survival.solvers import (
    partial_loglik,
    baseline_hazard,
    coxlasso,
    cooplasso,
    cv_cooplasso,
    reverse_cox,
)
from coopsurv.survival._workflow import train_cooplearning, test_cooplearning
from coopsurv.survival._metrics import harrell_cindex
from coopsurv.survival._optimizers import (
    SimulatedAnnealing,
    ScipyMinimizer,
    ProximalGradient,
)
from coopsurv.survival._common import AnnealingSchedule, DEFAULT_LAMBDA_GRID
from coopsurv.survival.datasets import (
    SimulatedCohort,
    simulate_cohort,
    simulate_multiomics,
)
from coopsurv.survival.design import SurvivalDesign
from coopsurv.survival.solution import (
    BaselineHazardSolution,
    CoopTestSolution,
    CoopTrainSolution,
    CrossValSolution,
    PenalizedCoxSolution,
)

__all__ = [
    # Fitting
    "partial_loglik",
    "baseline_hazard",
    "coxlasso",
    "cooplasso",
    "cv_cooplasso",
    "reverse_cox",
    "train_cooplearning",
    "test_cooplearning",
    "harrell_cindex",
    # Optimizers
    "SimulatedAnnealing",
    "ScipyMinimizer",
    "ProximalGradient",
    "AnnealingSchedule",
    "DEFAULT_LAMBDA_GRID",
    # Data
    "SurvivalDesign",
    "SimulatedCohort",
    "simulate_cohort",
    "simulate_multiomics",
    # Solutions
    "BaselineHazardSolution",
    "PenalizedCoxSolution",
    "CrossValSolution",
    "CoopTrainSolution",
    "CoopTestSolution",
]
