"""
Solution wrappers for penalized survival results.

Each Solution wraps a Result[Params] and exposes user-friendly properties
with summary() methods.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from coopsurv.core.result import Result
from coopsurv.survival._baseline import nearest_time_index, survival_surface
from coopsurv.survival._common import (
    BaselineHazardParams,
    CoopTestParams,
    CoopTrainParams,
    CrossValParams,
    PenalizedCoxParams,
)
from coopsurv.survival.design import stack_blocks


class BaselineHazardSolution:
    """Covariate-free Cox baseline hazard."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result[BaselineHazardParams]) -> None:
        self._result = _result

    @property
    def time(self):
        """Distinct event times."""
        return self._result.params.time

    @property
    def cumulative_hazard(self):
        return self._result.params.cumulative_hazard

    @property
    def n_risk(self):
        return self._result.params.n_risk

    @property
    def n_events(self):
        return self._result.params.n_events

    @property
    def grid(self):
        """time[:-1], the grid the increments live on."""
        return self._result.params.grid

    @property
    def increments(self):
        return self._result.params.increments

    @property
    def ties(self) -> str:
        return self._result.params.ties

    @property
    def timing(self):
        return self._result.timing

    def __repr__(self) -> str:
        return (
            f"BaselineHazardSolution(event_times={len(self.time)}, "
            f"ties={self.ties!r})"
        )


class PenalizedCoxSolution:
    """Adaptive-lasso or cooperative Cox fit with its prediction surface."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result[PenalizedCoxParams]) -> None:
        self._result = _result

    # -- Properties delegating to PenalizedCoxParams --

    @property
    def coefficients(self):
        return self._result.params.coefficients

    @property
    def pilot(self):
        """Pilot estimate used for the adaptive weights."""
        return self._result.params.pilot

    @property
    def adaptive_weights(self):
        return self._result.params.adaptive_weights

    @property
    def block_sizes(self) -> tuple[int, ...]:
        return self._result.params.block_sizes

    @property
    def feature_names(self) -> tuple[str, ...]:
        return self._result.params.feature_names

    @property
    def time_grid(self):
        return self._result.params.time_grid

    @property
    def hazard(self):
        """(n_query, m) hazard curves."""
        return self._result.params.hazard

    @property
    def survival(self):
        """(n_query, m) survival curves."""
        return self._result.params.survival

    @property
    def objective_value(self) -> float:
        return self._result.params.objective_value

    @property
    def lam(self) -> float:
        return self._result.params.lam

    @property
    def alpha(self) -> float:
        return self._result.params.alpha

    @property
    def topology(self) -> str | None:
        return self._result.params.topology

    @property
    def normalized(self) -> bool:
        return self._result.params.normalized

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def n_events(self) -> int:
        return self._result.params.n_events

    @property
    def method(self) -> str:
        return self._result.info['method']

    @property
    def optimizer(self) -> str:
        return self._result.info['optimizer']

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # -- Derived quantities --

    @property
    def block_coefficients(self) -> tuple[NDArray, ...]:
        """Coefficient sub-vector of each block, in block order."""
        bounds = np.cumsum((0,) + self.block_sizes)
        return tuple(
            self.coefficients[bounds[k]:bounds[k + 1]]
            for k in range(len(self.block_sizes))
        )

    @property
    def selected(self) -> NDArray:
        """Boolean mask of non-zero coefficients."""
        return self.coefficients != 0

    @property
    def selected_features(self) -> tuple[str, ...]:
        return tuple(
            name for name, keep in zip(self.feature_names, self.selected) if keep
        )

    def risk_score(self, blocks) -> NDArray:
        """Linear predictor X @ b for new rows (one matrix per block)."""
        X = stack_blocks(blocks, self.block_sizes)
        return X @ self.coefficients

    def predict(self, blocks) -> tuple[NDArray, NDArray]:
        """Hazard and survival curves on time_grid for new rows."""
        return survival_surface(
            self.time_grid,
            self._result.params.baseline_increments,
            self.risk_score(blocks),
        )

    def predict_survival(self, times, blocks=None) -> NDArray:
        """Survival probabilities at arbitrary times.

        Each requested time is mapped to the nearest grid time (earlier
        grid time on a tie, clamped outside the grid).

        Parameters
        ----------
        times : float or array-like
            Query times.
        blocks : array-like or sequence of array-like, optional
            New rows. Defaults to the query rows of the fit.

        Returns
        -------
        NDArray
            (n_rows, len(times)) survival probabilities.
        """
        idx = nearest_time_index(self.time_grid, times)
        if blocks is None:
            survival = self.survival
        else:
            survival = self.predict(blocks)[1]
        return survival[:, idx]

    def summary(self) -> str:
        """Coefficient table of the fit."""
        lines = []
        lines.append(f"Call: {self.method}()")
        lines.append("")
        lines.append(
            f"  n= {self.n_observations}, "
            f"number of events= {self.n_events}"
        )
        lines.append(
            f"  lambda= {self.lam:.4g}, alpha= {self.alpha:.4g}, "
            f"optimizer= {self.optimizer}"
        )
        if self.topology is not None:
            lines.append(f"  blocks= {len(self.block_sizes)}, topology= {self.topology}")
        lines.append("")

        lines.append(
            f"  {'':>12s}  {'coef':>10s}  {'pilot':>10s}  {'weight':>10s}"
        )
        p = len(self.coefficients)
        show = min(p, 30)
        for i in range(show):
            lines.append(
                f"  {self.feature_names[i]:>12s}  {self.coefficients[i]:10.6f}  "
                f"{self.pilot[i]:10.6f}  {self.adaptive_weights[i]:10.4g}"
            )
        if p > 30:
            lines.append(f"  ... ({p - 30} more coefficients)")

        lines.append("")
        lines.append(f"  Objective= {self.objective_value:.6g}")
        lines.append(f"  Time grid points= {len(self.time_grid)}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"PenalizedCoxSolution(method={self.method!r}, "
            f"p={len(self.coefficients)}, lam={self.lam:.4g}, "
            f"alpha={self.alpha:.4g})"
        )


class CrossValSolution:
    """Cross-validated penalty selection."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result[CrossValParams]) -> None:
        self._result = _result

    @property
    def lam_grid(self):
        return self._result.params.lam_grid

    @property
    def best_lam(self) -> float:
        return self._result.params.best_lam

    @property
    def best_index(self) -> int:
        return self._result.params.best_index

    @property
    def criterion(self) -> str:
        return self._result.params.criterion

    @property
    def tables(self) -> dict:
        """Metric name -> (folds, len(lam_grid)) array."""
        return self._result.params.tables

    @property
    def means(self) -> dict:
        """Metric name -> NaN-aware fold mean per lambda."""
        return self._result.params.means

    @property
    def fold_chunks(self):
        return self._result.params.fold_chunks

    @property
    def n_unvalidated(self) -> int:
        return self._result.params.n_unvalidated

    @property
    def folds(self) -> int:
        return self._result.params.folds

    @property
    def alpha(self) -> float:
        return self._result.params.alpha

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Fold-averaged metrics per lambda."""
        lines = []
        lines.append(f"Call: {self._result.info['method']}()")
        lines.append("")
        lines.append(
            f"  folds= {self.folds}, alpha= {self.alpha:.4g}, "
            f"unvalidated subjects= {self.n_unvalidated}"
        )
        lines.append("")

        names = list(self.means)
        header = f"  {'lambda':>8s}" + "".join(f"  {name:>10s}" for name in names)
        lines.append(header)
        for i, lam in enumerate(self.lam_grid):
            row = f"  {lam:8.4g}" + "".join(
                f"  {self.means[name][i]:10.6f}" for name in names
            )
            if i == self.best_index:
                row += "  *"
            lines.append(row)

        lines.append("")
        lines.append(f"  Selected lambda= {self.best_lam:.4g} (min {self.criterion})")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CrossValSolution(best_lam={self.best_lam:.4g}, "
            f"folds={self.folds}, grid={len(self.lam_grid)})"
        )


class CoopTrainSolution:
    """Cooperative training workflow: selected model, CV and training fit."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result[CoopTrainParams]) -> None:
        self._result = _result

    @property
    def model(self) -> PenalizedCoxSolution:
        return self._result.params.model

    @property
    def cv(self) -> CrossValSolution:
        return self._result.params.cv

    @property
    def coefficients(self):
        return self.model.coefficients

    @property
    def selected_lambda(self) -> float:
        return self._result.params.selected_lambda

    @property
    def selected_features(self) -> tuple[str, ...]:
        return self._result.params.selected_features

    @property
    def risk_scores(self):
        """Training-split risk scores X @ b."""
        return self._result.params.risk_scores

    @property
    def cindex(self) -> float:
        """Harrell's C of the training risk scores."""
        return self._result.params.cindex

    @property
    def train_indices(self):
        return self._result.params.train_indices

    @property
    def valid_indices(self):
        return self._result.params.valid_indices

    @property
    def n_blocks(self) -> int:
        return self._result.params.n_blocks

    @property
    def timing(self):
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        lines = []
        lines.append("Call: train_cooplearning()")
        lines.append("")
        lines.append(
            f"  blocks= {self.n_blocks}, training subjects= {len(self.train_indices)}, "
            f"held out= {len(self.valid_indices)}"
        )
        lines.append(f"  Selected lambda= {self.selected_lambda:.4g}")
        lines.append(f"  Selected features= {len(self.selected_features)}")
        lines.append(f"  Training concordance= {self.cindex:.4f}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CoopTrainSolution(lam={self.selected_lambda:.4g}, "
            f"features={len(self.selected_features)}, "
            f"cindex={self.cindex:.4f})"
        )


class CoopTestSolution:
    """Risk scores of a trained cooperative model on new subjects."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result[CoopTestParams]) -> None:
        self._result = _result

    @property
    def risk_scores(self):
        return self._result.params.risk_scores

    @property
    def cindex(self) -> float:
        return self._result.params.cindex

    @property
    def n_observations(self) -> int:
        return self._result.params.n_observations

    @property
    def timing(self):
        return self._result.timing

    def __repr__(self) -> str:
        return (
            f"CoopTestSolution(n={self.n_observations}, "
            f"cindex={self.cindex:.4f})"
        )
