"""
End-to-end runs on synthetic two-block cohorts.

The proximal optimizer is deterministic and converges, so these tests can
check statistical behaviour (the signal features carry the risk) rather
than only shapes.
"""

import numpy as np
import pytest

from coopsurv.survival import (
    DEFAULT_LAMBDA_GRID,
    cooplasso,
    coxlasso,
    cv_cooplasso,
    harrell_cindex,
    simulate_cohort,
)
from coopsurv.survival._objectives import AdaptiveLassoObjective, CooperativeObjective
from coopsurv.survival._optimizers import ProximalGradient


@pytest.fixture(scope="module")
def cohort():
    return simulate_cohort(100, (20, 20), hazard_ratio=3.0, censoring=0.2, seed=2024)


class TestSyntheticRecovery:

    def test_cooperative_fit_ranks_subjects(self, cohort):
        sol = cooplasso(
            cohort.time, cohort.event, list(cohort.blocks),
            lam=0.05, alpha=0.0, maxit=500, optimizer="proximal", seed=0,
        )
        risk = sol.risk_score(list(cohort.blocks))
        assert harrell_cindex(cohort.time, cohort.event, risk) > 0.65

    def test_signal_features_dominate(self, cohort):
        sol = cooplasso(
            cohort.time, cohort.event, list(cohort.blocks),
            lam=0.05, alpha=0.0, maxit=500, optimizer="proximal", seed=0,
        )
        b1, b2 = sol.block_coefficients
        assert np.argmax(np.abs(b1)) == 0
        assert np.argmax(np.abs(b2)) == 0
        assert b1[0] > 0 and b2[0] > 0

    def test_non_signal_coefficients_stay_small(self, cohort):
        sol = cooplasso(
            cohort.time, cohort.event, list(cohort.blocks),
            lam=0.05, alpha=0.0, maxit=500, optimizer="proximal", seed=0,
        )
        b1, b2 = sol.block_coefficients
        signal = np.array([b1[0], b2[0]])
        noise = np.concatenate([b1[1:], b2[1:]])
        assert np.max(np.abs(noise)) < 0.25 * np.min(signal)
        assert np.sum(np.abs(noise)) < np.sum(signal)
        assert np.count_nonzero(noise) <= 10

    def test_single_block_fit_on_concatenation(self, cohort):
        X = np.hstack(cohort.blocks)
        sol = coxlasso(cohort.time, cohort.event, X, lam=0.05, maxit=500,
                       optimizer="proximal", seed=0)
        assert harrell_cindex(cohort.time, cohort.event, X @ sol.coefficients) > 0.65

    def test_annealing_pipeline_runs(self, cohort):
        sol = cooplasso(
            cohort.time, cohort.event, list(cohort.blocks),
            lam=0.5, alpha=0.5, maxit=300, seed=0,
        )
        assert sol.coefficients.shape == (40,)
        assert np.all(np.isfinite(sol.survival))
        assert np.linalg.norm(sol.coefficients) == pytest.approx(1.0)

    def test_cross_validation_sweep(self, cohort):
        cv = cv_cooplasso(
            cohort.time, cohort.event, list(cohort.blocks),
            lam_grid=(0.01, 0.5), folds=4, maxit=200, optimizer="proximal", seed=0,
        )
        assert cv.best_lam in (0.01, 0.5)
        assert np.all(np.isfinite(cv.means['mse']))


# ═══════════════════════════════════════════════════════════════════════
# Penalty selection over the default grid
# ═══════════════════════════════════════════════════════════════════════


def _default_sweep(cohort, seed):
    return cv_cooplasso(
        cohort.time, cohort.event, list(cohort.blocks),
        lam_grid=DEFAULT_LAMBDA_GRID, folds=5, maxit=200,
        optimizer="proximal", seed=seed,
    )


@pytest.fixture(scope="module")
def sweep(cohort):
    return _default_sweep(cohort, 17)


class TestDefaultGridSelection:

    def test_every_subject_validated(self, sweep):
        assert sweep.folds == 5
        assert sweep.n_unvalidated == 0
        assert len(sweep.fold_chunks) == 5
        assert sweep.tables['mse'].shape == (5, len(DEFAULT_LAMBDA_GRID))

    def test_best_lambda_on_grid(self, sweep):
        np.testing.assert_allclose(sweep.lam_grid, DEFAULT_LAMBDA_GRID)
        assert sweep.best_lam in DEFAULT_LAMBDA_GRID
        assert sweep.best_lam == sweep.lam_grid[sweep.best_index]

    def test_same_seed_same_selection(self, cohort, sweep):
        again = _default_sweep(cohort, 17)
        assert again.best_lam == sweep.best_lam
        for name, table in sweep.tables.items():
            np.testing.assert_array_equal(again.tables[name], table)
        for a, b in zip(again.fold_chunks, sweep.fold_chunks):
            np.testing.assert_array_equal(a, b)


# ═══════════════════════════════════════════════════════════════════════
# alpha = 0: cooperative fit splits into independent block fits
# ═══════════════════════════════════════════════════════════════════════


class TestUncoupledBlocks:

    @pytest.fixture
    def small_cohort(self):
        return simulate_cohort(80, (3, 2), hazard_ratio=2.0, censoring=0.2, seed=31)

    def test_matches_per_block_fits(self, small_cohort):
        c = small_cohort
        Z1, Z2 = c.blocks
        weights = np.array([1.0, 2.0, 1.5, 0.8, 3.0])
        opt = ProximalGradient(tol=1e-10)
        rng = np.random.default_rng(0)

        joint = opt.minimize(
            CooperativeObjective(c.time, c.event, [Z1, Z2], 0.05, weights, 0.0),
            np.zeros(5), 20000, rng,
        )
        first = opt.minimize(
            AdaptiveLassoObjective(c.time, c.event, Z1, 0.05, weights[:3]),
            np.zeros(3), 20000, rng,
        )
        second = opt.minimize(
            AdaptiveLassoObjective(c.time, c.event, Z2, 0.05, weights[3:]),
            np.zeros(2), 20000, rng,
        )

        np.testing.assert_allclose(
            joint.x, np.concatenate([first.x, second.x]), atol=1e-5
        )
        assert joint.fun == pytest.approx(first.fun + second.fun, abs=1e-7)
