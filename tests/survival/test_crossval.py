"""
Tests for cross-validated lambda selection.

Validates:
    - Fold chunks: sizes, disjointness, never-validated leftovers
    - Routing (one block -> coxlasso, two or three -> cooplasso)
    - Selection is the first minimizer of the fold-averaged criterion
    - Reproducibility for a fixed seed
    - Undefined metrics and predictions are non-fatal
    - Input validation
"""

import logging

import numpy as np
import pytest

from coopsurv.core.exceptions import BlockCountError, CoopSurvError, ValidationError
from coopsurv.survival import CrossValSolution, cv_cooplasso
from coopsurv.survival._crossval import fold_chunks, predict_at_own_time
from coopsurv.survival._metrics import mean_squared_error


@pytest.fixture
def cv_fit(two_block_cohort):
    c = two_block_cohort
    return cv_cooplasso(
        c.time, c.event, list(c.blocks),
        lam_grid=(0.1, 0.5, 0.9), folds=3, maxit=20, seed=4,
    )


class TestFoldChunks:

    def test_uneven_split(self):
        chunks, leftover = fold_chunks(23, 5, np.random.default_rng(0))
        assert len(chunks) == 5
        assert all(len(c) == 4 for c in chunks)
        assert len(leftover) == 3
        everything = np.concatenate(chunks + (leftover,))
        np.testing.assert_array_equal(np.sort(everything), np.arange(23))

    def test_indices_in_range(self):
        chunks, _ = fold_chunks(23, 5, np.random.default_rng(1))
        for c in chunks:
            assert np.all((c >= 0) & (c < 23))

    def test_one_subject_per_fold(self):
        chunks, leftover = fold_chunks(6, 6, np.random.default_rng(2))
        assert all(len(c) == 1 for c in chunks)
        assert len(leftover) == 0

    def test_deterministic(self):
        a, _ = fold_chunks(30, 4, np.random.default_rng(5))
        b, _ = fold_chunks(30, 4, np.random.default_rng(5))
        for x, y in zip(a, b):
            np.testing.assert_array_equal(x, y)


class TestPredictAtOwnTime:

    def test_lookup(self):
        grid = np.array([1.0, 2.0, 4.0])
        survival = np.array([[1.0, 0.9, 0.5], [1.0, 0.8, 0.3]])
        np.testing.assert_allclose(
            predict_at_own_time(grid, survival, np.array([2.1, 10.0])), [0.9, 0.3]
        )

    def test_empty_grid_is_nan(self):
        out = predict_at_own_time(np.array([]), np.zeros((2, 0)), np.array([1.0, 2.0]))
        assert np.all(np.isnan(out))


class TestCrossValidate:

    def test_tables_shape(self, cv_fit):
        assert isinstance(cv_fit, CrossValSolution)
        assert set(cv_fit.tables) == {'mae', 'auc', 'cindex', 'mse'}
        for table in cv_fit.tables.values():
            assert table.shape == (3, 3)
        assert cv_fit.n_unvalidated == 1

    def test_best_is_first_minimizer(self, cv_fit):
        means = cv_fit.means['mse']
        assert cv_fit.best_index == int(np.nanargmin(means))
        assert cv_fit.best_lam == cv_fit.lam_grid[cv_fit.best_index]
        np.testing.assert_allclose(means, np.nanmean(cv_fit.tables['mse'], axis=0))

    def test_cooperative_routing(self, cv_fit):
        assert cv_fit.info['method'] == 'cv_cooplasso'
        assert cv_fit.info['n_fits'] == 9

    def test_single_block_routing(self, small_survival_data):
        time, event, X = small_survival_data
        sol = cv_cooplasso(time, event, X, lam_grid=(0.2, 0.4), folds=3, maxit=10, seed=0)
        assert sol.info['method'] == 'cv_coxlasso'
        assert sol.info['topology'] is None

    def test_same_seed_same_tables(self, two_block_cohort):
        c = two_block_cohort
        kw = dict(lam_grid=(0.2, 0.6), folds=2, maxit=15, seed=21)
        a = cv_cooplasso(c.time, c.event, list(c.blocks), **kw)
        b = cv_cooplasso(c.time, c.event, list(c.blocks), **kw)
        np.testing.assert_array_equal(a.tables['mse'], b.tables['mse'])
        assert a.best_lam == b.best_lam

    def test_custom_metrics(self, small_survival_data):
        time, event, X = small_survival_data
        metrics = {
            'mse': mean_squared_error,
            'neg_mse': lambda e, p: -mean_squared_error(e, p),
        }
        sol = cv_cooplasso(
            time, event, X, lam_grid=(0.2, 0.4, 0.8), folds=3, maxit=10,
            metrics=metrics, criterion='neg_mse', seed=0,
        )
        assert set(sol.tables) == {'mse', 'neg_mse'}
        assert sol.best_index == int(np.argmin(sol.means['neg_mse']))

    def test_summary_marks_selection(self, cv_fit):
        text = cv_fit.summary()
        assert "Call: cv_cooplasso()" in text
        assert "*" in text
        assert "min mse" in text

    def test_logs_progress(self, two_block_cohort, caplog):
        c = two_block_cohort
        with caplog.at_level(logging.INFO, logger="coopsurv"):
            cv_cooplasso(c.time, c.event, list(c.blocks), lam_grid=(0.5,), folds=2, maxit=5, seed=0)
        assert "fold 1/2" in caplog.text
        assert "selected lambda" in caplog.text


class TestUndefinedValues:

    def test_single_class_auc_is_non_fatal(self, rng):
        time = np.arange(1.0, 21.0)
        event = np.ones(20)
        X = rng.standard_normal((20, 2))
        with pytest.warns(RuntimeWarning, match="Metric 'auc' undefined"):
            sol = cv_cooplasso(time, event, X, lam_grid=(0.3, 0.6), folds=4, maxit=10, seed=0)
        assert np.all(np.isnan(sol.means['auc']))
        assert np.all(np.isfinite(sol.means['mse']))

    def test_all_nan_criterion_raises(self, rng):
        time = np.arange(1.0, 21.0)
        event = np.ones(20)
        X = rng.standard_normal((20, 2))
        with pytest.warns(RuntimeWarning):
            with pytest.raises(CoopSurvError, match="undefined for every lambda"):
                cv_cooplasso(time, event, X, lam_grid=(0.3,), folds=4, maxit=10,
                             criterion='auc', seed=0)

    def test_empty_grid_predictions_scored_as_zero(self, rng):
        time = np.arange(1.0, 11.0)
        event = np.zeros(10)
        event[4] = 1.0
        X = rng.standard_normal((10, 2))
        with pytest.warns(RuntimeWarning, match="scored as 0"):
            sol = cv_cooplasso(time, event, X, lam_grid=(0.5,), folds=2, maxit=10, seed=0)
        assert any("scored as 0" in w for w in sol.warnings)
        assert any("time grid is empty" in w for w in sol.warnings)


class TestValidation:

    @pytest.mark.parametrize("folds", [1, 13, 2.5])
    def test_folds_range(self, small_survival_data, folds):
        time, event, X = small_survival_data
        with pytest.raises(ValidationError, match="folds"):
            cv_cooplasso(time, event, X, folds=folds)

    def test_empty_lambda_grid(self, small_survival_data):
        time, event, X = small_survival_data
        with pytest.raises(ValidationError, match="lam_grid"):
            cv_cooplasso(time, event, X, lam_grid=())

    def test_non_positive_lambda(self, small_survival_data):
        time, event, X = small_survival_data
        with pytest.raises(ValidationError, match="lam_grid"):
            cv_cooplasso(time, event, X, lam_grid=(0.1, 0.0))

    def test_unknown_criterion(self, small_survival_data):
        time, event, X = small_survival_data
        with pytest.raises(ValidationError, match="criterion"):
            cv_cooplasso(time, event, X, lam_grid=(0.1,), folds=2, maxit=5, criterion='brier')

    def test_four_blocks(self, rng):
        blocks = [rng.standard_normal((12, 1)) for _ in range(4)]
        with pytest.raises(BlockCountError):
            cv_cooplasso(np.arange(1.0, 13.0), np.ones(12), blocks)
