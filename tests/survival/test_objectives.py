"""
Tests for pilot, adaptive-lasso and cooperative objectives.

Validates:
    - Adaptive weights and their capping rule
    - Chain versus full cooperation pairs
    - alpha=0 decouples the blocks
    - Chain topology never compares blocks 1 and 3
    - Gradients of the smooth part
    - Block-count and weight-shape validation
"""

import warnings

import numpy as np
import pytest

from coopsurv.core.exceptions import BlockCountError, ValidationError
from coopsurv.core.protocols import Objective
from coopsurv.survival._objectives import (
    AdaptiveLassoObjective,
    CooperativeObjective,
    PilotObjective,
    adaptive_weights,
    build_weights,
    cooperation_pairs,
)


@pytest.fixture
def blocks3(three_block_cohort):
    c = three_block_cohort
    return c.time, c.event, c.blocks


class TestAdaptiveWeights:

    def test_inverse_absolute_pilot(self):
        w, capped = adaptive_weights(np.array([0.5, -0.25]))
        np.testing.assert_allclose(w, [2.0, 4.0])
        assert not capped

    def test_zero_pilot_capped_at_largest_finite(self):
        w, capped = adaptive_weights(np.array([0.5, -0.25, 0.0]))
        np.testing.assert_allclose(w, [2.0, 4.0, 4.0])
        assert capped

    def test_all_zero_pilot_gives_unit_weights(self):
        w, capped = adaptive_weights(np.zeros(3))
        np.testing.assert_array_equal(w, np.ones(3))
        assert capped

    def test_build_weights_warns_when_capped(self):
        warn_list = []
        with pytest.warns(RuntimeWarning, match="capped"):
            build_weights(np.array([1.0, 0.0]), warn_list)
        assert len(warn_list) == 1

    def test_build_weights_silent_otherwise(self):
        warn_list = []
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            build_weights(np.array([1.0, 2.0]), warn_list)
        assert warn_list == []


class TestCooperationPairs:

    def test_chain_two_blocks(self):
        assert cooperation_pairs(2, "chain") == ((0, 1),)

    def test_chain_three_blocks(self):
        assert cooperation_pairs(3, "chain") == ((0, 1), (1, 2))

    def test_full_three_blocks(self):
        assert cooperation_pairs(3, "full") == ((0, 1), (0, 2), (1, 2))

    def test_unknown_topology(self):
        with pytest.raises(ValidationError, match="topology"):
            cooperation_pairs(3, "ring")


class TestPilotAndLasso:

    def test_pilot_is_negative_loglik(self, small_survival_data):
        from coopsurv.survival import partial_loglik
        time, event, X = small_survival_data
        b = np.array([0.1, 0.2])
        assert PilotObjective(time, event, X)(b) == pytest.approx(
            -partial_loglik(b, time, event, X)
        )

    def test_lasso_value(self, small_survival_data):
        from coopsurv.survival import partial_loglik
        time, event, X = small_survival_data
        w = np.array([2.0, 0.5])
        b = np.array([0.3, -0.4])
        obj = AdaptiveLassoObjective(time, event, X, 0.7, w)
        expected = -partial_loglik(b, time, event, X) / 12 + 0.7 * (2.0 * 0.3 + 0.5 * 0.4)
        assert obj(b) == pytest.approx(expected)

    def test_implements_objective_protocol(self, small_survival_data):
        time, event, X = small_survival_data
        obj = AdaptiveLassoObjective(time, event, X, 0.5, np.ones(2))
        assert isinstance(obj, Objective)
        assert obj.dim == 2
        np.testing.assert_allclose(obj.l1_weights, [0.5, 0.5])

    def test_weight_shape_mismatch(self, small_survival_data):
        time, event, X = small_survival_data
        with pytest.raises(ValidationError, match="weights"):
            AdaptiveLassoObjective(time, event, X, 0.5, np.ones(3))


class TestCooperative:

    def test_alpha_zero_is_sum_of_block_objectives(self, blocks3):
        time, event, blocks = blocks3
        sizes = [Z.shape[1] for Z in blocks]
        weights = np.linspace(0.5, 2.0, sum(sizes))
        b = np.random.default_rng(3).standard_normal(sum(sizes))

        coop = CooperativeObjective(time, event, blocks, 0.4, weights, 0.0)
        bounds = np.cumsum([0] + sizes)
        separate = sum(
            AdaptiveLassoObjective(
                time, event, Z, 0.4, weights[bounds[k]:bounds[k + 1]]
            )(b[bounds[k]:bounds[k + 1]])
            for k, Z in enumerate(blocks)
        )
        assert coop(b) == pytest.approx(separate)

    def test_cooperation_term_two_blocks(self, two_block_cohort):
        c = two_block_cohort
        b = np.random.default_rng(5).standard_normal(40)
        obj = CooperativeObjective(c.time, c.event, c.blocks, 0.1, np.ones(40), 2.5)
        r = c.blocks[0] @ b[:20] - c.blocks[1] @ b[20:]
        assert obj.cooperation_term(b) == pytest.approx(2.5 * np.sum(r ** 2))

    def _mixed_difference(self, obj, sizes, rng):
        """f(b1+d1, b3+d3) - f(b1+d1, b3) - f(b1, b3+d3) + f(b1, b3)."""
        bounds = np.cumsum([0] + sizes)
        b = rng.standard_normal(sum(sizes))
        d1 = np.zeros_like(b)
        d1[bounds[0]:bounds[1]] = rng.standard_normal(sizes[0])
        d3 = np.zeros_like(b)
        d3[bounds[2]:bounds[3]] = rng.standard_normal(sizes[2])
        f = obj.cooperation_term
        return f(b + d1 + d3) - f(b + d1) - f(b + d3) + f(b)

    def test_chain_never_compares_first_and_last(self, blocks3):
        time, event, blocks = blocks3
        sizes = [Z.shape[1] for Z in blocks]
        obj = CooperativeObjective(time, event, blocks, 0.1, np.ones(sum(sizes)), 1.0, "chain")
        assert obj.pairs == ((0, 1), (1, 2))
        mixed = self._mixed_difference(obj, sizes, np.random.default_rng(8))
        assert mixed == pytest.approx(0.0, abs=1e-8)

    def test_full_topology_couples_first_and_last(self, blocks3):
        time, event, blocks = blocks3
        sizes = [Z.shape[1] for Z in blocks]
        obj = CooperativeObjective(time, event, blocks, 0.1, np.ones(sum(sizes)), 1.0, "full")
        mixed = self._mixed_difference(obj, sizes, np.random.default_rng(8))
        assert abs(mixed) > 1e-6

    def test_smooth_gradient_matches_finite_differences(self, blocks3):
        time, event, blocks = blocks3
        p = sum(Z.shape[1] for Z in blocks)
        obj = CooperativeObjective(time, event, blocks, 0.2, np.ones(p), 0.3, "full")
        b = np.random.default_rng(2).standard_normal(p) * 0.3
        value, grad = obj.smooth(b)
        assert value + 0.2 * np.sum(np.abs(b)) == pytest.approx(obj(b))

        h = 1e-6
        numeric = np.array([
            (obj.smooth(b + h * e)[0] - obj.smooth(b - h * e)[0]) / (2 * h)
            for e in np.eye(p)
        ])
        np.testing.assert_allclose(grad, numeric, rtol=1e-4, atol=1e-6)

    @pytest.mark.parametrize("n_blocks", [1, 4])
    def test_block_count_outside_two_or_three(self, rng, n_blocks):
        time = np.arange(1.0, 11.0)
        event = np.ones(10)
        blocks = [rng.standard_normal((10, 2)) for _ in range(n_blocks)]
        with pytest.raises(BlockCountError) as exc_info:
            CooperativeObjective(time, event, blocks, 0.1, np.ones(2 * n_blocks), 1.0)
        assert exc_info.value.n_blocks == n_blocks
        assert exc_info.value.allowed == (2, 3)
