"""
Tests for SurvivalDesign and block stacking.
"""

import numpy as np
import pytest

from coopsurv.core.exceptions import DimensionError, ValidationError
from coopsurv.survival import SurvivalDesign
from coopsurv.survival.design import stack_blocks


class TestForSurvival:

    def test_single_matrix_is_one_block(self, small_survival_data):
        time, event, X = small_survival_data
        design = SurvivalDesign.for_survival(time, event, X)
        assert design.n_blocks == 1
        assert design.block_sizes == (2,)
        assert design.n == 12
        assert design.n_events == 9

    def test_multiple_blocks(self, rng):
        blocks = [rng.standard_normal((5, 2)), rng.standard_normal((5, 3))]
        design = SurvivalDesign.for_survival(np.arange(1.0, 6.0), np.ones(5), blocks)
        assert design.block_sizes == (2, 3)
        assert design.p == 5
        assert design.X.shape == (5, 5)
        assert design.all_feature_names == ("b1_x1", "b1_x2", "b2_x1", "b2_x2", "b2_x3")

    def test_bool_event(self, rng):
        design = SurvivalDesign.for_survival(
            [1.0, 2.0], np.array([True, False]), rng.standard_normal((2, 1))
        )
        np.testing.assert_array_equal(design.event, [1.0, 0.0])

    def test_one_dimensional_block_is_column(self):
        design = SurvivalDesign.for_survival([1.0, 2.0, 3.0], [1, 0, 1], np.array([0.1, 0.2, 0.3]))
        assert design.block_sizes == (1,)

    def test_custom_feature_names(self, rng):
        blocks = [rng.standard_normal((3, 1)), rng.standard_normal((3, 2))]
        design = SurvivalDesign.for_survival(
            [1.0, 2.0, 3.0], [1, 1, 0], blocks, feature_names=[["age"], ["g1", "g2"]]
        )
        assert design.feature_names == (("age",), ("g1", "g2"))

    def test_feature_name_count_mismatch(self, rng):
        with pytest.raises(DimensionError, match="feature_names\\[0\\]"):
            SurvivalDesign.for_survival(
                [1.0, 2.0], [1, 1], rng.standard_normal((2, 2)), feature_names=[["only_one"]]
            )

    def test_empty_block_list(self):
        with pytest.raises(ValidationError, match="at least one"):
            SurvivalDesign.for_survival([1.0], [1], [])

    def test_zero_column_block(self):
        with pytest.raises(DimensionError, match="at least one feature"):
            SurvivalDesign.for_survival([1.0, 2.0], [1, 1], np.empty((2, 0)))

    def test_immutable(self, small_survival_data):
        design = SurvivalDesign.for_survival(*small_survival_data)
        with pytest.raises(AttributeError):
            design.time = np.zeros(12)


class TestSubset:

    def test_rows_in_given_order(self, rng):
        blocks = [rng.standard_normal((6, 2)), rng.standard_normal((6, 1))]
        design = SurvivalDesign.for_survival(np.arange(1.0, 7.0), np.ones(6), blocks)
        sub = design.subset([4, 0, 2])
        np.testing.assert_array_equal(sub.time, [5.0, 1.0, 3.0])
        np.testing.assert_array_equal(sub.blocks[1], blocks[1][[4, 0, 2]])
        assert sub.feature_names == design.feature_names


class TestStackBlocks:

    def test_concatenates(self, rng):
        a, b = rng.standard_normal((4, 2)), rng.standard_normal((4, 3))
        np.testing.assert_array_equal(stack_blocks([a, b], (2, 3)), np.hstack([a, b]))

    def test_wrong_block_count(self, rng):
        with pytest.raises(DimensionError, match="expected 2 blocks"):
            stack_blocks([rng.standard_normal((4, 2))], (2, 3))

    def test_row_mismatch(self, rng):
        with pytest.raises(DimensionError, match="Inconsistent lengths"):
            stack_blocks([rng.standard_normal((4, 2)), rng.standard_normal((3, 3))], (2, 3))

    def test_single_row_vector(self):
        out = stack_blocks([np.array([1.0, 2.0]), np.array([3.0, 4.0, 5.0])], (2, 3))
        assert out.shape == (1, 5)
