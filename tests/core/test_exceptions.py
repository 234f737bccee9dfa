"""
Tests for the coopsurv exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via CoopSurvError)
    - ValidationError doubles as a builtin ValueError
    - Diagnostic attributes on BlockCountError
"""

import pytest

from coopsurv.core.exceptions import (
    BlockCountError,
    CoopSurvError,
    DimensionError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via CoopSurvError."""

    def test_validation_error_is_coopsurv_error(self):
        with pytest.raises(CoopSurvError):
            raise ValidationError("bad input")

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            raise ValidationError("bad input")

    def test_dimension_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise DimensionError("wrong shape")

    def test_block_count_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise BlockCountError("four blocks", n_blocks=4, allowed=(2, 3))

    def test_base_is_not_value_error(self):
        assert not isinstance(CoopSurvError("x"), ValueError)


# ═══════════════════════════════════════════════════════════════════════
# Messages and attributes
# ═══════════════════════════════════════════════════════════════════════


class TestMessages:

    def test_validation_error_message(self):
        err = ValidationError("lam: must be > 0, got -1")
        assert "must be > 0" in str(err)

    def test_dimension_error_message(self):
        err = DimensionError("Inconsistent lengths: time=10, blocks[0]=9")
        assert "time=10" in str(err)


class TestBlockCountError:
    """BlockCountError carries the offending and allowed block counts."""

    def test_all_attributes(self):
        err = BlockCountError(
            "cooperative fitting requires 2 or 3 feature blocks, got 1",
            n_blocks=1,
            allowed=(2, 3),
        )
        assert "got 1" in str(err)
        assert err.n_blocks == 1
        assert err.allowed == (2, 3)

    def test_defaults_are_none(self):
        err = BlockCountError("wrong block count")
        assert err.n_blocks is None
        assert err.allowed is None

    def test_catchable_with_attributes(self):
        with pytest.raises(BlockCountError) as exc_info:
            raise BlockCountError("too many", n_blocks=5, allowed=(1, 2, 3))
        assert exc_info.value.n_blocks == 5
        assert 3 in exc_info.value.allowed
