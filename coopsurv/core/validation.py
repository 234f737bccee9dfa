"""
Input validators for survival data and hyperparameters.

Each validator checks one property and raises on the first violation;
nothing is silently repaired. Messages start with the offending
parameter name (``time``, ``event``, ``blocks[1]``, ``lam`` ...) so the
caller can tell which argument to fix.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from coopsurv.core.exceptions import ValidationError, DimensionError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Convert an array-like to float64.

    Booleans (event flags) and any numeric dtype are accepted; strings,
    objects and ragged inputs are not.

    Raises:
        ValidationError: If the input is not numeric
    """
    try:
        arr = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if arr.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )
    if arr.dtype != np.bool_ and not np.issubdtype(arr.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {arr.dtype}, expected numeric data"
        )
    return arr.astype(np.float64)


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """Reject NaN and Inf, reporting how many of each were found."""
    bad = ~np.isfinite(array)
    if bad.any():
        n_nan = int(np.sum(np.isnan(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {int(bad.sum()) - n_nan} Inf)"
        )


def check_2d(array: NDArray[np.floating[Any]], name: str) -> None:
    """Feature blocks must be (n, p) matrices."""
    if array.ndim != 2:
        raise DimensionError(
            f"{name}: expected 2D array, got {array.ndim}D with shape {array.shape}"
        )


def check_consistent_length(
    *arrays: NDArray[np.floating[Any]],
    names: tuple[str, ...]
) -> None:
    """
    Every array must describe the same subjects (same first dimension).

    Raises:
        ValueError: If ``names`` does not name every array
        DimensionError: On a row-count mismatch, listing all lengths
    """
    if len(arrays) != len(names):
        raise ValueError(
            f"Number of arrays ({len(arrays)}) must match number of names ({len(names)})"
        )
    lengths = [arr.shape[0] for arr in arrays]
    if len(set(lengths)) > 1:
        details = ", ".join(f"{nm}={length}" for nm, length in zip(names, lengths))
        raise DimensionError(f"Inconsistent lengths: {details}")


def check_min_samples(array: NDArray[np.floating[Any]], min_samples: int, name: str) -> None:
    n = array.shape[0]
    if n < min_samples:
        raise ValidationError(
            f"{name}: requires at least {min_samples} samples, got {n}"
        )


def check_binary(array: NDArray[np.floating[Any]], name: str) -> None:
    """Event indicators may only hold 0 (censored) and 1 (event)."""
    unique = np.unique(array)
    if not np.all(np.isin(unique, [0.0, 1.0])):
        raise ValidationError(
            f"{name}: must contain only 0 and 1, got unique values: {unique}"
        )


def check_positive(value: float, name: str, *, allow_zero: bool = False) -> None:
    """
    Scalar hyperparameters (lam, alpha, hazard ratios) must be finite and
    positive, or non-negative with ``allow_zero``.
    """
    if not np.isfinite(value):
        raise ValidationError(f"{name}: must be finite, got {value}")
    if allow_zero:
        if value < 0:
            raise ValidationError(f"{name}: must be >= 0, got {value}")
    elif value <= 0:
        raise ValidationError(f"{name}: must be > 0, got {value}")
