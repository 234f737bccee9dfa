"""
SurvivalDesign: immutable container for time-to-event data with one or
more co-registered feature blocks.

Wraps time, event indicator and the feature blocks. Validates inputs at
construction time; all downstream code trusts clean data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from coopsurv.core.exceptions import DimensionError, ValidationError
from coopsurv.core.validation import (
    check_2d,
    check_array,
    check_binary,
    check_consistent_length,
    check_finite,
    check_min_samples,
)


@dataclass(frozen=True)
class SurvivalDesign:
    """Immutable survival data container.

    Parameters
    ----------
    time : NDArray
        (n,) time to event or censoring. Non-negative.
    event : NDArray
        (n,) event indicator: 1 = event observed, 0 = censored.
    blocks : tuple of NDArray
        Feature blocks, each (n, p_k), sharing the subject ordering of
        ``time``.
    feature_names : tuple of tuple of str
        Per-block feature names.
    """

    time: NDArray
    event: NDArray
    blocks: tuple[NDArray, ...]
    feature_names: tuple[tuple[str, ...], ...]

    @classmethod
    def for_survival(
        cls,
        time,
        event,
        blocks,
        *,
        feature_names: Sequence[Sequence[str]] | None = None,
    ) -> SurvivalDesign:
        """Create and validate survival data.

        Parameters
        ----------
        time : array-like
            Time to event or censoring.
        event : array-like
            Event indicator (0/1 or bool).
        blocks : array-like or sequence of array-like
            A single (n, p) matrix or a sequence of matrices.
        feature_names : sequence of sequence of str, optional
            One name sequence per block. Defaults to ``b{k}_x{j}``.

        Returns
        -------
        SurvivalDesign

        Raises
        ------
        DimensionError
            If time, event and any block disagree on the subject count.
        ValidationError
            If values are invalid (negative times, non-binary events,
            non-finite features, no blocks).
        """
        time = check_array(time, "time").ravel()
        event = check_array(event, "event").ravel()

        check_min_samples(time, 1, "time")
        check_finite(time, "time")
        check_finite(event, "event")
        check_consistent_length(time, event, names=("time", "event"))

        if np.any(time < 0):
            raise ValidationError("time: must be non-negative")
        check_binary(event, "event")

        if isinstance(blocks, np.ndarray) or not isinstance(blocks, (list, tuple)):
            blocks = [blocks]
        if len(blocks) == 0:
            raise ValidationError("blocks: at least one feature block is required")

        block_arrays = []
        for k, block in enumerate(blocks):
            name = f"blocks[{k}]"
            arr = check_array(block, name)
            if arr.ndim == 1:
                arr = arr.reshape(-1, 1)
            check_2d(arr, name)
            check_finite(arr, name)
            if arr.shape[1] == 0:
                raise DimensionError(f"{name}: must have at least one feature column")
            block_arrays.append(arr)

        check_consistent_length(
            time, *block_arrays,
            names=("time",) + tuple(f"blocks[{k}]" for k in range(len(block_arrays))),
        )

        names = cls._resolve_names(feature_names, block_arrays)

        return cls(
            time=time,
            event=event,
            blocks=tuple(block_arrays),
            feature_names=names,
        )

    @staticmethod
    def _resolve_names(feature_names, block_arrays) -> tuple[tuple[str, ...], ...]:
        if feature_names is None:
            return tuple(
                tuple(f"b{k + 1}_x{j + 1}" for j in range(arr.shape[1]))
                for k, arr in enumerate(block_arrays)
            )
        if len(feature_names) != len(block_arrays):
            raise DimensionError(
                f"feature_names: expected {len(block_arrays)} name lists "
                f"(one per block), got {len(feature_names)}"
            )
        resolved = []
        for k, (names, arr) in enumerate(zip(feature_names, block_arrays)):
            names = tuple(str(s) for s in names)
            if len(names) != arr.shape[1]:
                raise DimensionError(
                    f"feature_names[{k}]: expected {arr.shape[1]} names, "
                    f"got {len(names)}"
                )
            resolved.append(names)
        return tuple(resolved)

    def subset(self, indices) -> SurvivalDesign:
        """Rows ``indices`` of every array, in the given order."""
        idx = np.asarray(indices, dtype=np.intp)
        return SurvivalDesign(
            time=self.time[idx],
            event=self.event[idx],
            blocks=tuple(block[idx] for block in self.blocks),
            feature_names=self.feature_names,
        )

    @property
    def n(self) -> int:
        """Number of subjects."""
        return len(self.time)

    @property
    def n_events(self) -> int:
        """Number of observed events."""
        return int(np.sum(self.event))

    @property
    def n_blocks(self) -> int:
        return len(self.blocks)

    @property
    def block_sizes(self) -> tuple[int, ...]:
        """Feature count of each block, in block order."""
        return tuple(block.shape[1] for block in self.blocks)

    @property
    def p(self) -> int:
        """Total number of features over all blocks."""
        return sum(self.block_sizes)

    @property
    def X(self) -> NDArray:
        """(n, p) column concatenation of all blocks."""
        if len(self.blocks) == 1:
            return self.blocks[0]
        return np.hstack(self.blocks)

    @property
    def all_feature_names(self) -> tuple[str, ...]:
        return tuple(name for names in self.feature_names for name in names)


def stack_blocks(blocks, block_sizes: Sequence[int], name: str = "new_blocks") -> NDArray:
    """Validate query blocks against training block sizes and concatenate.

    Parameters
    ----------
    blocks : array-like or sequence of array-like
        Query feature blocks (any number of rows).
    block_sizes : sequence of int
        Feature count of each training block.

    Returns
    -------
    NDArray
        (m, sum(block_sizes)) concatenated matrix.
    """
    if isinstance(blocks, np.ndarray) or not isinstance(blocks, (list, tuple)):
        blocks = [blocks]
    if len(blocks) != len(block_sizes):
        raise DimensionError(
            f"{name}: expected {len(block_sizes)} blocks, got {len(blocks)}"
        )
    arrays = []
    for k, (block, p_k) in enumerate(zip(blocks, block_sizes)):
        arr = check_array(block, f"{name}[{k}]")
        if arr.ndim == 1:
            arr = arr.reshape(1, -1) if p_k > 1 else arr.reshape(-1, 1)
        check_2d(arr, f"{name}[{k}]")
        check_finite(arr, f"{name}[{k}]")
        if arr.shape[1] != p_k:
            raise DimensionError(
                f"{name}[{k}]: expected {p_k} columns, got {arr.shape[1]}"
            )
        arrays.append(arr)
    check_consistent_length(
        *arrays, names=tuple(f"{name}[{k}]" for k in range(len(arrays)))
    )
    return arrays[0] if len(arrays) == 1 else np.hstack(arrays)
