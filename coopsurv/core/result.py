"""
Generic result container for all coopsurv computations.

The Result class provides a standardized envelope that every fit and
cross-validation sweep returns. Timing, warnings and metadata live in the
envelope; the domain-specific numbers live in the payload.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (optimizer, budgets, seeds)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for penalized survival computations.

    Type Parameters:
        P: The domain-specific parameter payload type

    Attributes:
        params: Domain-specific parameters (coefficients, curves, tables)
        info: Structured metadata (method, optimizer, budgets)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the procedure that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=PenalizedCoxParams(...),
        ...     info={'method': 'cooperative', 'optimizer': 'sann'},
        ...     timing={'total_seconds': 0.5, 'pilot': 0.1, 'penalized': 0.4},
        ...     backend_name='cpu_cooplasso'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
