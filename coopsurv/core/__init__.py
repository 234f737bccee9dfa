"""
Core infrastructure for coopsurv.

Shared abstractions and utilities used by the survival engine.

Key components:
    protocols: Objective, Optimizer protocols
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing
"""

from coopsurv.core.protocols import Objective, Optimizer
from coopsurv.core.result import Result
from coopsurv.core.exceptions import (
    CoopSurvError,
    ValidationError,
    DimensionError,
    BlockCountError,
)

__all__ = [
    # Protocols
    "Objective",
    "Optimizer",
    # Result
    "Result",
    # Exceptions
    "CoopSurvError",
    "ValidationError",
    "DimensionError",
    "BlockCountError",
]
