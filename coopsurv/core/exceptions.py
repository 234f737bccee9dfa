"""
Exception hierarchy for coopsurv.

All exceptions inherit from CoopSurvError to allow catching any
library-specific error.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class CoopSurvError(Exception):
    """Base exception for all coopsurv errors."""
    pass


class ValidationError(CoopSurvError, ValueError):
    """
    Input validation failed.

    Raised when user-provided inputs or hyperparameters fail validation
    checks. Also a ValueError so callers that only know the builtin
    hierarchy still catch it.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when the time vector, event vector and feature blocks do not
    share the same number of subjects, or a block is not a matrix.
    """
    pass


class BlockCountError(ValidationError):
    """
    Wrong number of feature blocks for the requested fitting mode.

    Attributes:
        n_blocks: Number of blocks supplied
        allowed: Block counts the mode accepts
    """

    def __init__(
        self,
        message: str,
        n_blocks: int | None = None,
        allowed: tuple[int, ...] | None = None,
    ):
        super().__init__(message)
        self.n_blocks = n_blocks
        self.allowed = allowed
