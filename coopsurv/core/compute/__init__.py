"""
Shared compute infrastructure for coopsurv.

IMPORTANT: This is NOT where the survival algorithms live. Those go in
survival/. This module contains shared numeric infrastructure.

Submodules:
    timing: Execution timing utilities
"""

from coopsurv.core.compute.timing import Timer, timed

__all__ = [
    "Timer",
    "timed",
]
