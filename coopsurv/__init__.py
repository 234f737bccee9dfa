"""
coopsurv: cooperative penalized Cox regression for multi-block survival data.

Adaptive-lasso Cox models on one feature block, cooperative models that
pull the linear predictors of two or three blocks together, baseline
hazard and survival curve reconstruction, and cross-validated penalty
selection.

Submodules:
    survival: Fitting, cross-validation and synthetic cohorts
    core: Result envelope, exceptions, validation and timing
"""

import logging

__version__ = "0.1.0"

from coopsurv import survival

# Applications configure handlers; the library stays silent by default.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "survival",
]
