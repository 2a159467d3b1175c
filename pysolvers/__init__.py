"""
PySolvers: pluggable linear-system and QP solver backends.

A uniform contract over interchangeable numerical backends, with
per-instance workspaces, cached factorizations and warm restarts.

Submodules:
    linsol: Linear systems (factorize once, solve many)
    qpsol: Convex quadratic programs
    core: Registry, options, marshaling, workspace, error taxonomy
"""

__version__ = "0.1.0"

from pysolvers import linsol
from pysolvers import qpsol
from pysolvers.core.exceptions import (
    PySolversError,
    ConfigurationError,
    StructuralError,
    NumericalFailure,
    IterationLimitReached,
    BackendFatal,
    ResourceError,
    ContractViolation,
)

__all__ = [
    "__version__",
    "linsol",
    "qpsol",
    "PySolversError",
    "ConfigurationError",
    "StructuralError",
    "NumericalFailure",
    "IterationLimitReached",
    "BackendFatal",
    "ResourceError",
    "ContractViolation",
]
