"""
Shared compute infrastructure for PySolvers.

IMPORTANT: This is NOT where backends live. Those go in
{capability}/backends/. This module contains shared numeric infrastructure.

Submodules:
    timing: Execution timing and wall-clock budgets
    tolerances: Numerical tolerance defaults
"""

from pysolvers.core.compute.timing import Timer, Deadline, timed
from pysolvers.core.compute.tolerances import ACTIVE_TOLERANCE

__all__ = [
    # Timing
    "Timer",
    "Deadline",
    "timed",
    # Tolerances
    "ACTIVE_TOLERANCE",
]
