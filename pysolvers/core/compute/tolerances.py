"""
Numerical tolerances shared by the solver instances.

ACTIVE_TOLERANCE is the default of the qpsol 'active_tol' option: the
distance from a bound under which the bound counts as active when
multipliers are recovered from a primal solution.
"""

# Default distance from a bound under which the bound counts as active
ACTIVE_TOLERANCE = 1e-8
