"""
Capability string constants for PySolvers.

This module is the SINGLE SOURCE OF TRUTH for capability strings.
Import from here, never use raw strings.

Usage:
    from pysolvers.core.capabilities import CAPABILITY_TRIANGULAR

    if CAPABILITY_TRIANGULAR in backend.capabilities:
        L = solver.cholesky()
"""

# Solves A x = b / A' x = b after a factorization
CAPABILITY_LINSOL = 'linsol'

# Solves convex quadratic programs
CAPABILITY_QPSOL = 'qpsol'

# Exposes its triangular (Cholesky) factor: solve_triangular(), cholesky()
CAPABILITY_TRIANGULAR = 'triangular'

# Reads one triangle of a symmetric matrix, so half-stored input is not mirrored
CAPABILITY_HALF_STORAGE = 'half_storage'

# Consumes the sparse (CSC) layout directly instead of a dense buffer
CAPABILITY_SPARSE_NATIVE = 'sparse_native'

# Can warm restart from backend-native state of a previous solve
CAPABILITY_HOTSTART = 'hotstart'

# Handles general linear constraints lba <= A x <= uba (not only bounds)
CAPABILITY_LINEAR_CONSTRAINTS = 'linear_constraints'

# All capabilities as a frozenset for validation
ALL_CAPABILITIES = frozenset({
    CAPABILITY_LINSOL,
    CAPABILITY_QPSOL,
    CAPABILITY_TRIANGULAR,
    CAPABILITY_HALF_STORAGE,
    CAPABILITY_SPARSE_NATIVE,
    CAPABILITY_HOTSTART,
    CAPABILITY_LINEAR_CONSTRAINTS,
})

__all__ = [
    'CAPABILITY_LINSOL',
    'CAPABILITY_QPSOL',
    'CAPABILITY_TRIANGULAR',
    'CAPABILITY_HALF_STORAGE',
    'CAPABILITY_SPARSE_NATIVE',
    'CAPABILITY_HOTSTART',
    'CAPABILITY_LINEAR_CONSTRAINTS',
    'ALL_CAPABILITIES',
]
