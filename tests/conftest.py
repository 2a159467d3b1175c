"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def spd_matrix(rng):
    """Well-conditioned 5x5 symmetric positive definite matrix."""
    M = rng.standard_normal((5, 5))
    return M @ M.T + 5.0 * np.eye(5)


@pytest.fixture
def general_matrix(rng):
    """Nonsymmetric, diagonally dominant (so nonsingular) 5x5 matrix."""
    M = rng.standard_normal((5, 5))
    return M + 10.0 * np.eye(5)


@pytest.fixture
def simple_qp():
    """min (x0-2)^2 + (x1-2)^2 up to a constant: H = 2I, g = -4, x* = [2, 2]."""
    return {
        'h': np.diag([2.0, 2.0]),
        'g': np.array([-4.0, -4.0]),
        'lbx': np.array([-10.0, -10.0]),
        'ubx': np.array([10.0, 10.0]),
    }


@pytest.fixture
def direct_tol():
    """Comparison tolerance for direct factorization solves."""
    return {'rtol': 1e-10, 'atol': 1e-12}


@pytest.fixture
def iterative_tol():
    """Comparison tolerance for iterative QP solves (termination-bounded)."""
    return {'rtol': 1e-5, 'atol': 1e-6}
