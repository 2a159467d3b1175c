"""
Tests for the helpers shared by the QP backends.

Validates:
    - Hessian convexification
    - Multiplier recovery and its sign convention
    - Constraint splitting for scipy.optimize
    - Objective evaluation under a wall-clock budget
"""

import numpy as np
import pytest

from pysolvers.core.compute.timing import Deadline
from pysolvers.core.protocols import QPData
from pysolvers.qpsol._common import (
    QPState,
    QuadraticObjective,
    TimeBudgetExceeded,
    convexify,
    qp_workspace_layout,
    recover_multipliers,
    split_constraints,
    start_point,
)


def make_data(h, g, a=None, lbx=None, ubx=None, lba=None, uba=None):
    n = len(g)
    a = np.zeros((0, n)) if a is None else np.asarray(a, dtype=float)
    m = a.shape[0]
    return QPData(
        h=np.asarray(h, dtype=float),
        g=np.asarray(g, dtype=float),
        a=a,
        lbx=np.full(n, -np.inf) if lbx is None else np.asarray(lbx, dtype=float),
        ubx=np.full(n, np.inf) if ubx is None else np.asarray(ubx, dtype=float),
        lba=np.full(m, -np.inf) if lba is None else np.asarray(lba, dtype=float),
        uba=np.full(m, np.inf) if uba is None else np.asarray(uba, dtype=float),
    )


# ═══════════════════════════════════════════════════════════════════════
# Convexification
# ═══════════════════════════════════════════════════════════════════════


class TestConvexify:

    def test_positive_definite_untouched(self, spd_matrix):
        h, shift = convexify(spd_matrix, regularise=False, eps=1e-8)
        assert h is spd_matrix
        assert shift == 0.0

    def test_semidefinite_accepted(self):
        h, shift = convexify(np.diag([1.0, 0.0]), regularise=False, eps=1e-8)
        assert h is not None
        assert shift == 0.0

    def test_indefinite_rejected(self):
        h, shift = convexify(np.diag([1.0, -1.0]), regularise=False, eps=1e-8)
        assert h is None

    def test_indefinite_shifted(self):
        original = np.diag([1.0, -1.0])
        h, shift = convexify(original, regularise=True, eps=1e-3)
        assert shift == pytest.approx(1.001)
        assert np.linalg.eigvalsh(h).min() == pytest.approx(1e-3)
        np.testing.assert_array_equal(original, np.diag([1.0, -1.0]))

    def test_empty(self):
        h, shift = convexify(np.zeros((0, 0)), regularise=False, eps=1e-8)
        assert h.shape == (0, 0)


# ═══════════════════════════════════════════════════════════════════════
# Multipliers
# ═══════════════════════════════════════════════════════════════════════


class TestRecoverMultipliers:

    def test_interior_point_is_zero(self):
        data = make_data(2 * np.eye(2), [-4.0, -4.0], lbx=[-10, -10], ubx=[10, 10])
        lam = recover_multipliers(data, np.array([2.0, 2.0]), 1e-8)
        np.testing.assert_array_equal(lam, [0.0, 0.0])

    def test_upper_bound_positive(self):
        data = make_data(2 * np.eye(2), [-4.0, -4.0], ubx=[1.0, 10.0])
        lam = recover_multipliers(data, np.array([1.0, 2.0]), 1e-8)
        np.testing.assert_allclose(lam, [2.0, 0.0], atol=1e-12)

    def test_lower_bound_negative(self):
        data = make_data(2 * np.eye(2), [4.0, 0.0], lbx=[-1.0, -1.0])
        lam = recover_multipliers(data, np.array([-1.0, 0.0]), 1e-8)
        np.testing.assert_allclose(lam, [-2.0, 0.0], atol=1e-12)

    def test_stationarity_with_constraint(self):
        a = np.array([[1.0, 1.0]])
        data = make_data(2 * np.eye(2), [-4.0, -4.0], a=a, uba=[2.0])
        x = np.array([1.0, 1.0])
        lam = recover_multipliers(data, x, 1e-8)
        residual = data.h @ x + data.g + lam[:2] + a.T @ lam[2:]
        np.testing.assert_allclose(residual, 0.0, atol=1e-12)
        assert lam[2] == pytest.approx(2.0)

    def test_wrong_sign_clipped(self):
        # Second case: the gradient points into the feasible region
        data = make_data(np.eye(1), [1.0], lbx=[0.0], ubx=[5.0])
        lam = recover_multipliers(data, np.array([0.0]), 1e-8)
        assert lam[0] == pytest.approx(-1.0)
        data = make_data(np.eye(1), [-1.0], lbx=[0.0], ubx=[5.0])
        lam = recover_multipliers(data, np.array([0.0]), 1e-8)
        assert lam[0] == 0.0

    def test_fixed_variable_takes_either_sign(self):
        data = make_data(np.eye(1), [-3.0], lbx=[1.0], ubx=[1.0])
        lam = recover_multipliers(data, np.array([1.0]), 1e-8)
        assert lam[0] == pytest.approx(2.0)


# ═══════════════════════════════════════════════════════════════════════
# Constraints and starting point
# ═══════════════════════════════════════════════════════════════════════


class TestSplitConstraints:

    def test_no_constraints(self):
        assert split_constraints(make_data(np.eye(2), [0.0, 0.0])) == []

    def test_kinds(self):
        a = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0], [1.0, -1.0]])
        data = make_data(np.eye(2), [0.0, 0.0], a=a,
                         lba=[1.0, 0.0, -np.inf, -np.inf],
                         uba=[1.0, np.inf, 3.0, np.inf])
        constraints = split_constraints(data)
        assert [c['type'] for c in constraints] == ['eq', 'ineq', 'ineq']
        eq, lo, up = constraints
        x = np.array([2.0, 5.0])
        np.testing.assert_allclose(eq['fun'](x), [1.0])
        np.testing.assert_allclose(lo['fun'](x), [5.0])
        np.testing.assert_allclose(up['fun'](x), [-4.0])
        np.testing.assert_allclose(up['jac'](x), [[-1.0, -1.0]])

    def test_independent_of_workspace(self):
        a = np.array([[1.0, 1.0]])
        data = make_data(np.eye(2), [0.0, 0.0], a=a, uba=[2.0])
        (up,) = split_constraints(data)
        data.a[:] = 0.0
        data.uba[:] = 0.0
        assert up['fun'](np.zeros(2))[0] == pytest.approx(2.0)


class TestStartPoint:

    def test_cold_is_clipped_origin(self):
        data = make_data(np.eye(2), [0.0, 0.0], lbx=[1.0, -1.0], ubx=[2.0, 1.0])
        np.testing.assert_array_equal(start_point(QPState(2), data, warm=False), [1.0, 0.0])

    def test_warm_uses_cached_iterate(self):
        state = QPState(2)
        state.x = np.array([0.5, 7.0])
        data = make_data(np.eye(2), [0.0, 0.0], ubx=[5.0, 5.0])
        np.testing.assert_array_equal(start_point(state, data, warm=True), [0.5, 5.0])
        np.testing.assert_array_equal(start_point(state, data, warm=False), [0.0, 0.0])

    def test_layout_sizes(self):
        slots = {s.name: s.size for s in qp_workspace_layout(3, 2)}
        assert slots == {'h': 9, 'a': 6, 'g': 3, 'lbx': 3, 'ubx': 3,
                         'lba': 2, 'uba': 2, 'x': 3, 'dual': 5}


# ═══════════════════════════════════════════════════════════════════════
# Objective
# ═══════════════════════════════════════════════════════════════════════


class TestQuadraticObjective:

    def test_value_and_gradient(self):
        obj = QuadraticObjective(2 * np.eye(2), np.array([-4.0, -4.0]),
                                 np.zeros(2), Deadline(None))
        x = np.array([2.0, 2.0])
        assert obj.fun(x) == pytest.approx(-8.0)
        np.testing.assert_allclose(obj.jac(x), [0.0, 0.0])

    def test_callback_tracks_iterate(self):
        obj = QuadraticObjective(np.eye(1), np.zeros(1), np.array([3.0]), Deadline(None))
        np.testing.assert_array_equal(obj.iterate, [3.0])
        obj.callback(np.array([1.0]))
        obj.callback(np.array([0.5]))
        assert obj.iterations == 2
        np.testing.assert_array_equal(obj.iterate, [0.5])

    def test_expired_deadline(self):
        obj = QuadraticObjective(np.eye(1), np.zeros(1), np.zeros(1), Deadline(-1.0))
        with pytest.raises(TimeBudgetExceeded):
            obj.fun(np.zeros(1))
