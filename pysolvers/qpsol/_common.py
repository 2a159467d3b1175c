"""
Shared pieces of the QP backends.

Workspace layout, the quadratic objective with its wall-clock budget,
Hessian convexification and multiplier recovery. Used by every built-in
QP backend; third-party backends may use them too.
"""

from __future__ import annotations

from typing import Any
import numpy as np
from numpy.typing import NDArray
from scipy import linalg

from pysolvers.core.compute.timing import Deadline
from pysolvers.core.protocols import QPData
from pysolvers.core.workspace import SlotSpec, layout


def qp_workspace_layout(n: int, m: int) -> tuple[SlotSpec, ...]:
    """Dense QP scratch: H (n*n), A (m*n), vectors, primal and dual outputs."""
    return layout(
        ('h', n * n),
        ('a', m * n),
        ('g', n),
        ('lbx', n),
        ('ubx', n),
        ('lba', m),
        ('uba', m),
        ('x', n),
        ('dual', n + m),
    )


class QPState:
    """
    Native state of the SciPy QP backends: the previous iterate.

    Attributes:
        x: Last iterate of a run that produced one, or None
        runs: Number of backend runs on this state
    """
    __slots__ = ('n', 'x', 'runs')

    def __init__(self, n: int):
        self.n = n
        self.x: NDArray[np.float64] | None = None
        self.runs = 0


class TimeBudgetExceeded(Exception):
    """Raised inside the objective when the wall-clock budget is spent."""


class QuadraticObjective:
    """
    f(x) = 0.5 x'Hx + g'x with gradient Hx + g, for scipy.optimize.minimize.

    Evaluations past the deadline raise TimeBudgetExceeded; the callback
    tracks the latest accepted iterate so it can be returned in that case.
    """

    def __init__(
        self,
        h: NDArray[np.float64],
        g: NDArray[np.float64],
        x0: NDArray[np.float64],
        deadline: Deadline,
    ):
        self._h = h
        self._g = g
        self._deadline = deadline
        self.iterate = x0.copy()
        self.iterations = 0

    def fun(self, x: NDArray[np.float64]) -> float:
        if self._deadline.expired():
            raise TimeBudgetExceeded()
        return float(0.5 * x @ (self._h @ x) + self._g @ x)

    def jac(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return self._h @ x + self._g

    def callback(self, xk: NDArray[np.float64]) -> None:
        self.iterate = np.array(xk, dtype=np.float64)
        self.iterations += 1


def start_point(state: QPState, data: QPData, warm: bool) -> NDArray[np.float64]:
    """
    Initial guess: the cached iterate when warm, else the origin; clipped
    into the simple bounds either way.
    """
    if warm and state.x is not None:
        x0 = state.x.copy()
    else:
        x0 = np.zeros(data.n)
    return np.clip(x0, data.lbx, data.ubx)


def convexify(
    h: NDArray[np.float64],
    regularise: bool,
    eps: float,
) -> tuple[NDArray[np.float64] | None, float]:
    """
    Check that H is positive semidefinite, shifting its diagonal if allowed.

    Args:
        h: Dense symmetric Hessian (not modified)
        regularise: Shift an indefinite H by (eps - lambda_min) I
        eps: Margin added to the shift

    Returns:
        (Hessian to use, shift applied). The Hessian is None when H is
        indefinite and regularisation is disabled.
    """
    n = h.shape[0]
    if n == 0:
        return h, 0.0
    eigenvalues = linalg.eigvalsh(h)
    lam_min, lam_max = float(eigenvalues[0]), float(eigenvalues[-1])
    tol = np.sqrt(np.finfo(np.float64).eps) * max(1.0, abs(lam_max))
    if lam_min >= -tol:
        return h, 0.0
    if not regularise:
        return None, 0.0
    shift = -lam_min + eps
    return h + shift * np.eye(n), shift


def recover_multipliers(
    data: QPData,
    x: NDArray[np.float64],
    active_tol: float,
) -> NDArray[np.float64]:
    """
    Multipliers (lam_x, lam_a) at x by least squares over the active set.

    Solves Hx + g + lam_x + A'lam_a = 0 restricted to the bounds and
    constraints active at x (within active_tol, relative to the bound
    magnitude), then enforces the sign of one-sided activity: negative at
    a lower bound, positive at an upper one. Inactive entries are zero.

    Returns:
        Vector of length n + m
    """
    n, m = data.n, data.m
    grad = data.h @ x + data.g
    ax = data.a @ x if m else np.zeros(0)

    at_lbx, at_ubx = _activity(x, data.lbx, data.ubx, active_tol)
    at_lba, at_uba = _activity(ax, data.lba, data.uba, active_tol)
    active_x = np.flatnonzero(at_lbx | at_ubx)
    active_a = np.flatnonzero(at_lba | at_uba)

    lam = np.zeros(n + m)
    k = active_x.size + active_a.size
    if k == 0:
        return lam

    # Columns: unit vectors for active bounds, A rows for active constraints
    jac_t = np.zeros((n, k))
    jac_t[active_x, np.arange(active_x.size)] = 1.0
    if active_a.size:
        jac_t[:, active_x.size:] = data.a[active_a].T
    y, *_ = linalg.lstsq(jac_t, -grad)

    lam[active_x] = y[:active_x.size]
    lam[n + active_a] = y[active_x.size:]
    lower = np.concatenate([at_lbx & ~at_ubx, at_lba & ~at_uba])
    upper = np.concatenate([at_ubx & ~at_lbx, at_uba & ~at_lba])
    lam[lower] = np.minimum(lam[lower], 0.0)
    lam[upper] = np.maximum(lam[upper], 0.0)
    return lam


def _activity(
    value: NDArray[np.float64],
    lower: NDArray[np.float64],
    upper: NDArray[np.float64],
    tol: float,
) -> tuple[NDArray[np.bool_], NDArray[np.bool_]]:
    with np.errstate(invalid='ignore'):
        at_lower = np.isfinite(lower) & (value - lower <= tol * np.maximum(1.0, np.abs(lower)))
        at_upper = np.isfinite(upper) & (upper - value <= tol * np.maximum(1.0, np.abs(upper)))
    return at_lower, at_upper


def split_constraints(data: QPData) -> list[dict[str, Any]]:
    """
    lba <= A x <= uba as scipy.optimize constraint dicts.

    Rows with lba == uba become equalities; finite one-sided limits become
    inequalities c(x) >= 0. Rows unbounded on both sides are dropped.
    """
    if data.m == 0:
        return []
    a, lba, uba = data.a, data.lba, data.uba
    eq = np.isfinite(lba) & (lba == uba)
    lo = np.isfinite(lba) & ~eq
    up = np.isfinite(uba) & ~eq

    constraints = []
    if eq.any():
        a_eq, b_eq = a[eq].copy(), lba[eq].copy()
        constraints.append({
            'type': 'eq',
            'fun': lambda x: a_eq @ x - b_eq,
            'jac': lambda x: a_eq,
        })
    if lo.any():
        a_lo, b_lo = a[lo].copy(), lba[lo].copy()
        constraints.append({
            'type': 'ineq',
            'fun': lambda x: a_lo @ x - b_lo,
            'jac': lambda x: a_lo,
        })
    if up.any():
        a_up, b_up = a[up].copy(), uba[up].copy()
        constraints.append({
            'type': 'ineq',
            'fun': lambda x: b_up - a_up @ x,
            'jac': lambda x: -a_up,
        })
    return constraints
