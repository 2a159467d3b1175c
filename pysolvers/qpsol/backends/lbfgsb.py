"""
L-BFGS-B backend for bound-constrained convex QPs.

Accepts problems without linear constraints only (m = 0). It does not keep
a working set between calls, so every solve is a cold initialization.
"""

from __future__ import annotations

import logging
import numpy as np
from numpy.typing import NDArray
from scipy.optimize import Bounds, minimize

from pysolvers.core.capabilities import CAPABILITY_QPSOL
from pysolvers.core.compute.timing import Deadline
from pysolvers.core.exceptions import StructuralError
from pysolvers.core.options import (
    Option,
    OptionSchema,
    ResolvedConfig,
    OT_BOOL,
    OT_INT,
    OT_REAL,
)
from pysolvers.core.protocols import Budget, QPData, QPRun
from pysolvers.core.registry import PluginDescriptor, PluginRegistry
from pysolvers.core.status import StatusKind, StatusMap
from pysolvers.core.workspace import SlotSpec
from pysolvers.qpsol._common import (
    QPState,
    QuadraticObjective,
    TimeBudgetExceeded,
    convexify,
    qp_workspace_layout,
    start_point,
)
from pysolvers.qpsol.design import QPDesign
from pysolvers.qpsol.solvers import QPSOL_PLUGINS, Qpsol

logger = logging.getLogger(__name__)

LBFGSB_ITERATION_LIMIT = 1
LBFGSB_UNBOUNDED = 3
LBFGSB_INDEFINITE = 100

# Iterate magnitude, relative to the data, past which the run has diverged
LBFGSB_DIVERGENCE = 1e10

LBFGSB_STATUS = StatusMap('lbfgsb', {
    0: (StatusKind.SUCCESS, "Convergence: norm of projected gradient or "
                            "relative reduction of f small enough."),
    LBFGSB_ITERATION_LIMIT: (StatusKind.ITERATION_LIMIT,
                             "Number of iterations or function evaluations exceeded."),
    2: (StatusKind.NUMERICAL, "Abnormal termination in line search."),
    LBFGSB_UNBOUNDED: (StatusKind.NUMERICAL, "Problem appears unbounded."),
    LBFGSB_INDEFINITE: (StatusKind.NUMERICAL,
                        "Hessian is indefinite and regularisation is disabled."),
})


class LBFGSBBackend:
    """
    Limited-memory BFGS with simple bounds (L-BFGS-B) for convex QPs.

    Only bounds lbx <= x <= ubx are supported; a design with linear
    constraints is rejected at construction. Always cold starts.
    """

    options = OptionSchema((
        Option('ftol', OT_REAL, 1e-12,
               "Stop when the relative reduction of f falls below this",
               interval=(0.0, None)),
        Option('gtol', OT_REAL, 1e-10,
               "Stop when the projected gradient max-norm falls below this",
               interval=(0.0, None)),
        Option('maxcor', OT_INT, 10,
               "Number of correction pairs kept for the Hessian approximation",
               interval=(1, None)),
        Option('regularisation', OT_BOOL, False,
               "Shift an indefinite Hessian to make it positive definite"),
        Option('eps_regularisation', OT_REAL, 1e-8,
               "Margin added to the Hessian shift", interval=(0.0, None)),
    ))
    capabilities = frozenset({CAPABILITY_QPSOL})
    status_map = LBFGSB_STATUS
    supports_hotstart = False

    @property
    def name(self) -> str:
        return 'lbfgsb'

    def workspace_layout(self, design: QPDesign) -> tuple[SlotSpec, ...]:
        return qp_workspace_layout(design.n, design.m)

    def check_structure(self, design: QPDesign) -> None:
        if design.m > 0:
            raise StructuralError(
                f"lbfgsb handles bound constraints only, got {design.m} "
                f"linear constraints; use a backend with linear constraint support"
            )

    def default_max_iter(self, design: QPDesign) -> int:
        return max(1000, 10 * design.n)

    def create_native(self, design: QPDesign, config: ResolvedConfig) -> QPState:
        return QPState(design.n)

    def release_native(self, state: QPState) -> None:
        state.x = None

    def solve(
        self,
        state: QPState,
        data: QPData,
        config: ResolvedConfig,
        budget: Budget,
        warm: bool,
    ) -> QPRun:
        h, shift = convexify(data.h, config['regularisation'], config['eps_regularisation'])
        if h is None:
            return QPRun(code=LBFGSB_INDEFINITE, x=None, iterations=0)

        x0 = start_point(state, data, warm=False)
        objective = QuadraticObjective(h, data.g, x0, Deadline(budget.max_time))
        state.runs += 1
        try:
            res = minimize(
                objective.fun,
                x0,
                jac=objective.jac,
                method='L-BFGS-B',
                bounds=Bounds(data.lbx, data.ubx),
                callback=objective.callback,
                options={
                    'maxiter': budget.max_iter,
                    'ftol': config['ftol'],
                    'gtol': config['gtol'],
                    'maxcor': config['maxcor'],
                },
            )
        except TimeBudgetExceeded:
            logger.debug("lbfgsb: time budget of %ss exhausted", budget.max_time)
            return QPRun(
                code=LBFGSB_ITERATION_LIMIT,
                x=objective.iterate,
                iterations=objective.iterations,
                info={'regularisation': shift, 'time_limit': True, 'runs': state.runs},
            )

        code = int(res.status)
        x = np.asarray(res.x, dtype=np.float64)
        if _diverged(x, x0, data.g):
            logger.debug("lbfgsb: iterate diverged to |x| = %.3e", np.max(np.abs(x)))
            code = LBFGSB_UNBOUNDED
        return QPRun(
            code=code,
            x=x,
            iterations=int(getattr(res, 'nit', objective.iterations)),
            info={'regularisation': shift, 'message': str(res.message), 'runs': state.runs},
        )


def _diverged(
    x: NDArray[np.float64],
    x0: NDArray[np.float64],
    g: NDArray[np.float64],
) -> bool:
    """True if x is non-finite or has run far past the scale of the data."""
    if not np.all(np.isfinite(x)):
        return True
    scale = 1.0 + np.max(np.abs(x0), initial=0.0) + np.max(np.abs(g), initial=0.0)
    return bool(np.max(np.abs(x), initial=0.0) > LBFGSB_DIVERGENCE * scale)


def _create(design: QPDesign, config: ResolvedConfig, name: str) -> Qpsol:
    return Qpsol(LBFGSBBackend(), design, config, name)


def register_qpsol_lbfgsb(plugin: PluginDescriptor) -> int:
    plugin.name = 'lbfgsb'
    plugin.creator = _create
    plugin.doc = LBFGSBBackend.__doc__ or ''
    plugin.version = 1
    plugin.options = LBFGSBBackend.options
    plugin.capabilities = LBFGSBBackend.capabilities
    return 0


def load_qpsol_lbfgsb(*, registry: PluginRegistry | None = None) -> None:
    """Register the 'lbfgsb' plugin unless the registry already has it."""
    registry = registry if registry is not None else QPSOL_PLUGINS
    if not registry.has('lbfgsb'):
        registry.register_plugin(register_qpsol_lbfgsb)
