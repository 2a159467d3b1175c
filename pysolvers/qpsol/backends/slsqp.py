"""
SLSQP backend for convex QPs (scipy.optimize, method='SLSQP').

Handles simple bounds and general linear constraints, and warm restarts
from the previous iterate. Exit modes are SLSQP's own; 100 is added for an
indefinite Hessian detected before the run.
"""

from __future__ import annotations

import logging
import numpy as np
from scipy.optimize import Bounds, minimize

from pysolvers.core.capabilities import (
    CAPABILITY_QPSOL,
    CAPABILITY_HOTSTART,
    CAPABILITY_LINEAR_CONSTRAINTS,
)
from pysolvers.core.compute.timing import Deadline
from pysolvers.core.options import (
    Option,
    OptionSchema,
    ResolvedConfig,
    OT_BOOL,
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
    split_constraints,
    start_point,
)
from pysolvers.qpsol.design import QPDesign
from pysolvers.qpsol.solvers import QPSOL_PLUGINS, Qpsol

logger = logging.getLogger(__name__)

SLSQP_ITERATION_LIMIT = 9
SLSQP_INDEFINITE = 100

SLSQP_STATUS = StatusMap('slsqp', {
    -1: (StatusKind.BACKEND_FATAL, "Gradient evaluation required (g & a)."),
    0: (StatusKind.SUCCESS, "Optimization terminated successfully."),
    1: (StatusKind.BACKEND_FATAL, "Function evaluation required (f & c)."),
    2: (StatusKind.STRUCTURAL, "More equality constraints than independent variables."),
    3: (StatusKind.NUMERICAL, "More than 3*n iterations in LSQ subproblem."),
    4: (StatusKind.NUMERICAL, "Inequality constraints incompatible."),
    5: (StatusKind.NUMERICAL, "Singular matrix E in LSQ subproblem."),
    6: (StatusKind.NUMERICAL, "Singular matrix C in LSQ subproblem."),
    7: (StatusKind.NUMERICAL, "Rank-deficient equality constraint subproblem HFTI."),
    8: (StatusKind.NUMERICAL, "Positive directional derivative for linesearch."),
    SLSQP_ITERATION_LIMIT: (StatusKind.ITERATION_LIMIT, "Iteration limit reached."),
    SLSQP_INDEFINITE: (StatusKind.NUMERICAL,
                       "Hessian is indefinite and regularisation is disabled."),
})


class SLSQPBackend:
    """
    Sequential least squares QP solver (SLSQP) for convex QPs.

    Supports bounds and linear constraints. Warm restarts begin from the
    previous solution. An indefinite Hessian is rejected unless
    'regularisation' is enabled, in which case its diagonal is shifted.
    """

    options = OptionSchema((
        Option('ftol', OT_REAL, 1e-10,
               "Precision goal for the objective in the stopping criterion",
               interval=(0.0, None)),
        Option('regularisation', OT_BOOL, False,
               "Shift an indefinite Hessian to make it positive definite"),
        Option('eps_regularisation', OT_REAL, 1e-8,
               "Margin added to the Hessian shift", interval=(0.0, None)),
    ))
    capabilities = frozenset({
        CAPABILITY_QPSOL,
        CAPABILITY_HOTSTART,
        CAPABILITY_LINEAR_CONSTRAINTS,
    })
    status_map = SLSQP_STATUS
    supports_hotstart = True

    @property
    def name(self) -> str:
        return 'slsqp'

    def workspace_layout(self, design: QPDesign) -> tuple[SlotSpec, ...]:
        return qp_workspace_layout(design.n, design.m)

    def check_structure(self, design: QPDesign) -> None:
        pass

    def default_max_iter(self, design: QPDesign) -> int:
        return max(100, 5 * (design.n + design.m))

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
            return QPRun(code=SLSQP_INDEFINITE, x=None, iterations=0)

        x0 = start_point(state, data, warm)
        objective = QuadraticObjective(h, data.g, x0, Deadline(budget.max_time))
        state.runs += 1
        try:
            res = minimize(
                objective.fun,
                x0,
                jac=objective.jac,
                method='SLSQP',
                bounds=Bounds(data.lbx, data.ubx),
                constraints=split_constraints(data),
                callback=objective.callback,
                options={
                    'maxiter': budget.max_iter,
                    'ftol': config['ftol'],
                    'disp': False,
                },
            )
        except TimeBudgetExceeded:
            logger.debug("slsqp: time budget of %ss exhausted", budget.max_time)
            state.x = objective.iterate
            return QPRun(
                code=SLSQP_ITERATION_LIMIT,
                x=objective.iterate,
                iterations=objective.iterations,
                info={'regularisation': shift, 'time_limit': True, 'runs': state.runs},
            )

        code = int(res.status)
        x = np.asarray(res.x, dtype=np.float64)
        if SLSQP_STATUS.classify(code).kind.has_iterate:
            state.x = x.copy()
        return QPRun(
            code=code,
            x=x,
            iterations=int(getattr(res, 'nit', objective.iterations)),
            info={'regularisation': shift, 'message': str(res.message), 'runs': state.runs},
        )


def _create(design: QPDesign, config: ResolvedConfig, name: str) -> Qpsol:
    return Qpsol(SLSQPBackend(), design, config, name)


def register_qpsol_slsqp(plugin: PluginDescriptor) -> int:
    plugin.name = 'slsqp'
    plugin.creator = _create
    plugin.doc = SLSQPBackend.__doc__ or ''
    plugin.version = 1
    plugin.options = SLSQPBackend.options
    plugin.capabilities = SLSQPBackend.capabilities
    return 0


def load_qpsol_slsqp(*, registry: PluginRegistry | None = None) -> None:
    """Register the 'slsqp' plugin unless the registry already has it."""
    registry = registry if registry is not None else QPSOL_PLUGINS
    if not registry.has('slsqp'):
        registry.register_plugin(register_qpsol_slsqp)
