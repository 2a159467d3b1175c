"""
QP solver instances and dispatch.

This module provides the qpsol() factory (public API), the process-wide
QPSOL_PLUGINS registry and the Qpsol instance every QP backend is wrapped
in. Qpsol does all validation and marshaling, runs the hot-start protocol,
and turns the backend's raw run into a QPSolution.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pysolvers.core.compute.timing import Timer
from pysolvers.core.compute.tolerances import ACTIVE_TOLERANCE
from pysolvers.core.exceptions import ConfigurationError
from pysolvers.core.hotstart import StartMode
from pysolvers.core.instance import COMMON_OPTIONS, SolverInstance
from pysolvers.core.marshal import copy, densify, nonzeros
from pysolvers.core.options import (
    Option,
    OptionSchema,
    ResolvedConfig,
    OT_BOOL,
    OT_INT,
    OT_REAL,
)
from pysolvers.core.protocols import Budget, QPData
from pysolvers.core.registry import PluginRegistry
from pysolvers.core.result import Result
from pysolvers.core.sparsity import Sparsity
from pysolvers.core.status import StatusKind
from pysolvers.core.validation import check_bounds, check_finite, check_no_nan, check_vector
from pysolvers.qpsol._common import recover_multipliers
from pysolvers.qpsol.design import QPDesign
from pysolvers.qpsol.solution import QPParams, QPSolution

logger = logging.getLogger(__name__)

# Input and output slots of the QP capability
QPSOL_INPUTS = ('h', 'g', 'a', 'lbx', 'ubx', 'lba', 'uba')
QPSOL_OUTPUTS = ('x', 'cost', 'lam_a', 'lam_x')

QPSOL_OPTIONS = COMMON_OPTIONS.extend(OptionSchema((
    Option('max_iter', OT_INT, None,
           "Iteration budget per solve; unset uses the backend default",
           interval=(0, None)),
    Option('max_time', OT_REAL, None,
           "Wall-clock budget per solve in seconds; unset means unlimited",
           interval=(0.0, None)),
    Option('hotstart', OT_BOOL, True,
           "Warm restart repeated solves from the previous solution"),
    Option('active_tol', OT_REAL, ACTIVE_TOLERANCE,
           "Distance under which a bound counts as active for multipliers",
           interval=(0.0, None)),
)))

QPSOL_PLUGINS = PluginRegistry('qpsol', common_options=QPSOL_OPTIONS)


class Qpsol(SolverInstance):
    """
    QP solver instance.

    Usage:
        qp = qpsol('slsqp', QPDesign.build(np.eye(2)))
        sol = qp.solve(h=2 * np.eye(2), g=[-4.0, -4.0])
        sol.x       # array([2., 2.])
        sol.cost    # -8.0
        sol = qp.solve(h=2 * np.eye(2), g=[-4.0, -2.0])   # warm restart
    """

    def __init__(
        self,
        backend: Any,
        design: QPDesign,
        config: ResolvedConfig,
        name: str,
    ):
        warm_capable = bool(backend.supports_hotstart) and config['hotstart']
        super().__init__(backend, design, config, name, warm_capable=warm_capable)
        self._solve_count = 0

    @property
    def n(self) -> int:
        return self._design.n

    @property
    def m(self) -> int:
        return self._design.m

    @property
    def solve_count(self) -> int:
        """Number of solves that reached the backend."""
        return self._solve_count

    def solve(
        self,
        h: Any = None,
        g: ArrayLike | None = None,
        a: Any = None,
        lbx: ArrayLike | None = None,
        ubx: ArrayLike | None = None,
        lba: ArrayLike | None = None,
        uba: ArrayLike | None = None,
        *,
        max_iter: int | None = None,
        max_time: float | None = None,
        outputs: Iterable[str] = QPSOL_OUTPUTS,
    ) -> QPSolution:
        """
        Solve min 0.5 x'Hx + g'x s.t. lbx <= x <= ubx, lba <= Ax <= uba.

        Args:
            h: Hessian as a dense array, scipy.sparse matrix or nonzero
               vector in the design's pattern; None means H = 0
            g: Gradient (n,); None means 0
            a: Constraint matrix (m x n) in the same forms as h
            lbx, ubx: Simple bounds (n,); None means unbounded
            lba, uba: Constraint bounds (m,); None means unbounded
            max_iter: Iteration budget for this call (overrides the option)
            max_time: Wall-clock budget in seconds (overrides the option)
            outputs: Wanted outputs among QPSOL_OUTPUTS; multipliers are
                     only recovered when 'lam_x' or 'lam_a' is wanted

        Returns:
            QPSolution. Numerical failures and iteration limits are
            returned, not raised, unless error_on_fail is set.

        Raises:
            ConfigurationError: Malformed bounds (lower > upper), NaN data,
                invalid budgets or unknown outputs. Raised before the backend
                is called.
            BackendFatal: Unclassifiable backend status
        """
        self._check_open()
        design = self._design
        n, m = design.n, design.m
        wanted = self._check_outputs(outputs)
        budget = self._budget(max_iter, max_time)

        # === Input Validation ===
        # Everything here runs before the backend is touched
        h_nz = self._matrix_nonzeros(h, design.h, 'h')
        a_nz = self._matrix_nonzeros(a, design.a, 'a')
        g_v = check_vector(g, n, 'g')
        if g_v is not None:
            check_finite(g_v, 'g')
        lbx_v, ubx_v = self._bounds(lbx, ubx, n, ('lbx', 'ubx'))
        lba_v, uba_v = self._bounds(lba, uba, m, ('lba', 'uba'))

        timer = Timer()
        timer.start()

        # === Marshal into the workspace ===
        ws = self._workspace
        with timer.section('marshal'):
            data = QPData(
                h=densify(h_nz, design.h, ws.matrix('h', (n, n)),
                          mirror=design.h_half_stored),
                g=copy(g_v, ws.slot('g')),
                a=densify(a_nz, design.a, ws.matrix('a', (m, n))),
                lbx=copy(lbx_v, ws.slot('lbx'), fill=-np.inf),
                ubx=copy(ubx_v, ws.slot('ubx'), fill=np.inf),
                lba=copy(lba_v, ws.slot('lba'), fill=-np.inf),
                uba=copy(uba_v, ws.slot('uba'), fill=np.inf),
            )

        # === Backend run ===
        mode = self._hotstart.begin()
        state = self._native.get()
        with timer.section('backend'):
            run = self._backend.solve(
                state, data, self._config, budget, warm=mode is StartMode.WARM
            )
        status = self._backend.status_map.classify(run.code)
        self._hotstart.commit(status)
        self._solve_count += 1

        # === Outputs ===
        warnings: list[str] = []
        if status.kind.has_iterate and run.x is not None:
            with timer.section('outputs'):
                params = self._params(data, run, wanted)
        else:
            params = QPParams(x=None, lam_x=None, lam_a=None, cost=None,
                              iterations=run.iterations)
        timer.stop()

        if status.kind is StatusKind.ITERATION_LIMIT:
            warnings.append(
                f"Budget exhausted after {run.iterations} iterations "
                f"(max_iter={budget.max_iter}, max_time={budget.max_time}); "
                f"returning the last iterate"
            )
        if run.info.get('regularisation', 0.0) > 0.0:
            warnings.append(
                f"Indefinite Hessian shifted by {run.info['regularisation']:.3e}"
            )

        info: dict[str, Any] = {
            'instance': self._name,
            'start': mode.value,
            'iterations': run.iterations,
            'code': run.code,
            'max_iter': budget.max_iter,
            'max_time': budget.max_time,
        }
        info.update(run.info)
        timing = timer.result()
        self._finish(status, timing, info)

        result = Result(
            params=params,
            status=status,
            info=info,
            timing=timing,
            backend_name=self._backend.name,
            warnings=tuple(warnings),
        )
        return QPSolution(_result=result, _design=design)

    # === Internals ===

    def _params(self, data: QPData, run: Any, wanted: frozenset[str]) -> QPParams:
        n = self._design.n
        x = copy(run.x, self._workspace.slot('x'))
        cost = float(0.5 * x @ (data.h @ x) + data.g @ x) if 'cost' in wanted else None

        lam_x = lam_a = None
        if 'lam_x' in wanted or 'lam_a' in wanted:
            lam_src = run.lam
            if lam_src is None:
                lam_src = recover_multipliers(data, x, self._config['active_tol'])
            lam = copy(lam_src, self._workspace.slot('dual'))
            lam_x = lam[:n].copy() if 'lam_x' in wanted else None
            lam_a = lam[n:].copy() if 'lam_a' in wanted else None

        return QPParams(
            x=x.copy() if 'x' in wanted else None,
            lam_x=lam_x,
            lam_a=lam_a,
            cost=cost,
            iterations=run.iterations,
        )

    def _check_outputs(self, outputs: Iterable[str]) -> frozenset[str]:
        wanted = frozenset(outputs)
        unknown = wanted - set(QPSOL_OUTPUTS)
        if unknown:
            raise ConfigurationError(
                f"{self._name}: unknown outputs {sorted(unknown)}; "
                f"available: {', '.join(QPSOL_OUTPUTS)}"
            )
        return wanted

    def _budget(self, max_iter: int | None, max_time: float | None) -> Budget:
        """Per-call budget: argument, else option, else backend default."""
        if max_iter is None:
            max_iter = self._config['max_iter']
        else:
            max_iter = QPSOL_OPTIONS['max_iter'].check(max_iter)
        if max_iter is None:
            max_iter = self._backend.default_max_iter(self._design)

        if max_time is None:
            max_time = self._config['max_time']
        else:
            max_time = QPSOL_OPTIONS['max_time'].check(max_time)
        return Budget(max_iter=max_iter, max_time=max_time)

    def _matrix_nonzeros(self, matrix: Any, sparsity: Sparsity, name: str) -> NDArray[np.float64]:
        if matrix is None:
            return np.zeros(sparsity.nnz)
        nz = nonzeros(matrix, sparsity)
        check_finite(nz, name)
        return nz

    @staticmethod
    def _bounds(
        lower: ArrayLike | None,
        upper: ArrayLike | None,
        size: int,
        names: tuple[str, str],
    ) -> tuple[NDArray[np.float64] | None, NDArray[np.float64] | None]:
        lo = check_vector(lower, size, names[0])
        up = check_vector(upper, size, names[1])
        if lo is not None:
            check_no_nan(lo, names[0])
        if up is not None:
            check_no_nan(up, names[1])
        check_bounds(
            lo if lo is not None else np.full(size, -np.inf),
            up if up is not None else np.full(size, np.inf),
            names,
        )
        return lo, up


# =====================================================================
# Public API
# =====================================================================


def qpsol(
    name: str,
    design: QPDesign | Sparsity | Any,
    options: Mapping[str, Any] | None = None,
    *,
    instance_name: str | None = None,
    registry: PluginRegistry | None = None,
) -> Qpsol:
    """
    Create a QP solver instance.

    This is the primary public API for quadratic programs. Option
    validation, structural checks and workspace allocation all happen
    here, before any backend-native state exists.

    Args:
        name: Backend name ('slsqp', 'lbfgsb', or a loaded plugin)
        design: QPDesign, or a Hessian pattern/matrix for a problem
                without linear constraints
        options: Option values, validated against the backend's schema
        instance_name: Label used in logs and error messages
        registry: Plugin registry (defaults to QPSOL_PLUGINS)

    Returns:
        Qpsol instance

    Raises:
        ConfigurationError: Unknown backend or invalid options
        StructuralError: Inconsistent patterns, or a structure the backend
            cannot handle

    Example:
        >>> import numpy as np
        >>> from pysolvers.qpsol import qpsol, QPDesign
        >>>
        >>> qp = qpsol('slsqp', QPDesign.build(np.eye(2)))
        >>> sol = qp.solve(h=2 * np.eye(2), g=[-4.0, -4.0],
        ...                lbx=[-10, -10], ubx=[10, 10])
        >>> sol.x
        array([2., 2.])
    """
    registry = registry if registry is not None else QPSOL_PLUGINS
    if not isinstance(design, QPDesign):
        design = QPDesign.build(design)
    return registry.create(name, design, options, instance_name=instance_name)


def has_qpsol(name: str, *, registry: PluginRegistry | None = None) -> bool:
    """Check if a QP solver plugin is registered."""
    registry = registry if registry is not None else QPSOL_PLUGINS
    return registry.has(name)


def load_qpsol(name: str, *, registry: PluginRegistry | None = None) -> None:
    """
    Explicitly load a QP solver plugin from the 'pysolvers.qpsol' entry
    point group. Built-in plugins are always registered already.
    """
    registry = registry if registry is not None else QPSOL_PLUGINS
    registry.load(name)


def doc_qpsol(name: str, *, registry: PluginRegistry | None = None) -> str:
    """Documentation and option table of a QP solver plugin."""
    registry = registry if registry is not None else QPSOL_PLUGINS
    return registry.documentation(name)
