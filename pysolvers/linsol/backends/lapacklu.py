"""
Dense LU backend for linear systems.

Uses LAPACK getrf/getrs (through scipy.linalg.lapack) on a dense copy of A
held in the instance workspace. Row/column equilibration (the DGEEQU
scaling) is applied before factorizing unless disabled.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import lapack

from pysolvers.core.capabilities import CAPABILITY_LINSOL
from pysolvers.core.marshal import densify
from pysolvers.core.options import Option, OptionSchema, ResolvedConfig, OT_BOOL
from pysolvers.core.registry import PluginDescriptor, PluginRegistry
from pysolvers.core.status import StatusKind, lapack_status_map
from pysolvers.core.workspace import SlotSpec, Workspace, layout
from pysolvers.linsol.design import LinsolDesign
from pysolvers.linsol.solvers import LINSOL_PLUGINS, Linsol

# Equilibration failure codes, offset past getrf's info range 1..n;
# the offset is the 0-based index of the zero row or column
LU_ZERO_ROW = 1 << 30
LU_ZERO_COLUMN = 1 << 31


class _LUState:
    """Cached LU factor; lu is a view of the workspace slot."""
    __slots__ = ('sparsity', 'lu', 'piv', 'r', 'c')

    def __init__(self, design: LinsolDesign):
        self.sparsity = design.sparsity
        self.lu: NDArray[np.float64] | None = None
        self.piv: NDArray[np.int32] | None = None
        self.r: NDArray[np.float64] | None = None
        self.c: NDArray[np.float64] | None = None


class LapackLUBackend:
    """
    Dense LU factorization with partial pivoting (LAPACK getrf/getrs).

    Works for any nonsingular square matrix. The factor is computed in
    place in a workspace buffer of n*n doubles.
    """

    options = OptionSchema((
        Option('equilibration', OT_BOOL, True,
               "Equilibrate rows and columns before factorizing"),
        Option('allow_equilibration_failure', OT_BOOL, False,
               "Factorize unscaled when a row or column is entirely zero"),
    ))
    capabilities = frozenset({CAPABILITY_LINSOL})
    status_map = lapack_status_map(
        'lapacklu',
        "U({code},{code}) is exactly zero; the matrix is singular.",
        ranges=(
            (lambda code: LU_ZERO_ROW <= code < LU_ZERO_COLUMN, StatusKind.NUMERICAL,
             lambda code: f"Row {code - LU_ZERO_ROW} of A is entirely zero; "
                          f"equilibration failed and the matrix is singular."),
            (lambda code: code >= LU_ZERO_COLUMN, StatusKind.NUMERICAL,
             lambda code: f"Column {code - LU_ZERO_COLUMN} of A is entirely zero; "
                          f"equilibration failed and the matrix is singular."),
        ),
    )

    @property
    def name(self) -> str:
        return 'lapacklu'

    def workspace_layout(self, design: LinsolDesign) -> tuple[SlotSpec, ...]:
        return layout(('a', design.n * design.n))

    def check_structure(self, design: LinsolDesign) -> None:
        design.check_structurally_regular()

    def create_native(self, design: LinsolDesign, config: ResolvedConfig) -> _LUState:
        return _LUState(design)

    def release_native(self, state: _LUState) -> None:
        state.lu = state.piv = state.r = state.c = None

    def factorize(
        self,
        state: _LUState,
        workspace: Workspace,
        nz: NDArray[np.float64],
        config: ResolvedConfig,
    ) -> int:
        n = state.sparsity.nrow
        a = densify(nz, state.sparsity, workspace.matrix('a', (n, n)))
        state.lu = state.piv = state.r = state.c = None

        if config['equilibration']:
            r, c, info = _equilibrate(a)
            if info != 0 and not config['allow_equilibration_failure']:
                return info
            if info == 0:
                a *= r[:, None]
                a *= c[None, :]
                state.r, state.c = r, c

        lu, piv, info = lapack.dgetrf(a, overwrite_a=True)
        if info == 0:
            state.lu, state.piv = lu, piv
        return int(info)

    def solve(
        self,
        state: _LUState,
        rhs: NDArray[np.float64],
        tr: bool,
    ) -> tuple[NDArray[np.float64], int]:
        # A = R^-1 As C^-1, so A x = b  <=>  As (x / c) = r * b
        pre, post = (state.c, state.r) if tr else (state.r, state.c)
        if pre is not None:
            rhs = rhs * pre[:, None]
        x, info = lapack.dgetrs(state.lu, state.piv, rhs, trans=1 if tr else 0)
        if post is not None:
            x = x * post[:, None]
        return x, int(info)


def _equilibrate(a: NDArray[np.float64]) -> tuple[NDArray[np.float64], NDArray[np.float64], int]:
    """
    Row and column scale factors in the manner of LAPACK DGEEQU.

    Returns (r, c, info); info = LU_ZERO_ROW + i if row i is exactly zero,
    LU_ZERO_COLUMN + j if column j is.
    """
    n = a.shape[0]
    rmax = np.max(np.abs(a), axis=1) if n else np.zeros(0)
    zero_rows = np.flatnonzero(rmax == 0.0)
    if zero_rows.size:
        return rmax, rmax, LU_ZERO_ROW + int(zero_rows[0])
    r = 1.0 / rmax
    cmax = np.max(np.abs(a) * r[:, None], axis=0) if n else np.zeros(0)
    zero_cols = np.flatnonzero(cmax == 0.0)
    if zero_cols.size:
        return r, cmax, LU_ZERO_COLUMN + int(zero_cols[0])
    return r, 1.0 / cmax, 0


# =====================================================================
# Plugin registration
# =====================================================================


def _create(design: LinsolDesign, config: ResolvedConfig, name: str) -> Linsol:
    return Linsol(LapackLUBackend(), design, config, name)


def register_linsol_lapacklu(plugin: PluginDescriptor) -> int:
    plugin.name = 'lapacklu'
    plugin.creator = _create
    plugin.doc = LapackLUBackend.__doc__ or ''
    plugin.version = 1
    plugin.options = LapackLUBackend.options
    plugin.capabilities = LapackLUBackend.capabilities
    return 0


def load_linsol_lapacklu(*, registry: PluginRegistry | None = None) -> None:
    """Register the 'lapacklu' plugin unless the registry already has it."""
    registry = registry if registry is not None else LINSOL_PLUGINS
    if not registry.has('lapacklu'):
        registry.register_plugin(register_linsol_lapacklu)
