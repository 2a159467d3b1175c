"""
Dense Cholesky backend for symmetric positive definite systems.

Uses LAPACK potrf/potrs/trtrs (through scipy.linalg.lapack). Only one
triangle of A is read, so a half-stored pattern is densified without
mirroring. The lower factor L (A = L L') is exposed through
Linsol.cholesky() and Linsol.solve_triangular().
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import lapack

from pysolvers.core.capabilities import (
    CAPABILITY_LINSOL,
    CAPABILITY_TRIANGULAR,
    CAPABILITY_HALF_STORAGE,
)
from pysolvers.core.exceptions import StructuralError
from pysolvers.core.marshal import densify
from pysolvers.core.options import OptionSchema, ResolvedConfig
from pysolvers.core.registry import PluginDescriptor, PluginRegistry
from pysolvers.core.sparsity import Sparsity
from pysolvers.core.status import lapack_status_map
from pysolvers.core.workspace import SlotSpec, Workspace, layout
from pysolvers.linsol.design import LinsolDesign
from pysolvers.linsol.solvers import LINSOL_PLUGINS, Linsol


class _CholeskyState:
    __slots__ = ('sparsity', 'upper_stored', 'factor')

    def __init__(self, design: LinsolDesign):
        rows, cols = design.sparsity.get_triplet()
        self.sparsity = design.sparsity
        # Only the upper triangle is stored: transpose into the lower one
        self.upper_stored = bool(np.any(rows < cols)) and not bool(np.any(rows > cols))
        self.factor: NDArray[np.float64] | None = None


class LapackCholeskyBackend:
    """
    Dense Cholesky factorization (LAPACK potrf, lower triangle).

    A must be symmetric positive definite. Either triangle (or both) may be
    stored; the lower one is used.
    """

    options = OptionSchema()
    capabilities = frozenset({
        CAPABILITY_LINSOL,
        CAPABILITY_TRIANGULAR,
        CAPABILITY_HALF_STORAGE,
    })
    status_map = lapack_status_map(
        'lapackchol',
        "The leading minor of order {code} is not positive definite.",
    )

    @property
    def name(self) -> str:
        return 'lapackchol'

    def workspace_layout(self, design: LinsolDesign) -> tuple[SlotSpec, ...]:
        return layout(('a', design.n * design.n))

    def check_structure(self, design: LinsolDesign) -> None:
        rows, cols = design.sparsity.get_triplet()
        missing = np.setdiff1d(np.arange(design.n), rows[rows == cols])
        if missing.size:
            raise StructuralError(
                f"Cholesky needs a structurally nonzero diagonal; "
                f"{design.sparsity.dim()} has no entry at "
                f"({int(missing[0])}, {int(missing[0])})"
            )

    def create_native(self, design: LinsolDesign, config: ResolvedConfig) -> _CholeskyState:
        return _CholeskyState(design)

    def release_native(self, state: _CholeskyState) -> None:
        state.factor = None

    def factorize(
        self,
        state: _CholeskyState,
        workspace: Workspace,
        nz: NDArray[np.float64],
        config: ResolvedConfig,
    ) -> int:
        n = state.sparsity.nrow
        a = densify(nz, state.sparsity, workspace.matrix('a', (n, n)),
                    tr=state.upper_stored)
        state.factor = None
        c, info = lapack.dpotrf(a, lower=1, clean=1, overwrite_a=True)
        if info == 0:
            state.factor = c
        return int(info)

    def solve(
        self,
        state: _CholeskyState,
        rhs: NDArray[np.float64],
        tr: bool,
    ) -> tuple[NDArray[np.float64], int]:
        # A is symmetric: the transposed system is the same system
        x, info = lapack.dpotrs(state.factor, rhs, lower=1)
        return x, int(info)

    def solve_triangular(
        self,
        state: _CholeskyState,
        rhs: NDArray[np.float64],
        tr: bool,
    ) -> tuple[NDArray[np.float64], int]:
        x, info = lapack.dtrtrs(state.factor, rhs, lower=1, trans=1 if tr else 0)
        return x, int(info)

    def cholesky(self, state: _CholeskyState, tr: bool) -> NDArray[np.float64]:
        factor = np.tril(state.factor)
        return np.ascontiguousarray(factor.T) if tr else factor

    def cholesky_sparsity(self, design: LinsolDesign, tr: bool) -> Sparsity:
        # potrf fills the whole lower triangle
        pattern = Sparsity.lower(design.n)
        return pattern.T if tr else pattern


def _create(design: LinsolDesign, config: ResolvedConfig, name: str) -> Linsol:
    return Linsol(LapackCholeskyBackend(), design, config, name)


def register_linsol_lapackchol(plugin: PluginDescriptor) -> int:
    plugin.name = 'lapackchol'
    plugin.creator = _create
    plugin.doc = LapackCholeskyBackend.__doc__ or ''
    plugin.version = 1
    plugin.options = LapackCholeskyBackend.options
    plugin.capabilities = LapackCholeskyBackend.capabilities
    return 0


def load_linsol_lapackchol(*, registry: PluginRegistry | None = None) -> None:
    """Register the 'lapackchol' plugin unless the registry already has it."""
    registry = registry if registry is not None else LINSOL_PLUGINS
    if not registry.has('lapackchol'):
        registry.register_plugin(register_linsol_lapackchol)
