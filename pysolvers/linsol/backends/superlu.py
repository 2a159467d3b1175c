"""
Sparse LU backend (SuperLU through scipy.sparse.linalg.splu).

A is never densified: the nonzeros are copied into an nnz-sized workspace
slot and handed to SuperLU as a CSC matrix sharing the pattern's indices.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.sparse.linalg import splu

from pysolvers.core.capabilities import CAPABILITY_LINSOL, CAPABILITY_SPARSE_NATIVE
from pysolvers.core.marshal import copy, to_csc
from pysolvers.core.options import (
    Option,
    OptionSchema,
    ResolvedConfig,
    OT_REAL,
    OT_STRING,
)
from pysolvers.core.registry import PluginDescriptor, PluginRegistry
from pysolvers.core.status import StatusKind, StatusMap
from pysolvers.core.workspace import SlotSpec, Workspace, layout
from pysolvers.linsol.design import LinsolDesign
from pysolvers.linsol.solvers import LINSOL_PLUGINS, Linsol

# Native codes (SuperLU reports failures as exceptions, these are ours)
SUPERLU_SUCCESS = 0
SUPERLU_SINGULAR = 1
SUPERLU_OUT_OF_MEMORY = 2
SUPERLU_FAILED = 3

SUPERLU_STATUS = StatusMap('superlu', {
    SUPERLU_SUCCESS: (StatusKind.SUCCESS, "Successful exit."),
    SUPERLU_SINGULAR: (StatusKind.NUMERICAL, "Factor is exactly singular."),
    SUPERLU_OUT_OF_MEMORY: (StatusKind.RESOURCE, "SuperLU ran out of memory."),
    SUPERLU_FAILED: (StatusKind.BACKEND_FATAL, "SuperLU factorization failed."),
})


class _SuperLUState:
    __slots__ = ('sparsity', 'lu')

    def __init__(self, design: LinsolDesign):
        self.sparsity = design.sparsity
        self.lu = None


class SuperLUBackend:
    """
    Sparse LU factorization with threshold partial pivoting (SuperLU).

    Suited to large sparse matrices; memory is O(nnz) plus fill-in.
    """

    options = OptionSchema((
        Option('permc_spec', OT_STRING, 'COLAMD', "Column permutation ordering",
               allowed=('COLAMD', 'NATURAL', 'MMD_ATA', 'MMD_AT_PLUS_A')),
        Option('diag_pivot_thresh', OT_REAL, None,
               "Threshold for partial pivoting; 0 favours the diagonal, "
               "unset uses SuperLU's default", interval=(0.0, 1.0)),
    ))
    capabilities = frozenset({CAPABILITY_LINSOL, CAPABILITY_SPARSE_NATIVE})
    status_map = SUPERLU_STATUS

    @property
    def name(self) -> str:
        return 'superlu'

    def workspace_layout(self, design: LinsolDesign) -> tuple[SlotSpec, ...]:
        return layout(('nz', design.nnz))

    def check_structure(self, design: LinsolDesign) -> None:
        design.check_structurally_regular()

    def create_native(self, design: LinsolDesign, config: ResolvedConfig) -> _SuperLUState:
        return _SuperLUState(design)

    def release_native(self, state: _SuperLUState) -> None:
        state.lu = None

    def factorize(
        self,
        state: _SuperLUState,
        workspace: Workspace,
        nz: NDArray[np.float64],
        config: ResolvedConfig,
    ) -> int:
        values = copy(nz, workspace.slot('nz'))
        matrix = to_csc(values, state.sparsity)
        kwargs = {'permc_spec': config['permc_spec']}
        if config['diag_pivot_thresh'] is not None:
            kwargs['diag_pivot_thresh'] = config['diag_pivot_thresh']

        state.lu = None
        try:
            state.lu = splu(matrix, **kwargs)
        except MemoryError:
            return SUPERLU_OUT_OF_MEMORY
        except RuntimeError as e:
            if 'singular' in str(e).lower():
                return SUPERLU_SINGULAR
            return SUPERLU_FAILED
        return SUPERLU_SUCCESS

    def solve(
        self,
        state: _SuperLUState,
        rhs: NDArray[np.float64],
        tr: bool,
    ) -> tuple[NDArray[np.float64], int]:
        x = state.lu.solve(rhs, trans='T' if tr else 'N')
        return np.asarray(x, dtype=np.float64).reshape(rhs.shape), SUPERLU_SUCCESS


def _create(design: LinsolDesign, config: ResolvedConfig, name: str) -> Linsol:
    return Linsol(SuperLUBackend(), design, config, name)


def register_linsol_superlu(plugin: PluginDescriptor) -> int:
    plugin.name = 'superlu'
    plugin.creator = _create
    plugin.doc = SuperLUBackend.__doc__ or ''
    plugin.version = 1
    plugin.options = SuperLUBackend.options
    plugin.capabilities = SuperLUBackend.capabilities
    return 0


def load_linsol_superlu(*, registry: PluginRegistry | None = None) -> None:
    """Register the 'superlu' plugin unless the registry already has it."""
    registry = registry if registry is not None else LINSOL_PLUGINS
    if not registry.has('superlu'):
        registry.register_plugin(register_linsol_superlu)
