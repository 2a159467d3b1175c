"""
Linear-system backends.

Available backends:
    LapackLUBackend: Dense LU with partial pivoting (LAPACK getrf/getrs)
    LapackCholeskyBackend: Dense Cholesky, exposes the triangular factor
    SuperLUBackend: Sparse LU (SuperLU via scipy.sparse.linalg)
"""

from pysolvers.core.registry import PluginRegistry
from pysolvers.linsol.backends.lapacklu import LapackLUBackend, load_linsol_lapacklu
from pysolvers.linsol.backends.lapackchol import (
    LapackCholeskyBackend,
    load_linsol_lapackchol,
)
from pysolvers.linsol.backends.superlu import SuperLUBackend, load_linsol_superlu

BUILTIN_LOADERS = (
    load_linsol_lapacklu,
    load_linsol_lapackchol,
    load_linsol_superlu,
)


def register_builtins(registry: PluginRegistry) -> None:
    """Register every built-in linear backend into a registry."""
    for load in BUILTIN_LOADERS:
        load(registry=registry)


__all__ = [
    "LapackLUBackend",
    "LapackCholeskyBackend",
    "SuperLUBackend",
    "BUILTIN_LOADERS",
    "register_builtins",
    "load_linsol_lapacklu",
    "load_linsol_lapackchol",
    "load_linsol_superlu",
]
