"""
Linear-system solvers.

Factorize a square matrix once, then solve for any number of right-hand
sides with the cached factor. Backends are plugins selected by name.

Public API:
    linsol(name, pattern, options) -> Linsol
    has_linsol(name) / load_linsol(name) / doc_linsol(name)

Built-in plugins:
    'lapacklu': dense LU
    'lapackchol': dense Cholesky, with triangular solves
    'superlu': sparse LU

Example:
    >>> from pysolvers.linsol import linsol
    >>> ls = linsol('lapacklu', np.eye(2))
    >>> ls.factorize(np.eye(2))
    >>> ls.solve([3.0, 5.0])
    array([3., 5.])
"""

from pysolvers.linsol.design import LinsolDesign
from pysolvers.linsol.solvers import (
    LINSOL_INPUTS,
    LINSOL_PLUGINS,
    Linsol,
    linsol,
    has_linsol,
    load_linsol,
    doc_linsol,
)
from pysolvers.linsol.backends import register_builtins

register_builtins(LINSOL_PLUGINS)

__all__ = [
    "linsol",
    "has_linsol",
    "load_linsol",
    "doc_linsol",
    "Linsol",
    "LinsolDesign",
    "LINSOL_INPUTS",
    "LINSOL_PLUGINS",
]
