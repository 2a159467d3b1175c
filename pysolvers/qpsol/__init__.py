"""
Quadratic program solvers.

    minimize    0.5 x'Hx + g'x
    subject to  lbx <= x <= ubx
                lba <= A x <= uba

Backends are plugins selected by name. Repeated solves on one instance
warm restart from the previous solution when the backend supports it.

Public API:
    qpsol(name, design, options) -> Qpsol
    Qpsol.solve(h, g, a, lbx, ubx, lba, uba, ...) -> QPSolution
    has_qpsol(name) / load_qpsol(name) / doc_qpsol(name)

Built-in plugins:
    'slsqp': bounds and linear constraints, warm restarts
    'lbfgsb': bounds only, cold starts

Example:
    >>> from pysolvers.qpsol import qpsol, QPDesign
    >>> qp = qpsol('slsqp', QPDesign.build(np.eye(2)))
    >>> sol = qp.solve(h=2 * np.eye(2), g=[-4.0, -4.0])
    >>> print(sol.summary())
"""

from pysolvers.qpsol.design import QPDesign
from pysolvers.qpsol.solution import QPSolution, QPParams
from pysolvers.qpsol.solvers import (
    QPSOL_INPUTS,
    QPSOL_OUTPUTS,
    QPSOL_OPTIONS,
    QPSOL_PLUGINS,
    Qpsol,
    qpsol,
    has_qpsol,
    load_qpsol,
    doc_qpsol,
)
from pysolvers.qpsol.backends import register_builtins

register_builtins(QPSOL_PLUGINS)

__all__ = [
    "qpsol",
    "has_qpsol",
    "load_qpsol",
    "doc_qpsol",
    "Qpsol",
    "QPDesign",
    "QPSolution",
    "QPParams",
    "QPSOL_INPUTS",
    "QPSOL_OUTPUTS",
    "QPSOL_OPTIONS",
    "QPSOL_PLUGINS",
]
