"""
QP backends.

Available backends:
    SLSQPBackend: Sequential least squares QP, bounds and linear constraints,
                  warm restarts
    LBFGSBBackend: L-BFGS-B, bounds only, always cold starts
"""

from pysolvers.core.registry import PluginRegistry
from pysolvers.qpsol.backends.slsqp import SLSQPBackend, load_qpsol_slsqp
from pysolvers.qpsol.backends.lbfgsb import LBFGSBBackend, load_qpsol_lbfgsb

BUILTIN_LOADERS = (
    load_qpsol_slsqp,
    load_qpsol_lbfgsb,
)


def register_builtins(registry: PluginRegistry) -> None:
    """Register every built-in QP backend into a registry."""
    for load in BUILTIN_LOADERS:
        load(registry=registry)


__all__ = [
    "SLSQPBackend",
    "LBFGSBBackend",
    "BUILTIN_LOADERS",
    "register_builtins",
    "load_qpsol_slsqp",
    "load_qpsol_lbfgsb",
]
