"""
Linear-system solver instances and dispatch.

This module provides the linsol() factory (public API), the process-wide
LINSOL_PLUGINS registry and the Linsol instance every linear backend is
wrapped in.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pysolvers.core.capabilities import CAPABILITY_TRIANGULAR
from pysolvers.core.compute.timing import Timer
from pysolvers.core.exceptions import ConfigurationError, StructuralError
from pysolvers.core.instance import COMMON_OPTIONS, SolverInstance
from pysolvers.core.marshal import nonzeros
from pysolvers.core.options import ResolvedConfig
from pysolvers.core.registry import PluginRegistry
from pysolvers.core.sparsity import Sparsity
from pysolvers.core.status import Classification
from pysolvers.core.validation import check_array, check_finite
from pysolvers.linsol.design import LinsolDesign

logger = logging.getLogger(__name__)

# Input slots of the linear-system capability
LINSOL_INPUTS = ('A', 'b')

LINSOL_PLUGINS = PluginRegistry('linsol', common_options=COMMON_OPTIONS)


class Linsol(SolverInstance):
    """
    Linear solver instance: factorize once, solve many times.

    Usage:
        with linsol('lapacklu', np.eye(2)) as ls:
            ls.factorize(np.eye(2))
            ls.solve([3.0, 5.0])       # array([3., 5.])
            ls.solve([1.0, 1.0])       # reuses the factor
            ls.factorize_count         # 1
    """

    def __init__(
        self,
        backend: Any,
        design: LinsolDesign,
        config: ResolvedConfig,
        name: str,
    ):
        super().__init__(backend, design, config, name)
        self._factorize_count = 0
        self._solve_count = 0
        self._last_status: Classification | None = None

    # === Properties ===

    @property
    def n(self) -> int:
        return self._design.n

    @property
    def sparsity(self) -> Sparsity:
        return self._design.sparsity

    @property
    def factorize_count(self) -> int:
        """Number of factorize() calls that reached the backend."""
        return self._factorize_count

    @property
    def solve_count(self) -> int:
        return self._solve_count

    @property
    def factorized(self) -> bool:
        """True while a valid factorization is cached."""
        return self._hotstart.primed

    @property
    def last_status(self) -> Classification | None:
        return self._last_status

    # === Operations ===

    def factorize(self, A: Any) -> Classification:
        """
        Factorize A and cache the factor.

        Args:
            A: Dense array, scipy.sparse matrix, or nonzero vector in the
               design's pattern

        Returns:
            Classification of the backend status. A numerical failure
            (singular matrix) is returned, not raised, unless the instance
            was created with error_on_fail=True.

        Raises:
            ConfigurationError: If A contains NaN or Inf
            ContractViolation: If A has entries outside the pattern
        """
        self._check_open()
        nz = nonzeros(A, self._design.sparsity)
        check_finite(nz, 'A')

        timer = Timer()
        timer.start()
        mode = self._hotstart.begin()
        state = self._native.get()
        with timer.section('factorize'):
            code = self._backend.factorize(state, self._workspace, nz, self._config)
        timer.stop()

        status = self._backend.status_map.classify(code)
        self._hotstart.commit(status)
        self._factorize_count += 1
        self._last_status = status
        self._finish(status, timer.result(), {'start': mode.value, 'nnz': nz.size})
        return status

    def solve(
        self,
        b: ArrayLike,
        nrhs: int | None = None,
        tr: bool = False,
    ) -> NDArray[np.float64]:
        """
        Solve A x = b (or A' x = b) with the cached factorization.

        Args:
            b: Right-hand side(s), shape (n,) or (n, nrhs). With nrhs given,
               a flat vector of length n*nrhs holding the right-hand sides
               column after column is also accepted.
            nrhs: Number of right-hand sides (inferred when None)
            tr: Solve the transposed system

        Returns:
            Solution with the same shape as b (flat input with nrhs > 1
            returns an (n, nrhs) array)

        Raises:
            StructuralError: If no successful factorize() preceded the call,
                or b does not have n rows
        """
        return self._apply(self._backend.solve, b, nrhs, tr, 'solve')

    def solve_triangular(
        self,
        b: ArrayLike,
        nrhs: int | None = None,
        tr: bool = False,
    ) -> NDArray[np.float64]:
        """
        Solve L x = b (or L' x = b) with the triangular factor.

        Only available on backends advertising CAPABILITY_TRIANGULAR.
        """
        self._require_triangular('solve_triangular')
        return self._apply(self._backend.solve_triangular, b, nrhs, tr, 'solve_triangular')

    def cholesky(self, tr: bool = False) -> NDArray[np.float64]:
        """
        Lower Cholesky factor L with A = L L' (L' if tr).

        Only available on backends advertising CAPABILITY_TRIANGULAR.
        """
        self._require_triangular('cholesky')
        self._require_factor('cholesky')
        return self._backend.cholesky(self._native.get(), tr)

    def cholesky_sparsity(self, tr: bool = False) -> Sparsity:
        """
        Pattern of the Cholesky factor L (of L' if tr).

        Symbolic: available before the first factorize(). Only available on
        backends advertising CAPABILITY_TRIANGULAR.
        """
        self._check_open()
        self._require_triangular('cholesky_sparsity')
        return self._backend.cholesky_sparsity(self._design, bool(tr))

    def solve_system(
        self,
        A: Any,
        b: ArrayLike,
        nrhs: int | None = None,
        tr: bool = False,
    ) -> NDArray[np.float64]:
        """
        Factorize A and solve A x = b (or A' x = b) in one call.

        The factor stays cached, so later solve() calls reuse it.

        Raises:
            NumericalFailure: If the factorization fails. There is no
                solution to return, so this raises even without error_on_fail.
        """
        status = self.factorize(A)
        if not status.ok:
            raise status.to_exception(self._name)
        return self.solve(b, nrhs, tr)

    # === Internals ===

    def _require_triangular(self, what: str) -> None:
        if not self.supports(CAPABILITY_TRIANGULAR):
            raise ConfigurationError(
                f"{self._name}: {what}() is not supported by backend "
                f"'{self._backend.name}' (no triangular factor)"
            )

    def _require_factor(self, what: str) -> None:
        self._check_open()
        if not self._hotstart.primed:
            raise StructuralError(
                f"{self._name}: {what}() called without a successful factorize()"
            )

    def _apply(
        self,
        method: Any,
        b: ArrayLike,
        nrhs: int | None,
        tr: bool,
        what: str,
    ) -> NDArray[np.float64]:
        self._require_factor(what)
        rhs, squeeze = self._as_rhs(b, nrhs)
        x, code = method(self._native.get(), rhs, bool(tr))
        status = self._backend.status_map.classify(code)
        if not status.ok:
            # The factor was valid, so a failing solve is never a data problem
            raise status.to_exception(self._name)
        self._solve_count += 1
        return x[:, 0] if squeeze else x

    def _as_rhs(
        self,
        b: ArrayLike,
        nrhs: int | None,
    ) -> tuple[NDArray[np.float64], bool]:
        """Right-hand sides as an (n, nrhs) Fortran array, plus whether to squeeze."""
        n = self._design.n
        rhs = check_array(b, 'b')
        if nrhs is not None and rhs.ndim == 1:
            if nrhs < 1 or rhs.size != n * nrhs:
                raise StructuralError(
                    f"{self._name}: b has {rhs.size} entries, expected n*nrhs = {n}*{nrhs}"
                )
            rhs = rhs.reshape((n, nrhs), order='F')
            return np.array(rhs, order='F'), nrhs == 1
        squeeze = rhs.ndim == 1
        if squeeze:
            rhs = rhs.reshape(-1, 1)
        if rhs.ndim != 2 or rhs.shape[0] != n:
            raise StructuralError(
                f"{self._name}: b has shape {np.shape(b)}, expected ({n},) or ({n}, nrhs)"
            )
        if nrhs is not None and rhs.shape[1] != nrhs:
            raise StructuralError(
                f"{self._name}: b has {rhs.shape[1]} right-hand sides, nrhs = {nrhs}"
            )
        return np.array(rhs, order='F'), squeeze


# =====================================================================
# Public API
# =====================================================================


def linsol(
    name: str,
    pattern: LinsolDesign | Sparsity | Any,
    options: Mapping[str, Any] | None = None,
    *,
    instance_name: str | None = None,
    registry: PluginRegistry | None = None,
) -> Linsol:
    """
    Create a linear solver instance.

    This is the primary public API for linear systems. Option validation,
    structural checks and workspace allocation all happen here, before any
    backend-native state exists.

    Args:
        name: Backend name ('lapacklu', 'lapackchol', 'superlu', or a
              loaded third-party plugin)
        pattern: LinsolDesign, Sparsity, or a matrix whose nonzeros define
                 the pattern
        options: Option values, validated against the backend's schema
        instance_name: Label used in logs and error messages
        registry: Plugin registry (defaults to LINSOL_PLUGINS)

    Returns:
        Linsol instance

    Raises:
        ConfigurationError: Unknown backend or invalid options
        StructuralError: Non-square or structurally singular pattern

    Example:
        >>> import numpy as np
        >>> from pysolvers.linsol import linsol
        >>>
        >>> A = np.array([[4.0, 1.0], [1.0, 3.0]])
        >>> ls = linsol('lapackchol', A)
        >>> ls.factorize(A)
        >>> x = ls.solve([1.0, 2.0])
    """
    registry = registry if registry is not None else LINSOL_PLUGINS
    design = pattern if isinstance(pattern, LinsolDesign) else LinsolDesign.build(pattern)
    return registry.create(name, design, options, instance_name=instance_name)


def has_linsol(name: str, *, registry: PluginRegistry | None = None) -> bool:
    """Check if a linear solver plugin is registered."""
    registry = registry if registry is not None else LINSOL_PLUGINS
    return registry.has(name)


def load_linsol(name: str, *, registry: PluginRegistry | None = None) -> None:
    """
    Explicitly load a linear solver plugin from the 'pysolvers.linsol'
    entry point group. Built-in plugins are always registered already.
    """
    registry = registry if registry is not None else LINSOL_PLUGINS
    registry.load(name)


def doc_linsol(name: str, *, registry: PluginRegistry | None = None) -> str:
    """Documentation and option table of a linear solver plugin."""
    registry = registry if registry is not None else LINSOL_PLUGINS
    return registry.documentation(name)
