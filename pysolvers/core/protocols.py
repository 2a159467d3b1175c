"""
Core protocols for PySolvers.

These define the structural interfaces every backend must satisfy. We use
Protocol (structural typing) rather than ABC (nominal typing): a backend is
a plain class that provides the members below, the registry stores factory
closures around it, and no inheritance chain ties backends together.

Design Principles:
    - Minimal contracts: prescribe only what the solver instance calls
    - Capability-driven: optional entry points are advertised through
      `capabilities` (see pysolvers.core.capabilities)
    - Backends are stateless: everything that survives between calls lives
      in the native state object handed back by create_native()
    - Backends return raw native status codes; classification is done by
      their status_map, never by ad-hoc exceptions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, TypeVar, Any, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from pysolvers.core.options import OptionSchema, ResolvedConfig
from pysolvers.core.status import StatusMap
from pysolvers.core.workspace import SlotSpec, Workspace

D = TypeVar('D', contravariant=True)  # Problem descriptor type


@runtime_checkable
class DataSource(Protocol):
    """
    Minimal protocol for a problem descriptor.

    LinsolDesign and QPDesign implement this protocol and add their own
    sparsity accessors. It exists so that tooling (logging, workspace
    sizing, repr) can treat descriptors uniformly.
    """

    @property
    def n(self) -> int:
        """Number of unknowns."""
        ...

    @property
    def metadata(self) -> dict[str, Any]:
        """
        Descriptor-specific metadata.

        Examples:
            Linsol: {'n': 3, 'nnz': 7, 'structural_rank': 3}
            QP: {'n': 2, 'm': 1, 'nnz_h': 2, 'nnz_a': 2}
        """
        ...


@runtime_checkable
class Backend(Protocol[D]):
    """
    Members shared by every backend, regardless of capability.

    Convention for `name`: the registry key, lower case ('lapacklu',
    'superlu', 'slsqp').
    """

    @property
    def name(self) -> str:
        ...

    @property
    def options(self) -> OptionSchema:
        """Backend-specific options (the common options are added by the registry)."""
        ...

    @property
    def status_map(self) -> StatusMap:
        ...

    @property
    def capabilities(self) -> frozenset[str]:
        ...

    def workspace_layout(self, design: D) -> tuple[SlotSpec, ...]:
        """
        Scratch slots needed for a descriptor.

        Must be a pure function of the descriptor's dimensions.
        """
        ...

    def check_structure(self, design: D) -> None:
        """
        Reject descriptors this backend cannot solve by construction.

        Raises:
            StructuralError: If the pattern is unsuitable
        """
        ...

    def create_native(self, design: D, config: ResolvedConfig) -> Any:
        """Build backend-native state. Called lazily, at most once per handle."""
        ...

    def release_native(self, state: Any) -> None:
        """Release backend-native state. Called exactly once per created state."""
        ...


@runtime_checkable
class LinsolBackend(Backend[D], Protocol[D]):
    """
    Linear-system capability.

    factorize() marshals the nonzeros into the slots the backend declared in
    workspace_layout(); the native state remembers the pattern.
    """

    def factorize(
        self,
        state: Any,
        workspace: Workspace,
        nz: NDArray[np.float64],
        config: ResolvedConfig,
    ) -> int:
        """
        Factorize A, given by its nonzeros in the descriptor's pattern.

        Returns:
            Native status code (classified through status_map)
        """
        ...

    def solve(
        self,
        state: Any,
        rhs: NDArray[np.float64],
        tr: bool,
    ) -> tuple[NDArray[np.float64], int]:
        """
        Solve A x = rhs (A' x = rhs if tr) with the cached factor.

        Args:
            rhs: Right-hand sides, shape (n, nrhs)

        Returns:
            (solution of shape (n, nrhs), native status code)
        """
        ...


@dataclass
class QPData:
    """
    Dense views of one QP call, all of them workspace slots.

    Infinite bounds are represented by +-inf; m may be 0.
    """
    h: NDArray[np.float64]
    g: NDArray[np.float64]
    a: NDArray[np.float64]
    lbx: NDArray[np.float64]
    ubx: NDArray[np.float64]
    lba: NDArray[np.float64]
    uba: NDArray[np.float64]

    @property
    def n(self) -> int:
        return self.g.shape[0]

    @property
    def m(self) -> int:
        return self.lba.shape[0]


@dataclass
class QPRun:
    """
    Raw outcome of a QP backend run.

    Attributes:
        code: Native status code
        x: Final (or best) iterate, None if the backend produced none
        iterations: Iterations performed
        lam: Multipliers in the engine convention, or None if the backend
             does not report them (the instance recovers them on demand)
        info: Backend diagnostics merged into the result info
    """
    code: int
    x: NDArray[np.float64] | None
    iterations: int
    lam: NDArray[np.float64] | None = None
    info: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Budget:
    """Per-call iteration and wall-clock budget."""
    max_iter: int
    max_time: float | None


@runtime_checkable
class QpsolBackend(Backend[D], Protocol[D]):
    """
    QP capability: min 0.5 x'Hx + g'x  s.t.  lbx <= x <= ubx, lba <= Ax <= uba.
    """

    @property
    def supports_hotstart(self) -> bool:
        """False if every call must cold start."""
        ...

    def default_max_iter(self, design: D) -> int:
        """Iteration budget used when max_iter is unset."""
        ...

    def solve(
        self,
        state: Any,
        data: QPData,
        config: ResolvedConfig,
        budget: Budget,
        warm: bool,
    ) -> QPRun:
        """
        Run the backend.

        Args:
            state: Native state (holds the previous iterate when warm)
            data: Marshaled problem data
            config: Resolved options
            budget: Iteration and time budget for this call
            warm: True to restart from the cached state

        Returns:
            QPRun with the native status code
        """
        ...
