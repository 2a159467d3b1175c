"""
Solver instance: the unit of ownership.

A SolverInstance exclusively owns its ResolvedConfig, its Workspace, the
backend-native state (behind a single NativeHandle) and its hot-start
protocol. Construction order is fixed:

    1. structural check of the descriptor (StructuralError, nothing allocated)
    2. workspace allocation, exactly once (ResourceError)
    3. native handle set up; the native state itself is built lazily

Options were already validated by the registry before the instance existed.
Instances are not thread safe; distinct instances share nothing mutable.
"""

from __future__ import annotations

import functools
import logging
from typing import Any

from pysolvers.core.exceptions import ContractViolation
from pysolvers.core.handle import NativeHandle
from pysolvers.core.hotstart import HotStartProtocol
from pysolvers.core.options import Option, OptionSchema, ResolvedConfig, OT_BOOL
from pysolvers.core.status import Classification, StatusKind
from pysolvers.core.workspace import Workspace

logger = logging.getLogger(__name__)


# Options every backend of every capability accepts
COMMON_OPTIONS = OptionSchema((
    Option('verbose', OT_BOOL, False, "Log per-call diagnostics at INFO level"),
    Option('print_time', OT_BOOL, False, "Log the timing breakdown of every call"),
    Option('error_on_fail', OT_BOOL, False,
           "Raise the matching exception when a call does not succeed"),
))

# Always propagated, whatever error_on_fail says
_ALWAYS_RAISE = frozenset({StatusKind.BACKEND_FATAL, StatusKind.RESOURCE})


class SolverInstance:
    """
    Shared machinery of Linsol and Qpsol.

    Args:
        backend: Backend implementing LinsolBackend or QpsolBackend
        design: Problem descriptor
        config: Resolved options
        name: Instance name used in logs and error messages
        warm_capable: Whether repeated calls may reuse native state
    """

    def __init__(
        self,
        backend: Any,
        design: Any,
        config: ResolvedConfig,
        name: str,
        warm_capable: bool = True,
    ):
        self._backend = backend
        self._design = design
        self._config = config
        self._name = name

        backend.check_structure(design)
        self._workspace = Workspace.allocate(backend.workspace_layout(design), owner=name)
        self._native = NativeHandle(
            functools.partial(backend.create_native, design, config),
            backend.release_native,
            name,
        )
        self._hotstart = HotStartProtocol(name, warm_capable=warm_capable)
        logger.debug(
            "%s: constructed on backend '%s' (%s, workspace %d doubles)",
            name, backend.name, design, self._workspace.size,
        )

    # === Properties ===

    @property
    def name(self) -> str:
        return self._name

    @property
    def backend_name(self) -> str:
        return self._backend.name

    @property
    def backend(self) -> Any:
        return self._backend

    @property
    def design(self) -> Any:
        return self._design

    @property
    def config(self) -> ResolvedConfig:
        return self._config

    @property
    def workspace(self) -> Workspace:
        return self._workspace

    @property
    def native(self) -> NativeHandle:
        return self._native

    @property
    def hotstart(self) -> HotStartProtocol:
        return self._hotstart

    @property
    def closed(self) -> bool:
        return self._native.closed

    def supports(self, capability: str) -> bool:
        """Check if the backend advertises a capability."""
        return capability in self._backend.capabilities

    # === Lifecycle ===

    def reset(self) -> None:
        """
        Discard cached native state; the next call cold starts.

        Use after the numeric data changed in a way that invalidates warm
        restarts. A changed sparsity pattern needs a new instance.
        """
        self._check_open()
        self._hotstart.reset()
        self._native.reset()
        logger.debug("%s: reset", self._name)

    def close(self) -> None:
        """Release native state. Idempotent; the instance is unusable afterwards."""
        self._native.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._native.closed:
            raise ContractViolation(f"{self._name}: instance used after close()")

    # === Outcome handling ===

    def _finish(
        self,
        status: Classification,
        timing: dict[str, float] | None,
        info: dict[str, Any],
    ) -> None:
        """Log a call's outcome and raise when the configuration demands it."""
        if self._config['verbose']:
            logger.info(
                "%s: %s %s (code %d, %s)",
                self._name, self._backend.name, status.kind.value,
                status.code, ', '.join(f"{k}={v}" for k, v in info.items()),
            )
        if self._config['print_time'] and timing is not None:
            logger.info(
                "%s: timing %s", self._name,
                ', '.join(f"{k}={v:.3e}s" for k, v in timing.items()),
            )
        if status.ok:
            return
        if status.kind in _ALWAYS_RAISE or self._config['error_on_fail']:
            raise status.to_exception(self._name)
        logger.debug("%s: returning %s outcome", self._name, status.kind.value)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self._name!r}, backend={self._backend.name!r}, "
            f"{self._design!r}, state={self._hotstart.state.value})"
        )
