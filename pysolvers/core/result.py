"""
Generic result container for all PySolvers computations.

The Result class provides a standardized envelope that solver outcomes use.
This enables shared tooling for timing, logging and status reporting while
allowing each capability to define its own parameter structure.

Design decisions:
    - Generic over parameter payload P for type safety
    - status is the Classification produced by the backend's status map
    - info dict for flexible metadata (start mode, iterations, diagnostics)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True)
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any, TYPE_CHECKING

if TYPE_CHECKING:
    from pysolvers.core.status import Classification

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for a solver call.

    Type Parameters:
        P: The capability-specific parameter payload type

    Attributes:
        params: Capability-specific payload (primal/dual vectors, cost, ...)
        status: Classified backend status
        info: Structured metadata (start mode, iterations, raw code)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the backend that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=QPParams(x=x, lam=lam, cost=-8.0, iterations=3),
        ...     status=Classification.success('slsqp'),
        ...     info={'start': 'cold'},
        ...     timing={'total_seconds': 0.002},
        ...     backend_name='slsqp'
        ... )
    """
    params: P
    status: 'Classification'
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
