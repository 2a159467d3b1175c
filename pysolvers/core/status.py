"""
Error mapper: backend status codes to the shared taxonomy.

Each backend publishes a StatusMap translating its native return codes
(LAPACK info, SLSQP exit modes, ...) into a StatusKind. The mapping is total:
every integer has a classification, unrecognised codes become BACKEND_FATAL
with the raw code preserved. StatusMap is pure and holds no mutable state.

Usage:
    LAPACK_STATUS = StatusMap(
        'lapack',
        {0: (StatusKind.SUCCESS, "Successful exit.")},
        ranges=ranges + (
            (lambda code: code > 0, StatusKind.NUMERICAL, "Singular at {code}."),
        ),
    )
    LAPACK_STATUS.classify(3).kind   # StatusKind.NUMERICAL
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping

from pysolvers.core.exceptions import (
    PySolversError,
    ConfigurationError,
    StructuralError,
    NumericalFailure,
    IterationLimitReached,
    BackendFatal,
    ResourceError,
)


class StatusKind(Enum):
    """Closed set of outcome classes."""
    SUCCESS = 'success'
    ITERATION_LIMIT = 'iteration_limit'
    NUMERICAL = 'numerical_failure'
    STRUCTURAL = 'structural_error'
    CONFIGURATION = 'configuration_error'
    RESOURCE = 'resource_error'
    BACKEND_FATAL = 'backend_fatal'

    @property
    def has_iterate(self) -> bool:
        """True if outcomes of this kind carry a usable iterate."""
        return self in (StatusKind.SUCCESS, StatusKind.ITERATION_LIMIT)


@dataclass(frozen=True)
class Classification:
    """
    A classified backend status.

    Attributes:
        kind: Taxonomy class
        code: Raw backend code
        message: Backend message for the code
        backend: Backend name
    """
    kind: StatusKind
    code: int
    message: str
    backend: str

    @classmethod
    def success(cls, backend: str, code: int = 0) -> Classification:
        return cls(StatusKind.SUCCESS, code, "Successful return.", backend)

    @property
    def ok(self) -> bool:
        return self.kind is StatusKind.SUCCESS

    def to_exception(self, instance: str | None = None) -> PySolversError:
        """Build the taxonomy exception for this outcome."""
        text = f"{self.backend} failed: {self.message} (code {self.code})"
        if instance is not None:
            text = f"{instance}: {text}"
        if self.kind is StatusKind.NUMERICAL:
            return NumericalFailure(text, code=self.code, backend=self.backend)
        if self.kind is StatusKind.ITERATION_LIMIT:
            return IterationLimitReached(text, code=self.code, backend=self.backend)
        if self.kind is StatusKind.STRUCTURAL:
            return StructuralError(text)
        if self.kind is StatusKind.CONFIGURATION:
            return ConfigurationError(text)
        if self.kind is StatusKind.RESOURCE:
            return ResourceError(text, instance=instance)
        return BackendFatal(text, code=self.code, backend=self.backend, instance=instance)

    def raise_for_status(self, instance: str | None = None) -> None:
        """Raise the taxonomy exception unless this is a success."""
        if not self.ok:
            raise self.to_exception(instance)


# (predicate, kind, message template formatted with code=..., or a
# callable building the message from the code)
StatusRange = tuple[Callable[[int], bool], StatusKind, str | Callable[[int], str]]


class StatusMap:
    """
    Total mapping from native status codes to Classification.

    Args:
        backend: Backend name reported in classifications
        table: Exact code -> (kind, message)
        ranges: Ordered (predicate, kind, template) rules tried after the table
    """

    def __init__(
        self,
        backend: str,
        table: Mapping[int, tuple[StatusKind, str]],
        ranges: tuple[StatusRange, ...] = (),
    ):
        self._backend = backend
        self._table = dict(table)
        self._ranges = tuple(ranges)

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def codes(self) -> tuple[int, ...]:
        """Documented codes, in ascending order."""
        return tuple(sorted(self._table))

    def classify(self, code: int) -> Classification:
        code = int(code)
        entry = self._table.get(code)
        if entry is not None:
            kind, message = entry
            return Classification(kind, code, message, self._backend)
        for predicate, kind, template in self._ranges:
            if predicate(code):
                message = template(code) if callable(template) else template.format(code=code)
                return Classification(kind, code, message, self._backend)
        return Classification(
            StatusKind.BACKEND_FATAL,
            code,
            f"Unknown error flag: {code}. Consult the {self._backend} documentation.",
            self._backend,
        )

    def message(self, code: int) -> str:
        return self.classify(code).message


# LAPACK driver convention shared by getrf/getrs/potrf/potrs/trtrs
def lapack_status_map(
    backend: str,
    positive_message: str,
    ranges: tuple[StatusRange, ...] = (),
) -> StatusMap:
    """
    Status map for a LAPACK-backed solver.

    info == 0 is success, info < 0 flags an illegal argument (a bug, fatal),
    info > 0 is the routine-specific numerical breakdown. Backend-specific
    ranges are tried before the LAPACK ones.
    """
    return StatusMap(
        backend,
        {0: (StatusKind.SUCCESS, "Successful exit.")},
        ranges=ranges + (
            (lambda code: code > 0, StatusKind.NUMERICAL, positive_message),
            (lambda code: code < 0, StatusKind.BACKEND_FATAL,
             "Illegal argument value (info={code})."),
        ),
    )


__all__ = [
    'StatusKind',
    'Classification',
    'StatusMap',
    'lapack_status_map',
]
