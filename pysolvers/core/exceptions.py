"""
Exception hierarchy for PySolvers.

All exceptions inherit from PySolversError to allow catching any
library-specific error. The taxonomy is closed: every backend status code
is classified into exactly one of these kinds by the status mapper
(pysolvers.core.status).

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages name the backend, the instance and the raw code
    - Configuration and structural errors are raised before any
      backend-native state exists
    - Numerical failures and iteration limits are normally returned as
      typed outcomes; the exception classes exist for callers that opt
      into raising (error_on_fail, raise_for_status)
"""


class PySolversError(Exception):
    """Base exception for all PySolvers errors."""
    pass


class ConfigurationError(PySolversError):
    """
    Invalid configuration.

    Raised for an unknown backend name, an unknown or invalid option, or
    malformed bounds (lower > upper). Always detected before any backend call.
    """
    pass


class StructuralError(PySolversError):
    """
    The sparsity structure makes the problem unsolvable by construction.

    Raised for dimension mismatches, structurally singular patterns, or
    calling solve() on a linear solver that holds no valid factorization.
    """
    pass


class NumericalFailure(PySolversError):
    """
    The backend found the numeric values degenerate.

    Singular matrix at factorization time, infeasible or unbounded QP,
    indefinite Hessian without regularisation. Not fatal to the instance:
    a later call with different values on the same structure may succeed.

    Attributes:
        code: Raw backend status code
        backend: Name of the backend that reported the failure
    """

    def __init__(
        self,
        message: str,
        code: int | None = None,
        backend: str | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.backend = backend


class IterationLimitReached(PySolversError):
    """
    The iteration or time budget was exhausted before convergence.

    Attributes:
        code: Raw backend status code
        backend: Name of the backend
        iterations: Iterations performed, if known
    """

    def __init__(
        self,
        message: str,
        code: int | None = None,
        backend: str | None = None,
        iterations: int | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.backend = backend
        self.iterations = iterations


class BackendFatal(PySolversError):
    """
    A backend status that could not be classified, or an internal backend error.

    The raw code is always preserved for diagnostics.

    Attributes:
        code: Raw backend status code
        backend: Name of the backend
        instance: Name of the solver instance, if known
    """

    def __init__(
        self,
        message: str,
        code: int | None = None,
        backend: str | None = None,
        instance: str | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.backend = backend
        self.instance = instance


class ResourceError(PySolversError):
    """
    Workspace or backend-native state could not be allocated.

    Attributes:
        instance: Name of the solver instance
        nbytes: Requested allocation size, if known
    """

    def __init__(
        self,
        message: str,
        instance: str | None = None,
        nbytes: int | None = None,
    ):
        super().__init__(message)
        self.instance = instance
        self.nbytes = nbytes


class ContractViolation(PySolversError):
    """
    Internal programming-contract violation.

    Indicates a bug in the caller or a backend (data inconsistent with the
    declared sparsity, workspace overrun, use after release), never a data
    problem that a retry could fix.
    """
    pass
