"""
Tests for the PySolvers exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via PySolversError)
    - Diagnostic attributes on NumericalFailure, IterationLimitReached,
      BackendFatal and ResourceError
    - Default attribute values (None for optional attributes)
"""

import pytest

from pysolvers.core.exceptions import (
    BackendFatal,
    ConfigurationError,
    ContractViolation,
    IterationLimitReached,
    NumericalFailure,
    PySolversError,
    ResourceError,
    StructuralError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via PySolversError."""

    @pytest.mark.parametrize("exc_type", [
        ConfigurationError,
        StructuralError,
        NumericalFailure,
        IterationLimitReached,
        BackendFatal,
        ResourceError,
        ContractViolation,
    ])
    def test_is_pysolvers_error(self, exc_type):
        with pytest.raises(PySolversError):
            raise exc_type("boom")

    def test_iteration_limit_is_not_numerical_failure(self):
        """An exhausted budget is not a contradiction in the problem."""
        err = IterationLimitReached("budget", iterations=10)
        assert not isinstance(err, NumericalFailure)

    def test_structural_is_not_configuration(self):
        assert not isinstance(StructuralError("x"), ConfigurationError)


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestDiagnosticAttributes:

    def test_numerical_failure_attributes(self):
        err = NumericalFailure("singular", code=3, backend='lapacklu')
        assert err.code == 3
        assert err.backend == 'lapacklu'
        assert str(err) == "singular"

    def test_numerical_failure_defaults(self):
        err = NumericalFailure("singular")
        assert err.code is None
        assert err.backend is None

    def test_iteration_limit_attributes(self):
        err = IterationLimitReached("limit", code=9, backend='slsqp', iterations=50)
        assert err.code == 9
        assert err.backend == 'slsqp'
        assert err.iterations == 50

    def test_backend_fatal_preserves_raw_code(self):
        err = BackendFatal("unknown", code=-12345, backend='slsqp', instance='qp0')
        assert err.code == -12345
        assert err.instance == 'qp0'

    def test_backend_fatal_defaults(self):
        err = BackendFatal("unknown")
        assert err.code is None
        assert err.backend is None
        assert err.instance is None

    def test_resource_error_attributes(self):
        err = ResourceError("oom", instance='ls0', nbytes=8 * 10**12)
        assert err.instance == 'ls0'
        assert err.nbytes == 8 * 10**12
