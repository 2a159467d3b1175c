"""
Tests for the error mapper.

Validates:
    - Totality: every documented code and unknown codes classify
    - Unknown codes become BACKEND_FATAL with the raw code preserved
    - Classification.to_exception builds the matching taxonomy exception
"""

import pytest

from pysolvers.core.exceptions import (
    BackendFatal,
    ConfigurationError,
    IterationLimitReached,
    NumericalFailure,
    ResourceError,
    StructuralError,
)
from pysolvers.core.status import Classification, StatusKind, StatusMap, lapack_status_map
from pysolvers.linsol.backends.lapacklu import LapackLUBackend
from pysolvers.linsol.backends.lapackchol import LapackCholeskyBackend
from pysolvers.linsol.backends.superlu import SuperLUBackend
from pysolvers.qpsol.backends.slsqp import SLSQPBackend
from pysolvers.qpsol.backends.lbfgsb import LBFGSBBackend

STATUS_MAPS = [
    LapackLUBackend.status_map,
    LapackCholeskyBackend.status_map,
    SuperLUBackend.status_map,
    SLSQPBackend.status_map,
    LBFGSBBackend.status_map,
]


# ═══════════════════════════════════════════════════════════════════════
# Totality
# ═══════════════════════════════════════════════════════════════════════


class TestTotality:

    @pytest.mark.parametrize("status_map", STATUS_MAPS, ids=lambda s: s.backend)
    def test_documented_and_unknown_codes(self, status_map):
        for code in status_map.codes + (-999999, 123456):
            result = status_map.classify(code)
            assert isinstance(result.kind, StatusKind)
            assert result.code == code
            assert result.backend == status_map.backend
            assert result.message

    @pytest.mark.parametrize("status_map", STATUS_MAPS, ids=lambda s: s.backend)
    def test_zero_is_success(self, status_map):
        assert status_map.classify(0).ok

    def test_unknown_code_is_fatal(self):
        status = SLSQPBackend.status_map.classify(4242)
        assert status.kind is StatusKind.BACKEND_FATAL
        assert "Unknown error flag: 4242" in status.message

    def test_pure(self):
        m = SLSQPBackend.status_map
        assert m.classify(9) == m.classify(9)


class TestLapackConvention:

    def test_positive_is_numerical(self):
        m = lapack_status_map('lapack', "minor {code} not positive definite")
        status = m.classify(3)
        assert status.kind is StatusKind.NUMERICAL
        assert status.message == "minor 3 not positive definite"

    def test_negative_is_fatal(self):
        m = lapack_status_map('lapack', "")
        status = m.classify(-4)
        assert status.kind is StatusKind.BACKEND_FATAL
        assert "info=-4" in status.message

    def test_backend_ranges_tried_first(self):
        m = lapack_status_map(
            'lapack', "U({code},{code}) is zero",
            ranges=((lambda code: code >= 100, StatusKind.NUMERICAL,
                     lambda code: f"row {code - 100} is zero"),),
        )
        assert m.classify(3).message == "U(3,3) is zero"
        assert m.classify(102).message == "row 2 is zero"


class TestRanges:

    def test_table_before_ranges(self):
        m = StatusMap('x', {5: (StatusKind.SUCCESS, "five")},
                      ranges=((lambda c: c > 0, StatusKind.NUMERICAL, "pos {code}"),))
        assert m.classify(5).ok
        assert m.classify(6).kind is StatusKind.NUMERICAL
        assert m.message(6) == "pos 6"


# ═══════════════════════════════════════════════════════════════════════
# Exceptions
# ═══════════════════════════════════════════════════════════════════════


class TestToException:

    @pytest.mark.parametrize("kind, exc_type", [
        (StatusKind.NUMERICAL, NumericalFailure),
        (StatusKind.ITERATION_LIMIT, IterationLimitReached),
        (StatusKind.STRUCTURAL, StructuralError),
        (StatusKind.CONFIGURATION, ConfigurationError),
        (StatusKind.RESOURCE, ResourceError),
        (StatusKind.BACKEND_FATAL, BackendFatal),
    ])
    def test_kind_to_exception(self, kind, exc_type):
        exc = Classification(kind, 7, "msg", 'fake').to_exception('inst')
        assert isinstance(exc, exc_type)
        assert "inst" in str(exc)
        assert "code 7" in str(exc)

    def test_backend_fatal_carries_code(self):
        exc = Classification(StatusKind.BACKEND_FATAL, -3, "bad", 'fake').to_exception('qp1')
        assert exc.code == -3
        assert exc.backend == 'fake'
        assert exc.instance == 'qp1'

    def test_success_does_not_raise(self):
        Classification.success('fake').raise_for_status()

    def test_failure_raises(self):
        with pytest.raises(NumericalFailure):
            Classification(StatusKind.NUMERICAL, 1, "singular", 'fake').raise_for_status()
