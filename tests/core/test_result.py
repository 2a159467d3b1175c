"""
Tests for the Result[P] envelope.

Validates:
    - Generic type parameter works with arbitrary payload types
    - Frozen immutability
    - Default factory for warnings
    - has_warning() method
"""

from dataclasses import FrozenInstanceError, dataclass

import pytest

from pysolvers.core.result import Result
from pysolvers.core.status import Classification


# ═══════════════════════════════════════════════════════════════════════
# Test payload types
# ═══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class FakeParams:
    """Minimal payload for testing."""
    value: float


def _result(**kwargs):
    defaults = dict(
        params=FakeParams(value=42.0),
        status=Classification.success('fake'),
        info={'start': 'cold'},
        timing={'total_seconds': 0.01},
        backend_name='fake',
    )
    defaults.update(kwargs)
    return Result(**defaults)


# ═══════════════════════════════════════════════════════════════════════
# Construction and field access
# ═══════════════════════════════════════════════════════════════════════


class TestResultConstruction:

    def test_basic_creation(self):
        result = _result()
        assert result.params.value == 42.0
        assert result.status.ok
        assert result.info['start'] == 'cold'
        assert result.timing['total_seconds'] == 0.01
        assert result.backend_name == 'fake'

    def test_timing_optional(self):
        assert _result(timing=None).timing is None

    def test_warnings_default_empty(self):
        assert _result().warnings == ()


class TestResultImmutability:

    def test_cannot_set_params(self):
        result = _result()
        with pytest.raises(FrozenInstanceError):
            result.params = FakeParams(value=0.0)

    def test_cannot_set_status(self):
        result = _result()
        with pytest.raises(FrozenInstanceError):
            result.status = None


class TestHasWarning:

    def test_substring_match(self):
        result = _result(warnings=("Budget exhausted after 3 iterations",))
        assert result.has_warning("Budget exhausted")

    def test_no_match(self):
        result = _result(warnings=("Hessian shifted",))
        assert not result.has_warning("Budget")

    def test_no_warnings(self):
        assert not _result().has_warning("anything")
