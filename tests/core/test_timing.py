"""
Tests for the timing utilities.
"""

import time

import pytest

from pysolvers.core.compute.timing import Deadline, Timer, timed


class TestTimer:

    def test_sections_accumulate(self):
        timer = Timer()
        timer.start()
        for _ in range(2):
            with timer.section('work'):
                pass
        timer.stop()
        result = timer.result()
        assert set(result) == {'total_seconds', 'work'}
        assert result['total_seconds'] >= result['work'] >= 0.0

    def test_section_recorded_on_error(self):
        timer = Timer()
        timer.start()
        with pytest.raises(ValueError):
            with timer.section('fails'):
                raise ValueError()
        timer.stop()
        assert 'fails' in timer.result()

    def test_result_before_stop(self):
        timer = Timer()
        timer.start()
        with pytest.raises(RuntimeError, match="before stop"):
            timer.result()

    def test_stop_before_start(self):
        with pytest.raises(RuntimeError, match="before start"):
            Timer().stop()

    def test_timed(self):
        with timed() as timer:
            pass
        assert timer.result()['total_seconds'] >= 0.0


class TestDeadline:

    def test_unlimited(self):
        assert not Deadline(None).expired()

    def test_zero_expires(self):
        deadline = Deadline(0.0)
        time.sleep(0.001)
        assert deadline.expired()

    def test_generous(self):
        assert not Deadline(3600.0).expired()
