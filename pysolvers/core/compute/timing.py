"""
Execution timing utilities.

Accumulating section timer used by solver instances to report where a call
spent its time (marshaling, backend, multiplier recovery).
"""

import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Accumulating timer.

    Usage:
        timer = Timer()
        timer.start()

        with timer.section('marshal'):
            densify(h_nz, design.h, ws.matrix('h', (n, n)))

        with timer.section('backend'):
            code = backend.solve(state, ...)

        timer.stop()
        result = timer.result()
        # {'total_seconds': 0.004, 'marshal': 0.0001, 'backend': 0.0039}
    """

    def __init__(self) -> None:
        self._sections: dict[str, float] = {}
        self._start_time: float | None = None
        self._total: float | None = None

    def start(self) -> None:
        """Start the overall timer."""
        self._start_time = time.perf_counter()

    def stop(self) -> None:
        """Stop the overall timer."""
        if self._start_time is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = time.perf_counter() - self._start_time

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """
        Time a named section.

        Args:
            name: Section identifier (used as key in result dict)

        Note:
            Sections called repeatedly accumulate.
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self._sections[name] = self._sections.get(name, 0.0) + elapsed

    def result(self) -> dict[str, float]:
        """
        Get timing results.

        Returns:
            Dictionary with 'total_seconds' and all section timings

        Raises:
            RuntimeError: If called before stop()
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")

        result = {'total_seconds': self._total}
        result.update(self._sections)
        return result


class Deadline:
    """
    Wall-clock budget for one backend run.

    Args:
        seconds: Budget in seconds, or None for unlimited
    """

    def __init__(self, seconds: float | None):
        self._seconds = seconds
        self._start = time.perf_counter()

    @property
    def seconds(self) -> float | None:
        return self._seconds

    def expired(self) -> bool:
        if self._seconds is None:
            return False
        return time.perf_counter() - self._start > self._seconds


@contextmanager
def timed() -> Iterator[Timer]:
    """
    Context manager for simple timing.

    Usage:
        with timed() as timer:
            solution = qp.solve(h, g)
        print(f"Took {timer.result()['total_seconds']:.3f}s")
    """
    timer = Timer()
    timer.start()
    try:
        yield timer
    finally:
        timer.stop()
