"""
Single owning handle for backend-native state.

The native state (a LAPACK factor, a SuperLU object, a cached iterate) is
created lazily on first use and released exactly once: by close(), by
reset(), or by the garbage collector through weakref.finalize. Access after
close() is a ContractViolation, so use-after-release and double release
cannot happen through this handle.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Callable, Generic, TypeVar

from pysolvers.core.exceptions import ContractViolation, ResourceError

logger = logging.getLogger(__name__)

S = TypeVar('S')  # Native state type


class _Cell:
    """Mutable box shared with the finalizer (which must not reference the handle)."""
    __slots__ = ('state', 'releases')

    def __init__(self) -> None:
        self.state: Any = None
        self.releases = 0


def _release(cell: _Cell, release: Callable[[Any], None], owner: str) -> None:
    state, cell.state = cell.state, None
    if state is not None:
        release(state)
        cell.releases += 1
        logger.debug("%s: released native state", owner)


class NativeHandle(Generic[S]):
    """
    Owning handle around backend-native state.

    Args:
        create: Zero-argument factory building the native state
        release: Callback releasing a native state object
        owner: Name used in diagnostics
    """

    def __init__(
        self,
        create: Callable[[], S],
        release: Callable[[S], None],
        owner: str,
    ):
        self._create = create
        self._release_fn = release
        self._owner = owner
        self._cell = _Cell()
        self._closed = False
        self._finalizer = weakref.finalize(self, _release, self._cell, release, owner)

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def is_open(self) -> bool:
        """True if native state currently exists."""
        return self._cell.state is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def releases(self) -> int:
        """How many native states this handle has released."""
        return self._cell.releases

    def get(self) -> S:
        """Native state, constructed on first use."""
        if self._closed:
            raise ContractViolation(f"{self._owner}: native state used after release")
        if self._cell.state is None:
            try:
                self._cell.state = self._create()
            except MemoryError as e:
                raise ResourceError(
                    f"{self._owner}: cannot allocate backend-native state",
                    instance=self._owner,
                ) from e
            logger.debug("%s: created native state", self._owner)
        return self._cell.state

    def peek(self) -> S | None:
        """Native state if it exists, without creating it."""
        if self._closed:
            raise ContractViolation(f"{self._owner}: native state used after release")
        return self._cell.state

    def reset(self) -> None:
        """Release the current native state; the next get() builds a fresh one."""
        if self._closed:
            raise ContractViolation(f"{self._owner}: reset after release")
        _release(self._cell, self._release_fn, self._owner)

    def close(self) -> None:
        """Release native state for good. Idempotent."""
        if not self._closed:
            self._closed = True
            self._finalizer()


__all__ = [
    'NativeHandle',
]
