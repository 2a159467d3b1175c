"""
Hot-start / factorization reuse protocol.

Two states:
    VIRGIN: no backend-native state worth reusing
    PRIMED: at least one call produced reusable state (a factorization,
            a previous iterate)

The first call on an instance is always a cold initialization. While PRIMED
every call is a warm restart, unless the backend cannot warm start (then it
cold re-initializes every time while the protocol still reports PRIMED).
reset() forces VIRGIN; callers use it when the sparsity structure itself
changed, since warm restarts assume only numeric values vary.
"""

from __future__ import annotations

import logging
from enum import Enum

from pysolvers.core.status import Classification

logger = logging.getLogger(__name__)


class HotStartState(Enum):
    VIRGIN = 'virgin'
    PRIMED = 'primed'


class StartMode(Enum):
    COLD = 'cold'
    WARM = 'warm'


class HotStartProtocol:
    """
    State machine deciding cold initialization vs warm restart.

    Args:
        owner: Name used in log messages
        warm_capable: False forces a cold initialization on every call
    """

    def __init__(self, owner: str, warm_capable: bool = True):
        self._owner = owner
        self._warm_capable = warm_capable
        self._state = HotStartState.VIRGIN
        self._cold_starts = 0
        self._warm_starts = 0

    @property
    def state(self) -> HotStartState:
        return self._state

    @property
    def primed(self) -> bool:
        return self._state is HotStartState.PRIMED

    @property
    def warm_capable(self) -> bool:
        return self._warm_capable

    @property
    def cold_starts(self) -> int:
        return self._cold_starts

    @property
    def warm_starts(self) -> int:
        return self._warm_starts

    def begin(self) -> StartMode:
        """Start mode for the next call."""
        if self._state is HotStartState.PRIMED and self._warm_capable:
            self._warm_starts += 1
            mode = StartMode.WARM
        else:
            self._cold_starts += 1
            mode = StartMode.COLD
        logger.debug("%s: %s start (state=%s)", self._owner, mode.value, self._state.value)
        return mode

    def commit(self, status: Classification) -> None:
        """Record the outcome of a call started with begin()."""
        if status.kind.has_iterate:
            self._state = HotStartState.PRIMED
        else:
            if self._state is HotStartState.PRIMED:
                logger.debug(
                    "%s: %s discards cached state", self._owner, status.kind.value
                )
            self._state = HotStartState.VIRGIN

    def reset(self) -> None:
        """Force the next call to cold start."""
        self._state = HotStartState.VIRGIN

    def __repr__(self) -> str:
        return (
            f"HotStartProtocol(state={self._state.value}, "
            f"cold={self._cold_starts}, warm={self._warm_starts})"
        )
