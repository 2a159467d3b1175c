"""
Per-instance workspace.

A Workspace is one flat float64 arena carved into named slots. The layout
is a pure function of the problem descriptor (each backend's
workspace_layout), computed and allocated exactly once when the solver
instance is constructed, and never resized afterwards. Slots are handed out
as views; requesting an undeclared slot or reshaping a slot to a size it
does not have is a ContractViolation, not a runtime resize.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable
import numpy as np
from numpy.typing import NDArray

from pysolvers.core.exceptions import ContractViolation, ResourceError


@dataclass(frozen=True)
class SlotSpec:
    """One named slot of a workspace layout."""
    name: str
    size: int


def layout(*slots: tuple[str, int]) -> tuple[SlotSpec, ...]:
    """Build a layout from (name, size) pairs."""
    return tuple(SlotSpec(name, int(size)) for name, size in slots)


class Workspace:
    """
    Pre-sized scratch memory owned by one solver instance.

    Usage:
        ws = Workspace.allocate(layout(('h', n * n), ('g', n)))
        h = ws.matrix('h', (n, n))
        g = ws.slot('g')
    """

    def __init__(self, slots: Iterable[SlotSpec], owner: str | None = None):
        self._owner = owner
        self._offsets: dict[str, tuple[int, int]] = {}
        offset = 0
        for spec in slots:
            if spec.name in self._offsets:
                raise ContractViolation(f"workspace slot '{spec.name}' declared twice")
            if spec.size < 0:
                raise ContractViolation(
                    f"workspace slot '{spec.name}' has negative size {spec.size}"
                )
            self._offsets[spec.name] = (offset, spec.size)
            offset += spec.size
        self._size = offset
        self._arena: NDArray[np.float64] | None = None
        self._allocations = 0

    @classmethod
    def allocate(cls, slots: Iterable[SlotSpec], owner: str | None = None) -> Workspace:
        ws = cls(slots, owner=owner)
        ws._allocate()
        return ws

    def _allocate(self) -> None:
        if self._arena is not None:
            raise ContractViolation("workspace is allocated exactly once")
        try:
            self._arena = np.zeros(self._size, dtype=np.float64)
        except MemoryError as e:
            raise ResourceError(
                f"cannot allocate workspace of {self._size} doubles",
                instance=self._owner,
                nbytes=self._size * 8,
            ) from e
        self._allocations += 1

    # === Properties ===

    @property
    def size(self) -> int:
        """Total number of float64 entries."""
        return self._size

    @property
    def nbytes(self) -> int:
        return self._size * np.dtype(np.float64).itemsize

    @property
    def allocations(self) -> int:
        """Number of arena allocations performed (1 once allocated)."""
        return self._allocations

    @property
    def slots(self) -> dict[str, int]:
        return {name: size for name, (_, size) in self._offsets.items()}

    # === Access ===

    def slot(self, name: str) -> NDArray[np.float64]:
        """Flat view of a slot."""
        if self._arena is None:
            raise ContractViolation("workspace accessed before allocation")
        try:
            offset, size = self._offsets[name]
        except KeyError:
            raise ContractViolation(
                f"workspace has no slot '{name}' (slots: {', '.join(self._offsets)})"
            ) from None
        return self._arena[offset:offset + size]

    def matrix(
        self,
        name: str,
        shape: tuple[int, int],
        order: str = 'F',
    ) -> NDArray[np.float64]:
        """2D view of a slot, column-major unless order='C'."""
        flat = self.slot(name)
        if shape[0] * shape[1] != flat.size:
            raise ContractViolation(
                f"workspace slot '{name}' holds {flat.size} entries, "
                f"cannot view as {shape[0]}x{shape[1]}"
            )
        return flat.reshape(shape, order=order)

    def __repr__(self) -> str:
        slots = ', '.join(f"{k}={v}" for k, v in self.slots.items())
        return f"Workspace(size={self._size}, {slots})"


def layout_size(slots: Iterable[SlotSpec]) -> int:
    return sum(spec.size for spec in slots)


__all__ = [
    'SlotSpec',
    'Workspace',
    'layout',
    'layout_size',
]
