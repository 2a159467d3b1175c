"""
Linear-system design.

A LinsolDesign describes the structure of A in A x = b: its sparsity
pattern and nothing else. Numeric values travel with each factorize()
call, so one design serves any number of matrices sharing the pattern.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pysolvers.core.exceptions import StructuralError
from pysolvers.core.sparsity import Sparsity


@dataclass(frozen=True)
class LinsolDesign:
    """
    Structure of a square linear system.

    Immutable after construction and shared by reference with every
    instance built on it.

    Construction:
        LinsolDesign.build(Sparsity.dense(3, 3))
        LinsolDesign.build(np.eye(3))            # pattern of the nonzeros
        LinsolDesign.build(scipy_sparse_matrix)
    """
    _sparsity: Sparsity

    @classmethod
    def build(cls, pattern: Sparsity | Any) -> LinsolDesign:
        """
        Build from a pattern or from a matrix whose nonzeros define one.

        Raises:
            StructuralError: If the pattern is not square
        """
        sparsity = pattern if isinstance(pattern, Sparsity) else Sparsity.from_matrix(pattern)
        if not sparsity.is_square:
            raise StructuralError(
                f"linear system matrix must be square, got {sparsity.dim()}"
            )
        return cls(_sparsity=sparsity)

    @property
    def sparsity(self) -> Sparsity:
        return self._sparsity

    @property
    def n(self) -> int:
        return self._sparsity.nrow

    @property
    def nnz(self) -> int:
        return self._sparsity.nnz

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            'n': self.n,
            'nnz': self.nnz,
            'structural_rank': self._sparsity.structural_rank(),
        }

    def check_structurally_regular(self) -> None:
        """
        Raises:
            StructuralError: If A is singular for every choice of values
        """
        rank = self._sparsity.structural_rank()
        if rank < self.n:
            raise StructuralError(
                f"matrix pattern {self._sparsity.dim()} is structurally singular "
                f"(structural rank {rank} < {self.n})"
            )

    def __repr__(self) -> str:
        return f"LinsolDesign({self._sparsity.dim()}, nnz={self.nnz})"
