"""
QP design.

A QPDesign fixes the structure of

    minimize    0.5 x'Hx + g'x
    subject to  lbx <= x <= ubx
                lba <= A x <= uba

i.e. the number of variables n, the number of linear constraints m and the
sparsity patterns of H (n x n) and A (m x n). Numeric values arrive with
every solve() call; warm restarts assume they are the only thing that
changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import numpy as np
import scipy.sparse as sp

from pysolvers.core.exceptions import StructuralError
from pysolvers.core.sparsity import Sparsity


@dataclass(frozen=True)
class QPDesign:
    """
    Structure of a quadratic program.

    Immutable after construction.

    Construction:
        QPDesign.build(Sparsity.dense(2, 2))                 # m = 0
        QPDesign.build(np.eye(2), np.ones((1, 2)))           # patterns of the nonzeros
        QPDesign.build(Sparsity.lower(3), Sparsity.dense(2, 3))
    """
    _h: Sparsity
    _a: Sparsity
    _h_half_stored: bool

    @classmethod
    def build(cls, h: Sparsity | Any, a: Sparsity | Any | None = None) -> QPDesign:
        """
        Build from patterns, or from matrices whose nonzeros define them.

        Args:
            h: Hessian pattern, n x n. A pattern holding one triangle only
               is treated as half-stored and mirrored on marshaling.
            a: Constraint Jacobian pattern, m x n; None for m = 0

        Raises:
            StructuralError: If H is not square or A has the wrong width
        """
        h_sp = h if isinstance(h, Sparsity) else Sparsity.from_matrix(h)
        if not h_sp.is_square:
            raise StructuralError(f"Hessian pattern must be square, got {h_sp.dim()}")
        n = h_sp.nrow

        if a is None:
            a_sp = Sparsity.dense(0, n)
        elif isinstance(a, Sparsity):
            a_sp = a
        elif sp.issparse(a):
            a_sp = Sparsity.from_matrix(a)
        else:
            a_sp = Sparsity.from_matrix(np.atleast_2d(np.asarray(a, dtype=np.float64)))
        if a_sp.ncol != n:
            raise StructuralError(
                f"constraint Jacobian pattern {a_sp.dim()} does not match "
                f"{n} variables (Hessian {h_sp.dim()})"
            )

        rows, cols = h_sp.get_triplet()
        lower = bool(np.any(rows > cols))
        upper = bool(np.any(rows < cols))
        return cls(_h=h_sp, _a=a_sp, _h_half_stored=lower != upper)

    @property
    def h(self) -> Sparsity:
        return self._h

    @property
    def a(self) -> Sparsity:
        return self._a

    @property
    def n(self) -> int:
        """Number of decision variables."""
        return self._h.nrow

    @property
    def m(self) -> int:
        """Number of linear constraints."""
        return self._a.nrow

    @property
    def h_half_stored(self) -> bool:
        """True if H stores a single triangle and must be mirrored."""
        return self._h_half_stored

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            'n': self.n,
            'm': self.m,
            'nnz_h': self._h.nnz,
            'nnz_a': self._a.nnz,
        }

    def __repr__(self) -> str:
        return f"QPDesign(n={self.n}, m={self.m}, H={self._h.dim()}, A={self._a.dim()})"
