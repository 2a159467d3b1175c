"""
Sparsity pattern value type.

A Sparsity describes the nonzero structure of a matrix independent of its
numeric values, stored in compressed-column form (colind, row). Numeric
values travel separately as a flat vector of length nnz ordered column by
column, rows ascending within each column.

Sparsity is immutable and hashable on the pattern, so problem descriptors
can share it by reference and compare patterns cheaply.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray
import scipy.sparse as sp
from scipy.sparse.csgraph import structural_rank

from pysolvers.core.exceptions import ContractViolation


@dataclass(frozen=True, eq=False)
class Sparsity:
    """
    Compressed-column sparsity pattern.

    Construction:
        Sparsity.dense(3, 2)
        Sparsity.diag(4)
        Sparsity.lower(4)                             # dense lower triangle
        Sparsity.triplet(3, 3, rows=[0, 2], cols=[0, 1])
        Sparsity.from_matrix(A)                       # ndarray or scipy.sparse
    """
    _nrow: int
    _ncol: int
    _colind: tuple[int, ...]
    _row: tuple[int, ...]

    def __post_init__(self) -> None:
        if self._nrow < 0 or self._ncol < 0:
            raise ContractViolation(
                f"Sparsity: negative dimensions {self._nrow}x{self._ncol}"
            )
        if len(self._colind) != self._ncol + 1 or self._colind[0] != 0:
            raise ContractViolation(
                f"Sparsity: colind must have length ncol+1={self._ncol + 1} "
                f"and start at 0, got {len(self._colind)} entries"
            )
        if self._colind[-1] != len(self._row):
            raise ContractViolation(
                f"Sparsity: colind[-1]={self._colind[-1]} does not match "
                f"len(row)={len(self._row)}"
            )
        for c in range(self._ncol):
            rows = self._row[self._colind[c]:self._colind[c + 1]]
            if any(r < 0 or r >= self._nrow for r in rows):
                raise ContractViolation(f"Sparsity: row index out of range in column {c}")
            if any(a >= b for a, b in zip(rows, rows[1:])):
                raise ContractViolation(
                    f"Sparsity: rows in column {c} must be strictly increasing"
                )

    # === Constructors ===

    @classmethod
    def dense(cls, nrow: int, ncol: int = 1) -> Sparsity:
        """Fully dense nrow x ncol pattern."""
        colind = tuple(c * nrow for c in range(ncol + 1))
        row = tuple(r for _ in range(ncol) for r in range(nrow))
        return cls(nrow, ncol, colind, row)

    @classmethod
    def diag(cls, n: int) -> Sparsity:
        """Diagonal n x n pattern."""
        return cls(n, n, tuple(range(n + 1)), tuple(range(n)))

    @classmethod
    def lower(cls, n: int) -> Sparsity:
        """Dense lower triangle (diagonal included) of an n x n matrix."""
        colind = [0]
        row: list[int] = []
        for c in range(n):
            row.extend(range(c, n))
            colind.append(len(row))
        return cls(n, n, tuple(colind), tuple(row))

    @classmethod
    def triplet(
        cls,
        nrow: int,
        ncol: int,
        rows: ArrayLike,
        cols: ArrayLike,
    ) -> Sparsity:
        """Pattern from (row, col) index pairs; duplicates are merged."""
        rows_arr = np.asarray(rows, dtype=np.int64).ravel()
        cols_arr = np.asarray(cols, dtype=np.int64).ravel()
        if rows_arr.shape != cols_arr.shape:
            raise ContractViolation(
                f"Sparsity.triplet: {rows_arr.size} rows but {cols_arr.size} cols"
            )
        pattern = sp.csc_matrix(
            (np.ones(rows_arr.size), (rows_arr, cols_arr)), shape=(nrow, ncol)
        )
        return cls._from_csc(pattern)

    @classmethod
    def from_matrix(cls, matrix: Any) -> Sparsity:
        """
        Pattern of the stored entries of a scipy.sparse matrix, or of the
        nonzero entries of a dense array.
        """
        if sp.issparse(matrix):
            pattern = sp.csc_matrix(matrix, copy=True)
            pattern.sum_duplicates()
            pattern.data = np.ones_like(pattern.data)
        else:
            arr = np.asarray(matrix, dtype=np.float64)
            if arr.ndim == 1:
                arr = arr.reshape(-1, 1)
            if arr.ndim != 2:
                raise ContractViolation(
                    f"Sparsity.from_matrix: expected 2D array, got {arr.ndim}D"
                )
            pattern = sp.csc_matrix(arr != 0, dtype=np.float64)
        return cls._from_csc(pattern)

    @classmethod
    def _from_csc(cls, pattern: sp.csc_matrix) -> Sparsity:
        pattern = sp.csc_matrix(pattern)
        pattern.sum_duplicates()
        pattern.sort_indices()
        nrow, ncol = pattern.shape
        return cls(
            int(nrow),
            int(ncol),
            tuple(int(i) for i in pattern.indptr),
            tuple(int(i) for i in pattern.indices),
        )

    # === Properties ===

    @property
    def nrow(self) -> int:
        return self._nrow

    @property
    def ncol(self) -> int:
        return self._ncol

    @property
    def shape(self) -> tuple[int, int]:
        return (self._nrow, self._ncol)

    @property
    def nnz(self) -> int:
        """Number of structural nonzeros."""
        return len(self._row)

    @property
    def colind(self) -> tuple[int, ...]:
        return self._colind

    @property
    def row(self) -> tuple[int, ...]:
        return self._row

    @property
    def is_square(self) -> bool:
        return self._nrow == self._ncol

    @property
    def is_dense(self) -> bool:
        return self.nnz == self._nrow * self._ncol

    @property
    def is_empty(self) -> bool:
        return self._nrow == 0 or self._ncol == 0

    def get_triplet(self) -> tuple[NDArray[np.intp], NDArray[np.intp]]:
        """Row and column index of every nonzero, in storage order."""
        rows = np.asarray(self._row, dtype=np.intp)
        counts = np.diff(np.asarray(self._colind, dtype=np.intp))
        cols = np.repeat(np.arange(self._ncol, dtype=np.intp), counts)
        return rows, cols

    def structural_rank(self) -> int:
        """Maximum rank any matrix with this pattern can have."""
        if self.is_empty:
            return 0
        pattern = sp.csc_matrix(
            (np.ones(self.nnz), np.asarray(self._row), np.asarray(self._colind)),
            shape=self.shape,
        )
        return int(structural_rank(pattern))

    @property
    def T(self) -> Sparsity:
        """Transposed pattern."""
        rows, cols = self.get_triplet()
        return Sparsity.triplet(self._ncol, self._nrow, cols, rows)

    def dim(self) -> str:
        return f"{self._nrow}x{self._ncol},{self.nnz}nz"

    # === Pattern identity ===

    def _key(self) -> tuple:
        return (self._nrow, self._ncol, self._colind, self._row)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sparsity):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"Sparsity({self.dim()})"
