"""
Matrix marshaling between the engine's sparse data and backend layouts.

Backends never see the sparse representation: the solver instance writes
nonzero vectors into pre-sized workspace slots with densify() and copy(),
or hands a scipy.sparse matrix to sparse-native backends via to_csc().
None of these functions allocate workspace memory; output buffers are
always workspace views established at construction.

A mismatch between the data and the declared sparsity is a programming
contract violation (ContractViolation), never a recoverable error.
"""

from __future__ import annotations

from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray
import scipy.sparse as sp

from pysolvers.core.exceptions import ContractViolation
from pysolvers.core.sparsity import Sparsity


def densify(
    nz: ArrayLike,
    sparsity: Sparsity,
    out: NDArray[np.float64],
    *,
    tr: bool = False,
    mirror: bool = False,
) -> NDArray[np.float64]:
    """
    Expand a nonzero vector into a dense buffer.

    Args:
        nz: Nonzero values in storage order (length sparsity.nnz)
        sparsity: Pattern the values belong to
        out: Dense 2D buffer, shape (nrow, ncol), or (ncol, nrow) if tr
        tr: Write the transpose
        mirror: Also write the mirrored entry of every off-diagonal
                nonzero, expanding a half-stored symmetric matrix

    Returns:
        out, filled
    """
    values = _as_vector(nz, sparsity.nnz, 'nonzeros')
    expected = sparsity.shape[::-1] if tr else sparsity.shape
    if out.shape != expected:
        raise ContractViolation(
            f"densify: output buffer has shape {out.shape}, expected {expected}"
        )
    if mirror and not sparsity.is_square:
        raise ContractViolation(f"densify: cannot mirror non-square {sparsity!r}")

    rows, cols = sparsity.get_triplet()
    if tr:
        rows, cols = cols, rows
    out.fill(0.0)
    out[rows, cols] = values
    if mirror:
        off = rows != cols
        out[cols[off], rows[off]] = values[off]
    return out


def copy(
    src: ArrayLike | None,
    out: NDArray[np.float64],
    *,
    scale: float = 1.0,
    fill: float = 0.0,
) -> NDArray[np.float64]:
    """
    Transfer a vector into a workspace slot.

    Args:
        src: Source vector, or None to fill the slot with `fill`
        out: Destination slot
        scale: Multiplier applied on transfer (-1.0 flips a sign convention)
        fill: Value used when src is None

    Returns:
        out, filled
    """
    if src is None:
        out.fill(fill)
        return out
    values = _as_vector(src, out.size, 'vector')
    np.multiply(values, scale, out=out)
    return out


def nonzeros(matrix: Any, sparsity: Sparsity) -> NDArray[np.float64]:
    """
    Project a matrix onto a pattern's nonzero vector.

    Accepts a nonzero vector (returned as-is after a length check), a dense
    2D array or a scipy.sparse matrix. Sparse input is matched against the
    pattern entry by entry and never densified. Numeric nonzeros outside the
    pattern are a contract violation.
    """
    if sp.issparse(matrix):
        if matrix.shape != sparsity.shape:
            raise ContractViolation(
                f"matrix has shape {matrix.shape}, pattern is {sparsity!r}"
            )
        return _sparse_nonzeros(matrix, sparsity)

    arr = np.asarray(matrix, dtype=np.float64)
    if arr.ndim <= 1:
        return _as_vector(arr, sparsity.nnz, 'nonzeros')
    if arr.shape != sparsity.shape:
        raise ContractViolation(
            f"matrix has shape {arr.shape}, pattern is {sparsity!r}"
        )

    rows, cols = sparsity.get_triplet()
    values = arr[rows, cols]
    outside = arr != 0.0
    outside[rows, cols] = False
    if np.any(outside):
        bad = np.argwhere(outside)[0]
        raise ContractViolation(
            f"entry ({bad[0]}, {bad[1]}) is nonzero but not in pattern {sparsity!r}"
        )
    return values


def _sparse_nonzeros(matrix: Any, sparsity: Sparsity) -> NDArray[np.float64]:
    """Scatter the stored entries of a scipy.sparse matrix by pattern position."""
    csc = sp.csc_matrix(matrix, dtype=np.float64, copy=True)
    csc.sum_duplicates()
    csc.sort_indices()

    # Entries keyed by column-major linear index; pattern keys are sorted
    nrow = sparsity.nrow
    rows, cols = sparsity.get_triplet()
    keys = cols.astype(np.int64) * nrow + rows
    entry_cols = np.repeat(
        np.arange(csc.shape[1], dtype=np.int64), np.diff(csc.indptr)
    )
    entry_keys = entry_cols * nrow + csc.indices

    if keys.size:
        pos = np.minimum(np.searchsorted(keys, entry_keys), keys.size - 1)
        found = keys[pos] == entry_keys
    else:
        pos = np.zeros(entry_keys.size, dtype=np.intp)
        found = np.zeros(entry_keys.size, dtype=bool)

    stray = ~found & (csc.data != 0.0)
    if np.any(stray):
        i = int(np.flatnonzero(stray)[0])
        raise ContractViolation(
            f"entry ({csc.indices[i]}, {entry_cols[i]}) is nonzero but not "
            f"in pattern {sparsity!r}"
        )

    values = np.zeros(sparsity.nnz)
    values[pos[found]] = csc.data[found]
    return values


def to_csc(nz: ArrayLike, sparsity: Sparsity) -> sp.csc_matrix:
    """scipy.sparse CSC matrix sharing the pattern's index arrays."""
    values = _as_vector(nz, sparsity.nnz, 'nonzeros')
    return sp.csc_matrix(
        (values, np.asarray(sparsity.row, dtype=np.int32),
         np.asarray(sparsity.colind, dtype=np.int32)),
        shape=sparsity.shape,
    )


def _as_vector(values: ArrayLike, size: int, what: str) -> NDArray[np.float64]:
    arr = np.asarray(values, dtype=np.float64).ravel()
    if arr.size != size:
        raise ContractViolation(f"{what}: expected {size} entries, got {arr.size}")
    return arr


__all__ = [
    'densify',
    'copy',
    'nonzeros',
    'to_csc',
]
