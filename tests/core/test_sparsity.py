"""
Tests for the Sparsity pattern value type.

Validates:
    - Constructors produce canonical compressed-column patterns
    - Malformed patterns are contract violations
    - Equality and hashing on the pattern only
    - Structural rank
"""

import numpy as np
import pytest
import scipy.sparse as sp

from pysolvers.core.exceptions import ContractViolation
from pysolvers.core.sparsity import Sparsity


class TestConstructors:

    def test_dense(self):
        s = Sparsity.dense(3, 2)
        assert s.shape == (3, 2)
        assert s.nnz == 6
        assert s.is_dense
        assert s.colind == (0, 3, 6)

    def test_dense_column_default(self):
        assert Sparsity.dense(4).shape == (4, 1)

    def test_diag(self):
        s = Sparsity.diag(3)
        assert s.nnz == 3
        rows, cols = s.get_triplet()
        np.testing.assert_array_equal(rows, cols)

    def test_lower(self):
        s = Sparsity.lower(3)
        assert s.nnz == 6
        rows, cols = s.get_triplet()
        assert np.all(rows >= cols)

    def test_triplet_sorts_and_merges(self):
        s = Sparsity.triplet(3, 3, rows=[2, 0, 0], cols=[1, 0, 0])
        assert s.nnz == 2
        assert s.row == (0, 2)
        assert s.colind == (0, 1, 2, 2)

    def test_from_dense_matrix(self):
        A = np.array([[1.0, 0.0], [3.0, 4.0]])
        s = Sparsity.from_matrix(A)
        rows, cols = s.get_triplet()
        np.testing.assert_array_equal(rows, [0, 1, 1])
        np.testing.assert_array_equal(cols, [0, 0, 1])

    def test_from_sparse_keeps_explicit_zeros(self):
        A = sp.csc_matrix((np.array([0.0, 1.0]), (np.array([0, 1]), np.array([0, 1]))),
                          shape=(2, 2))
        assert Sparsity.from_matrix(A).nnz == 2

    def test_empty_rows(self):
        s = Sparsity.dense(0, 3)
        assert s.nnz == 0
        assert s.is_empty


class TestValidation:

    def test_bad_colind_length(self):
        with pytest.raises(ContractViolation, match="colind"):
            Sparsity(2, 2, (0, 1), (0,))

    def test_row_out_of_range(self):
        with pytest.raises(ContractViolation, match="out of range"):
            Sparsity(2, 1, (0, 1), (5,))

    def test_rows_must_increase(self):
        with pytest.raises(ContractViolation, match="strictly increasing"):
            Sparsity(3, 1, (0, 2), (2, 1))

    def test_triplet_length_mismatch(self):
        with pytest.raises(ContractViolation):
            Sparsity.triplet(2, 2, rows=[0, 1], cols=[0])


class TestIdentity:

    def test_equal_patterns(self):
        assert Sparsity.diag(3) == Sparsity.triplet(3, 3, [0, 1, 2], [0, 1, 2])
        assert hash(Sparsity.diag(3)) == hash(Sparsity.from_matrix(np.eye(3)))

    def test_different_patterns(self):
        assert Sparsity.diag(3) != Sparsity.dense(3, 3)

    def test_transpose(self):
        s = Sparsity.triplet(2, 3, rows=[0, 1], cols=[2, 0])
        t = s.T
        assert t.shape == (3, 2)
        assert t.T == s


class TestStructuralRank:

    def test_diag_full_rank(self):
        assert Sparsity.diag(4).structural_rank() == 4

    def test_empty_column_singular(self):
        s = Sparsity.triplet(3, 3, rows=[0, 1], cols=[0, 1])
        assert s.structural_rank() == 2

    def test_empty_pattern(self):
        assert Sparsity.dense(0, 0).structural_rank() == 0
