"""
Unit tests for the SparseMatrix container and the coercion helpers.
"""

import unittest
import os
import sys

import numpy as np
from scipy import sparse

# Add the parent directory to the path so we can import the spmv module
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from spmv.core import SparseMatrix, DimensionMismatch, as_sparse, as_vector, as_dense_matrix


class TestSparseMatrix(unittest.TestCase):
    """Test cases for SparseMatrix."""

    def setUp(self):
        self.dense = np.array([[0.0, 2.0, 0.0],
                               [1.5, 0.0, 0.0],
                               [0.0, 0.0, -3.0],
                               [0.0, 4.0, 0.0]])

    def test_from_coo_builds_expected_matrix(self):
        X = SparseMatrix.from_coo([2.0, 1.5, -3.0, 4.0], [0, 1, 2, 3], [1, 0, 2, 1], (4, 3))

        self.assertEqual(X.shape, (4, 3))
        self.assertEqual(X.nnz, 4)
        self.assertEqual(X.format, "csr")
        np.testing.assert_array_equal(X.to_dense(), self.dense)

    def test_from_coo_with_no_entries(self):
        X = SparseMatrix.from_coo([], [], [], (5, 3))

        self.assertEqual(X.shape, (5, 3))
        self.assertEqual(X.nnz, 0)
        self.assertEqual(X.density, 0.0)

    def test_from_coo_rejects_negative_dimensions(self):
        with self.assertRaises(DimensionMismatch):
            SparseMatrix.from_coo([], [], [], (-1, 3))

    def test_from_dense_drops_zeros(self):
        X = SparseMatrix.from_dense(self.dense)

        self.assertEqual(X.nnz, 4)
        self.assertAlmostEqual(X.density, 4 / 12)
        np.testing.assert_array_equal(X.to_dense(), self.dense)

    def test_from_dense_rejects_vectors(self):
        with self.assertRaises(DimensionMismatch):
            SparseMatrix.from_dense(np.ones(3))

    def test_transpose_swaps_shape_and_layout(self):
        X = SparseMatrix.from_dense(self.dense)
        XT = X.T

        self.assertEqual(XT.shape, (3, 4))
        self.assertEqual(XT.format, "csc")
        self.assertEqual(XT.nnz, X.nnz)
        np.testing.assert_array_equal(XT.to_dense(), self.dense.T)
        # Transposing back and compressing by rows again
        np.testing.assert_array_equal(XT.T.tocsr().to_dense(), self.dense)

    def test_random_is_reproducible(self):
        A = SparseMatrix.random(50, 20, density=0.1, seed=3)
        B = SparseMatrix.random(50, 20, density=0.1, seed=3)

        self.assertEqual(A.shape, (50, 20))
        self.assertEqual(A.nnz, 100)
        np.testing.assert_array_equal(A.to_dense(), B.to_dense())

    def test_random_on_a_huge_shape_stays_cheap(self):
        X = SparseMatrix.random(100_000, 100_000, density=1e-6, seed=5)

        self.assertEqual(X.shape, (100_000, 100_000))
        self.assertEqual(X.nnz, 10_000)
        self.assertEqual(X.format, "csr")
        self.assertTrue(np.all(X.data.data >= 0.0))
        self.assertTrue(np.all(X.data.data < 1.0))

    def test_random_rejects_negative_dimensions(self):
        with self.assertRaises(DimensionMismatch):
            SparseMatrix.random(-1, 4, density=0.5)

    def test_non_compressed_formats_are_converted(self):
        X = SparseMatrix(sparse.coo_matrix(self.dense))
        self.assertEqual(X.format, "csr")

        X = SparseMatrix(sparse.csc_matrix(self.dense))
        self.assertEqual(X.format, "csc")

    def test_integer_matrices_become_float(self):
        X = SparseMatrix(sparse.csr_matrix(np.eye(3, dtype=np.int32)))
        self.assertEqual(X.dtype, np.float64)

    def test_wrapping_rejects_dense_input(self):
        with self.assertRaises(TypeError):
            SparseMatrix(self.dense)

    def test_repr(self):
        X = SparseMatrix.from_dense(self.dense)
        self.assertEqual(repr(X), "SparseMatrix(shape=(4, 3), nnz=4, format='csr', dtype=float64)")


class TestCoercion(unittest.TestCase):
    """Test cases for as_sparse / as_vector / as_dense_matrix."""

    def test_as_sparse_accepts_all_inputs(self):
        dense = np.diag([1.0, 2.0, 3.0])
        wrapped = SparseMatrix.from_dense(dense)

        self.assertIs(as_sparse(wrapped), wrapped)
        self.assertIsInstance(as_sparse(sparse.csr_matrix(dense)), SparseMatrix)
        self.assertEqual(as_sparse(dense).nnz, 3)

    def test_as_vector_flattens_single_column(self):
        y = as_vector(np.arange(4).reshape(4, 1))

        self.assertEqual(y.shape, (4,))
        self.assertEqual(y.dtype, np.float64)

    def test_as_vector_accepts_lists(self):
        np.testing.assert_array_equal(as_vector([1, 2, 3]), np.array([1.0, 2.0, 3.0]))

    def test_complex_input_keeps_its_imaginary_part(self):
        y = as_vector(np.array([1 + 2j, 3 - 1j]))
        K = as_dense_matrix([[1j, 0], [0, 2]])

        self.assertEqual(y.dtype, np.complex128)
        self.assertEqual(K.dtype, np.complex128)
        np.testing.assert_array_equal(y.imag, [2.0, -1.0])
        self.assertEqual(K[0, 0], 1j)

    def test_integer_and_float32_input_is_promoted(self):
        self.assertEqual(as_vector(np.arange(3, dtype=np.int32)).dtype, np.float64)
        self.assertEqual(as_dense_matrix(np.eye(2, dtype=np.float32)).dtype, np.float64)

    def test_as_vector_rejects_matrices(self):
        with self.assertRaises(DimensionMismatch) as ctx:
            as_vector(np.ones((3, 2)))
        self.assertEqual(ctx.exception.actual, (3, 2))

    def test_as_dense_matrix_rejects_vectors(self):
        with self.assertRaises(DimensionMismatch):
            as_dense_matrix(np.ones(4))

    def test_dimension_mismatch_is_a_value_error(self):
        error = DimensionMismatch("bad", expected=3, actual=4)

        self.assertIsInstance(error, ValueError)
        self.assertEqual(error.expected, 3)
        self.assertEqual(error.actual, 4)
        self.assertEqual(str(error), "bad")


if __name__ == '__main__':
    unittest.main()
