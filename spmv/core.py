# --- Purpose: Holds the sparse/dense containers consumed by the transform. ---

import numpy as np
from scipy import sparse

from .config import DEFAULT_DTYPE, DEFAULT_SPARSE_FORMAT

# Compressed layouts we keep as-is; anything else is converted to DEFAULT_SPARSE_FORMAT
COMPRESSED_FORMATS = ("csr", "csc")


class DimensionMismatch(ValueError):
    """
    Raised when operand shapes are incompatible with the requested product.
    This is the only error the transform reports on its own.
    """
    def __init__(self, message, expected=None, actual=None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class SparseMatrix:
    """
    An immutable m x n matrix that only stores its non-zero entries.
    Wraps a compressed scipy.sparse matrix (CSR by default, CSC after a transpose).
    """
    def __init__(self, matrix):
        if isinstance(matrix, SparseMatrix):
            matrix = matrix.data
        if not sparse.issparse(matrix):
            raise TypeError(f"Expected a scipy.sparse matrix, got {type(matrix).__name__}")
        if matrix.format not in COMPRESSED_FORMATS:
            matrix = matrix.asformat(DEFAULT_SPARSE_FORMAT)
        if matrix.dtype.kind not in "fc":
            matrix = matrix.astype(DEFAULT_DTYPE)
        self.data = matrix

    @classmethod
    def from_coo(cls, values, rows, cols, shape, dtype=DEFAULT_DTYPE):
        """
        Build from (value, row, col) triples. Coordinates must be distinct;
        duplicates are not checked and get summed by scipy.
        """
        m, n = shape
        if m < 0 or n < 0:
            raise DimensionMismatch(f"Matrix dimensions must be non-negative, got {shape}",
                                    actual=shape)
        rows = np.asarray(rows, dtype=np.intp)
        cols = np.asarray(cols, dtype=np.intp)
        coo = sparse.coo_matrix((np.asarray(values, dtype=dtype), (rows, cols)), shape=(m, n))
        return cls(coo.tocsr())

    @classmethod
    def from_dense(cls, array, dtype=DEFAULT_DTYPE):
        """Compress a dense 2-D array, dropping its exact zeros."""
        array = np.asarray(array, dtype=dtype)
        if array.ndim != 2:
            raise DimensionMismatch(f"Expected a 2-D array, got {array.ndim}-D",
                                    expected=2, actual=array.ndim)
        return cls(sparse.csr_matrix(array))

    @classmethod
    def random(cls, m, n, density=0.01, seed=None, dtype=DEFAULT_DTYPE):
        """Uniformly random sparsity pattern with values in [0, 1)."""
        if m < 0 or n < 0:
            raise DimensionMismatch(f"Matrix dimensions must be non-negative, got {(m, n)}",
                                    actual=(m, n))
        rng = np.random.default_rng(seed)
        # Samples the pattern without materializing all m * n positions
        matrix = sparse.random_array((m, n), density=density, format=DEFAULT_SPARSE_FORMAT,
                                     dtype=dtype, rng=rng)
        return cls(matrix)

    @property
    def shape(self):
        return self.data.shape

    @property
    def nnz(self):
        return self.data.nnz

    @property
    def format(self):
        return self.data.format

    @property
    def dtype(self):
        return self.data.dtype

    @property
    def density(self):
        m, n = self.shape
        return self.nnz / (m * n) if m and n else 0.0

    @property
    def T(self):
        return self.transpose()

    def transpose(self):
        """Transposed view: CSR becomes CSC over the same arrays, no entries are copied."""
        return SparseMatrix(self.data.transpose())

    def tocsr(self):
        if self.format == "csr":
            return self
        return SparseMatrix(self.data.tocsr())

    def to_dense(self):
        return self.data.toarray()

    def __repr__(self):
        return (f"SparseMatrix(shape={self.shape}, nnz={self.nnz}, "
                f"format='{self.format}', dtype={self.dtype.name})")


def as_sparse(X) -> SparseMatrix:
    """Coerce a SparseMatrix, a scipy.sparse matrix or a dense 2-D array into a SparseMatrix."""
    if isinstance(X, SparseMatrix):
        return X
    if sparse.issparse(X):
        return SparseMatrix(X)
    return SparseMatrix.from_dense(X)


def _as_float_array(a):
    """Promote integer, boolean and float32 input to DEFAULT_DTYPE; complex input stays complex."""
    a = np.asarray(a)
    return a.astype(np.result_type(a.dtype, DEFAULT_DTYPE), copy=False)


def as_vector(y) -> np.ndarray:
    """
    Coerce y into a 1-D floating (or complex) array.
    A single column (n, 1) is flattened; every other 2-D shape is rejected.
    """
    if sparse.issparse(y):
        y = y.toarray()
    y = _as_float_array(y)
    if y.ndim == 2 and y.shape[1] == 1:
        y = y.ravel()
    if y.ndim != 1:
        raise DimensionMismatch(f"Expected a vector, got an array of shape {y.shape}",
                                expected="(n,)", actual=y.shape)
    return y


def as_dense_matrix(K) -> np.ndarray:
    """Coerce K into a 2-D floating (or complex) array."""
    if sparse.issparse(K):
        K = K.toarray()
    K = _as_float_array(K)
    if K.ndim != 2:
        raise DimensionMismatch(f"Expected a 2-D matrix, got an array of shape {K.shape}",
                                expected="(p, q)", actual=K.shape)
    return K
