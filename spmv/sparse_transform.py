"""
SparseMatVecTransform: computes K @ (X @ y) or K @ (X.T @ y).

The sparse product is always evaluated first. Multiplying K by X first would
materialize a dense k x n intermediate and throw the sparsity away; doing
X @ y first costs O(nnz(X)) plus one dense k x k mat-vec.
"""

import logging

import numpy as np

from . import backend
from .core import DimensionMismatch, as_sparse, as_vector, as_dense_matrix
from .config import PARALLEL_MIN_NNZ

logger = logging.getLogger(__name__)


def _validate(shape, y_len, K_shape, transpose_x):
    m, n = shape
    vec_len, k = (m, n) if transpose_x else (n, m)
    op = "K @ (X.T @ y)" if transpose_x else "K @ (X @ y)"

    if y_len != vec_len:
        raise DimensionMismatch(
            f"{op}: y has length {y_len}, X of shape {shape} needs {vec_len}",
            expected=vec_len, actual=y_len)
    if K_shape != (k, k):
        raise DimensionMismatch(
            f"{op}: K has shape {K_shape}, X of shape {shape} needs ({k}, {k})",
            expected=(k, k), actual=K_shape)


def transform(X, y, K, transpose_x: bool = False, parallel: bool | None = False,
              max_workers: int | None = None) -> np.ndarray:
    """
    Compute K @ (X @ y), or K @ (X.T @ y) when transpose_x is set.

    Args:
        X: Sparse m x n matrix (SparseMatrix, scipy.sparse, or a dense 2-D array to compress)
        y: Dense vector of length n (m when transpose_x)
        K: Dense square matrix of size m (n when transpose_x)
        transpose_x: Use X.T instead of X
        parallel: True/False to force the threaded kernel, None to decide by nnz
        max_workers: Thread count for the threaded kernel

    Returns:
        Dense vector of length k

    Raises:
        DimensionMismatch: if y or K do not fit X; nothing is computed in that case
    """
    X = as_sparse(X)
    y = as_vector(y)
    K = as_dense_matrix(K)
    _validate(X.shape, y.shape[0], K.shape, transpose_x)

    if parallel is None:
        parallel = X.nnz >= PARALLEL_MIN_NNZ

    logger.debug(f"transform: X{X.shape} nnz={X.nnz} format={X.format}, "
                 f"transpose_x={transpose_x}, kernel={'parallel' if parallel else 'serial'}")

    # 1. Sparse product first: v has length k
    if parallel:
        v = backend.parallel_sparse_matvec(X, y, transpose=transpose_x, max_workers=max_workers)
    else:
        v = backend.sparse_matvec(X, y, transpose=transpose_x)

    # 2. Then the single dense k x k mat-vec
    return backend.dense_matvec(K, v)


class SparseMatVecTransform:
    """
    Binds K and the kernel options so the same transform can be applied to
    many (X, y) pairs. Holds no state that changes between calls.

    Example:
        t = SparseMatVecTransform(K, transpose_x=True)
        beta = t(X, y)
    """
    def __init__(self, K, transpose_x: bool = False, parallel: bool | None = False,
                 max_workers: int | None = None):
        self.K = as_dense_matrix(K)
        if self.K.shape[0] != self.K.shape[1]:
            raise DimensionMismatch(f"K must be square, got shape {self.K.shape}",
                                    expected="(k, k)", actual=self.K.shape)
        self.transpose_x = transpose_x
        self.parallel = parallel
        self.max_workers = max_workers

    @property
    def size(self) -> int:
        return self.K.shape[0]

    def __call__(self, X, y) -> np.ndarray:
        return transform(X, y, self.K, transpose_x=self.transpose_x,
                         parallel=self.parallel, max_workers=self.max_workers)

    def __repr__(self):
        return (f"SparseMatVecTransform(k={self.size}, transpose_x={self.transpose_x}, "
                f"parallel={self.parallel})")
