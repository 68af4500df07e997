# --- Purpose: Contains the numeric execution kernels. ---

import logging
import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .core import SparseMatrix, DimensionMismatch, as_sparse, as_vector
from .config import DEFAULT_MAX_WORKERS, MIN_ROWS_PER_SEGMENT

logger = logging.getLogger(__name__)


def _check_matvec(X: SparseMatrix, y: np.ndarray, transpose: bool):
    m, n = X.shape
    expected = m if transpose else n
    if y.shape[0] != expected:
        op = "X.T @ y" if transpose else "X @ y"
        raise DimensionMismatch(
            f"{op}: vector has length {y.shape[0]}, matrix of shape {X.shape} needs {expected}",
            expected=expected, actual=y.shape[0])


def sparse_matvec(X, y, transpose: bool = False) -> np.ndarray:
    """Serial X @ y (or X.T @ y). Work is proportional to nnz(X)."""
    X = as_sparse(X)
    y = as_vector(y)
    _check_matvec(X, y, transpose)

    matrix = X.data.transpose() if transpose else X.data
    return np.asarray(matrix @ y).ravel()


def row_segments(n_rows: int, n_segments: int) -> list:
    """Split range(n_rows) into at most n_segments contiguous (start, end) pairs."""
    if n_rows <= 0:
        return []
    n_segments = max(1, min(n_segments, n_rows))
    step = math.ceil(n_rows / n_segments)
    return [(start, min(start + step, n_rows)) for start in range(0, n_rows, step)]


def _segment_product(csr, y, r_start, r_end):
    """What each worker runs for X @ y: the output rows of one segment."""
    return r_start, r_end, csr[r_start:r_end] @ y


def _segment_partial_sum(csr, y, r_start, r_end):
    """What each worker runs for X.T @ y: one segment's contribution to the sum."""
    return csr[r_start:r_end].transpose() @ y[r_start:r_end]


def parallel_sparse_matvec(X, y, transpose: bool = False, max_workers: int | None = None,
                           min_rows: int = MIN_ROWS_PER_SEGMENT) -> np.ndarray:
    """
    Fork-join X @ y (or X.T @ y) over contiguous CSR row segments.

    Non-transposed: every segment owns a disjoint slice of the output.
    Transposed: every segment yields a partial sum over its rows, and the
    partials are added together. Summation order differs from the serial
    kernel, so results agree only up to rounding.
    """
    X = as_sparse(X)
    y = as_vector(y)
    _check_matvec(X, y, transpose)
    max_workers = max_workers or DEFAULT_MAX_WORKERS

    if transpose and X.format == "csc":
        # X.T is already row-compressed, so split its rows instead
        return parallel_sparse_matvec(X.T, y, transpose=False,
                                      max_workers=max_workers, min_rows=min_rows)

    csr = X.tocsr().data
    m, n = csr.shape
    out_dtype = np.result_type(csr.dtype, y.dtype)
    n_segments = min(max_workers, max(1, math.ceil(m / max(min_rows, 1))))
    segments = row_segments(m, n_segments)
    logger.debug(f"Parallel kernel: {len(segments)} segments over {m} rows, "
                 f"{max_workers} workers, transpose={transpose}")

    # Use a ThreadPoolExecutor to manage a pool of worker threads.
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        if transpose:
            futures = [executor.submit(_segment_partial_sum, csr, y, r_start, r_end)
                       for r_start, r_end in segments]
            result = np.zeros(n, dtype=out_dtype)
            for future in futures:
                result += np.asarray(future.result()).ravel()
            return result

        futures = [executor.submit(_segment_product, csr, y, r_start, r_end)
                   for r_start, r_end in segments]
        result = np.zeros(m, dtype=out_dtype)
        for future in futures:
            r_start, r_end, segment = future.result()
            result[r_start:r_end] = np.asarray(segment).ravel()
        return result


def dense_matvec(K: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Dense K @ v."""
    if K.ndim != 2 or K.shape[1] != v.shape[0]:
        raise DimensionMismatch(
            f"K @ v: matrix of shape {K.shape} cannot multiply a vector of length {v.shape[0]}",
            expected=K.shape[1] if K.ndim == 2 else None, actual=v.shape[0])
    return K @ v


def multiply(A, B):
    """
    Generic A @ B for the plan executor.
    Operands are 2-D numpy arrays or SparseMatrix; the result stays sparse only
    when both operands are sparse.
    """
    if A.shape[1] != B.shape[0]:
        raise DimensionMismatch(
            f"Inner dimensions must match for multiplication: {A.shape} @ {B.shape}",
            expected=A.shape[1], actual=B.shape[0])

    a_sparse = isinstance(A, SparseMatrix)
    b_sparse = isinstance(B, SparseMatrix)
    if a_sparse and b_sparse:
        return SparseMatrix(A.data @ B.data)
    if a_sparse:
        return np.asarray(A.data @ B)
    if b_sparse:
        # (A @ B) = (B.T @ A.T).T keeps the sparse operand on the left
        return np.asarray(B.data.transpose() @ A.T).T
    return A @ B
