"""
Ordinary least squares on sparse design matrices.

The estimator (X.T X)^-1 X.T y is where the K @ X.T @ y expression comes from:
K = (X.T X)^-1 is a small dense n x n matrix, X is a tall sparse m x n matrix,
and the tail is evaluated by the transform as K @ (X.T @ y).
"""

import logging

import numpy as np

from . import backend
from .core import as_sparse, as_vector
from .sparse_transform import transform

logger = logging.getLogger(__name__)


def gram_inverse(X) -> np.ndarray:
    """
    Dense (X.T X)^-1 for a sparse X.

    Raises:
        numpy.linalg.LinAlgError: if X.T X is singular (rank-deficient X)
    """
    X = as_sparse(X)
    gram = (X.data.transpose() @ X.data).toarray()
    return np.linalg.inv(gram)


def ols_estimate(X, y, parallel: bool | None = False, max_workers: int | None = None) -> np.ndarray:
    """
    Least squares coefficients beta = (X.T X)^-1 X.T y.

    Args:
        X: Sparse m x n design matrix
        y: Target vector of length m

    Returns:
        Coefficient vector of length n
    """
    X = as_sparse(X)
    K = gram_inverse(X)
    return transform(X, y, K, transpose_x=True, parallel=parallel, max_workers=max_workers)


class SparseLinearRegression:
    """
    Linear regression without intercept, solved in closed form with
    ols_estimate(). X may stay sparse throughout.
    """

    def __init__(self, parallel: bool | None = False, max_workers: int | None = None):
        """
        Initialize the model.

        Args:
            parallel: Kernel selection passed to transform()
            max_workers: Thread count for the parallel kernel
        """
        self.parallel = parallel
        self.max_workers = max_workers
        self.coef_ = None

    def fit(self, X, y) -> 'SparseLinearRegression':
        """
        Fit coefficients to a sparse design matrix.

        Args:
            X: Feature matrix (n_samples, n_features)
            y: Target vector (n_samples,)

        Returns:
            self
        """
        X = as_sparse(X)
        logger.info(f"Fitting OLS on {X.shape[0]} samples, {X.shape[1]} features, nnz={X.nnz}")
        self.coef_ = ols_estimate(X, y, parallel=self.parallel, max_workers=self.max_workers)
        return self

    def predict(self, X) -> np.ndarray:
        """Predictions X @ coef_."""
        if self.coef_ is None:
            raise RuntimeError("Model must be fitted before prediction")
        return backend.sparse_matvec(X, self.coef_)

    def score(self, X, y) -> float:
        """Coefficient of determination R^2 of the predictions."""
        y = as_vector(y)
        y_pred = self.predict(X)
        ss_res = np.sum((y - y_pred) ** 2)
        ss_tot = np.sum((y - y.mean()) ** 2)
        if ss_tot == 0:
            return 1.0 if ss_res == 0 else 0.0
        return float(1.0 - ss_res / ss_tot)
