from .core import SparseMatrix, DimensionMismatch, as_sparse, as_vector, as_dense_matrix
from .sparse_transform import transform, SparseMatVecTransform
from .plan import Plan, EagerNode
from .estimators import ols_estimate, gram_inverse, SparseLinearRegression
from .observability import configure_logging, get_profiler

__version__ = "0.1.0"
