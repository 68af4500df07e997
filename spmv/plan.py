# --- Purpose: Lazy expression tree for products of sparse and dense operands. ---

import numbers

import numpy as np
from scipy import sparse

from .core import SparseMatrix, DimensionMismatch, as_dense_matrix


class Plan:
    """Represents a product that will result in a matrix or vector, but is not yet executed."""

    # Make numpy defer `ndarray @ plan` to Plan.__rmatmul__
    __array_ufunc__ = None

    def __init__(self, op):
        # The 'op' is the plan for this result
        self.op = op
        self.shape = op.shape

    @classmethod
    def of(cls, value, name=None) -> 'Plan':
        """Wraps a concrete operand (dense array, vector or sparse matrix) as a leaf."""
        if isinstance(value, Plan):
            return value
        return cls(EagerNode(value, name=name))

    def compute(self, optimize: bool = True):
        """Triggers the execution of the entire computation plan."""
        from .optimizer import execute
        return execute(self, optimize=optimize)

    def __repr__(self):
        return f"Plan(plan={self.op!r})"

    @property
    def T(self) -> 'Plan':
        return Plan(TransposeNode(self.op))

    def __matmul__(self, x) -> 'Plan':
        return Plan(MultiplyNode(self.op, Plan.of(x).op))

    def __rmatmul__(self, x) -> 'Plan':
        # Handles `K @ lazy_expression` for a concrete K
        return Plan(MultiplyNode(Plan.of(x).op, self.op))

    def __mul__(self, x):
        if isinstance(x, numbers.Number) and not isinstance(x, bool):
            return Plan(MultiplyScalarNode(self.op, x))
        raise NotImplementedError("Only scalar multiplication is supported.")

    def __rmul__(self, x):
        # Handles the case `2 * my_lazy_matrix`
        return self.__mul__(x)


class EagerNode:
    """
    An already materialized operand. This is the leaf of our plan.
    A 1-D vector is stored as an (n, 1) column and remembered as a vector so
    the result can be flattened again.
    """
    def __init__(self, value, name=None):
        self.name = name
        self.is_vector = False
        if isinstance(value, SparseMatrix) or sparse.issparse(value):
            self.value = SparseMatrix(value)
        else:
            array = np.asarray(value)
            if array.ndim == 1:
                self.is_vector = True
                array = array.reshape(-1, 1)
            self.value = as_dense_matrix(array)
        self.shape = self.value.shape

    @property
    def is_sparse(self) -> bool:
        return isinstance(self.value, SparseMatrix)

    def __repr__(self):
        kind = "sparse" if self.is_sparse else ("vector" if self.is_vector else "dense")
        label = f"'{self.name}', " if self.name else ""
        return f"EagerNode({label}{kind}, shape={self.shape})"


class TransposeNode:
    """An operation node representing the transpose of its input."""
    def __init__(self, child):
        self.child = child
        self.shape = (child.shape[1], child.shape[0])

    def __repr__(self):
        return f"TransposeNode(child={self.child!r})"


class MultiplyNode:
    """An operation node representing matrix multiplication in our computation plan."""
    def __init__(self, left, right):
        if left.shape[1] != right.shape[0]:
            raise DimensionMismatch(
                f"Inner dimensions must match for matrix multiplication: "
                f"{left.shape} @ {right.shape}",
                expected=left.shape[1], actual=right.shape[0])
        self.left = left
        self.right = right
        self.shape = (left.shape[0], right.shape[1])

    def __repr__(self):
        # !r calls the repr() of the inner objects, creating a nested view
        return f"MultiplyNode(left={self.left!r}, right={self.right!r})"


class MultiplyScalarNode:
    """An operation node representing multiplication by a scalar."""
    def __init__(self, left, right):
        self.left = left
        self.right = right
        self.shape = left.shape

    def __repr__(self):
        return f"MultiplyScalarNode(left={self.left!r}, scalar={self.right})"
