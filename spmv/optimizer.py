# --- Purpose: To inspect a plan and choose the cheapest evaluation order. ---

import logging
from dataclasses import dataclass
from typing import List, Tuple, Union

import numpy as np

from . import backend
from .core import SparseMatrix
from .plan import Plan, EagerNode, TransposeNode, MultiplyNode, MultiplyScalarNode

# Configure logging
logger = logging.getLogger(__name__)

# An evaluation order is a binary tree over factor indices:
# an int is a single factor, a pair is the product of its two sub-orders.
Order = Union[int, Tuple['Order', 'Order']]


@dataclass
class Factor:
    """One operand of a flattened product chain, with transposes already applied."""
    value: object  # numpy 2-D array or SparseMatrix
    name: str
    is_vector: bool = False

    @property
    def shape(self) -> Tuple[int, int]:
        return self.value.shape

    @property
    def is_sparse(self) -> bool:
        return isinstance(self.value, SparseMatrix)

    @property
    def nnz(self) -> int:
        if self.is_sparse:
            return self.value.nnz
        return self.shape[0] * self.shape[1]


@dataclass
class MatrixChain:
    """
    Result of plan analysis: the ordered factors of the product and the
    combined scalar coefficient. Contains no computed data.
    """
    factors: List[Factor]
    scalar: float = 1.0

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.factors[0].shape[0], self.factors[-1].shape[1])

    @property
    def returns_vector(self) -> bool:
        """True when the right-most operand was a plain 1-D vector."""
        return self.factors[-1].is_vector

    def __len__(self):
        return len(self.factors)

    def __repr__(self):
        names = " @ ".join(f.name for f in self.factors)
        if self.scalar != 1.0:
            return f"MatrixChain({self.scalar} * {names})"
        return f"MatrixChain({names})"


@dataclass
class CostEstimate:
    """
    Cost model for an evaluation order.
    """
    flops: int  # Multiply-add operations
    intermediate_elements: int  # Elements materialized by non-final products

    @property
    def total_cost(self) -> float:
        """Simple cost model: every flop and every temporary element costs one unit."""
        return float(self.flops + self.intermediate_elements)

    def __add__(self, other: 'CostEstimate') -> 'CostEstimate':
        return CostEstimate(self.flops + other.flops,
                            self.intermediate_elements + other.intermediate_elements)

    def __repr__(self):
        return (f"CostEstimate(flops={self.flops}, "
                f"intermediate_elements={self.intermediate_elements}, "
                f"total_cost={self.total_cost:.0f})")


@dataclass
class _Operand:
    """Shape/sparsity metadata of a factor or of an intermediate result."""
    shape: Tuple[int, int]
    nnz: float
    is_sparse: bool

    @property
    def elements(self) -> float:
        return self.nnz if self.is_sparse else self.shape[0] * self.shape[1]


def _product(a: _Operand, b: _Operand) -> Tuple[float, _Operand]:
    """Flop count of a @ b and the metadata of its result."""
    p, q = a.shape
    r = b.shape[1]
    if a.is_sparse and b.is_sparse:
        # Uniform random pattern: every stored entry of a meets nnz(b) / q entries of b
        flops = a.nnz * b.nnz / q if q else 0.0
        return flops, _Operand((p, r), min(p * r, flops), True)
    if a.is_sparse:
        flops = a.nnz * r
    elif b.is_sparse:
        flops = b.nnz * p
    else:
        flops = p * q * r
    return flops, _Operand((p, r), p * r, False)


def _operand(factor: Factor) -> _Operand:
    return _Operand(factor.shape, factor.nnz, factor.is_sparse)


def _collect(node, transposed: bool, factors: List[Factor]) -> float:
    """
    Appends the factors of node to `factors` (transposes pushed down to the
    leaves with (AB).T = B.T A.T) and returns the scalar coefficient found.
    """
    if isinstance(node, EagerNode):
        name = node.name or f"A{len(factors)}"
        if transposed:
            factors.append(Factor(node.value.T, f"{name}.T"))
        else:
            factors.append(Factor(node.value, name, is_vector=node.is_vector))
        return 1.0

    if isinstance(node, TransposeNode):
        return _collect(node.child, not transposed, factors)

    if isinstance(node, MultiplyScalarNode):
        return node.right * _collect(node.left, transposed, factors)

    if isinstance(node, MultiplyNode):
        first, second = (node.right, node.left) if transposed else (node.left, node.right)
        return _collect(first, transposed, factors) * _collect(second, transposed, factors)

    raise TypeError(f"Unknown plan node: {type(node).__name__}")


def analyze(plan: Plan) -> MatrixChain:
    """
    Stage 1: Analyze the plan without executing anything.
    Flattens the nested products into one chain of factors.
    """
    logger.info("=== STAGE 1: ANALYZE ===")
    logger.debug(f"Plan structure: {plan}")

    factors: List[Factor] = []
    scalar = _collect(plan.op, False, factors)
    chain = MatrixChain(factors=factors, scalar=scalar)

    logger.info(f"Analysis complete: {chain}")
    return chain


def left_to_right(chain: MatrixChain) -> Order:
    """The order Python itself uses for `a @ b @ c`: ((a @ b) @ c)."""
    order: Order = 0
    for i in range(1, len(chain)):
        order = (order, i)
    return order


def _estimate(chain: MatrixChain, order: Order) -> Tuple[CostEstimate, _Operand]:
    if isinstance(order, int):
        return CostEstimate(0, 0), _operand(chain.factors[order])

    left_cost, left = _estimate(chain, order[0])
    right_cost, right = _estimate(chain, order[1])
    flops, result = _product(left, right)

    # Sub-products feeding this one are temporaries
    temporaries = sum(op.elements for sub, op in ((order[0], left), (order[1], right))
                      if not isinstance(sub, int))
    cost = left_cost + right_cost + CostEstimate(int(flops), int(temporaries))
    return cost, result


def estimate_cost(chain: MatrixChain, order: Order) -> CostEstimate:
    """
    Estimate execution cost of evaluating `chain` in the given order.

    Args:
        chain: Result of analyze()
        order: Evaluation tree, e.g. from rewrite() or left_to_right()

    Returns:
        CostEstimate with predicted flops and temporary storage
    """
    cost, _ = _estimate(chain, order)
    logger.debug(f"Cost estimate for {format_order(chain, order)}: {cost}")
    return cost


def rewrite(chain: MatrixChain) -> Order:
    """
    Stage 2: Choose the cheapest parenthesization of the chain.

    Classic matrix-chain dynamic programming, with the sparsity-aware cost
    model above instead of plain p*q*r.
    """
    logger.info("=== STAGE 2: REWRITE ===")

    n = len(chain)
    # best[i][j] = (total_cost, order, result operand) for factors i..j
    best = [[None] * n for _ in range(n)]
    for i, factor in enumerate(chain.factors):
        best[i][i] = (0.0, i, _operand(factor))

    for length in range(2, n + 1):
        for i in range(0, n - length + 1):
            j = i + length - 1
            for split in range(i, j):
                left_cost, left_order, left = best[i][split]
                right_cost, right_order, right = best[split + 1][j]
                flops, result = _product(left, right)
                total = left_cost + right_cost + flops
                if split > i:
                    total += left.elements
                if split + 1 < j:
                    total += right.elements
                if best[i][j] is None or total < best[i][j][0]:
                    best[i][j] = (total, (left_order, right_order), result)

    order = best[0][n - 1][1]
    logger.info(f"Chosen order: {format_order(chain, order)}")
    return order


def _evaluate(chain: MatrixChain, order: Order):
    if isinstance(order, int):
        return chain.factors[order].value
    left = _evaluate(chain, order[0])
    right = _evaluate(chain, order[1])
    return backend.multiply(left, right)


def execute_plan(chain: MatrixChain, order: Order):
    """
    Stage 3: Execute the chain in the chosen order.

    Returns:
        numpy array (1-D if the chain ended in a vector) or SparseMatrix
    """
    logger.info("=== STAGE 3: EXECUTE ===")

    result = _evaluate(chain, order)
    if chain.scalar != 1.0:
        # Applied last, to the smallest thing we hold
        if isinstance(result, SparseMatrix):
            result = SparseMatrix(result.data * chain.scalar)
        else:
            result = result * chain.scalar
    elif isinstance(order, int):
        # A lone leaf would otherwise hand back the caller's own array
        if isinstance(result, SparseMatrix):
            result = SparseMatrix(result.data.copy())
        else:
            result = np.array(result, copy=True)
    if chain.returns_vector and not isinstance(result, SparseMatrix):
        result = result.ravel()
    return result


def format_order(chain: MatrixChain, order: Order) -> str:
    """Human readable form of an order, e.g. '(K @ (X.T @ y))'."""
    if isinstance(order, int):
        return chain.factors[order].name
    return f"({format_order(chain, order[0])} @ {format_order(chain, order[1])})"


def execute(plan: Plan, optimize: bool = True):
    """
    Entry point used by Plan.compute().

    1. analyze() - Flatten the plan into a chain (no execution)
    2. rewrite() - Pick the cheapest order (or keep Python's left-to-right one)
    3. execute_plan() - Multiply in that order
    """
    chain = analyze(plan)
    naive = left_to_right(chain)
    order = rewrite(chain) if optimize else naive

    if optimize and order != naive:
        naive_cost = estimate_cost(chain, naive)
        chosen_cost = estimate_cost(chain, order)
        logger.info(f"Reordered {format_order(chain, naive)} -> {format_order(chain, order)}: "
                    f"estimated cost {naive_cost.total_cost:.0f} -> {chosen_cost.total_cost:.0f}")
    return execute_plan(chain, order)
