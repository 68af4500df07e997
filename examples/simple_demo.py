#!/usr/bin/env python3
"""
Simple spmv demo

Least squares on a sparse design matrix, showing that K @ X.T @ y written
the natural way is evaluated as K @ (X.T @ y).
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np

from spmv import SparseMatrix, Plan, transform, gram_inverse, configure_logging
from spmv.optimizer import analyze, rewrite, left_to_right, estimate_cost, format_order

configure_logging("WARNING")

# A tall sparse design matrix: 5000 samples, 40 features, 2% filled
X = SparseMatrix.random(5000, 40, density=0.02, seed=7)
true_beta = np.arange(1, 41, dtype=np.float64)
y = X.data @ true_beta

print(f"X: {X}")

# K = (X.T X)^-1, then the transform evaluates the tail
K = gram_inverse(X)
beta = transform(X, y, K, transpose_x=True)
print(f"Recovered coefficients match: {np.allclose(beta, true_beta)}")

# The same expression as a lazy plan
plan = Plan.of(K, "K") @ Plan.of(X, "X").T @ Plan.of(y, "y")
chain = analyze(plan)
naive, chosen = left_to_right(chain), rewrite(chain)
print(f"Python order:    {format_order(chain, naive):<20} {estimate_cost(chain, naive)}")
print(f"Optimized order: {format_order(chain, chosen):<20} {estimate_cost(chain, chosen)}")

print(f"Plan result matches transform: {np.allclose(plan.compute(), beta)}")
