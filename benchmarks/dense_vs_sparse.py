# benchmarks/dense_vs_sparse.py
"""
Times K @ X.T @ y for a sparse X under different evaluation strategies,
over a range of densities. Timing stays out here; the kernels know nothing
about it.

Usage:
    python benchmarks/dense_vs_sparse.py --rows 20000 --cols 500 --repeats 10 --plot timings.png
"""
import argparse
import os
import sys

import numpy as np

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from spmv import backend
from spmv.config import BENCHMARK_REPEATS, BENCHMARK_DENSITY, DEFAULT_RTOL
from spmv.observability import ExecutionProfiler, configure_logging
from spmv.plan import Plan
from spmv.sparse_transform import transform
from benchmarks.utils import Benchmark, make_problem

DEFAULT_DENSITIES = [1e-4, 1e-3, BENCHMARK_DENSITY, 1e-1]


def strategies(X, y, K, parallel):
    """Name -> zero-argument callable computing K @ X.T @ y."""
    X_dense = X.to_dense()
    plan = Plan.of(K, "K") @ Plan.of(X, "X").T @ Plan.of(y, "y")
    return {
        "dense, (K @ X.T) @ y": lambda: (K @ X_dense.T) @ y,
        "dense, K @ (X.T @ y)": lambda: K @ (X_dense.T @ y),
        "sparse, (K @ X.T) @ y": lambda: backend.multiply(K, X.T) @ y,
        "sparse transform": lambda: transform(X, y, K, transpose_x=True, parallel=parallel),
        "plan, optimized": lambda: plan.compute(),
    }


def run_benchmark(rows, cols, densities, repeats, parallel=False, seed=0):
    """
    Returns {density: {strategy: median seconds}} and raises AssertionError
    if any strategy disagrees with the transform beyond DEFAULT_RTOL.
    """
    results = {}
    for density in densities:
        X, y, K = make_problem(rows, cols, density=density, seed=seed)
        reference = transform(X, y, K, transpose_x=True)

        profiler = ExecutionProfiler()
        with Benchmark(f"density={density:g}, nnz={X.nnz}"):
            for name, func in strategies(X, y, K, parallel).items():
                value = profiler.repeat(name, func, repeats=repeats, density=density)
                error = np.linalg.norm(value - reference) / max(np.linalg.norm(reference), 1e-300)
                if error > DEFAULT_RTOL * max(rows, cols):
                    raise AssertionError(f"{name} disagrees with transform: rel. error {error:.2e}")

        results[density] = {name: stats['median'] for name, stats in profiler.get_summary().items()}
    return results


def print_results(results):
    names = list(next(iter(results.values())).keys())
    print("\n" + "=" * (12 + 24 * len(names)))
    print(f"{'density':>12}" + "".join(f"{name:>24}" for name in names))
    print("-" * (12 + 24 * len(names)))
    for density, timings in results.items():
        print(f"{density:>12g}" + "".join(f"{timings[name]:>24.6f}" for name in names))
    print("=" * (12 + 24 * len(names)))


def plot_results(results, output_path):
    """Log-log plot of median time against density, one line per strategy."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    densities = list(results.keys())
    names = list(results[densities[0]].keys())

    plt.figure(figsize=(8, 5))
    for name in names:
        plt.plot(densities, [results[d][name] for d in densities], marker='o', label=name)
    plt.xscale('log')
    plt.yscale('log')
    plt.xlabel('Density of X')
    plt.ylabel('Median time (s)')
    plt.title('K @ X.T @ y: dense vs. sparse evaluation')
    plt.legend()
    plt.grid(True, which='both', linestyle='--', alpha=0.5)
    plt.tight_layout()
    plt.savefig(output_path)
    print(f"Plot saved to '{output_path}'")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Dense vs. sparse K @ X.T @ y benchmark")
    parser.add_argument("--rows", type=int, default=20000, help="rows of X (samples)")
    parser.add_argument("--cols", type=int, default=500, help="columns of X (features)")
    parser.add_argument("--densities", type=float, nargs="+", default=DEFAULT_DENSITIES)
    parser.add_argument("--repeats", type=int, default=BENCHMARK_REPEATS)
    parser.add_argument("--parallel", action="store_true", help="use the threaded sparse kernel")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--plot", default=None, help="write a log-log plot to this path")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    results = run_benchmark(args.rows, args.cols, args.densities, args.repeats,
                            parallel=args.parallel, seed=args.seed)
    print_results(results)
    if args.plot:
        plot_results(results, args.plot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
