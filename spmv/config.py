# spmv/config.py
"""
Centralized configuration for the spmv library.
This module provides a single source of truth for all configurable parameters.
"""

# Numeric defaults
DEFAULT_DTYPE = "float64"  # dtype for coerced vectors, matrices and results
DEFAULT_SPARSE_FORMAT = "csr"  # storage layout for coerced sparse inputs

# Parallel kernel configuration
DEFAULT_MAX_WORKERS = 4  # Threads used by the fork-join sparse kernel
PARALLEL_MIN_NNZ = 200_000  # parallel=None switches the threaded kernel on above this
MIN_ROWS_PER_SEGMENT = 1024  # Smallest row segment handed to a worker

# Correctness checks
DEFAULT_RTOL = 1e-9

# Benchmark harness
BENCHMARK_REPEATS = 10
BENCHMARK_DENSITY = 0.01
