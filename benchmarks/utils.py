# benchmarks/utils.py
import numpy as np
import os
import time
import sys
import threading
import psutil

# Add the project root to the Python path to allow importing 'spmv'
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from spmv.core import SparseMatrix


def make_problem(m, n, density=0.01, seed=0, transpose_x=True):
    """
    Builds one benchmark input: sparse X (m x n), a vector y and a dense
    symmetric positive definite K sized for K @ X.T @ y (or K @ X @ y).
    """
    rng = np.random.default_rng(seed)
    X = SparseMatrix.random(m, n, density=density, seed=seed)
    y = rng.standard_normal(m if transpose_x else n)
    k = n if transpose_x else m
    A = rng.standard_normal((k, k))
    K = A @ A.T / k + np.eye(k)
    return X, y, K


class ResourceMonitor(threading.Thread):
    """A thread that samples CPU and memory usage of a process."""
    def __init__(self, process, interval=0.05):
        super().__init__(daemon=True)
        self.process = process
        self.interval = interval
        self.running = True
        self.peak_memory_mb = 0
        self.cpu_percents = []

    def run(self):
        while self.running:
            try:
                # Record memory usage (Resident Set Size)
                memory_mb = self.process.memory_info().rss / (1024 * 1024)
                self.peak_memory_mb = max(self.peak_memory_mb, memory_mb)

                # cpu_percent blocks for `interval`, so no extra sleep
                self.cpu_percents.append(self.process.cpu_percent(interval=self.interval))
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                break

    def stop(self):
        self.running = False
        self.join()
        avg_cpu = sum(self.cpu_percents) / len(self.cpu_percents) if self.cpu_percents else 0
        return self.peak_memory_mb, avg_cpu


class Benchmark:
    """A context manager to handle timing and resource monitoring for a benchmark run."""
    def __init__(self, description, verbose=True):
        self.description = description
        self.verbose = verbose
        self.monitor = None
        self.start_time = 0
        self.elapsed = 0
        self.peak_mem = 0
        self.avg_cpu = 0

    def __enter__(self):
        if self.verbose:
            print(f"\n--- Starting: {self.description} ---")
        process = psutil.Process(os.getpid())
        self.monitor = ResourceMonitor(process)
        self.monitor.start()
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, type, value, traceback):
        self.elapsed = time.perf_counter() - self.start_time
        self.peak_mem, self.avg_cpu = self.monitor.stop()
        if self.verbose:
            print(f"--- Finished: {self.description} in {self.elapsed:.4f} seconds "
                  f"(peak RSS {self.peak_mem:.1f} MB, CPU {self.avg_cpu:.0f}%) ---")
