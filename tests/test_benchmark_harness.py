"""
Smoke tests for the external benchmark harness.
"""

import unittest
import os
import sys
import tempfile
import shutil
import logging

import numpy as np

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from benchmarks.utils import Benchmark, make_problem
from benchmarks import dense_vs_sparse


class TestBenchmarkHarness(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        # main() configures the spmv logger; leave it as the next test expects it
        logger = logging.getLogger("spmv")
        for handler in [h for h in logger.handlers if getattr(h, "_spmv_handler", False)]:
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
        shutil.rmtree(self.test_dir)

    def test_make_problem_shapes(self):
        X, y, K = make_problem(300, 20, density=0.05, seed=1)

        self.assertEqual(X.shape, (300, 20))
        self.assertEqual(y.shape, (300,))
        self.assertEqual(K.shape, (20, 20))
        np.testing.assert_allclose(K, K.T)

        X, y, K = make_problem(300, 20, density=0.05, seed=1, transpose_x=False)
        self.assertEqual(y.shape, (20,))
        self.assertEqual(K.shape, (300, 300))

    def test_benchmark_context_manager_records_time(self):
        with Benchmark("noop", verbose=False) as b:
            sum(range(1000))

        self.assertGreater(b.elapsed, 0)
        self.assertGreaterEqual(b.peak_mem, 0)

    def test_run_benchmark_small(self):
        results = dense_vs_sparse.run_benchmark(200, 15, [0.01, 0.1], repeats=2)

        self.assertEqual(set(results.keys()), {0.01, 0.1})
        for timings in results.values():
            self.assertIn("sparse transform", timings)
            self.assertIn("plan, optimized", timings)
            self.assertTrue(all(t >= 0 for t in timings.values()))

    def test_main_writes_plot(self):
        plot_path = os.path.join(self.test_dir, "timings.png")
        exit_code = dense_vs_sparse.main(["--rows", "150", "--cols", "10", "--densities", "0.05",
                                          "--repeats", "1", "--plot", plot_path])

        self.assertEqual(exit_code, 0)
        self.assertTrue(os.path.exists(plot_path))


if __name__ == '__main__':
    unittest.main()
