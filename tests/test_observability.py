"""
Unit tests for logging configuration and the execution profiler.
"""

import unittest
import os
import tempfile
import shutil
import sys
import json
import logging
import time

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from spmv.observability import configure_logging, ExecutionProfiler, get_profiler


class TestObservability(unittest.TestCase):
    """Test cases for observability utilities."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up after each test."""
        logger = logging.getLogger("spmv")
        for handler in [h for h in logger.handlers if getattr(h, "_spmv_handler", False)]:
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def test_logging_configuration_writes_file(self):
        log_file = os.path.join(self.test_dir, "spmv.log")
        logger = configure_logging(level="DEBUG", log_file=log_file)

        logging.getLogger("spmv.optimizer").info("chosen order")
        for handler in logger.handlers:
            handler.flush()

        self.assertEqual(logger.name, "spmv")
        self.assertFalse(logger.propagate)
        with open(log_file) as f:
            self.assertIn("chosen order", f.read())

    def test_logging_configuration_is_idempotent(self):
        configure_logging(level="INFO")
        logger = configure_logging(level="WARNING")

        installed = [h for h in logger.handlers if getattr(h, "_spmv_handler", False)]
        self.assertEqual(len(installed), 1)
        self.assertEqual(installed[0].level, logging.WARNING)
        self.assertEqual(logger.level, logging.WARNING)

    def test_foreign_handlers_are_left_alone(self):
        logger = logging.getLogger("spmv")
        foreign = logging.NullHandler()
        logger.addHandler(foreign)
        try:
            configure_logging(level="INFO")
            configure_logging(level="INFO")

            self.assertIn(foreign, logger.handlers)
        finally:
            logger.removeHandler(foreign)

    def test_execution_profiler_context_manager(self):
        profiler = ExecutionProfiler()

        with profiler.profile("operation1", nnz=10):
            time.sleep(0.01)
        with profiler.profile("operation2"):
            time.sleep(0.02)

        self.assertEqual(len(profiler.entries), 2)
        self.assertEqual(profiler.entries[0].name, "operation1")
        self.assertEqual(profiler.entries[0].metadata, {"nnz": 10})
        self.assertGreaterEqual(profiler.entries[0].duration, 0.01)
        self.assertGreaterEqual(profiler.entries[1].duration, 0.02)

    def test_repeat_times_every_call(self):
        profiler = ExecutionProfiler()
        calls = []

        result = profiler.repeat("kernel", lambda: calls.append(1) or len(calls), repeats=5)

        self.assertEqual(result, 5)
        summary = profiler.get_summary()
        self.assertEqual(summary["kernel"]["count"], 5)
        self.assertLessEqual(summary["kernel"]["min"], summary["kernel"]["median"])
        self.assertLessEqual(summary["kernel"]["median"], summary["kernel"]["max"])

    def test_profile_decorator(self):
        profiler = ExecutionProfiler()

        @profiler.profile_decorator("add")
        def add(a, b):
            return a + b

        self.assertEqual(add(2, 3), 5)
        self.assertEqual(profiler.get_summary()["add"]["count"], 1)

    def test_disabled_profiler_records_nothing(self):
        profiler = ExecutionProfiler()
        profiler.disable()

        with profiler.profile("ignored"):
            pass

        self.assertEqual(profiler.entries, [])
        profiler.enable()
        with profiler.profile("kept"):
            pass
        self.assertEqual(len(profiler.entries), 1)

    def test_save_json_and_reset(self):
        profiler = ExecutionProfiler()
        profiler.repeat("op", lambda: None, repeats=3)

        path = os.path.join(self.test_dir, "profile.json")
        profiler.save_json(path)
        with open(path) as f:
            data = json.load(f)

        self.assertEqual(data["summary"]["op"]["count"], 3)
        self.assertEqual(len(data["entries"]), 3)

        profiler.reset()
        self.assertEqual(profiler.get_summary(), {})

    def test_global_profiler_is_shared(self):
        self.assertIs(get_profiler(), get_profiler())


if __name__ == '__main__':
    unittest.main()
