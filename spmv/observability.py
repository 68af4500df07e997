"""
Observability utilities for spmv.

This module provides:
- Logging configuration for the `spmv` logger namespace
- A profiler that times repeated kernel calls from outside the kernels
"""

import json
import logging
import statistics
import time
import functools
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


# ============================================================================
# Logging Configuration
# ============================================================================

LOGGER_NAME = "spmv"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for the spmv package.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs
    """
    log_level = getattr(logging, level.upper())

    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    spmv_logger = logging.getLogger(LOGGER_NAME)
    spmv_logger.setLevel(log_level)

    for handler in [h for h in spmv_logger.handlers if getattr(h, "_spmv_handler", False)]:
        spmv_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(console_formatter)
    console_handler._spmv_handler = True
    spmv_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(detailed_formatter)
        file_handler._spmv_handler = True
        spmv_logger.addHandler(file_handler)

    # Prevent propagation to root logger
    spmv_logger.propagate = False

    return spmv_logger


# ============================================================================
# Performance Profiling
# ============================================================================

@dataclass
class ProfileEntry:
    """Single timed call."""
    name: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def complete(self):
        self.end_time = time.perf_counter()
        self.duration = self.end_time - self.start_time

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'duration': self.duration,
            'metadata': self.metadata
        }


class ExecutionProfiler:
    """
    Collects wall-clock timings of named operations.

    Example:
        profiler = ExecutionProfiler()

        with profiler.profile("sparse", nnz=X.nnz):
            transform(X, y, K)

        profiler.repeat("dense", lambda: K @ (Xd @ y), repeats=10)
        profiler.print_summary()
    """

    def __init__(self):
        self.entries: List[ProfileEntry] = []
        self.aggregated: Dict[str, List[float]] = defaultdict(list)
        self._enabled = True

    @contextmanager
    def profile(self, name: str, **metadata):
        """
        Context manager timing a code block.

        Args:
            name: Name of the operation being profiled
            **metadata: Additional metadata to attach
        """
        if not self._enabled:
            yield None
            return

        entry = ProfileEntry(name=name, start_time=time.perf_counter(), metadata=metadata)
        try:
            yield entry
        finally:
            entry.complete()
            self.entries.append(entry)
            self.aggregated[name].append(entry.duration)

    def repeat(self, name: str, func: Callable[[], Any], repeats: int = 1, **metadata):
        """Calls func `repeats` times, timing each call under `name`. Returns the last result."""
        result = None
        for _ in range(repeats):
            with self.profile(name, **metadata):
                result = func()
        return result

    def profile_decorator(self, name: Optional[str] = None):
        """
        Decorator for profiling function calls.

        Example:
            @profiler.profile_decorator("fit")
            def fit(X, y):
                ...
        """
        def decorator(func):
            profile_name = name or f"{func.__module__}.{func.__name__}"

            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                with self.profile(profile_name):
                    return func(*args, **kwargs)
            return wrapper
        return decorator

    def get_summary(self) -> Dict[str, Dict[str, float]]:
        """
        Aggregated statistics per operation name.

        Returns:
            Dictionary mapping operation names to count/total/mean/median/min/max
        """
        summary = {}
        for name, durations in self.aggregated.items():
            if durations:
                summary[name] = {
                    'count': len(durations),
                    'total': sum(durations),
                    'mean': sum(durations) / len(durations),
                    'median': statistics.median(durations),
                    'min': min(durations),
                    'max': max(durations)
                }
        return summary

    def print_summary(self):
        """Print a formatted summary of profiling results."""
        summary = self.get_summary()

        print("\n" + "="*80)
        print("EXECUTION PROFILE SUMMARY")
        print("="*80)
        print(f"{'Operation':<40} {'Count':>8} {'Median (s)':>14} {'Min (s)':>14}")
        print("-"*80)

        for name, stats in sorted(summary.items(), key=lambda x: x[1]['median'], reverse=True):
            print(f"{name:<40} {stats['count']:>8} {stats['median']:>14.6f} {stats['min']:>14.6f}")

        print("="*80 + "\n")

    def save_json(self, filepath: str):
        """
        Save profiling results to JSON file.

        Args:
            filepath: Path to save JSON data
        """
        data = {
            'summary': self.get_summary(),
            'entries': [entry.to_dict() for entry in self.entries]
        }
        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2)

    def reset(self):
        """Clear all profiling data."""
        self.entries.clear()
        self.aggregated.clear()

    def enable(self):
        self._enabled = True

    def disable(self):
        self._enabled = False


# Global profiler instance
_global_profiler = ExecutionProfiler()


def get_profiler() -> ExecutionProfiler:
    """Get the global profiler instance."""
    return _global_profiler
