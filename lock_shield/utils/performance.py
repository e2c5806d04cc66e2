"""Performance monitoring utilities for LockShield."""

import functools
import logging
import os
import time
import tracemalloc
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Iterator, Optional, TypeVar

F = TypeVar('F', bound=Callable[..., Any])

# Recent measurements kept per monitor; totals cover every measurement.
MAX_RECENT_METRICS = 100


@dataclass
class PerformanceMetrics:
    """Container for performance metrics."""

    function_name: str
    execution_time: float
    memory_peak: Optional[float] = None

    def __post_init__(self) -> None:
        """Convert peak memory to MB for readability."""
        if self.memory_peak is not None:
            self.memory_peak = self.memory_peak / 1024 / 1024


class PerformanceMonitor:
    """Timing (and optionally memory) tracking for named operations.

    Only the most recent measurements are kept, so a long-lived monitor uses
    bounded memory. Execution count and total time are running totals.
    """

    def __init__(self, enable_memory_tracking: bool = False, max_metrics: int = MAX_RECENT_METRICS) -> None:
        self.metrics: Deque[PerformanceMetrics] = deque(maxlen=max_metrics)
        self.enable_memory_tracking = enable_memory_tracking
        self.total_executions = 0
        self.total_time = 0.0

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        """Context manager for measuring performance.

        Args:
            name: Name of the operation being measured
        """
        start_time = time.perf_counter()
        started_tracing = False
        if self.enable_memory_tracking and not tracemalloc.is_tracing():
            tracemalloc.start()
            started_tracing = True

        try:
            yield
        finally:
            execution_time = time.perf_counter() - start_time
            peak_memory = None
            if self.enable_memory_tracking:
                peak_memory = tracemalloc.get_traced_memory()[1]
                if started_tracing:
                    tracemalloc.stop()

            self.total_executions += 1
            self.total_time += execution_time
            self.metrics.append(PerformanceMetrics(
                function_name=name,
                execution_time=execution_time,
                memory_peak=peak_memory,
            ))

    def get_summary(self) -> Dict[str, Any]:
        """Get performance summary.

        Returns:
            Dictionary with performance summary
        """
        if not self.total_executions:
            return {}

        return {
            "total_executions": self.total_executions,
            "total_time": self.total_time,
            "average_time": self.total_time / self.total_executions,
            "max_peak_memory": max((m.memory_peak or 0 for m in self.metrics), default=0),
            "metrics": list(self.metrics),
        }

    def clear(self) -> None:
        self.metrics.clear()
        self.total_executions = 0
        self.total_time = 0.0


def benchmark(func: F) -> F:
    """Simple benchmark decorator.

    Timing is logged only when LOCKSHIELD_VERBOSE_BENCHMARK is set.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        end_time = time.perf_counter()

        if os.environ.get('LOCKSHIELD_VERBOSE_BENCHMARK'):
            logger = logging.getLogger("Performance")
            logger.info(f"{func.__name__} took {end_time - start_time:.4f} seconds")
        return result
    return wrapper
