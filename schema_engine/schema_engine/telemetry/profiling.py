"""Timing instrumentation for the checker's hot paths.

Provides a ``@profile_operation(name)`` decorator that records the wall
time of every call with ``perf_counter_ns`` into a thread-safe
:class:`ProfileCollector` singleton and logs it at DEBUG level.

Operations instrumented by the engine:

* ``schema.normalize`` -- one ``CREATE TABLE`` statement normalised;
* ``schema.diff``      -- one expected/actual pair compared;
* ``schema.audit``     -- one complete schema audit.

The collector keeps the last ``max_results`` samples per operation and
exposes ``get_stats()`` for count/mean/p50/p95/max aggregation, which the
CLI prints with ``--timings``.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class ProfileResult:
    """A single timed call."""

    operation: str
    duration_ms: float


# ---------------------------------------------------------------------------
# Profile collector (thread-safe singleton)
# ---------------------------------------------------------------------------


class ProfileCollector:
    """Thread-safe store of recent timings, keyed by operation name.

    Parameters
    ----------
    max_results:
        Maximum number of samples retained per operation.
    """

    _instance: ProfileCollector | None = None
    _lock_cls = threading.Lock()

    def __init__(self, max_results: int = 500) -> None:
        self._max_results = max_results
        self._data: dict[str, deque[ProfileResult]] = {}
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> ProfileCollector:
        if cls._instance is None:
            with cls._lock_cls:
                if cls._instance is None:
                    cls._instance = ProfileCollector()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton (for testing)."""
        with cls._lock_cls:
            cls._instance = None

    def record(self, result: ProfileResult) -> None:
        with self._lock:
            samples = self._data.setdefault(result.operation, deque(maxlen=self._max_results))
            samples.append(result)

    def get_stats(self, operation: str) -> dict[str, Any] | None:
        """Aggregate the samples of *operation*, or ``None`` if there are none.

        Returns
        -------
        dict
            ``{"operation", "count", "total_ms", "mean_ms", "p50_ms",
            "p95_ms", "max_ms"}``
        """
        with self._lock:
            samples = self._data.get(operation)
            if not samples:
                return None
            durations = sorted(sample.duration_ms for sample in samples)

        count = len(durations)
        total = sum(durations)
        return {
            "operation": operation,
            "count": count,
            "total_ms": round(total, 3),
            "mean_ms": round(total / count, 3),
            "p50_ms": round(self._percentile(durations, 50), 3),
            "p95_ms": round(self._percentile(durations, 95), 3),
            "max_ms": round(durations[-1], 3),
        }

    def get_all_stats(self) -> list[dict[str, Any]]:
        """Stats for every tracked operation, sorted by name."""
        with self._lock:
            operations = sorted(self._data)
        return [stats for op in operations if (stats := self.get_stats(op)) is not None]

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    @staticmethod
    def _percentile(sorted_data: list[float], p: float) -> float:
        """Linear-interpolated p-th percentile of already sorted data."""
        if not sorted_data:
            return 0.0
        k = (p / 100.0) * (len(sorted_data) - 1)
        floor_k = int(k)
        ceil_k = min(floor_k + 1, len(sorted_data) - 1)
        return sorted_data[floor_k] + (k - floor_k) * (sorted_data[ceil_k] - sorted_data[floor_k])


# ---------------------------------------------------------------------------
# Decorator
# ---------------------------------------------------------------------------


def profile_operation(name: str) -> Callable[[F], F]:
    """Decorator recording the duration of every call under *name*.

    The duration is recorded even when the wrapped function raises.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_ns = time.perf_counter_ns()
            try:
                return func(*args, **kwargs)
            finally:
                duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                ProfileCollector.get_instance().record(ProfileResult(operation=name, duration_ms=round(duration_ms, 3)))
                logger.debug("PROFILE %s: %.3f ms", name, duration_ms)

        return wrapper  # type: ignore[return-value]

    return decorator
