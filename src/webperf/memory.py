"""Heap monitoring with explicit pressure states.

The monitor moves through ``idle -> monitoring -> normal|warning|emergency``
for each report generation call and back to ``idle`` when the last caller
stops. Warning and emergency always force a garbage collection before the
state is settled; emergency that survives the collection marks the monitor
as degraded, which callers treat as a request to stream.
"""

import gc
import logging
import threading
import tracemalloc
from contextlib import contextmanager
from dataclasses import dataclass, field, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional

from webperf.constants import (
    BYTES_PER_MB,
    ESTIMATE_CONTAINER_BYTES,
    ESTIMATE_MAX_DEPTH,
    ESTIMATE_NUMBER_BYTES,
)

logger = logging.getLogger(__name__)

# Items measured before extrapolating the size of a long sequence
ESTIMATE_SAMPLE_ITEMS = 100


class MemoryState(str, Enum):
    IDLE = "idle"
    MONITORING = "monitoring"
    NORMAL = "normal"
    WARNING = "warning"
    EMERGENCY = "emergency"


@dataclass
class MemorySnapshot:
    """Heap usage at one point in time."""

    used_mb: float
    peak_mb: float
    budget_mb: float
    taken_at: datetime = field(default_factory=datetime.now)

    @property
    def usage_fraction(self) -> float:
        return self.used_mb / self.budget_mb if self.budget_mb else 0.0


@dataclass
class GcResult:
    """Outcome of a forced collection."""

    before_mb: float
    after_mb: float
    collected: int

    @property
    def freed_mb(self) -> float:
        return max(self.before_mb - self.after_mb, 0.0)


def traced_heap_bytes() -> int:
    """Bytes currently allocated by Python, as seen by tracemalloc."""
    current, _ = tracemalloc.get_traced_memory()
    return current


class MemoryMonitor:
    """Tracks heap usage against a budget.

    Args:
        max_memory_mb: Heap budget in megabytes
        warning_threshold: Fraction of the budget that triggers warning
        emergency_threshold: Fraction of the budget that triggers emergency
        sampler: Callable returning current heap bytes; defaults to tracemalloc
    """

    def __init__(
        self,
        max_memory_mb: float = 512.0,
        warning_threshold: float = 0.70,
        emergency_threshold: float = 0.90,
        sampler: Optional[Callable[[], int]] = None,
    ):
        self.max_memory_mb = max_memory_mb
        self.warning_threshold = warning_threshold
        self.emergency_threshold = emergency_threshold
        self._sampler = sampler or traced_heap_bytes
        self._owns_tracing = False
        self._users = 0
        self._lock = threading.Lock()

        self.state = MemoryState.IDLE
        self.degraded = False
        self.peak_mb = 0.0
        self.gc_runs = 0
        self.last_snapshot: Optional[MemorySnapshot] = None

    @classmethod
    def from_config(cls, config, sampler: Optional[Callable[[], int]] = None) -> "MemoryMonitor":
        return cls(
            max_memory_mb=config.max_memory_mb,
            warning_threshold=config.warning_threshold,
            emergency_threshold=config.emergency_threshold,
            sampler=sampler,
        )

    def start(self) -> None:
        """Enter monitoring; nested calls share one session."""
        with self._lock:
            self._users += 1
            if self._users > 1:
                return
            if self._sampler is traced_heap_bytes and not tracemalloc.is_tracing():
                tracemalloc.start()
                self._owns_tracing = True
            self.degraded = False
            self.state = MemoryState.MONITORING
        logger.debug(f"Memory monitoring started (budget {self.max_memory_mb:.0f}MB)")

    def stop(self) -> None:
        with self._lock:
            if self._users == 0:
                return
            self._users -= 1
            if self._users > 0:
                return
            if self._owns_tracing:
                tracemalloc.stop()
                self._owns_tracing = False
            self.state = MemoryState.IDLE
        logger.debug(f"Memory monitoring stopped (peak {self.peak_mb:.1f}MB)")

    @contextmanager
    def monitoring(self) -> Iterator["MemoryMonitor"]:
        self.start()
        try:
            yield self
        finally:
            self.stop()

    def snapshot(self) -> MemorySnapshot:
        used_mb = self._sampler() / BYTES_PER_MB
        self.peak_mb = max(self.peak_mb, used_mb)
        self.last_snapshot = MemorySnapshot(
            used_mb=used_mb,
            peak_mb=self.peak_mb,
            budget_mb=self.max_memory_mb,
        )
        return self.last_snapshot

    def classify(self, snapshot: MemorySnapshot) -> MemoryState:
        fraction = snapshot.usage_fraction
        if fraction >= self.emergency_threshold:
            return MemoryState.EMERGENCY
        if fraction >= self.warning_threshold:
            return MemoryState.WARNING
        return MemoryState.NORMAL

    def check(self) -> MemoryState:
        """Take a snapshot and settle the pressure state.

        Returns:
            State after any forced collection
        """
        self.state = MemoryState.MONITORING
        snapshot = self.snapshot()
        state = self.classify(snapshot)

        if state in (MemoryState.WARNING, MemoryState.EMERGENCY):
            logger.warning(
                f"Memory {state.value}: {snapshot.used_mb:.1f}MB of "
                f"{self.max_memory_mb:.0f}MB ({snapshot.usage_fraction:.0%}), forcing garbage collection"
            )
            result = self.force_gc()
            state = self.classify(self.last_snapshot)
            logger.info(f"Garbage collection freed {result.freed_mb:.1f}MB")

            if state == MemoryState.EMERGENCY and not self.degraded:
                self.degraded = True
                logger.warning("Memory still critical after collection, switching to streaming")

        self.state = state
        return state

    def force_gc(self) -> GcResult:
        before = self.last_snapshot.used_mb if self.last_snapshot else self.snapshot().used_mb
        collected = gc.collect()
        self.gc_runs += 1
        after = self.snapshot().used_mb
        return GcResult(before_mb=before, after_mb=after, collected=collected)

    def summary(self) -> dict:
        snapshot = self.last_snapshot or self.snapshot()
        usage = snapshot.usage_fraction
        recommendations: List[str] = []

        if usage >= self.warning_threshold:
            recommendations.append("Enable streaming for large datasets or lower the streaming threshold")
        if self.peak_mb >= self.max_memory_mb * self.emergency_threshold:
            recommendations.append("Raise max_memory_mb or reduce chunk_size")
        if self.gc_runs > 5:
            recommendations.append("Frequent forced collections; reduce chunk_size")

        return {
            'state': self.state.value,
            'healthy': not self.degraded and usage < self.warning_threshold,
            'degraded': self.degraded,
            'currentMB': round(snapshot.used_mb, 2),
            'peakMB': round(self.peak_mb, 2),
            'budgetMB': self.max_memory_mb,
            'usagePercentage': round(usage * 100, 1),
            'gcRuns': self.gc_runs,
            'recommendations': recommendations,
        }


_default_monitor: Optional[MemoryMonitor] = None
_default_lock = threading.Lock()


def get_memory_monitor(config=None) -> MemoryMonitor:
    """Process-wide monitor shared by every report generation call."""
    global _default_monitor
    with _default_lock:
        if _default_monitor is None:
            _default_monitor = MemoryMonitor.from_config(config) if config else MemoryMonitor()
        return _default_monitor


def estimate_size(obj: Any) -> int:
    """Cheap structural size estimate in bytes.

    Long sequences are sampled and extrapolated, so the result is only
    approximate.
    """
    return _estimate(obj, 0, set())


def _estimate(obj: Any, depth: int, seen: set) -> int:
    if obj is None:
        return 0
    if isinstance(obj, bool):
        return 4
    if isinstance(obj, (int, float)):
        return ESTIMATE_NUMBER_BYTES
    if isinstance(obj, str):
        return 2 * len(obj)
    if isinstance(obj, bytes):
        return len(obj)
    if depth >= ESTIMATE_MAX_DEPTH or id(obj) in seen:
        return ESTIMATE_CONTAINER_BYTES

    seen.add(id(obj))
    try:
        if isinstance(obj, dict):
            return ESTIMATE_CONTAINER_BYTES + sum(
                _estimate(k, depth + 1, seen) + _estimate(v, depth + 1, seen)
                for k, v in obj.items()
            )
        if isinstance(obj, (list, tuple, set, frozenset)):
            items = list(obj)
            sample = items[:ESTIMATE_SAMPLE_ITEMS]
            sampled = sum(_estimate(item, depth + 1, seen) for item in sample)
            if len(items) > len(sample):
                sampled = int(sampled * len(items) / len(sample))
            return ESTIMATE_CONTAINER_BYTES + sampled
        if is_dataclass(obj):
            return ESTIMATE_CONTAINER_BYTES + _estimate(vars(obj), depth + 1, seen)
        return ESTIMATE_CONTAINER_BYTES
    finally:
        seen.discard(id(obj))
