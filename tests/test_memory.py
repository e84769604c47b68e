"""Tests for the memory monitor state machine and size estimates."""

import tracemalloc
from dataclasses import dataclass
from unittest.mock import patch

import pytest

from conftest import FakeSampler
from webperf.memory import MemoryMonitor, MemoryState, estimate_size


def _monitor(*megabytes):
    return MemoryMonitor(max_memory_mb=100, sampler=FakeSampler(*megabytes))


class TestMemoryStates:
    """Tests for idle/monitoring/normal/warning/emergency transitions."""

    def test_lifecycle(self):
        monitor = _monitor(10)
        assert monitor.state == MemoryState.IDLE

        with monitor.monitoring():
            assert monitor.state == MemoryState.MONITORING
            assert monitor.check() == MemoryState.NORMAL
            assert monitor.state == MemoryState.NORMAL

        assert monitor.state == MemoryState.IDLE

    def test_warning_forces_collection(self):
        monitor = _monitor(75)

        with patch("webperf.memory.gc.collect", return_value=0) as collect:
            with monitor.monitoring():
                state = monitor.check()

        assert state == MemoryState.WARNING
        collect.assert_called_once()
        assert monitor.gc_runs == 1
        assert monitor.degraded is False

    def test_emergency_persisting_after_collection_degrades(self):
        monitor = _monitor(95)

        with patch("webperf.memory.gc.collect", return_value=0):
            with monitor.monitoring():
                state = monitor.check()

        assert state == MemoryState.EMERGENCY
        assert monitor.degraded is True

    def test_emergency_relieved_by_collection(self):
        """Heap drops after GC, so the state settles at normal."""
        monitor = _monitor(95, 40)

        with patch("webperf.memory.gc.collect", return_value=12) as collect:
            with monitor.monitoring():
                state = monitor.check()

        collect.assert_called_once()
        assert state == MemoryState.NORMAL
        assert monitor.degraded is False
        assert monitor.peak_mb == pytest.approx(95)

    def test_normal_does_not_collect(self):
        monitor = _monitor(20)

        with patch("webperf.memory.gc.collect") as collect:
            with monitor.monitoring():
                monitor.check()

        collect.assert_not_called()

    def test_nested_sessions_share_state(self):
        monitor = _monitor(10)

        monitor.start()
        monitor.start()
        monitor.stop()
        assert monitor.state == MemoryState.MONITORING

        monitor.stop()
        assert monitor.state == MemoryState.IDLE

    def test_new_session_clears_degraded(self):
        monitor = _monitor(95)
        with patch("webperf.memory.gc.collect", return_value=0):
            with monitor.monitoring():
                monitor.check()
        assert monitor.degraded is True

        monitor.start()
        assert monitor.degraded is False
        monitor.stop()

    def test_force_gc_reports_freed_memory(self):
        monitor = _monitor(60, 45)

        with patch("webperf.memory.gc.collect", return_value=3):
            result = monitor.force_gc()

        assert result.before_mb == pytest.approx(60)
        assert result.after_mb == pytest.approx(45)
        assert result.freed_mb == pytest.approx(15)
        assert result.collected == 3


class TestMemorySummary:
    """Tests for the monitor summary."""

    def test_healthy(self):
        monitor = _monitor(10)
        monitor.check()

        summary = monitor.summary()

        assert summary["healthy"] is True
        assert summary["usagePercentage"] == pytest.approx(10.0)
        assert summary["recommendations"] == []

    def test_under_pressure(self):
        monitor = _monitor(95)
        with patch("webperf.memory.gc.collect", return_value=0):
            monitor.check()

        summary = monitor.summary()

        assert summary["healthy"] is False
        assert summary["degraded"] is True
        assert len(summary["recommendations"]) >= 2


class TestTracemallocSampler:
    """Tests for the default heap sampler."""

    def test_tracing_started_and_stopped(self):
        if tracemalloc.is_tracing():
            pytest.skip("tracemalloc already active")

        monitor = MemoryMonitor(max_memory_mb=4096)
        with monitor.monitoring():
            assert tracemalloc.is_tracing()
            assert monitor.check() == MemoryState.NORMAL

        assert not tracemalloc.is_tracing()


@dataclass
class _Record:
    name: str
    value: int


class TestEstimateSize:
    """Tests for the structural size estimate."""

    def test_scalars(self):
        assert estimate_size(None) == 0
        assert estimate_size(True) == 4
        assert estimate_size(3.5) == 8
        assert estimate_size("abcd") == 8

    def test_containers(self):
        assert estimate_size({"a": 1}) == 56 + 2 + 8

    def test_long_lists_are_sampled(self):
        items = [{"a": 1} for _ in range(1000)]

        assert estimate_size(items) == 56 + 1000 * 66

    def test_dataclasses(self):
        assert estimate_size(_Record("ab", 1)) == 56 + 56 + (8 + 4) + (10 + 8)

    def test_cycles_terminate(self):
        loop = []
        loop.append(loop)

        assert estimate_size(loop) > 0
