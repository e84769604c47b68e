"""Shared fixtures for report generation tests."""

import pytest

from webperf.config import ReportConfig
from webperf.memory import MemoryMonitor

MB = 1024 * 1024


def summary_entry(
    path,
    issues=(),
    device="desktop",
    performance=80,
    label=None,
    lcp=2000.0,
):
    """Run summary entry; issues are (id, savings_ms, savings_bytes, score) tuples."""
    return {
        "label": label or path.strip("/") or "home",
        "path": path,
        "device": device,
        "scores": {"performance": performance, "accessibility": 90, "bestPractices": 95, "seo": 100},
        "metrics": {"lcpMs": lcp, "fcpMs": 1000.0, "tbtMs": 150.0, "cls": 0.05},
        "opportunities": [],
        "failedAudits": [
            {
                "id": issue_id,
                "title": issue_id.replace("-", " ").title(),
                "description": f"Description of {issue_id}",
                "score": score,
                "details": {"overallSavingsMs": ms, "overallSavingsBytes": size},
            }
            for issue_id, ms, size, score in issues
        ],
    }


def lighthouse_result(path, audits=None, success=True, device="mobile", categories=None):
    """Collector page result wrapping a Lighthouse report."""
    if categories is None:
        categories = {
            "performance": {"score": 0.8},
            "accessibility": {"score": 0.9},
            "best-practices": {"score": 1.0},
            "seo": {"score": 0.95},
        }
    return {
        "page": {"label": path, "path": path, "devices": [device]},
        "runnerResults": {
            "lighthouse": {
                "success": success,
                "lhr": {"categories": categories, "audits": audits or {}},
            }
        },
    }


class FakeSampler:
    """Heap sampler returning queued values, then repeating the last one."""

    def __init__(self, *megabytes):
        self.values = [int(mb * MB) for mb in megabytes] or [0]
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


@pytest.fixture
def config():
    """Default config with a single normalization worker for determinism."""
    return ReportConfig(normalize_workers=1)


@pytest.fixture
def quiet_monitor():
    """Monitor that always reports an almost empty heap."""
    return MemoryMonitor(max_memory_mb=100, sampler=FakeSampler(1))


@pytest.fixture
def sample_run():
    """Small run: four pages, one failed, shared and unique issues."""
    return {
        "meta": {
            "configPath": "signals.config.json",
            "startedAt": "2026-01-05T10:00:00Z",
            "completedAt": "2026-01-05T10:02:00Z",
            "elapsedMs": 120000,
            "totalPages": 4,
            "totalRunners": 1,
        },
        "results": [
            summary_entry("/", [
                ("unused-javascript", 800, 50000, 0.3),
                ("render-blocking-resources", 600, 0, 0.6),
            ], performance=62),
            summary_entry("/pricing", [
                ("unused-javascript", 1200, 70000, 0.3),
                ("largest-contentful-paint", 2500, 0, 0.2),
            ], performance=41, lcp=5200.0),
            summary_entry("/blog", [("uses-long-cache-ttl", 300, 120000, 0.7)], performance=93),
            {"label": "broken", "path": "/broken", "device": "mobile"},
        ],
    }
