"""Priority scoring shared by every report template.

One formula ranks both aggregated issues and pages:

    time_score  = min(total_ms / 1000, cap_time)
    byte_score  = min(total_bytes / 100000, cap_bytes)
    priority    = (time_score * w_time + byte_score * w_bytes
                   + log(page_count + 1) * w_pages) * severity_weight

Scores are computed on demand and never stored on the data model.
"""

import math
import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from webperf.constants import BYTES_PER_BYTE_UNIT, MS_PER_TIME_UNIT
from webperf.exceptions import InvalidConfigError
from webperf.models import AggregatedIssue, PageAuditResult


def _default_severity_weights() -> dict:
    return {'critical': 4.0, 'high': 3.0, 'medium': 2.0, 'low': 1.0}


@dataclass
class ScoringWeights:
    """Caps and weights for the priority formula."""

    cap_time: float = 10.0
    cap_bytes: float = 10.0
    w_time: float = 0.4
    w_bytes: float = 0.3
    w_pages: float = 0.2
    severity_weights: dict = field(default_factory=_default_severity_weights)

    @classmethod
    def from_env(cls) -> "ScoringWeights":
        """Load weights from WEBPERF_SCORING_* environment variables.

        e.g., WEBPERF_SCORING_W_TIME=0.5, WEBPERF_SCORING_SEVERITY_CRITICAL=5
        """
        weights = cls()
        prefix = "WEBPERF_SCORING_"

        for name in ('cap_time', 'cap_bytes', 'w_time', 'w_bytes', 'w_pages'):
            value = os.getenv(f"{prefix}{name.upper()}")
            if value is not None:
                try:
                    setattr(weights, name, float(value))
                except ValueError:
                    raise InvalidConfigError(f"scoring.{name}", value, "expected a number")

        for severity in weights.severity_weights:
            value = os.getenv(f"{prefix}SEVERITY_{severity.upper()}")
            if value is not None:
                try:
                    weights.severity_weights[severity] = float(value)
                except ValueError:
                    raise InvalidConfigError(f"scoring.severity_weights.{severity}", value, "expected a number")

        return weights

    @classmethod
    def from_dict(cls, data: dict) -> "ScoringWeights":
        weights = cls()
        for name in ('cap_time', 'cap_bytes', 'w_time', 'w_bytes', 'w_pages'):
            if name in data:
                setattr(weights, name, float(data[name]))
        for severity, value in data.get('severity_weights', {}).items():
            weights.severity_weights[severity] = float(value)
        return weights

    def validate(self) -> None:
        """Negative weights would break monotonic ranking.

        Raises:
            InvalidConfigError: If any cap or weight is negative
        """
        for name in ('cap_time', 'cap_bytes', 'w_time', 'w_bytes', 'w_pages'):
            if getattr(self, name) < 0:
                raise InvalidConfigError(f"scoring.{name}", getattr(self, name), "must be non-negative")

        ordered = [self.severity_weights.get(s, 0.0) for s in ('low', 'medium', 'high', 'critical')]
        if ordered[0] < 0 or ordered != sorted(ordered):
            raise InvalidConfigError(
                "scoring.severity_weights",
                self.severity_weights,
                "must be non-negative and non-decreasing from low to critical",
            )

    def severity_weight(self, severity: str) -> float:
        return self.severity_weights.get(str(severity), self.severity_weights['low'])

    def to_dict(self) -> dict:
        return {
            'cap_time': self.cap_time,
            'cap_bytes': self.cap_bytes,
            'w_time': self.w_time,
            'w_bytes': self.w_bytes,
            'w_pages': self.w_pages,
            'severity_weights': dict(self.severity_weights),
        }


DEFAULT_WEIGHTS = ScoringWeights()


def priority_score(
    severity_weight: float,
    total_ms: float,
    total_bytes: float,
    page_count: int,
    weights: Optional[ScoringWeights] = None,
) -> float:
    """Compute the priority of an issue or page.

    Args:
        severity_weight: Multiplier for the severity (4/3/2/1 by default)
        total_ms: Total estimated time savings in milliseconds
        total_bytes: Total estimated byte savings
        page_count: Number of affected pages
        weights: Caps and weights, defaults to DEFAULT_WEIGHTS

    Returns:
        Non-negative priority score
    """
    w = weights or DEFAULT_WEIGHTS
    time_score = min(max(total_ms, 0.0) / MS_PER_TIME_UNIT, w.cap_time)
    byte_score = min(max(total_bytes, 0.0) / BYTES_PER_BYTE_UNIT, w.cap_bytes)
    breadth = math.log(max(page_count, 0) + 1)
    return (time_score * w.w_time + byte_score * w.w_bytes + breadth * w.w_pages) * severity_weight


def issue_priority(issue: AggregatedIssue, weights: Optional[ScoringWeights] = None) -> float:
    w = weights or DEFAULT_WEIGHTS
    return priority_score(
        w.severity_weight(issue.severity),
        issue.total_savings.time_ms,
        issue.total_savings.bytes,
        issue.page_count,
        w,
    )


def page_priority(page: PageAuditResult, weights: Optional[ScoringWeights] = None) -> float:
    """Priority of a single page, weighted by its own critical-issue count."""
    total_ms = math.fsum(issue.estimated_savings.time_ms for issue in page.issues)
    total_bytes = math.fsum(issue.estimated_savings.bytes for issue in page.issues)
    return priority_score(1 + page.critical_issue_count, total_ms, total_bytes, 1, weights)


def rank_issues(
    issues: Iterable[AggregatedIssue],
    weights: Optional[ScoringWeights] = None,
    limit: Optional[int] = None,
) -> List[AggregatedIssue]:
    """Sort issues for "top issues" views.

    Priority descending, then total time savings descending, then affected
    page count descending, then id ascending.
    """
    ranked = sorted(
        issues,
        key=lambda i: (
            -issue_priority(i, weights),
            -i.total_savings.time_ms,
            -i.page_count,
            i.id,
        ),
    )
    return ranked[:limit] if limit is not None else ranked


def rank_pages(
    pages: Iterable[PageAuditResult],
    weights: Optional[ScoringWeights] = None,
    limit: Optional[int] = None,
) -> List[PageAuditResult]:
    """Sort pages worst first: highest priority, then lowest performance score."""
    ranked = sorted(
        pages,
        key=lambda p: (
            -page_priority(p, weights),
            p.scores.performance,
            p.path,
            p.device,
        ),
    )
    return ranked[:limit] if limit is not None else ranked


def impact_percent(value: float, scale: Sequence[float]) -> int:
    """Express a priority as 0-100 relative to the highest priority in scale."""
    top = max(scale, default=0.0)
    if top <= 0:
        return 0
    return int(round(100 * value / top))
