"""Issue aggregation and run-level performance metrics.

Totals are always rebuilt from the full per-page detail set with
math.fsum, so any ordering of the same pages gives identical results.
Both the standard and the streaming path feed pages through the same
IssueAggregator and MetricsAccumulator.
"""

import math
import statistics
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from webperf.constants import SCORE_EXCELLENT, SCORE_GOOD, SCORE_NEEDS_WORK, SEVERITY_ORDER
from webperf.exceptions import InvalidIssueError
from webperf.models import (
    AggregatedIssue,
    AuditMetadata,
    CategoryScores,
    CoreMetrics,
    PageAuditResult,
    PageIssueDetail,
    PerformanceMetrics,
    ProcessedAuditData,
    Savings,
)

SCORE_FIELDS = ('performance', 'accessibility', 'best_practices', 'seo')
METRIC_FIELDS = ('lcp_ms', 'fcp_ms', 'tbt_ms', 'cls')


class IssueAggregator:
    """Groups issues sharing an id across pages."""

    def __init__(self):
        self._details: Dict[str, List[PageIssueDetail]] = defaultdict(list)
        self._representatives: Dict[str, tuple] = {}

    def add_page(self, page: PageAuditResult) -> None:
        """Record every issue of a page.

        Raises:
            InvalidIssueError: If an issue has no identifier
        """
        for issue in page.issues:
            if not issue.id or not isinstance(issue.id, str):
                raise InvalidIssueError("issue has no identifier", page=f"{page.path} ({page.device})")

            self._details[issue.id].append(PageIssueDetail(
                label=page.label,
                path=page.path,
                device=page.device,
                performance_score=page.scores.performance,
                savings=Savings(issue.estimated_savings.time_ms, issue.estimated_savings.bytes),
            ))

            # Most severe occurrence represents the group, independent of page order
            candidate = (
                SEVERITY_ORDER.index(str(issue.severity)),
                issue.title,
                issue.description,
                issue.severity,
                issue.category,
            )
            current = self._representatives.get(issue.id)
            if current is None or candidate[:3] < current[:3]:
                self._representatives[issue.id] = candidate

    def add_pages(self, pages: Iterable[PageAuditResult]) -> None:
        for page in pages:
            self.add_page(page)

    def __len__(self) -> int:
        return len(self._details)

    def issues(self) -> List[AggregatedIssue]:
        """Build aggregated issues, sorted by id."""
        aggregated = []
        for issue_id in sorted(self._details):
            details = sorted(
                self._details[issue_id],
                key=lambda d: (d.path, d.device, d.label, d.savings.time_ms, d.savings.bytes),
            )
            total = Savings(
                time_ms=math.fsum(d.savings.time_ms for d in details),
                bytes=math.fsum(d.savings.bytes for d in details),
            )
            count = len(details)
            _, title, description, severity, category = self._representatives[issue_id]
            aggregated.append(AggregatedIssue(
                id=issue_id,
                title=title,
                description=description,
                severity=severity,
                category=category,
                affected_pages=details,
                total_savings=total,
                average_savings=Savings(total.time_ms / count, total.bytes / count),
            ))
        return aggregated


class MetricsAccumulator:
    """Running per-page values for PerformanceMetrics.

    Keeps only numbers per page, never issue lists.
    """

    def __init__(self):
        self._scores: Dict[str, List[float]] = {name: [] for name in SCORE_FIELDS}
        self._metrics: Dict[str, List[float]] = {name: [] for name in METRIC_FIELDS}
        self._issue_savings: List[float] = []
        self._critical = 0
        self._failed = 0

    def add_page(self, page: PageAuditResult) -> None:
        for name in SCORE_FIELDS:
            self._scores[name].append(getattr(page.scores, name))
        for name in METRIC_FIELDS:
            self._metrics[name].append(getattr(page.metrics, name))
        self._issue_savings.extend(issue.estimated_savings.time_ms for issue in page.issues)
        self._critical += page.critical_issue_count
        if page.failed:
            self._failed += 1

    def add_pages(self, pages: Iterable[PageAuditResult]) -> None:
        for page in pages:
            self.add_page(page)

    @property
    def page_count(self) -> int:
        return len(self._scores['performance'])

    def result(self, audit_duration_ms: float = 0.0) -> PerformanceMetrics:
        total = self.page_count
        if total == 0:
            return PerformanceMetrics(
                score_distribution=_distribution([]),
                audit_duration_ms=audit_duration_ms,
            )

        return PerformanceMetrics(
            total_pages=total,
            average_scores=CategoryScores(**{
                name: math.fsum(values) / total for name, values in self._scores.items()
            }),
            median_scores=CategoryScores(**{
                name: statistics.median(values) for name, values in self._scores.items()
            }),
            critical_issues_count=self._critical,
            estimated_total_savings_ms=math.fsum(self._issue_savings),
            score_distribution=_distribution(self._scores['performance']),
            average_metrics=CoreMetrics(**{
                name: math.fsum(values) / total for name, values in self._metrics.items()
            }),
            failed_pages=self._failed,
            audit_duration_ms=audit_duration_ms,
        )


def _distribution(scores: List[float]) -> dict:
    buckets = {'excellent': 0, 'good': 0, 'needsWork': 0, 'poor': 0}
    for score in scores:
        if score >= SCORE_EXCELLENT:
            buckets['excellent'] += 1
        elif score >= SCORE_GOOD:
            buckets['good'] += 1
        elif score >= SCORE_NEEDS_WORK:
            buckets['needsWork'] += 1
        else:
            buckets['poor'] += 1
    return buckets


def aggregate_issues(pages: Iterable[PageAuditResult]) -> List[AggregatedIssue]:
    aggregator = IssueAggregator()
    aggregator.add_pages(pages)
    return aggregator.issues()


def calculate_performance_metrics(
    pages: Iterable[PageAuditResult],
    audit_duration_ms: float = 0.0,
) -> PerformanceMetrics:
    accumulator = MetricsAccumulator()
    accumulator.add_pages(pages)
    return accumulator.result(audit_duration_ms)


def identify_global_issues(issues: Iterable[AggregatedIssue]) -> List[AggregatedIssue]:
    """Aggregated issues affecting more than one page."""
    return [issue for issue in issues if issue.page_count > 1]


def group_by_category(issues: Iterable[AggregatedIssue]) -> Dict[str, List[AggregatedIssue]]:
    groups: Dict[str, List[AggregatedIssue]] = defaultdict(list)
    for issue in issues:
        groups[str(issue.category)].append(issue)
    return dict(sorted(groups.items()))


def severity_counts(issues: Iterable) -> Dict[str, int]:
    """Count issues (page-level or aggregated) per severity."""
    counts = {severity: 0 for severity in SEVERITY_ORDER}
    for issue in issues:
        counts[str(issue.severity)] += 1
    return counts


def build_processed_data(
    pages: List[PageAuditResult],
    metadata: Optional[AuditMetadata] = None,
) -> ProcessedAuditData:
    """Standard path: aggregate a fully materialized page list."""
    metadata = metadata or AuditMetadata()
    aggregator = IssueAggregator()
    accumulator = MetricsAccumulator()
    for page in pages:
        aggregator.add_page(page)
        accumulator.add_page(page)

    return ProcessedAuditData(
        pages=pages,
        issues=aggregator.issues(),
        performance_metrics=accumulator.result(metadata.elapsed_ms),
        metadata=metadata,
    )
