"""Executive reports: markdown dashboard and JSON performance summary."""

import hashlib
import json
from typing import Dict, Optional

from webperf.aggregation import group_by_category
from webperf.constants import (
    CWV_THRESHOLDS,
    DISCLAIMER,
    FILENAMES,
    REPORT_VERSION,
    SEVERITY_ORDER,
    TOP_ISSUE_TYPES_COUNT,
    WORST_PAGES_COUNT,
)
from webperf.models import ProcessedAuditData, TrendPoint
from webperf.reports.base import JinjaReportTemplate, ReportTemplate
from webperf.reports.common import metadata_view, page_view, ranked_issue_views, worst_page_views
from webperf.scoring import issue_priority

# Roadmap phases keyed by the severities they take
ROADMAP_PHASES = (
    ("Immediate", ("critical", "high")),
    ("Short term", ("medium",)),
    ("Long term", ("low",)),
)


def metric_status(name: str, value: float) -> str:
    """Classify a core metric as good, needs-improvement or poor."""
    threshold = CWV_THRESHOLDS.get(name)
    if threshold is None:
        return "unknown"
    if value <= threshold["good"]:
        return "good"
    if value <= threshold["poor"]:
        return "needs-improvement"
    return "poor"


def trend_point(data: ProcessedAuditData) -> TrendPoint:
    """Headline numbers of this run for the history file."""
    metrics = data.performance_metrics
    return TrendPoint(
        recorded_at=data.metadata.completed_at or data.metadata.started_at,
        config_path=data.metadata.config_path,
        total_pages=metrics.total_pages,
        average_performance=round(metrics.average_scores.performance, 2),
        critical_issues=metrics.critical_issues_count,
        estimated_total_savings_ms=round(metrics.estimated_total_savings_ms, 2),
    )


class DashboardTemplate(JinjaReportTemplate):
    key = "dashboard"
    format = "markdown"
    filename = FILENAMES["dashboard"]
    template_name = "dashboard.md.j2"

    def build(self, data: ProcessedAuditData) -> dict:
        metrics = data.performance_metrics.to_dict()
        total = max(metrics['totalPages'], 1)
        distribution = [
            {
                'name': name,
                'count': metrics['scoreDistribution'][key],
                'bar': '#' * round(20 * metrics['scoreDistribution'][key] / total),
            }
            for name, key in (("Excellent", "excellent"), ("Good", "good"),
                              ("Needs work", "needsWork"), ("Poor", "poor"))
        ]

        gains = []
        for category, issues in group_by_category(data.issues).items():
            pages = {(d.path, d.device) for issue in issues for d in issue.affected_pages}
            worst = min(SEVERITY_ORDER.index(str(issue.severity)) for issue in issues)
            gains.append({
                'category': category,
                'issue_count': len(issues),
                'pages': len(pages),
                'total_ms': sum(issue.total_savings.time_ms for issue in issues),
                'total_bytes': sum(issue.total_savings.bytes for issue in issues),
                'priority': round(sum(issue_priority(i, self.weights) for i in issues), 2),
                'severity': SEVERITY_ORDER[worst],
            })
        gains.sort(key=lambda g: (-g['priority'], g['category']))

        ranked = ranked_issue_views(data, self.weights, self.max_issues)
        roadmap = []
        for phase, severities in ROADMAP_PHASES:
            items = [issue for issue in ranked if issue['severity'] in severities]
            if items:
                roadmap.append({
                    'phase': phase,
                    'issues': items,
                    'hours': sum(issue['hours'] for issue in items),
                    'total_ms': sum(issue['total_ms'] for issue in items),
                })

        return {
            'metadata': metadata_view(data),
            'metrics': metrics,
            'distribution': distribution,
            'worst_pages': worst_page_views(data, self.weights, WORST_PAGES_COUNT),
            'gains': gains,
            'roadmap': roadmap,
            'disclaimer': DISCLAIMER,
        }


class PerformanceSummaryTemplate(ReportTemplate):
    """Full numeric summary with per-page rows and trend comparison."""

    key = "performance-summary"
    format = "json"
    filename = FILENAMES["performance-summary"]

    def generate(self, data: ProcessedAuditData) -> str:
        metrics = data.performance_metrics
        averages = metrics.average_metrics.to_dict()

        pages = []
        for page in data.pages:
            view = page_view(page, self.weights)
            pages.append({
                'hash': page_hash(page.path, page.device),
                'label': view['label'],
                'path': view['path'],
                'device': view['device'],
                'scores': view['scores'],
                'metrics': view['metrics'],
                'issueCount': view['issue_count'],
                'issuesBySeverity': view['issues_by_severity'],
                'priority': view['priority'],
                'failed': view['failed'],
            })

        categories = {}
        for category, issues in group_by_category(data.issues).items():
            categories[category] = {
                'issues': len(issues),
                'pageOccurrences': sum(issue.page_count for issue in issues),
                'totalSavingsMs': round(sum(issue.total_savings.time_ms for issue in issues)),
            }

        top_types = [
            {
                'id': view['id'],
                'title': view['title'],
                'pages': view['page_count'],
                'totalSavingsMs': round(view['total_ms']),
                'priority': view['priority'],
            }
            for view in ranked_issue_views(data, self.weights, TOP_ISSUE_TYPES_COUNT)
        ]

        current = trend_point(data)
        return json.dumps({
            'version': REPORT_VERSION,
            'metadata': metadata_view(data),
            'overview': metrics.to_dict(),
            'coreWebVitals': {
                name: {'average': round(value, 3), 'status': metric_status(name, value)}
                for name, value in averages.items()
            },
            'categoryBreakdown': categories,
            'topIssueTypes': top_types,
            'pages': pages,
            'trend': {
                'current': current.to_dict(),
                'baseline': data.metadata.baseline.to_dict() if data.metadata.baseline else None,
                'delta': trend_delta(current, data.metadata.baseline),
            },
            'disclaimer': DISCLAIMER,
        }, indent=2)


def trend_delta(current: TrendPoint, baseline: Optional[TrendPoint]) -> Optional[Dict[str, float]]:
    if baseline is None:
        return None
    return {
        'averagePerformance': round(current.average_performance - baseline.average_performance, 2),
        'criticalIssues': current.critical_issues - baseline.critical_issues,
        'estimatedTotalSavingsMs': round(
            current.estimated_total_savings_ms - baseline.estimated_total_savings_ms, 2
        ),
    }


def page_hash(path: str, device: str) -> str:
    """Stable short id for a page/device pair."""
    return hashlib.sha1(f"{path}|{device}".encode("utf-8")).hexdigest()[:12]
