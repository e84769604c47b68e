"""Structural views shared by several templates."""

from typing import List, Optional

from webperf.aggregation import severity_counts
from webperf.models import AggregatedIssue, PageAuditResult, ProcessedAuditData
from webperf.recommendations import estimate_fix_effort, recommendation_or_generic
from webperf.scoring import (
    ScoringWeights,
    impact_percent,
    issue_priority,
    page_priority,
    rank_issues,
    rank_pages,
)


def issue_view(issue: AggregatedIssue, priority: float, impact: int = 0) -> dict:
    difficulty, hours = estimate_fix_effort(issue.id)
    return {
        'id': issue.id,
        'title': issue.title,
        'description': issue.description,
        'severity': str(issue.severity),
        'category': str(issue.category),
        'page_count': issue.page_count,
        'total_ms': issue.total_savings.time_ms,
        'total_bytes': issue.total_savings.bytes,
        'average_ms': issue.average_savings.time_ms,
        'average_bytes': issue.average_savings.bytes,
        'priority': round(priority, 2),
        'impact': impact,
        'difficulty': difficulty,
        'hours': hours,
        'recommendation': recommendation_or_generic(issue.id),
        'pages': [detail.to_dict() for detail in issue.affected_pages],
    }


def ranked_issue_views(
    data: ProcessedAuditData,
    weights: ScoringWeights,
    limit: Optional[int] = None,
) -> List[dict]:
    """Issues ranked by priority with a 0-100 impact relative to the top one."""
    ranked = rank_issues(data.issues, weights)
    priorities = [issue_priority(issue, weights) for issue in ranked]
    views = [
        issue_view(issue, priority, impact_percent(priority, priorities))
        for issue, priority in zip(ranked, priorities)
    ]
    return views[:limit] if limit is not None else views


def page_view(page: PageAuditResult, weights: ScoringWeights) -> dict:
    return {
        'label': page.label,
        'path': page.path,
        'device': page.device,
        'scores': page.scores.to_dict(),
        'metrics': page.metrics.to_dict(),
        'issue_count': len(page.issues),
        'issues_by_severity': severity_counts(page.issues),
        'critical_count': page.critical_issue_count,
        'priority': round(page_priority(page, weights), 2),
        'failed': page.failed,
    }


def worst_page_views(data: ProcessedAuditData, weights: ScoringWeights, limit: int) -> List[dict]:
    return [page_view(page, weights) for page in rank_pages(data.pages, weights, limit)]


def metadata_view(data: ProcessedAuditData) -> dict:
    return data.metadata.to_dict()
