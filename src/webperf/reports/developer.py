"""Developer-facing reports: quick fixes, triage, overview and structured issues."""

import json

from webperf.aggregation import group_by_category, severity_counts
from webperf.constants import (
    DISCLAIMER,
    FILENAMES,
    QUICK_FIX_COUNT,
    REPORT_VERSION,
    TRIAGE_DETAIL_COUNT,
    TRIAGE_MATRIX_COUNT,
    WORST_PAGES_COUNT,
)
from webperf.models import ProcessedAuditData
from webperf.reports.base import JinjaReportTemplate, ReportTemplate
from webperf.reports.common import metadata_view, ranked_issue_views, worst_page_views

# Pages listed per issue in the triage details before truncating
TRIAGE_PAGES_PER_ISSUE = 20


class QuickFixesTemplate(JinjaReportTemplate):
    """Top fixes with code examples and effort estimates."""

    key = "quick-fixes"
    format = "markdown"
    filename = FILENAMES["quick-fixes"]
    template_name = "quick_fixes.md.j2"

    def build(self, data: ProcessedAuditData) -> dict:
        fixes = ranked_issue_views(data, self.weights, QUICK_FIX_COUNT)
        return {
            'metadata': metadata_view(data),
            'metrics': data.performance_metrics.to_dict(),
            'fixes': fixes,
            'total_hours': sum(fix['hours'] for fix in fixes),
            'total_ms': sum(fix['total_ms'] for fix in fixes),
            'disclaimer': DISCLAIMER,
        }


class TriageTemplate(JinjaReportTemplate):
    """Prioritization matrix plus per-issue page breakdown."""

    key = "triage"
    format = "markdown"
    filename = FILENAMES["triage"]
    template_name = "triage.md.j2"

    def build(self, data: ProcessedAuditData) -> dict:
        ranked = ranked_issue_views(data, self.weights, max(TRIAGE_MATRIX_COUNT, TRIAGE_DETAIL_COUNT))
        details = []
        for view in ranked[:TRIAGE_DETAIL_COUNT]:
            pages = sorted(view['pages'], key=lambda p: (-p['impactMs'], -p['impactBytes'], p['pagePath']))
            details.append(dict(
                view,
                pages=pages[:TRIAGE_PAGES_PER_ISSUE],
                hidden_pages=max(len(pages) - TRIAGE_PAGES_PER_ISSUE, 0),
            ))
        return {
            'metadata': metadata_view(data),
            'metrics': data.performance_metrics.to_dict(),
            'matrix': ranked[:TRIAGE_MATRIX_COUNT],
            'details': details,
            'severity_counts': severity_counts(data.issues),
        }


class OverviewTemplate(JinjaReportTemplate):
    key = "overview"
    format = "markdown"
    filename = FILENAMES["overview"]
    template_name = "overview.md.j2"

    def build(self, data: ProcessedAuditData) -> dict:
        categories = []
        for category, issues in group_by_category(data.issues).items():
            categories.append({
                'name': category,
                'issue_count': len(issues),
                'page_occurrences': sum(issue.page_count for issue in issues),
                'total_ms': sum(issue.total_savings.time_ms for issue in issues),
            })
        categories.sort(key=lambda c: (-c['total_ms'], c['name']))

        return {
            'metadata': metadata_view(data),
            'metrics': data.performance_metrics.to_dict(),
            'categories': categories,
            'global_issue_count': len(data.global_issues),
            'issue_count': len(data.issues),
            'worst_pages': worst_page_views(data, self.weights, WORST_PAGES_COUNT),
            'disclaimer': DISCLAIMER,
        }


class StructuredIssuesTemplate(ReportTemplate):
    """Machine-readable ranked issue list, consumed by remediation tooling."""

    key = "structured-issues"
    format = "json"
    filename = FILENAMES["structured-issues"]

    def generate(self, data: ProcessedAuditData) -> str:
        views = ranked_issue_views(data, self.weights)
        by_category = {}
        for view in views:
            by_category[view['category']] = by_category.get(view['category'], 0) + 1

        issues = []
        for view in views:
            recommendation = view['recommendation']
            issues.append({
                'id': view['id'],
                'title': view['title'],
                'description': view['description'],
                'severity': view['severity'],
                'category': view['category'],
                'priority': view['priority'],
                'impact': view['impact'],
                'totalSavings': {'timeMs': view['total_ms'], 'bytes': view['total_bytes']},
                'averageSavings': {'timeMs': view['average_ms'], 'bytes': view['average_bytes']},
                'affectedPages': view['pages'],
                'recommendation': recommendation.to_dict(),
                'effort': {'difficulty': view['difficulty'], 'hours': view['hours']},
            })

        return json.dumps({
            'version': REPORT_VERSION,
            'metadata': metadata_view(data),
            'summary': {
                'totalIssues': len(issues),
                'bySeverity': severity_counts(data.issues),
                'byCategory': dict(sorted(by_category.items())),
            },
            'issues': issues,
        }, indent=2)
