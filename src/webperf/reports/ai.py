"""Token-conscious JSON analysis for AI assistants."""

import json
from typing import List

from webperf.constants import AI_COMPACT_PAGE_THRESHOLD, DISCLAIMER, FILENAMES, REPORT_VERSION
from webperf.models import ProcessedAuditData
from webperf.reports.base import ReportTemplate
from webperf.reports.common import metadata_view, ranked_issue_views
from webperf.reports.executive import metric_status

# Affected page paths listed per pattern in compact output
COMPACT_PAGE_SAMPLE = 5


class AIAnalysisTemplate(ReportTemplate):
    """Patterns, prioritized fixes and global recommendations.

    Above AI_COMPACT_PAGE_THRESHOLD pages, per-pattern page lists are cut
    to a sample and the output is marked token optimized.
    """

    key = "ai-analysis"
    format = "json"
    filename = FILENAMES["ai-analysis"]

    def generate(self, data: ProcessedAuditData) -> str:
        compact = data.performance_metrics.total_pages > AI_COMPACT_PAGE_THRESHOLD
        views = ranked_issue_views(data, self.weights, self.max_issues)
        metrics = data.performance_metrics.to_dict()

        patterns = []
        for view in views:
            paths = [page['pagePath'] for page in view['pages']]
            pattern = {
                'id': view['id'],
                'title': view['title'],
                'severity': view['severity'],
                'category': view['category'],
                'affectedPages': view['page_count'],
                'impact': view['impact'],
                'priority': view['priority'],
                'totalSavingsMs': round(view['total_ms']),
                'averageSavingsMs': round(view['average_ms']),
                'totalSavingsBytes': round(view['total_bytes']),
                'pages': paths[:COMPACT_PAGE_SAMPLE] if compact else paths,
            }
            if not compact:
                pattern['description'] = view['description']
            patterns.append(pattern)

        fixes = []
        for rank, view in enumerate(views, start=1):
            recommendation = view['recommendation']
            fixes.append({
                'rank': rank,
                'id': view['id'],
                'action': recommendation.action,
                'implementation': recommendation.implementation,
                'difficulty': view['difficulty'],
                'estimatedTime': recommendation.estimated_time,
                'expectedSavingsMs': round(view['total_ms']),
                'docs': recommendation.docs_url,
            })

        return json.dumps({
            'version': REPORT_VERSION,
            'tokenOptimized': compact,
            'metadata': metadata_view(data),
            'summary': {
                'totalPages': metrics['totalPages'],
                'averagePerformanceScore': metrics['averagePerformanceScore'],
                'criticalIssues': metrics['criticalIssuesCount'],
                'estimatedTotalSavingsMs': metrics['estimatedTotalSavings'],
                'disclaimer': DISCLAIMER,
            },
            'patterns': patterns,
            'prioritizedFixes': fixes,
            'globalRecommendations': self.global_recommendations(data, views),
        }, indent=None if compact else 2)

    def global_recommendations(self, data: ProcessedAuditData, views: List[dict]) -> List[str]:
        metrics = data.performance_metrics
        averages = metrics.average_metrics
        recommendations = []

        if metric_status("lcpMs", averages.lcp_ms) != "good":
            recommendations.append(
                f"Average LCP is {averages.lcp_ms:.0f}ms; prioritize hero image delivery and render-blocking resources."
            )
        if metric_status("tbtMs", averages.tbt_ms) != "good":
            recommendations.append(
                f"Average TBT is {averages.tbt_ms:.0f}ms; split long JavaScript tasks and defer non-critical scripts."
            )
        if metric_status("cls", averages.cls) != "good":
            recommendations.append(
                f"Average CLS is {averages.cls:.3f}; reserve space for images, ads and embeds."
            )

        shared = [view for view in views if view['page_count'] > 1]
        if shared:
            recommendations.append(
                f"{len(shared)} issues repeat across pages; fix them in shared layouts or build configuration first."
            )
        if metrics.failed_pages:
            recommendations.append(
                f"{metrics.failed_pages} pages could not be measured; re-run them before drawing conclusions."
            )
        return recommendations
