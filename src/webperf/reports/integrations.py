"""CI/CD gate and webhook payloads."""

import json
from typing import Optional

from webperf.constants import FILENAMES, REPORT_VERSION, WORST_PAGES_COUNT
from webperf.models import ProcessedAuditData
from webperf.reports.base import ReportTemplate
from webperf.reports.common import metadata_view, ranked_issue_views, worst_page_views
from webperf.scoring import ScoringWeights

# Issues listed in integration payloads
INTEGRATION_TOP_ISSUES = 5


class CICDTemplate(ReportTemplate):
    """Pass/fail budget gate for build pipelines."""

    key = "cicd"
    format = "json"
    filename = FILENAMES["cicd"]

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        max_issues: int = 100,
        min_performance_score: float = 50.0,
        max_critical_issues: int = 0,
    ):
        super().__init__(weights=weights, max_issues=max_issues)
        self.min_performance_score = min_performance_score
        self.max_critical_issues = max_critical_issues

    def evaluate(self, data: ProcessedAuditData) -> dict:
        metrics = data.performance_metrics
        gates = [
            {
                'name': 'averagePerformanceScore',
                'threshold': self.min_performance_score,
                'actual': round(metrics.average_scores.performance, 2),
                'passed': metrics.average_scores.performance >= self.min_performance_score,
            },
            {
                'name': 'criticalIssues',
                'threshold': self.max_critical_issues,
                'actual': metrics.critical_issues_count,
                'passed': metrics.critical_issues_count <= self.max_critical_issues,
            },
        ]
        return {
            'status': 'pass' if all(gate['passed'] for gate in gates) else 'fail',
            'gates': gates,
        }

    def generate(self, data: ProcessedAuditData) -> str:
        result = self.evaluate(data)
        critical = sorted({issue.id for issue in data.issues if str(issue.severity) == 'critical'})
        return json.dumps({
            'version': REPORT_VERSION,
            'status': result['status'],
            'gates': result['gates'],
            'metrics': data.performance_metrics.to_dict(),
            'criticalIssueIds': critical,
            'metadata': metadata_view(data),
        }, indent=2)


class WebhookTemplate(ReportTemplate):
    """Compact run summary for chat or incident webhooks."""

    key = "webhook"
    format = "json"
    filename = FILENAMES["webhook"]

    def generate(self, data: ProcessedAuditData) -> str:
        metrics = data.performance_metrics.to_dict()
        return json.dumps({
            'event': 'audit.completed',
            'version': REPORT_VERSION,
            'metadata': metadata_view(data),
            'summary': {
                'totalPages': metrics['totalPages'],
                'averagePerformanceScore': metrics['averagePerformanceScore'],
                'criticalIssues': metrics['criticalIssuesCount'],
                'estimatedTotalSavingsMs': metrics['estimatedTotalSavings'],
                'failedPages': metrics['failedPages'],
            },
            'topIssues': [
                {
                    'id': view['id'],
                    'title': view['title'],
                    'severity': view['severity'],
                    'pages': view['page_count'],
                    'priority': view['priority'],
                }
                for view in ranked_issue_views(data, self.weights, INTEGRATION_TOP_ISSUES)
            ],
            'worstPages': [
                {
                    'label': page['label'],
                    'path': page['path'],
                    'device': page['device'],
                    'performance': page['scores']['performance'],
                }
                for page in worst_page_views(data, self.weights, WORST_PAGES_COUNT)
            ],
        }, indent=2)
