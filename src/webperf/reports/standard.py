"""Standard report formats: JSON, Markdown, HTML and CSV."""

import csv
import io
import json
from typing import Iterator

from markupsafe import escape

from webperf.constants import DISCLAIMER, FILENAMES, REPORT_VERSION
from webperf.models import ProcessedAuditData
from webperf.reports.base import JinjaReportTemplate, ReportTemplate
from webperf.reports.common import issue_view, metadata_view, page_view, ranked_issue_views
from webperf.scoring import issue_priority, rank_issues


class JSONTemplate(ReportTemplate):
    key = "standard-json"
    format = "json"
    filename = FILENAMES["standard-json"]

    def payload(self, data: ProcessedAuditData, include_pages: bool = True) -> dict:
        ranked = rank_issues(data.issues, self.weights, self.max_issues)
        payload = {
            'version': REPORT_VERSION,
            'metadata': metadata_view(data),
            'performanceMetrics': data.performance_metrics.to_dict(),
            'globalIssues': [
                {
                    'id': issue.id,
                    'severity': str(issue.severity),
                    'description': issue.description,
                    'affectedPages': [detail.path for detail in issue.affected_pages],
                }
                for issue in data.global_issues
            ],
            'topIssues': [
                dict(issue.to_dict(), priority=round(issue_priority(issue, self.weights), 2))
                for issue in ranked
            ],
            'disclaimer': DISCLAIMER,
        }
        if include_pages:
            payload['pages'] = [page.to_dict() for page in data.pages]
        return payload

    def generate(self, data: ProcessedAuditData) -> str:
        return json.dumps(self.payload(data), indent=2)


class StreamingJSONTemplate(JSONTemplate):
    """Same document as JSONTemplate, serialized a page chunk at a time.

    generate() joins the pieces into one string, so the report writer
    still holds the whole document in memory; only the serialization
    order differs from JSONTemplate. Callers with their own sink can
    consume iter_chunks() directly.
    """

    key = "streaming-json"
    chunk_size = 50

    def iter_chunks(self, data: ProcessedAuditData) -> Iterator[str]:
        header = self.payload(data, include_pages=False)
        yield "{\n"
        for key, value in header.items():
            body = json.dumps(value, indent=2).replace("\n", "\n  ")
            yield f"  {json.dumps(key)}: {body},\n"

        yield '  "pages": ['
        pages = data.pages
        for start in range(0, len(pages), self.chunk_size):
            chunk = pages[start:start + self.chunk_size]
            body = ",".join("\n    " + json.dumps(page.to_dict()) for page in chunk)
            yield ("," if start else "") + body
        yield "\n  ]\n}"

    def generate(self, data: ProcessedAuditData) -> str:
        return "".join(self.iter_chunks(data))


class MarkdownTemplate(JinjaReportTemplate):
    key = "standard-markdown"
    format = "markdown"
    filename = FILENAMES["standard-markdown"]
    template_name = "report.md.j2"

    def build(self, data: ProcessedAuditData) -> dict:
        return {
            'metadata': metadata_view(data),
            'metrics': data.performance_metrics.to_dict(),
            'issues': ranked_issue_views(data, self.weights, self.max_issues),
            'global_issues': [
                issue_view(issue, issue_priority(issue, self.weights))
                for issue in rank_issues(data.global_issues, self.weights)
            ],
            'pages': [page_view(page, self.weights) for page in data.pages],
            'streamed': data.streamed,
            'disclaimer': DISCLAIMER,
        }


class HTMLTemplate(MarkdownTemplate):
    key = "standard-html"
    format = "html"
    filename = FILENAMES["standard-html"]
    template_name = "report.html.j2"

    def build(self, data: ProcessedAuditData) -> dict:
        context = super().build(data)
        metrics = context['metrics']
        summary = [
            f"Audited **{metrics['totalPages']}** page/device combinations "
            f"with an average performance score of **{metrics['averagePerformanceScore']}**.",
        ]
        if context['issues']:
            # The markdown filter output is marked safe, so raw values are escaped here
            top = context['issues'][0]
            summary.append(
                f"The highest priority issue is **{escape(top['title'])}** "
                f"(<code>{escape(top['id'])}</code>), "
                f"found on {top['page_count']} pages."
            )
        if metrics['failedPages']:
            summary.append(f"{metrics['failedPages']} pages could not be measured and are shown with zero scores.")
        context['summary_markdown'] = "\n\n".join(summary)
        return context


class CSVTemplate(ReportTemplate):
    """Overview, per-page metrics and per-page issue rows in one sheet."""

    key = "standard-csv"
    format = "csv"
    filename = FILENAMES["standard-csv"]

    def generate(self, data: ProcessedAuditData) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        metrics = data.performance_metrics.to_dict()

        writer.writerow(["Overview"])
        writer.writerow(["Metric", "Value"])
        writer.writerow(["Total Pages", metrics['totalPages']])
        for name, value in metrics['averageScores'].items():
            writer.writerow([f"Average {name} Score", value])
        writer.writerow(["Critical Issues", metrics['criticalIssuesCount']])
        writer.writerow(["Estimated Total Savings (ms)", metrics['estimatedTotalSavings']])
        writer.writerow([])

        writer.writerow(["Pages"])
        writer.writerow([
            "Label", "Path", "Device", "Performance", "Accessibility", "Best Practices",
            "SEO", "LCP (ms)", "FCP (ms)", "TBT (ms)", "CLS", "Issues", "Critical Issues",
        ])
        for page in data.pages:
            writer.writerow([
                page.label, page.path, page.device,
                page.scores.performance, page.scores.accessibility,
                page.scores.best_practices, page.scores.seo,
                round(page.metrics.lcp_ms), round(page.metrics.fcp_ms),
                round(page.metrics.tbt_ms), round(page.metrics.cls, 3),
                len(page.issues), page.critical_issue_count,
            ])
        writer.writerow([])

        writer.writerow(["Issues"])
        writer.writerow([
            "Issue ID", "Title", "Severity", "Category", "Priority", "Page Label",
            "Page Path", "Device", "Savings (ms)", "Savings (bytes)",
        ])
        for issue in rank_issues(data.issues, self.weights):
            priority = round(issue_priority(issue, self.weights), 2)
            for detail in issue.affected_pages:
                writer.writerow([
                    issue.id, issue.title, str(issue.severity), str(issue.category), priority,
                    detail.label, detail.path, detail.device,
                    round(detail.savings.time_ms), round(detail.savings.bytes),
                ])

        return buffer.getvalue()
