"""Tests for the template registry and report templates."""

import csv
import io
import json

import pytest

from conftest import summary_entry
from webperf.aggregation import build_processed_data
from webperf.exceptions import TemplateNotFoundError
from webperf.models import AuditMetadata, TrendPoint
from webperf.normalizer import build_metadata, normalize
from webperf.reports import TemplateRegistry, default_registry
from webperf.reports.base import JinjaReportTemplate
from webperf.reports.executive import metric_status, page_hash

ALL_KEYS = [
    "ai-analysis", "cicd", "dashboard", "overview", "performance-summary", "quick-fixes",
    "standard-csv", "standard-html", "standard-json", "standard-markdown", "streaming-json",
    "structured-issues", "triage", "webhook",
]


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def data(sample_run):
    pages = [normalize(raw) for raw in sample_run["results"]]
    return build_processed_data(pages, build_metadata(sample_run["meta"]))


@pytest.fixture
def empty_data():
    return build_processed_data([], AuditMetadata())


class TestTemplateRegistry:
    """Tests for key-based template lookup."""

    def test_default_keys(self, registry):
        assert registry.keys() == ALL_KEYS

    def test_missing_template(self, registry):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            registry.get("standard-pdf")

        assert exc_info.value.key == "standard-pdf"
        assert "standard-json" in exc_info.value.available

    def test_register_custom(self, registry):
        custom = TemplateRegistry()
        custom.register(registry.get("webhook"), key="notify")

        assert "notify" in custom
        assert custom.get("notify").filename == "webhook.json"

    def test_jinja_template_requires_build(self):
        class NoContext(JinjaReportTemplate):
            key = "no-context"
            template_name = "report.md.j2"

        with pytest.raises(TypeError):
            NoContext()

    @pytest.mark.parametrize("key", ALL_KEYS)
    def test_every_template_handles_empty_runs(self, registry, empty_data, key):
        assert registry.get(key).generate(empty_data)


class TestStandardFormats:
    """Tests for JSON, Markdown, HTML and CSV reports."""

    def test_json(self, registry, data):
        report = json.loads(registry.get("standard-json").generate(data))

        assert report["performanceMetrics"]["totalPages"] == 4
        assert len(report["pages"]) == 4
        assert report["metadata"]["configPath"] == "signals.config.json"
        assert [issue["id"] for issue in report["globalIssues"]] == ["unused-javascript"]
        priorities = [issue["priority"] for issue in report["topIssues"]]
        assert priorities == sorted(priorities, reverse=True)

    def test_streaming_json_matches_standard(self, registry, data):
        template = registry.get("streaming-json")
        template.chunk_size = 3

        streamed = json.loads(template.generate(data))
        standard = json.loads(registry.get("standard-json").generate(data))

        assert streamed == standard

    def test_streaming_json_chunks_join_to_document(self, registry, data):
        """iter_chunks yields pages in slices that generate joins unchanged."""
        template = registry.get("streaming-json")
        template.chunk_size = 3

        chunks = list(template.iter_chunks(data))
        page_chunks = chunks[chunks.index('  "pages": [') + 1:-1]

        assert len(page_chunks) == 2
        assert chunks[-1] == "\n  ]\n}"
        assert "".join(chunks) == template.generate(data)

    def test_markdown(self, registry, data):
        report = registry.get("standard-markdown").generate(data)

        assert report.startswith("# Web Performance Report")
        assert "`unused-javascript`" in report
        assert "| broken | `/broken` | mobile | 0 |" in report
        assert "(not measured)" in report

    def test_html_escapes_labels(self, registry):
        raw = summary_entry("/x", label="<script>alert(1)</script>")
        data = build_processed_data([normalize(raw)])

        report = registry.get("standard-html").generate(data)

        assert "&lt;script&gt;" in report
        assert "<script>alert(1)</script>" not in report
        assert "<strong>1</strong>" in report

    def test_html_summary_escapes_issue_title(self, registry):
        """The top issue title in the rendered summary cannot inject markup."""
        raw = summary_entry("/x", [("unused-javascript", 800, 50000, 0.3)])
        raw["failedAudits"][0]["title"] = "<script>alert(1)</script>"
        data = build_processed_data([normalize(raw)])

        report = registry.get("standard-html").generate(data)

        assert "<script>alert(1)</script>" not in report
        assert "<strong>&lt;script&gt;alert(1)&lt;/script&gt;</strong>" in report
        assert "<code>unused-javascript</code>" in report

    def test_csv_sections(self, registry, data):
        rows = list(csv.reader(io.StringIO(registry.get("standard-csv").generate(data))))
        sections = [row[0] for row in rows if len(row) == 1]

        assert sections == ["Overview", "Pages", "Issues"]
        issue_header = rows.index(["Issues"]) + 1
        issue_rows = rows[issue_header + 1:]
        assert len(issue_rows) == sum(issue.page_count for issue in data.issues)


class TestDeveloperReports:
    """Tests for quick fixes, triage, overview and structured issues."""

    def test_quick_fixes(self, registry, data):
        report = registry.get("quick-fixes").generate(data)

        assert report.startswith("# Quick Fixes")
        assert "## 1." in report
        assert "## 5." not in report  # only four distinct issues
        assert "Remove unused JavaScript code" in report

    def test_triage(self, registry, data):
        report = registry.get("triage").generate(data)

        assert "## Prioritization Matrix" in report
        assert "`/pricing`" in report

    def test_overview(self, registry, data):
        report = registry.get("overview").generate(data)

        assert "- **Pages audited:** 4 (1 not measured)\n" in report
        assert "## Issues by Category" in report

    def test_structured_issues(self, registry, data):
        report = json.loads(registry.get("structured-issues").generate(data))

        assert report["summary"]["totalIssues"] == 4
        shared = next(issue for issue in report["issues"] if issue["id"] == "unused-javascript")
        assert shared["totalSavings"] == {"timeMs": 2000.0, "bytes": 120000.0}
        assert len(shared["affectedPages"]) == 2
        assert report["issues"][0]["impact"] == 100


class TestExecutiveReports:
    """Tests for the dashboard and performance summary."""

    def test_dashboard(self, registry, data):
        report = registry.get("dashboard").generate(data)

        assert "## Potential Gains by Category" in report
        assert "### Immediate" in report

    def test_performance_summary(self, registry, data):
        report = json.loads(registry.get("performance-summary").generate(data))

        assert report["overview"]["totalPages"] == 4
        assert set(report["coreWebVitals"]) == {"lcpMs", "fcpMs", "tbtMs", "cls"}
        assert len(report["pages"][0]["hash"]) == 12
        assert report["trend"]["baseline"] is None
        assert report["trend"]["delta"] is None

    def test_performance_summary_with_baseline(self, registry, data):
        data.metadata.baseline = TrendPoint(
            recorded_at="2026-01-01T00:00:00Z",
            config_path="signals.config.json",
            total_pages=4,
            average_performance=50.0,
            critical_issues=3,
            estimated_total_savings_ms=6000.0,
        )

        report = json.loads(registry.get("performance-summary").generate(data))

        assert report["trend"]["delta"]["criticalIssues"] == -2

    def test_metric_status(self):
        assert metric_status("lcpMs", 2500) == "good"
        assert metric_status("lcpMs", 3000) == "needs-improvement"
        assert metric_status("cls", 0.3) == "poor"
        assert metric_status("inp", 10) == "unknown"

    def test_page_hash_stable(self):
        assert page_hash("/", "mobile") == page_hash("/", "mobile")
        assert page_hash("/", "mobile") != page_hash("/", "desktop")


class TestAIAndIntegrations:
    """Tests for AI analysis, CI/CD and webhook payloads."""

    def test_ai_analysis(self, registry, data):
        report = json.loads(registry.get("ai-analysis").generate(data))

        assert report["tokenOptimized"] is False
        assert len(report["patterns"]) == 4
        assert report["patterns"][0]["impact"] == 100
        assert report["prioritizedFixes"][0]["rank"] == 1
        assert any("could not be measured" in rec for rec in report["globalRecommendations"])

    def test_ai_analysis_compacts_large_runs(self, registry):
        pages = [normalize(summary_entry(f"/p{i}", [("unused-javascript", 100, 0, 0.3)])) for i in range(60)]
        data = build_processed_data(pages)

        report = json.loads(registry.get("ai-analysis").generate(data))

        assert report["tokenOptimized"] is True
        assert report["patterns"][0]["affectedPages"] == 60
        assert len(report["patterns"][0]["pages"]) == 5

    def test_cicd_fails_on_critical_issues(self, registry, data):
        report = json.loads(registry.get("cicd").generate(data))

        assert report["status"] == "fail"
        assert report["criticalIssueIds"] == ["largest-contentful-paint"]

    def test_cicd_passes_clean_run(self, registry):
        data = build_processed_data([normalize(summary_entry("/", performance=95))])

        report = json.loads(registry.get("cicd").generate(data))

        assert report["status"] == "pass"
        assert all(gate["passed"] for gate in report["gates"])

    def test_webhook(self, registry, data):
        report = json.loads(registry.get("webhook").generate(data))

        assert report["event"] == "audit.completed"
        assert report["summary"]["failedPages"] == 1
        assert len(report["topIssues"]) == 4
        assert report["worstPages"][0]["path"] == "/pricing"
