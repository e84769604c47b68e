"""Tests for the normalizer and its classification table."""

import pytest

from conftest import lighthouse_result, summary_entry
from webperf.exceptions import InvalidIssueError
from webperf.models import Category, Severity
from webperf.normalizer import (
    build_metadata,
    categorize_issue,
    classify_audit_severity,
    classify_savings_severity,
    normalize,
    normalize_pages,
)


class TestClassification:
    """Tests for category and severity derivation."""

    @pytest.mark.parametrize("issue_id,expected", [
        ("color-contrast", Category.ACCESSIBILITY),
        ("image-alt", Category.ACCESSIBILITY),
        ("meta-description", Category.SEO),
        ("doctype", Category.BEST_PRACTICES),
        ("unminified-javascript", Category.JAVASCRIPT),
        ("unused-css-rules", Category.CSS),
        ("uses-optimized-images", Category.IMAGES),
        ("uses-long-cache-ttl", Category.CACHING),
        ("server-response-time", Category.NETWORK),
    ])
    def test_categorize_issue(self, issue_id, expected):
        assert categorize_issue(issue_id) == expected

    def test_page_critical_audit_escalates(self):
        """Low score on a page-critical metric is critical, elsewhere high."""
        assert classify_audit_severity(0.3, "largest-contentful-paint") == Severity.CRITICAL
        assert classify_audit_severity(0.3, "unused-javascript") == Severity.HIGH

    @pytest.mark.parametrize("score,expected", [
        (0.5, Severity.MEDIUM),
        (0.89, Severity.MEDIUM),
        (0.9, Severity.LOW),
        (None, Severity.HIGH),
    ])
    def test_score_thresholds(self, score, expected):
        assert classify_audit_severity(score, "unused-javascript") == expected

    @pytest.mark.parametrize("savings,expected", [
        (2000, Severity.CRITICAL),
        (1999, Severity.HIGH),
        (1000, Severity.HIGH),
        (500, Severity.MEDIUM),
        (499, Severity.LOW),
        (None, Severity.LOW),
    ])
    def test_savings_thresholds(self, savings, expected):
        assert classify_savings_severity(savings) == expected


class TestLighthouseResults:
    """Tests for collector page results carrying a Lighthouse report."""

    @pytest.fixture
    def raw(self):
        return lighthouse_result(
            "/checkout",
            categories={
                "performance": {"score": 0.845},
                "accessibility": {"score": 0.9},
                "best-practices": {"score": 1.0},
                "seo": {"score": 0.5},
            },
            audits={
                "largest-contentful-paint": {"numericValue": 2500.5},
                "first-contentful-paint": {"numericValue": 1200},
                "total-blocking-time": {"numericValue": 300},
                "cumulative-layout-shift": {"numericValue": 0.12},
                "unused-javascript": {
                    "score": 0.4,
                    "title": "Reduce unused JavaScript",
                    "numericValue": 900,
                    "details": {
                        "overallSavingsMs": 1200,
                        "items": [
                            {"url": "https://example.com/a.js", "resourceType": "script",
                             "wastedBytes": 30000, "totalBytes": 50000},
                            {"url": "https://example.com/b.js", "wastedBytes": 20000},
                        ],
                    },
                },
                "unused-css-rules": {"score": 1, "title": "Reduce unused CSS"},
                "render-blocking-resources": {"score": 0.7, "numericValue": 450},
                "unminified-css": {"score": None},
                "modern-image-formats": {
                    "score": 0.5,
                    "details": {"overallSavingsMs": 300, "overallSavingsBytes": 80000},
                },
            },
        )

    def test_scores_rounded_half_up(self, raw):
        page = normalize(raw)

        assert page.scores.performance == 85
        assert page.scores.accessibility == 90
        assert page.scores.best_practices == 100
        assert page.scores.seo == 50
        assert page.failed is False

    def test_metrics(self, raw):
        page = normalize(raw)

        assert page.metrics.lcp_ms == 2500.5
        assert page.metrics.fcp_ms == 1200
        assert page.metrics.tbt_ms == 300
        assert page.metrics.cls == 0.12

    def test_flagged_audits_become_issues(self, raw):
        page = normalize(raw)

        assert [issue.id for issue in page.issues] == ["unused-javascript", "render-blocking-resources"]

        js = page.issues[0]
        assert js.title == "Reduce unused JavaScript"
        assert js.severity == Severity.HIGH
        assert js.category == Category.JAVASCRIPT
        assert js.estimated_savings.time_ms == 1200
        assert js.estimated_savings.bytes == 50000
        assert [r.size for r in js.affected_resources] == [30000, 20000]
        assert js.affected_resources[0].type == "script"
        assert js.fix_recommendations[0].action == "Remove unused JavaScript code"

    def test_time_savings_fall_back_to_numeric_value(self, raw):
        page = normalize(raw)
        blocking = page.issues[1]

        assert blocking.severity == Severity.MEDIUM
        assert blocking.estimated_savings.time_ms == 450
        assert blocking.estimated_savings.bytes == 0

    def test_opportunities(self, raw):
        page = normalize(raw)

        assert len(page.opportunities) == 1
        assert page.opportunities[0].id == "modern-image-formats"
        assert page.opportunities[0].estimated_savings.bytes == 80000

    def test_device_from_page_config(self, raw):
        assert normalize(raw).device == "mobile"


class TestDataGaps:
    """Tests that per-page gaps normalize to zeroed pages."""

    def test_failed_measurement_is_zeroed(self):
        page = normalize(lighthouse_result("/down", success=False, device="desktop"))

        assert page.failed is True
        assert page.path == "/down"
        assert page.device == "desktop"
        assert page.scores.performance == 0
        assert page.metrics.lcp_ms == 0
        assert page.issues == []
        assert page.opportunities == []

    def test_missing_runner_results(self):
        page = normalize({"page": {"label": "Home", "path": "/"}})

        assert page.failed is True
        assert page.label == "Home"

    def test_summary_without_metrics_is_zeroed(self):
        raw = summary_entry("/about", [("unused-javascript", 500, 100, 0.2)])
        del raw["metrics"]

        page = normalize(raw)

        assert page.failed is True
        assert page.issues == []

    def test_malformed_numbers_default_to_zero(self):
        raw = summary_entry("/about", [("unused-javascript", "fast", None, 0.2)])
        raw["scores"]["seo"] = None

        page = normalize(raw)

        assert page.scores.seo == 0
        assert page.issues[0].estimated_savings.time_ms == 0
        assert page.issues[0].estimated_savings.bytes == 0

    def test_non_mapping_result(self):
        page = normalize(["not", "a", "page"])

        assert page.failed is True
        assert page.path == "unknown"

    def test_issue_without_identifier_is_fatal(self):
        raw = summary_entry("/about", [("", 500, 0, 0.2)])

        with pytest.raises(InvalidIssueError):
            normalize(raw)


class TestSummaryEntries:
    """Tests for run summary entries."""

    def test_severity_from_score_or_savings(self):
        raw = summary_entry("/", [
            ("largest-contentful-paint", 2500, 0, 0.2),
            ("uses-long-cache-ttl", 2100, 0, None),
        ])

        page = normalize(raw)

        assert page.issues[0].severity == Severity.CRITICAL
        assert page.issues[1].severity == Severity.CRITICAL
        assert page.issues[1].category == Category.CACHING
        assert page.critical_issue_count == 2

    def test_opportunities(self):
        raw = summary_entry("/")
        raw["opportunities"] = [
            {"id": "uses-text-compression", "title": "Enable text compression",
             "estimatedSavingsMs": 150, "estimatedSavingsBytes": 40000},
            {"title": "no id"},
        ]

        page = normalize(raw)

        assert len(page.opportunities) == 1
        assert page.opportunities[0].estimated_savings.time_ms == 150

    def test_opportunity_becomes_issue(self):
        """An opportunity with no matching failed audit is reported as an issue."""
        raw = summary_entry("/")
        raw["opportunities"] = [
            {"id": "uses-text-compression", "title": "Enable text compression",
             "estimatedSavingsMs": 1500, "estimatedSavingsBytes": 40000},
        ]

        page = normalize(raw)

        assert len(page.issues) == 1
        issue = page.issues[0]
        assert issue.id == "uses-text-compression"
        assert issue.title == "Enable text compression"
        assert issue.severity == Severity.HIGH
        assert issue.category == Category.NETWORK
        assert issue.estimated_savings.time_ms == 1500
        assert issue.estimated_savings.bytes == 40000
        assert issue.affected_resources == []
        assert issue.fix_recommendations

    def test_opportunity_matching_failed_audit_not_duplicated(self):
        raw = summary_entry("/", [("unused-javascript", 800, 50000, 0.3)])
        raw["opportunities"] = [
            {"id": "unused-javascript", "title": "Reduce unused JavaScript",
             "estimatedSavingsMs": 800, "estimatedSavingsBytes": 50000},
            {"id": "render-blocking-resources", "estimatedSavingsMs": 300},
        ]

        page = normalize(raw)

        assert [issue.id for issue in page.issues] == [
            "unused-javascript", "render-blocking-resources",
        ]
        assert page.issues[0].severity == Severity.HIGH
        assert page.issues[1].severity == Severity.LOW
        assert len(page.opportunities) == 2


class TestBatchNormalization:
    """Tests for normalize_pages and run metadata."""

    def test_parallel_preserves_order(self):
        raws = [summary_entry(f"/page-{i}") for i in range(10)]

        pages = normalize_pages(raws, max_workers=4)

        assert [p.path for p in pages] == [f"/page-{i}" for i in range(10)]

    def test_build_metadata(self):
        meta = build_metadata({"configPath": "a.json", "elapsedMs": 1500, "totalPages": 3})

        assert meta.config_path == "a.json"
        assert meta.elapsed_ms == 1500
        assert meta.total_pages == 3
        assert meta.started_at == ""

    def test_build_metadata_missing(self):
        meta = build_metadata(None)

        assert meta.total_runners == 0
