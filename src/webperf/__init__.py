"""Web performance report generation.

Normalizes per-page audit results, aggregates issues across pages, ranks
them by priority, and renders multi-format reports.
"""

__version__ = "0.1.0"

from webperf.engine import ReportGeneratorEngine, RunOutcome
from webperf.exceptions import (
    BatchWriteError,
    ConfigurationError,
    InvalidIssueError,
    TemplateNotFoundError,
    WebperfError,
)
from webperf.models import AggregatedIssue, PageAuditResult, ProcessedAuditData

__all__ = [
    "ReportGeneratorEngine",
    "RunOutcome",
    "WebperfError",
    "ConfigurationError",
    "TemplateNotFoundError",
    "InvalidIssueError",
    "BatchWriteError",
    "AggregatedIssue",
    "PageAuditResult",
    "ProcessedAuditData",
]
