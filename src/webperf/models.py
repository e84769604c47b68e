"""Data models for audit processing and reporting."""

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Optional


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def __str__(self) -> str:
        return self.value


class Category(str, Enum):
    JAVASCRIPT = "javascript"
    CSS = "css"
    IMAGES = "images"
    CACHING = "caching"
    NETWORK = "network"
    ACCESSIBILITY = "accessibility"
    SEO = "seo"
    BEST_PRACTICES = "best-practices"

    def __str__(self) -> str:
        return self.value


@dataclass
class Resource:
    """A resource flagged by an audit."""

    url: str
    type: str = "other"
    size: int = 0


@dataclass
class Savings:
    """Estimated time and byte savings."""

    time_ms: float = 0.0
    bytes: float = 0.0

    def to_dict(self) -> dict:
        return {'timeMs': self.time_ms, 'bytes': self.bytes}


@dataclass
class FixRecommendation:
    """A concrete step that resolves an issue."""

    action: str
    implementation: str = ""
    difficulty: str = "medium"  # easy/medium/hard
    estimated_time: str = ""
    code_example: Optional[str] = None
    docs_url: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Issue:
    """A defect detected on one page.

    Severity and category come from the classification table in
    webperf.normalizer, never from the raw input.
    """

    id: str
    title: str
    description: str = ""
    severity: Severity = Severity.LOW
    category: Category = Category.NETWORK
    affected_resources: list[Resource] = field(default_factory=list)
    estimated_savings: Savings = field(default_factory=Savings)
    fix_recommendations: list[FixRecommendation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'severity': str(self.severity),
            'category': str(self.category),
            'affectedResources': [asdict(r) for r in self.affected_resources],
            'estimatedSavings': self.estimated_savings.to_dict(),
            'fixRecommendations': [r.to_dict() for r in self.fix_recommendations],
        }


@dataclass
class Opportunity:
    """A suggested improvement carrying only estimated savings."""

    id: str
    title: str
    description: str = ""
    estimated_savings: Savings = field(default_factory=Savings)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'estimatedSavings': self.estimated_savings.to_dict(),
        }


@dataclass
class CategoryScores:
    """Category scores on a 0-100 scale."""

    performance: float = 0
    accessibility: float = 0
    best_practices: float = 0
    seo: float = 0

    def to_dict(self) -> dict:
        return {
            'performance': self.performance,
            'accessibility': self.accessibility,
            'bestPractices': self.best_practices,
            'seo': self.seo,
        }


@dataclass
class CoreMetrics:
    """Core timing and stability metrics."""

    lcp_ms: float = 0.0
    fcp_ms: float = 0.0
    tbt_ms: float = 0.0
    cls: float = 0.0

    def to_dict(self) -> dict:
        return {'lcpMs': self.lcp_ms, 'fcpMs': self.fcp_ms, 'tbtMs': self.tbt_ms, 'cls': self.cls}


@dataclass
class PageAuditResult:
    """Normalized audit of one page on one device."""

    label: str
    path: str
    device: str = "desktop"
    scores: CategoryScores = field(default_factory=CategoryScores)
    metrics: CoreMetrics = field(default_factory=CoreMetrics)
    issues: list[Issue] = field(default_factory=list)
    opportunities: list[Opportunity] = field(default_factory=list)
    failed: bool = False

    @property
    def critical_issue_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == Severity.CRITICAL)

    def compact(self) -> "PageAuditResult":
        """Copy without per-issue resources and recommendations."""
        return replace(
            self,
            issues=[
                replace(issue, affected_resources=[], fix_recommendations=[])
                for issue in self.issues
            ],
        )

    def to_dict(self) -> dict:
        return {
            'label': self.label,
            'path': self.path,
            'device': self.device,
            'scores': self.scores.to_dict(),
            'metrics': self.metrics.to_dict(),
            'issues': [i.to_dict() for i in self.issues],
            'opportunities': [o.to_dict() for o in self.opportunities],
            'failed': self.failed,
        }


@dataclass
class PageIssueDetail:
    """One page's share of an aggregated issue."""

    label: str
    path: str
    device: str
    performance_score: float
    savings: Savings

    def to_dict(self) -> dict:
        return {
            'pageLabel': self.label,
            'pagePath': self.path,
            'device': self.device,
            'performanceScore': self.performance_score,
            'impactMs': self.savings.time_ms,
            'impactBytes': self.savings.bytes,
        }


@dataclass
class AggregatedIssue:
    """One issue id merged across every page it occurs on.

    Built by webperf.aggregation from the full page set; totals and
    averages always agree with affected_pages.
    """

    id: str
    title: str
    description: str
    severity: Severity
    category: Category
    affected_pages: list[PageIssueDetail] = field(default_factory=list)
    total_savings: Savings = field(default_factory=Savings)
    average_savings: Savings = field(default_factory=Savings)

    @property
    def page_count(self) -> int:
        return len(self.affected_pages)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'severity': str(self.severity),
            'category': str(self.category),
            'affectedPages': [p.to_dict() for p in self.affected_pages],
            'totalSavings': self.total_savings.to_dict(),
            'averageSavings': self.average_savings.to_dict(),
        }


@dataclass
class PerformanceMetrics:
    """Aggregate metrics over all pages of a run."""

    total_pages: int = 0
    average_scores: CategoryScores = field(default_factory=CategoryScores)
    median_scores: CategoryScores = field(default_factory=CategoryScores)
    critical_issues_count: int = 0
    estimated_total_savings_ms: float = 0.0
    score_distribution: dict = field(default_factory=dict)
    average_metrics: CoreMetrics = field(default_factory=CoreMetrics)
    failed_pages: int = 0
    audit_duration_ms: float = 0.0

    @property
    def average_performance_score(self) -> float:
        return self.average_scores.performance

    def to_dict(self) -> dict:
        return {
            'totalPages': self.total_pages,
            'averagePerformanceScore': round(self.average_scores.performance),
            'averageScores': {k: round(v) for k, v in self.average_scores.to_dict().items()},
            'medianScores': self.median_scores.to_dict(),
            'criticalIssuesCount': self.critical_issues_count,
            'estimatedTotalSavings': round(self.estimated_total_savings_ms),
            'scoreDistribution': dict(self.score_distribution),
            'averageMetrics': {k: round(v, 3) for k, v in self.average_metrics.to_dict().items()},
            'failedPages': self.failed_pages,
            'auditDuration': self.audit_duration_ms,
        }


@dataclass
class TrendPoint:
    """One run's headline numbers, kept in the append-only history file."""

    recorded_at: str
    config_path: str
    total_pages: int
    average_performance: float
    critical_issues: int
    estimated_total_savings_ms: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TrendPoint":
        return cls(**{k: data[k] for k in cls.__dataclass_fields__ if k in data})


@dataclass
class AuditMetadata:
    """Run-level metadata passed through from the collector."""

    config_path: str = ""
    started_at: str = ""
    completed_at: str = ""
    elapsed_ms: float = 0.0
    total_pages: int = 0
    total_runners: int = 0
    baseline: Optional[TrendPoint] = None

    def to_dict(self) -> dict:
        return {
            'configPath': self.config_path,
            'startedAt': self.started_at,
            'completedAt': self.completed_at,
            'elapsedMs': self.elapsed_ms,
            'totalPages': self.total_pages,
            'totalRunners': self.total_runners,
        }


@dataclass
class ProcessedAuditData:
    """Format-agnostic input to every report template."""

    pages: list[PageAuditResult]
    issues: list[AggregatedIssue]
    performance_metrics: PerformanceMetrics
    metadata: AuditMetadata = field(default_factory=AuditMetadata)
    streamed: bool = False

    @property
    def global_issues(self) -> list[AggregatedIssue]:
        """Aggregated issues affecting more than one page."""
        return [issue for issue in self.issues if issue.page_count > 1]


@dataclass
class Report:
    """Rendered report content and generation metadata."""

    key: str
    format: str
    filename: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
