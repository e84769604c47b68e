"""Normalize raw per-page audit results into PageAuditResult records.

Two raw shapes are accepted:

* collector page results: ``{"page": {...}, "runnerResults": {"lighthouse": {"success": ..., "lhr": {...}}}}``
* run summary entries: ``{"label", "path", "device", "scores", "metrics", "opportunities", "failedAudits"}``

A page whose measurement is missing or failed becomes a zeroed
PageAuditResult; only structurally invalid issues raise.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional

from webperf.constants import (
    CATEGORY_RULES,
    DEFAULT_CATEGORY,
    ISSUE_AUDITS,
    METRIC_AUDITS,
    OPPORTUNITY_AUDITS,
    PAGE_CRITICAL_AUDITS,
    SAVINGS_CRITICAL_MS,
    SAVINGS_HIGH_MS,
    SAVINGS_MEDIUM_MS,
    SCORE_HIGH_THRESHOLD,
    SCORE_MEDIUM_THRESHOLD,
)
from webperf.exceptions import InvalidIssueError
from webperf.models import (
    AuditMetadata,
    Category,
    CategoryScores,
    CoreMetrics,
    Issue,
    Opportunity,
    PageAuditResult,
    Resource,
    Savings,
    Severity,
)
from webperf.recommendations import recommendations_for

logger = logging.getLogger(__name__)

DEVICES = ("mobile", "desktop")


def categorize_issue(issue_id: str) -> Category:
    """Map an audit id to its category using the first matching rule."""
    for category, needles in CATEGORY_RULES:
        if any(needle in issue_id for needle in needles):
            return Category(category)
    return Category(DEFAULT_CATEGORY)


def classify_audit_severity(score: Optional[float], issue_id: str) -> Severity:
    """Severity from a 0-1 audit score.

    Args:
        score: Audit score, None is treated as 0
        issue_id: Audit id; page-critical metrics escalate low scores to critical

    Returns:
        Severity for the audit
    """
    value = _number(score)
    if value < SCORE_HIGH_THRESHOLD:
        return Severity.CRITICAL if issue_id in PAGE_CRITICAL_AUDITS else Severity.HIGH
    if value < SCORE_MEDIUM_THRESHOLD:
        return Severity.MEDIUM
    return Severity.LOW


def classify_savings_severity(savings_ms: float) -> Severity:
    """Severity from estimated time savings alone."""
    value = _number(savings_ms)
    if value >= SAVINGS_CRITICAL_MS:
        return Severity.CRITICAL
    if value >= SAVINGS_HIGH_MS:
        return Severity.HIGH
    if value >= SAVINGS_MEDIUM_MS:
        return Severity.MEDIUM
    return Severity.LOW


def normalize(raw: Any) -> PageAuditResult:
    """Convert one raw per-page result into a PageAuditResult.

    Args:
        raw: Collector page result or run summary entry

    Returns:
        Normalized page, zeroed when the measurement is missing

    Raises:
        InvalidIssueError: If a flagged audit has no identifier
    """
    if not isinstance(raw, dict):
        logger.warning(f"Skipping malformed page result of type {type(raw).__name__}")
        return _zeroed_page("unknown", "unknown", "desktop")

    if "runnerResults" in raw or "page" in raw:
        return _normalize_collector_result(raw)
    return _normalize_summary_entry(raw)


def normalize_pages(raws: Iterable[Any], max_workers: int = 4) -> List[PageAuditResult]:
    """Normalize many results, in parallel when worthwhile.

    Pages come back in input order.
    """
    raws = list(raws)
    if max_workers <= 1 or len(raws) < 2:
        return [normalize(raw) for raw in raws]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(raws))) as executor:
        return list(executor.map(normalize, raws))


def build_metadata(meta: Optional[Dict[str, Any]]) -> AuditMetadata:
    """Copy run metadata from the collector, defaulting missing keys."""
    meta = meta if isinstance(meta, dict) else {}
    return AuditMetadata(
        config_path=str(meta.get("configPath", "")),
        started_at=str(meta.get("startedAt", "")),
        completed_at=str(meta.get("completedAt", "")),
        elapsed_ms=_number(meta.get("elapsedMs")),
        total_pages=int(_number(meta.get("totalPages"))),
        total_runners=int(_number(meta.get("totalRunners"))),
    )


def _normalize_collector_result(raw: Dict[str, Any]) -> PageAuditResult:
    page = raw.get("page") if isinstance(raw.get("page"), dict) else {}
    path = str(page.get("path") or "unknown")
    label = str(page.get("label") or path)
    device = _device(page.get("device") or (page.get("devices") or [None])[0])

    runners = raw.get("runnerResults") if isinstance(raw.get("runnerResults"), dict) else {}
    lighthouse = runners.get("lighthouse")
    if not isinstance(lighthouse, dict) or not lighthouse.get("success"):
        logger.debug(f"No successful measurement for {path} ({device}), using zeroed result")
        return _zeroed_page(label, path, device)

    lhr = lighthouse.get("lhr")
    if not isinstance(lhr, dict) or not isinstance(lhr.get("audits"), dict):
        logger.debug(f"Measurement for {path} ({device}) has no audits, using zeroed result")
        return _zeroed_page(label, path, device)

    categories = lhr.get("categories") if isinstance(lhr.get("categories"), dict) else {}
    audits = lhr["audits"]

    scores = CategoryScores(
        performance=_percent(_category_score(categories, "performance")),
        accessibility=_percent(_category_score(categories, "accessibility")),
        best_practices=_percent(_category_score(categories, "best-practices")),
        seo=_percent(_category_score(categories, "seo")),
    )
    metrics = CoreMetrics(**{
        field_name: _number((audits.get(audit_id) or {}).get("numericValue"))
        for field_name, audit_id in METRIC_AUDITS.items()
    })

    issues = []
    for audit_id in ISSUE_AUDITS:
        audit = audits.get(audit_id)
        if _is_flagged(audit):
            issues.append(_issue_from_audit(audit_id, audit))

    opportunities = []
    for audit_id in OPPORTUNITY_AUDITS:
        audit = audits.get(audit_id)
        if _is_flagged(audit):
            opportunities.append(Opportunity(
                id=audit_id,
                title=audit.get("title") or audit_id,
                description=audit.get("description") or "",
                estimated_savings=_audit_savings(audit),
            ))

    return PageAuditResult(
        label=label,
        path=path,
        device=device,
        scores=scores,
        metrics=metrics,
        issues=issues,
        opportunities=opportunities,
    )


def _normalize_summary_entry(raw: Dict[str, Any]) -> PageAuditResult:
    path = str(raw.get("path") or "unknown")
    label = str(raw.get("label") or path)
    device = _device(raw.get("device"))

    scores = raw.get("scores")
    metrics = raw.get("metrics")
    if not isinstance(scores, dict) or not isinstance(metrics, dict):
        logger.debug(f"Summary for {path} ({device}) lacks scores or metrics, using zeroed result")
        return _zeroed_page(label, path, device)

    issues = []
    for audit in raw.get("failedAudits") or []:
        issue_id = audit.get("id") if isinstance(audit, dict) else None
        if not issue_id or not isinstance(issue_id, str):
            raise InvalidIssueError("flagged audit has no identifier", page=f"{path} ({device})")

        details = audit.get("details") if isinstance(audit.get("details"), dict) else {}
        savings = Savings(
            time_ms=_number(details.get("overallSavingsMs")),
            bytes=_number(details.get("overallSavingsBytes")),
        )
        score = audit.get("score")
        severity = (
            classify_audit_severity(score, issue_id)
            if score is not None
            else classify_savings_severity(savings.time_ms)
        )
        issues.append(Issue(
            id=issue_id,
            title=audit.get("title") or issue_id,
            description=audit.get("description") or "",
            severity=severity,
            category=categorize_issue(issue_id),
            affected_resources=_resources(details),
            estimated_savings=savings,
            fix_recommendations=recommendations_for(issue_id),
        ))

    # Opportunities not already flagged as failed audits become issues too
    flagged = {issue.id for issue in issues}
    opportunities = []
    for opp in raw.get("opportunities") or []:
        if not isinstance(opp, dict) or not opp.get("id"):
            continue
        opp_id = str(opp["id"])
        savings = Savings(
            time_ms=_number(opp.get("estimatedSavingsMs")),
            bytes=_number(opp.get("estimatedSavingsBytes")),
        )
        opportunity = Opportunity(
            id=opp_id,
            title=opp.get("title") or opp_id,
            description=opp.get("description") or "",
            estimated_savings=savings,
        )
        opportunities.append(opportunity)

        if opp_id in flagged:
            continue
        flagged.add(opp_id)
        issues.append(Issue(
            id=opp_id,
            title=opportunity.title,
            description=opportunity.description,
            severity=classify_savings_severity(savings.time_ms),
            category=categorize_issue(opp_id),
            affected_resources=[],
            estimated_savings=savings,
            fix_recommendations=recommendations_for(opp_id),
        ))

    return PageAuditResult(
        label=label,
        path=path,
        device=device,
        scores=CategoryScores(
            performance=_number(scores.get("performance")),
            accessibility=_number(scores.get("accessibility")),
            best_practices=_number(scores.get("bestPractices")),
            seo=_number(scores.get("seo")),
        ),
        metrics=CoreMetrics(
            lcp_ms=_number(metrics.get("lcpMs")),
            fcp_ms=_number(metrics.get("fcpMs")),
            tbt_ms=_number(metrics.get("tbtMs")),
            cls=_number(metrics.get("cls")),
        ),
        issues=issues,
        opportunities=opportunities,
    )


def _issue_from_audit(audit_id: str, audit: Dict[str, Any]) -> Issue:
    details = audit.get("details") if isinstance(audit.get("details"), dict) else {}
    return Issue(
        id=audit_id,
        title=audit.get("title") or audit_id,
        description=audit.get("description") or "",
        severity=classify_audit_severity(audit.get("score"), audit_id),
        category=categorize_issue(audit_id),
        affected_resources=_resources(details),
        estimated_savings=_audit_savings(audit),
        fix_recommendations=recommendations_for(audit_id),
    )


def _audit_savings(audit: Dict[str, Any]) -> Savings:
    details = audit.get("details") if isinstance(audit.get("details"), dict) else {}
    if "overallSavingsMs" in details:
        time_ms = _number(details.get("overallSavingsMs"))
    else:
        time_ms = _number(audit.get("numericValue"))

    if "overallSavingsBytes" in details:
        byte_savings = _number(details.get("overallSavingsBytes"))
    else:
        byte_savings = math.fsum(
            _number(item.get("wastedBytes", item.get("totalBytes")))
            for item in details.get("items") or []
            if isinstance(item, dict)
        )
    return Savings(time_ms=time_ms, bytes=byte_savings)


def _resources(details: Dict[str, Any]) -> List[Resource]:
    resources = []
    for item in details.get("items") or []:
        if not isinstance(item, dict) or not item.get("url"):
            continue
        resources.append(Resource(
            url=str(item["url"]),
            type=str(item.get("resourceType") or "other"),
            size=int(_number(item.get("wastedBytes", item.get("totalBytes")))),
        ))
    return resources


def _is_flagged(audit: Any) -> bool:
    if not isinstance(audit, dict):
        return False
    score = audit.get("score")
    return score is not None and _number(score) < 1


def _category_score(categories: Dict[str, Any], name: str) -> float:
    category = categories.get(name)
    if not isinstance(category, dict):
        return 0.0
    return _number(category.get("score"))


def _percent(score: float) -> int:
    # Half-up rounding, so 0.845 reports as 85
    return int(math.floor(score * 100 + 0.5))


def _device(value: Any) -> str:
    return value if value in DEVICES else "desktop"


def _number(value: Any) -> float:
    """Coerce to a finite float, defaulting missing or malformed values to 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return float(value)


def _zeroed_page(label: str, path: str, device: str) -> PageAuditResult:
    return PageAuditResult(label=label, path=path, device=device, failed=True)
