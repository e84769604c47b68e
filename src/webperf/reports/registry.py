"""Name to implementation map of report templates."""

import logging
from typing import Dict, List, Optional

from webperf.exceptions import TemplateNotFoundError
from webperf.reports.base import ReportTemplate

logger = logging.getLogger(__name__)


class TemplateRegistry:
    """Callers select templates by key, never by concrete type."""

    def __init__(self):
        self._templates: Dict[str, ReportTemplate] = {}

    def register(self, template: ReportTemplate, key: Optional[str] = None) -> None:
        key = key or template.key
        if key in self._templates:
            logger.debug(f"Replacing template {key}")
        self._templates[key] = template

    def get(self, key: str) -> ReportTemplate:
        """Look up a template.

        Raises:
            TemplateNotFoundError: If no template is registered under key
        """
        try:
            return self._templates[key]
        except KeyError:
            raise TemplateNotFoundError(key, self._templates.keys()) from None

    def __contains__(self, key: str) -> bool:
        return key in self._templates

    def keys(self) -> List[str]:
        return sorted(self._templates)


def default_registry(config=None) -> TemplateRegistry:
    """Registry holding every built-in template."""
    from webperf.reports.ai import AIAnalysisTemplate
    from webperf.reports.developer import (
        OverviewTemplate,
        QuickFixesTemplate,
        StructuredIssuesTemplate,
        TriageTemplate,
    )
    from webperf.reports.executive import DashboardTemplate, PerformanceSummaryTemplate
    from webperf.reports.integrations import CICDTemplate, WebhookTemplate
    from webperf.reports.standard import (
        CSVTemplate,
        HTMLTemplate,
        JSONTemplate,
        MarkdownTemplate,
        StreamingJSONTemplate,
    )

    weights = config.scoring if config else None
    max_issues = config.max_issues_per_report if config else 100

    registry = TemplateRegistry()
    for template_cls in (
        JSONTemplate,
        StreamingJSONTemplate,
        MarkdownTemplate,
        HTMLTemplate,
        CSVTemplate,
        QuickFixesTemplate,
        TriageTemplate,
        OverviewTemplate,
        StructuredIssuesTemplate,
        DashboardTemplate,
        PerformanceSummaryTemplate,
        AIAnalysisTemplate,
    ):
        registry.register(template_cls(weights=weights, max_issues=max_issues))

    registry.register(CICDTemplate(
        weights=weights,
        max_issues=max_issues,
        min_performance_score=config.ci_min_performance_score if config else 50.0,
        max_critical_issues=config.ci_max_critical_issues if config else 0,
    ))
    registry.register(WebhookTemplate(weights=weights, max_issues=max_issues))
    return registry
