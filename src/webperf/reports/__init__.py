"""Report templates and the registry that selects them by key."""

from webperf.reports.base import ReportTemplate
from webperf.reports.registry import TemplateRegistry, default_registry

__all__ = ["ReportTemplate", "TemplateRegistry", "default_registry"]
