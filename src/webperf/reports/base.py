"""Base class and Jinja2 environment for report templates."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import markdown
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from webperf.models import ProcessedAuditData
from webperf.scoring import DEFAULT_WEIGHTS, ScoringWeights

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

_environment: Optional[Environment] = None


class ReportTemplate(ABC):
    """A pure function from ProcessedAuditData to report content.

    Subclasses build a plain structural dict in ``build`` and turn it into
    text in ``generate``; ranking always goes through webperf.scoring.
    """

    key: str = ""
    format: str = ""
    filename: str = ""

    def __init__(self, weights: Optional[ScoringWeights] = None, max_issues: int = 100):
        self.weights = weights or DEFAULT_WEIGHTS
        self.max_issues = max_issues

    @abstractmethod
    def generate(self, data: ProcessedAuditData) -> str:
        """Render report content."""


class JinjaReportTemplate(ReportTemplate):
    """Template rendered through a .j2 file."""

    template_name: str = ""

    @abstractmethod
    def build(self, data: ProcessedAuditData) -> dict:
        """Build the render context for template_name."""

    def generate(self, data: ProcessedAuditData) -> str:
        template = get_environment().get_template(self.template_name)
        return template.render(**self.build(data))


def get_environment() -> Environment:
    """Shared Jinja2 environment with the report filters installed."""
    global _environment
    if _environment is None:
        env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(enabled_extensions=("html.j2",), default_for_string=False),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        env.filters['format_number'] = format_number
        env.filters['format_ms'] = format_ms
        env.filters['format_bytes'] = format_bytes
        env.filters['markdown'] = markdown_to_html
        _environment = env
    return _environment


def format_number(value) -> str:
    """Format number with thousand separators."""
    try:
        return "{:,}".format(int(round(float(value))))
    except (ValueError, TypeError):
        return str(value)


def format_ms(value) -> str:
    """Milliseconds as '850ms' below a second, '2.4s' above."""
    try:
        ms = float(value)
    except (ValueError, TypeError):
        return str(value)
    if ms >= 1000:
        return f"{ms / 1000:.1f}s"
    return f"{ms:.0f}ms"


def format_bytes(value) -> str:
    try:
        size = float(value)
    except (ValueError, TypeError):
        return str(value)
    if size >= 1024 * 1024:
        return f"{size / (1024 * 1024):.1f}MB"
    if size >= 1024:
        return f"{size / 1024:.1f}KB"
    return f"{size:.0f}B"


def markdown_to_html(text) -> Markup:
    """Convert markdown text to HTML."""
    if not text:
        return Markup("")
    html = markdown.markdown(str(text), extensions=['tables', 'fenced_code'])
    return Markup(html)
