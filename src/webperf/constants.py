# src/webperf/constants.py
"""Centralized constants for report generation.

This module holds the audit classification table and fixed values shared
across modules. For user-configurable values, see config.py and
ReportConfig.
"""

# =============================================================================
# Audit Classification
# =============================================================================

# Audits that become page issues when their score is below 1
ISSUE_AUDITS = (
    'unused-javascript',
    'unused-css-rules',
    'render-blocking-resources',
    'unminified-css',
    'unminified-javascript',
    'inefficient-animated-content',
    'non-composited-animations',
)

# Audits that become opportunities when their score is below 1
OPPORTUNITY_AUDITS = (
    'modern-image-formats',
    'uses-optimized-images',
    'uses-text-compression',
    'uses-responsive-images',
)

# Metrics whose failure makes a page critically slow
PAGE_CRITICAL_AUDITS = frozenset({
    'interactive',
    'largest-contentful-paint',
    'total-blocking-time',
})

# Ordered (category, substrings) table; the first match wins
CATEGORY_RULES = (
    ('accessibility', ('aria-', 'label', 'alt-', 'contrast', 'color-contrast',
                       'html-has-lang', 'image-alt')),
    ('seo', ('meta-description', 'http-status-code', 'font-size', 'link-text',
             'crawlable')),
    ('best-practices', ('doctype', 'charset', 'image-aspect-ratio',
                        'deprecated-apis')),
    ('javascript', ('unused-javascript', 'unminified-javascript')),
    ('css', ('unused-css', 'unminified-css')),
    ('images', ('modern-image-formats', 'optimized-images')),
    ('caching', ('uses-long-cache-ttl', 'efficient-animated-content')),
)

DEFAULT_CATEGORY = 'network'

# Audit score thresholds (0-1 scale)
SCORE_HIGH_THRESHOLD = 0.5
SCORE_MEDIUM_THRESHOLD = 0.9

# Savings thresholds (ms) used when only a time saving is known
SAVINGS_CRITICAL_MS = 2000
SAVINGS_HIGH_MS = 1000
SAVINGS_MEDIUM_MS = 500

# Lighthouse audit ids for the core metrics
METRIC_AUDITS = {
    'lcp_ms': 'largest-contentful-paint',
    'fcp_ms': 'first-contentful-paint',
    'tbt_ms': 'total-blocking-time',
    'cls': 'cumulative-layout-shift',
}

# =============================================================================
# Scoring Constants
# =============================================================================

# Divisors that turn raw savings into score units
MS_PER_TIME_UNIT = 1000
BYTES_PER_BYTE_UNIT = 100000

SEVERITY_ORDER = ('critical', 'high', 'medium', 'low')

# Score distribution buckets (0-100 performance score)
SCORE_EXCELLENT = 90
SCORE_GOOD = 75
SCORE_NEEDS_WORK = 50

# Core Web Vitals thresholds (ms unless noted)
CWV_THRESHOLDS = {
    "lcpMs": {"good": 2500, "poor": 4000},
    "fcpMs": {"good": 1800, "poor": 3000},
    "tbtMs": {"good": 200, "poor": 600},
    "cls": {"good": 0.1, "poor": 0.25},  # unitless
}

# =============================================================================
# Memory and Streaming Constants
# =============================================================================

BYTES_PER_MB = 1024 * 1024

# Structural size estimate weights (bytes)
ESTIMATE_NUMBER_BYTES = 8
ESTIMATE_CONTAINER_BYTES = 56
ESTIMATE_MAX_DEPTH = 32

MIN_CHUNK_SIZE = 1

# =============================================================================
# Report Constants
# =============================================================================

REPORT_VERSION = '1.0.0'
REPORT_SOURCE = 'webperf-report-generator'

# Well-known output filenames
FILENAMES = {
    'standard-markdown': 'report.md',
    'standard-json': 'report.json',
    'standard-html': 'report.html',
    'standard-csv': 'report.csv',
    'streaming-json': 'report.json',
    'quick-fixes': 'QUICK-FIXES.md',
    'triage': 'triage.md',
    'overview': 'overview.md',
    'dashboard': 'DASHBOARD.md',
    'ai-analysis': 'AI-ANALYSIS.json',
    'structured-issues': 'issues.json',
    'performance-summary': 'PERFORMANCE-SUMMARY.json',
    'cicd': 'cicd.json',
    'webhook': 'webhook.json',
}

# Number of entries in ranked views
QUICK_FIX_COUNT = 5
TRIAGE_MATRIX_COUNT = 10
TRIAGE_DETAIL_COUNT = 15
WORST_PAGES_COUNT = 5
TOP_ISSUE_TYPES_COUNT = 10

# Pages above which AI analysis output drops per-page detail
AI_COMPACT_PAGE_THRESHOLD = 50

DISCLAIMER = (
    'Scores and savings are lab measurements taken under simulated conditions. '
    'Savings estimates are not additive across issues and real-user results may differ.'
)
