"""Fix recommendations and effort estimates for known audits."""

from webperf.models import FixRecommendation

# Remediation catalogue keyed by audit id
RECOMMENDATIONS = {
    "unused-javascript": {
        "action": "Remove unused JavaScript code",
        "implementation": "Split bundles by route and load rarely used modules on demand.",
        "difficulty": "medium",
        "estimated_time": "2-4 hours",
        "hours": 3,
        "code_example": "const Chart = await import('./chart.js');",
        "docs_url": "https://web.dev/remove-unused-code/",
    },
    "unused-css-rules": {
        "action": "Remove unused CSS rules",
        "implementation": "Purge selectors that no template references and inline critical CSS.",
        "difficulty": "easy",
        "estimated_time": "1-2 hours",
        "hours": 1.5,
        "code_example": "// postcss.config.js\nplugins: [purgecss({ content: ['./src/**/*.html'] })]",
        "docs_url": "https://web.dev/unused-css-rules/",
    },
    "render-blocking-resources": {
        "action": "Eliminate render-blocking resources",
        "implementation": "Defer non-critical scripts and load non-critical stylesheets asynchronously.",
        "difficulty": "medium",
        "estimated_time": "2-3 hours",
        "hours": 2.5,
        "code_example": '<script src="/app.js" defer></script>\n'
                        '<link rel="preload" href="/extra.css" as="style" onload="this.rel=\'stylesheet\'">',
        "docs_url": "https://web.dev/render-blocking-resources/",
    },
    "modern-image-formats": {
        "action": "Serve images in modern formats",
        "implementation": "Convert JPEG and PNG assets to WebP or AVIF with a fallback.",
        "difficulty": "easy",
        "estimated_time": "1-2 hours",
        "hours": 1.5,
        "code_example": '<picture>\n  <source srcset="hero.avif" type="image/avif">\n'
                        '  <img src="hero.jpg" alt="Hero">\n</picture>',
        "docs_url": "https://web.dev/uses-webp-images/",
    },
    "uses-long-cache-ttl": {
        "action": "Serve static assets with an efficient cache policy",
        "implementation": "Fingerprint asset filenames and send long-lived immutable cache headers.",
        "difficulty": "medium",
        "estimated_time": "1-3 hours",
        "hours": 2,
        "code_example": "Cache-Control: public, max-age=31536000, immutable",
        "docs_url": "https://web.dev/uses-long-cache-ttl/",
    },
    "uses-text-compression": {
        "action": "Enable text compression",
        "implementation": "Turn on gzip or brotli for HTML, CSS, JavaScript and JSON responses.",
        "difficulty": "easy",
        "estimated_time": "0.5-1 hours",
        "hours": 0.75,
        "code_example": "gzip on;\ngzip_types text/css application/javascript application/json;",
        "docs_url": "https://web.dev/uses-text-compression/",
    },
    "unminified-css": {
        "action": "Minify CSS",
        "implementation": "Enable CSS minification in the production build.",
        "difficulty": "easy",
        "estimated_time": "0.5-1 hours",
        "hours": 0.75,
        "docs_url": "https://web.dev/unminified-css/",
    },
    "unminified-javascript": {
        "action": "Minify JavaScript",
        "implementation": "Enable a minifier such as terser in the production build.",
        "difficulty": "easy",
        "estimated_time": "0.5-1 hours",
        "hours": 0.75,
        "docs_url": "https://web.dev/unminified-javascript/",
    },
    "uses-optimized-images": {
        "action": "Efficiently encode images",
        "implementation": "Recompress images at quality 80-85 in the asset pipeline.",
        "difficulty": "easy",
        "estimated_time": "1-2 hours",
        "hours": 1.5,
        "docs_url": "https://web.dev/uses-optimized-images/",
    },
    "uses-responsive-images": {
        "action": "Properly size images",
        "implementation": "Provide srcset and sizes so each viewport downloads a fitting image.",
        "difficulty": "medium",
        "estimated_time": "2-4 hours",
        "hours": 3,
        "code_example": '<img src="card-800.jpg" srcset="card-400.jpg 400w, card-800.jpg 800w" '
                        'sizes="(max-width: 600px) 400px, 800px" alt="">',
        "docs_url": "https://web.dev/uses-responsive-images/",
    },
}

GENERIC_RECOMMENDATION = {
    "action": "Review the audit details and address the flagged resources",
    "implementation": "",
    "difficulty": "medium",
    "estimated_time": "2-4 hours",
    "hours": 3,
}


def recommendations_for(issue_id: str) -> list[FixRecommendation]:
    """Catalogued recommendations for an audit id, empty when unknown."""
    entry = RECOMMENDATIONS.get(issue_id)
    if entry is None:
        return []
    return [_to_recommendation(entry)]


def recommendation_or_generic(issue_id: str) -> FixRecommendation:
    return _to_recommendation(RECOMMENDATIONS.get(issue_id, GENERIC_RECOMMENDATION))


def estimate_fix_effort(issue_id: str) -> tuple[str, float]:
    """Return (difficulty, hours) for fixing an issue once."""
    entry = RECOMMENDATIONS.get(issue_id, GENERIC_RECOMMENDATION)
    return entry["difficulty"], entry["hours"]


def _to_recommendation(entry: dict) -> FixRecommendation:
    return FixRecommendation(
        action=entry["action"],
        implementation=entry.get("implementation", ""),
        difficulty=entry["difficulty"],
        estimated_time=entry["estimated_time"],
        code_example=entry.get("code_example"),
        docs_url=entry.get("docs_url"),
    )
