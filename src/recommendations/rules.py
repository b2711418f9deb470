"""Recommendation rules definition.

Each rule's condition receives the aggregated scan report:

    {
        "performance": {"score": 72.0, "metrics": {"Largest Contentful Paint": {"value": 3100, "unit": "ms"}}},
        "accessibility": {"score": 88, "issues": [...]},
        "seo": {...},
        "best_practices": {...},
        "security": {"score": 57, "grade": "D", "headers": [...], "issues": [...]},
    }
"""

from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class Rule:
    """A single recommendation rule."""

    id: str
    category: str  # performance, accessibility, seo, best-practices, security
    severity: str  # high, medium, low
    title: str
    description: str
    fix_suggestion: str
    condition: Callable[[dict], bool]
    impact: int = 5  # 1-10, how much fixing it helps
    effort: int = 5  # 1-10, how hard it is to fix
    reference_url: str | None = None

    @property
    def priority_score(self) -> float:
        return round(self.impact * 10 / max(self.effort, 1), 1)


def _get_nested(data: dict, path: str, default: Any = None) -> Any:
    """Get a nested value from a dict using dot notation."""
    keys = path.split(".")
    value = data
    for key in keys:
        if isinstance(value, dict):
            value = value.get(key, default)
        else:
            return default
    return value


def _metric(ctx: dict, name: str) -> float:
    """Value of a performance metric, 0 when absent."""
    return _get_nested(ctx, f"performance.metrics.{name}.value") or 0


def _score(ctx: dict, category: str) -> float:
    """Category score, 100 when the category was not measured."""
    score = _get_nested(ctx, f"{category}.score")
    return 100 if score is None else score


def _header_missing(ctx: dict, header: str) -> bool:
    for finding in _get_nested(ctx, "security.headers") or []:
        if finding.get("name") == header:
            return not finding.get("present")
    return False


def _has_issue(ctx: dict, category: str, text: str) -> bool:
    text = text.lower()
    return any(
        text in (issue.get("title") or "").lower()
        for issue in _get_nested(ctx, f"{category}.issues") or []
    )


# =============================================================================
# Performance Rules (from Lighthouse)
# =============================================================================

PERFORMANCE_RULES = [
    Rule(
        id="slow-lcp",
        category="performance",
        severity="high",
        title="Slow Largest Contentful Paint (LCP)",
        description="LCP measures when the largest content element becomes visible. Your LCP is above 2.5 seconds, which is considered slow.",
        fix_suggestion="Optimize images, preload critical resources, reduce server response time, and remove render-blocking resources.",
        condition=lambda ctx: _metric(ctx, "Largest Contentful Paint") > 2500,
        impact=9,
        effort=5,
        reference_url="https://web.dev/lcp/",
    ),
    Rule(
        id="high-cls",
        category="performance",
        severity="high",
        title="High Cumulative Layout Shift (CLS)",
        description="CLS measures visual stability. A score above 0.1 indicates significant layout shifts that can frustrate users.",
        fix_suggestion="Set explicit dimensions on images and videos, avoid inserting content above existing content, and prefer transform animations.",
        condition=lambda ctx: _metric(ctx, "Cumulative Layout Shift") > 0.1,
        impact=7,
        effort=3,
        reference_url="https://web.dev/cls/",
    ),
    Rule(
        id="slow-fcp",
        category="performance",
        severity="medium",
        title="Slow First Contentful Paint (FCP)",
        description="FCP measures when the first content is painted. Your FCP is above 1.8 seconds.",
        fix_suggestion="Reduce server response time, eliminate render-blocking resources, and preload critical fonts.",
        condition=lambda ctx: _metric(ctx, "First Contentful Paint") > 1800,
        impact=6,
        effort=4,
        reference_url="https://web.dev/fcp/",
    ),
    Rule(
        id="high-tbt",
        category="performance",
        severity="high",
        title="High Total Blocking Time (TBT)",
        description="TBT measures the total time the main thread was blocked. A TBT above 200ms indicates heavy JavaScript execution.",
        fix_suggestion="Break up long tasks, reduce JavaScript execution time, and move heavy computations to web workers.",
        condition=lambda ctx: _metric(ctx, "Total Blocking Time") > 200,
        impact=8,
        effort=6,
        reference_url="https://web.dev/tbt/",
    ),
    Rule(
        id="slow-server-response",
        category="performance",
        severity="medium",
        title="Slow Server Response Time",
        description="The main document took longer than 600ms to respond, delaying everything else on the page.",
        fix_suggestion="Cache rendered pages, use a CDN, and profile slow database queries or backend calls.",
        condition=lambda ctx: _metric(ctx, "Server Response Time") > 600,
        impact=7,
        effort=6,
        reference_url="https://developer.chrome.com/docs/lighthouse/performance/server-response-time/",
    ),
    Rule(
        id="low-performance-score",
        category="performance",
        severity="high",
        title="Low Overall Performance Score",
        description="Your Lighthouse performance score is below 50, indicating significant performance issues.",
        fix_suggestion="Address the specific issues identified in the Lighthouse report, focusing on Core Web Vitals.",
        condition=lambda ctx: _score(ctx, "performance") < 50,
        impact=9,
        effort=7,
        reference_url="https://web.dev/performance-scoring/",
    ),
]

# =============================================================================
# Accessibility Rules
# =============================================================================

ACCESSIBILITY_RULES = [
    Rule(
        id="color-contrast",
        category="accessibility",
        severity="high",
        title="Insufficient Color Contrast",
        description="Some text does not have enough contrast against its background, making it hard to read for users with low vision.",
        fix_suggestion="Raise the contrast ratio to at least 4.5:1 for normal text and 3:1 for large text.",
        condition=lambda ctx: _has_issue(ctx, "accessibility", "color-contrast")
        or _has_issue(ctx, "accessibility", "contrast"),
        impact=7,
        effort=2,
        reference_url="https://dequeuniversity.com/rules/axe/4.4/color-contrast",
    ),
    Rule(
        id="missing-alt-text",
        category="accessibility",
        severity="medium",
        title="Images Missing Alternate Text",
        description="Screen readers cannot describe images without alt attributes.",
        fix_suggestion="Add short, descriptive alt text to informative images and alt=\"\" to decorative ones.",
        condition=lambda ctx: _has_issue(ctx, "accessibility", "image-alt")
        or _has_issue(ctx, "accessibility", "alternate text"),
        impact=6,
        effort=2,
        reference_url="https://dequeuniversity.com/rules/axe/4.4/image-alt",
    ),
    Rule(
        id="low-accessibility-score",
        category="accessibility",
        severity="high",
        title="Poor Accessibility",
        description="Your accessibility score is below 70. Users relying on assistive technology will struggle to use this site.",
        fix_suggestion="Fix the listed violations, starting with critical and serious ones, and test with a screen reader.",
        condition=lambda ctx: _score(ctx, "accessibility") < 70,
        impact=8,
        effort=6,
        reference_url="https://www.w3.org/WAI/standards-guidelines/wcag/",
    ),
]

# =============================================================================
# SEO Rules
# =============================================================================

SEO_RULES = [
    Rule(
        id="missing-meta-description",
        category="seo",
        severity="medium",
        title="Missing Meta Description",
        description="Search engines show the meta description in results. Without one they pick arbitrary page text.",
        fix_suggestion="Add a unique <meta name=\"description\"> of 120-160 characters to each page.",
        condition=lambda ctx: _has_issue(ctx, "seo", "meta description"),
        impact=5,
        effort=1,
        reference_url="https://developer.chrome.com/docs/lighthouse/seo/meta-description/",
    ),
    Rule(
        id="low-seo-score",
        category="seo",
        severity="medium",
        title="Low SEO Score",
        description="Your SEO score is below 80, which can hurt how the site ranks in search results.",
        fix_suggestion="Fix crawlability, titles, meta descriptions and link text issues listed in the report.",
        condition=lambda ctx: _score(ctx, "seo") < 80,
        impact=6,
        effort=4,
        reference_url="https://developer.chrome.com/docs/lighthouse/seo/",
    ),
]

# =============================================================================
# Best Practices Rules
# =============================================================================

BEST_PRACTICES_RULES = [
    Rule(
        id="low-best-practices-score",
        category="best-practices",
        severity="medium",
        title="Low Best Practices Score",
        description="Your best practices score is below 80, indicating outdated APIs, console errors or insecure requests.",
        fix_suggestion="Serve all resources over HTTPS, remove deprecated APIs and fix console errors.",
        condition=lambda ctx: _score(ctx, "best_practices") < 80,
        impact=4,
        effort=4,
        reference_url="https://developer.chrome.com/docs/lighthouse/best-practices/",
    ),
]

# =============================================================================
# Security Rules (from the header checker)
# =============================================================================

SECURITY_RULES = [
    Rule(
        id="missing-hsts",
        category="security",
        severity="high",
        title="Missing HSTS Header",
        description="Without Strict-Transport-Security, browsers may connect over plain HTTP and be downgraded by an attacker.",
        fix_suggestion="Send 'Strict-Transport-Security: max-age=31536000; includeSubDomains' on HTTPS responses.",
        condition=lambda ctx: _header_missing(ctx, "Strict-Transport-Security"),
        impact=8,
        effort=2,
        reference_url="https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Strict-Transport-Security",
    ),
    Rule(
        id="missing-csp",
        category="security",
        severity="high",
        title="Missing Content Security Policy",
        description="A Content-Security-Policy limits which scripts can run and is the main defence against XSS.",
        fix_suggestion="Start with a report-only policy, then enforce a policy that lists the script and style sources you use.",
        condition=lambda ctx: _header_missing(ctx, "Content-Security-Policy"),
        impact=8,
        effort=6,
        reference_url="https://developer.mozilla.org/en-US/docs/Web/HTTP/CSP",
    ),
    Rule(
        id="missing-x-frame-options",
        category="security",
        severity="medium",
        title="Missing X-Frame-Options Header",
        description="Pages can be embedded in frames on other sites, enabling clickjacking.",
        fix_suggestion="Send 'X-Frame-Options: DENY' or a frame-ancestors CSP directive.",
        condition=lambda ctx: _header_missing(ctx, "X-Frame-Options"),
        impact=5,
        effort=1,
        reference_url="https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/X-Frame-Options",
    ),
    Rule(
        id="missing-x-content-type-options",
        category="security",
        severity="medium",
        title="Missing X-Content-Type-Options Header",
        description="Browsers may MIME-sniff responses and execute content as a different type.",
        fix_suggestion="Send 'X-Content-Type-Options: nosniff' on every response.",
        condition=lambda ctx: _header_missing(ctx, "X-Content-Type-Options"),
        impact=4,
        effort=1,
        reference_url="https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/X-Content-Type-Options",
    ),
    Rule(
        id="low-security-score",
        category="security",
        severity="high",
        title="Weak Security Header Configuration",
        description="Your security header grade is D or worse. Several recommended headers are missing or misconfigured.",
        fix_suggestion="Add the missing headers at your web server or CDN; most can be set in a single configuration block.",
        condition=lambda ctx: _score(ctx, "security") < 60,
        impact=7,
        effort=3,
        reference_url="https://owasp.org/www-project-secure-headers/",
    ),
]

ALL_RULES = (
    PERFORMANCE_RULES
    + ACCESSIBILITY_RULES
    + SEO_RULES
    + BEST_PRACTICES_RULES
    + SECURITY_RULES
)
