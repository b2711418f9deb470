"""Security response header checker."""

import copy
import logging
from collections.abc import Mapping

import httpx

from audits.base import AuditResult, BaseAuditRunner, validate_url

logger = logging.getLogger(__name__)

GOOD = "good"
WARNING = "warning"
BAD = "bad"

# Points per header status; a missing header earns nothing
STATUS_POINTS = {GOOD: 1.0, WARNING: 0.5, BAD: 0.0}

# Recommended headers, in report order
SECURITY_HEADERS = {
    "Strict-Transport-Security": "HTTP Strict Transport Security (HSTS) enforces secure (HTTPS) connections to the server",
    "Content-Security-Policy": "Content Security Policy (CSP) helps prevent XSS attacks by specifying which dynamic resources are allowed to load",
    "X-Content-Type-Options": "X-Content-Type-Options prevents MIME type sniffing",
    "X-Frame-Options": "X-Frame-Options protects against clickjacking attacks",
    "X-XSS-Protection": "X-XSS-Protection stops pages from loading when they detect reflected XSS attacks",
    "Referrer-Policy": "Referrer Policy controls how much referrer information should be included with requests",
    "Permissions-Policy": "Permissions Policy allows a site to control which features and APIs can be used in the browser",
}

GRADES = [(90, "A+"), (80, "A"), (70, "B"), (60, "C"), (50, "D")]

MOCK_SECURITY_RESULT = {
    "score": 50,
    "grade": "D",
    "headers": [],
    "issues": [
        {
            "title": "Missing or improper Content-Security-Policy header",
            "description": "The Content-Security-Policy header is missing. " + SECURITY_HEADERS["Content-Security-Policy"],
            "severity": "high",
        }
    ],
}


def grade_for_score(score: float) -> str:
    for threshold, grade in GRADES:
        if score >= threshold:
            return grade
    return "F"


def _evaluate(header: str, value: str) -> str:
    """Status of a header that is present."""
    normalized = value.strip()
    if header == "Strict-Transport-Security":
        lowered = normalized.lower().replace(" ", "")
        return GOOD if "max-age=" in lowered and "max-age=0" not in lowered else WARNING
    if header == "X-Content-Type-Options":
        return GOOD if normalized.lower() == "nosniff" else WARNING
    if header == "X-Frame-Options":
        return GOOD if normalized.upper() in ("DENY", "SAMEORIGIN") else WARNING
    if header == "X-XSS-Protection":
        return GOOD if normalized.replace(" ", "") == "1;mode=block" else WARNING
    return GOOD if normalized else WARNING


def score_headers(headers: Mapping[str, str]) -> dict:
    """
    Score a set of response headers against the rubric.

    Pure function of its input: the same headers always yield the same
    score, grade and issues.

    Returns:
        Dict with score (0-100), grade, per-header findings and issues
    """
    lowered = {k.lower(): v for k, v in headers.items()}

    findings = []
    issues = []
    points = 0.0

    for header, description in SECURITY_HEADERS.items():
        value = lowered.get(header.lower())
        present = value is not None
        status = _evaluate(header, value) if present else BAD
        points += STATUS_POINTS[status]

        findings.append(
            {
                "name": header,
                "present": present,
                "value": value,
                "status": status,
                "description": description,
            }
        )

        if status != GOOD:
            issues.append(
                {
                    "title": f"Missing or improper {header} header",
                    "description": (
                        f"The {header} header is present but not properly configured: {value}"
                        if present
                        else f"The {header} header is missing. {description}"
                    ),
                    "severity": "medium" if status == WARNING else "high",
                }
            )

    score = min(100, round(points / len(SECURITY_HEADERS) * 100))

    return {
        "score": score,
        "grade": grade_for_score(score),
        "headers": findings,
        "issues": issues,
    }


class SecurityHeadersChecker(BaseAuditRunner):
    """
    Checks a site's HTTP response headers against a fixed rubric.

    One HEAD request, no retries. A network failure is reported as a
    FAILED result for the orchestrator to handle.
    """

    @property
    def name(self) -> str:
        return "security_headers"

    def run(self, url: str) -> AuditResult:
        url = validate_url(url)

        try:
            with httpx.Client(
                timeout=self.settings.http_timeout,
                follow_redirects=True,
                headers={"User-Agent": self.settings.user_agent},
            ) as client:
                response = client.head(url)
        except httpx.HTTPError as e:
            logger.error(f"Security header check failed for {url}: {e}")
            return AuditResult.failed(f"Failed to check security headers: {e}")

        return AuditResult.real(score_headers(response.headers))

    def mock(self) -> AuditResult:
        return AuditResult.mock(copy.deepcopy(MOCK_SECURITY_RESULT))
