"""Assemble stored scan rows into a result and redact it by subscription tier."""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from audits.security_headers import grade_for_score
from db.models import Category, Issue, Metric, Recommendation, Scan
from db.repositories import (
    IssueRepository,
    MetricRepository,
    RecommendationRepository,
    ScanRepository,
)

# Stored metric name -> result section holding that score
SCORE_METRICS = {
    "Performance Score": "performance",
    "Accessibility Score": "accessibility",
    "SEO Score": "seo",
    "Best Practices Score": "best_practices",
    "Security Score": "security",
}

# Database category -> result section
CATEGORY_SECTIONS = {
    Category.PERFORMANCE.value: "performance",
    Category.ACCESSIBILITY.value: "accessibility",
    Category.SEO.value: "seo",
    Category.BEST_PRACTICES.value: "best_practices",
    Category.SECURITY.value: "security",
}

SECTIONS = ("performance", "accessibility", "seo", "best_practices", "security")


def build_scan_result(
    scan: Scan,
    url: str,
    metrics: list[Metric],
    issues: list[Issue],
    recommendations: list[Recommendation],
) -> dict:
    """
    Rebuild the full (premium) view of a scan from its rows.

    A section appears only when its score metric was stored, so pending,
    running and failed scans come back with no sections at all.
    """
    result: dict = {
        "id": str(scan.id),
        "url": url,
        "status": scan.status.value,
        "error": scan.error,
        "completed_at": scan.completed_at.isoformat() if scan.completed_at else None,
    }

    performance_metrics = {}
    for metric in metrics:
        section = SCORE_METRICS.get(metric.name)
        if section:
            result[section] = {"score": metric.value, "issues": []}
        elif metric.category == Category.PERFORMANCE.value:
            performance_metrics[metric.name] = {"value": metric.value, "unit": metric.unit}

    if "performance" in result:
        result["performance"]["metrics"] = performance_metrics
    if "security" in result:
        result["security"]["grade"] = grade_for_score(result["security"]["score"])

    for issue in issues:
        section = CATEGORY_SECTIONS.get(issue.category)
        if section in result:
            result[section]["issues"].append(
                {
                    "title": issue.title,
                    "description": issue.description,
                    "severity": issue.severity,
                }
            )

    result["recommendations"] = [
        {
            "id": str(rec.id),
            "category": rec.category,
            "priority": rec.priority,
            "title": rec.title,
            "description": rec.description,
            "implementation_details": rec.implementation_details,
            "impact": rec.impact,
            "effort": rec.effort,
            "priority_score": rec.priority_score,
            "reference_url": rec.reference_url,
        }
        for rec in recommendations
    ]

    return result


def filter_for_tier(result: dict, premium: bool) -> dict:
    """
    Redact a scan result for the caller's subscription tier.

    Free callers get category scores (plus the security grade) only: never
    per-metric values, issues or recommendations.
    """
    if premium:
        return result

    filtered = {key: result.get(key) for key in ("id", "url", "status", "error", "completed_at")}
    for section in SECTIONS:
        data = result.get(section)
        if not data:
            continue
        filtered[section] = {"score": data["score"]}
        if section == "security":
            filtered[section]["grade"] = data.get("grade")
    return filtered


async def get_scan_result(session: AsyncSession, scan_id: uuid.UUID) -> dict | None:
    """Load a scan and its rows and assemble the full result."""
    scan = await ScanRepository(session).get_by_id(scan_id)
    if not scan:
        return None

    metrics = await MetricRepository(session).get_by_scan(scan_id)
    issues = await IssueRepository(session).get_by_scan(scan_id)
    recommendations = await RecommendationRepository(session).get_by_scan(scan_id)

    return build_scan_result(scan, scan.website.url, metrics, issues, recommendations)
