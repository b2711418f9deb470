import uuid
from datetime import datetime, timezone

from db.models import Issue, Metric, Recommendation, Scan, ScanStatus
from services.results import build_scan_result, filter_for_tier


def _scan_result():
    scan = Scan(
        id=uuid.uuid4(),
        website_id=uuid.uuid4(),
        status=ScanStatus.COMPLETED,
        completed_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    metrics = [
        Metric(name="Performance Score", value=81, unit=None, category="performance"),
        Metric(name="Largest Contentful Paint", value=3100, unit="ms", category="performance"),
        Metric(name="Accessibility Score", value=92, unit=None, category="accessibility"),
        Metric(name="Best Practices Score", value=87, unit=None, category="best-practices"),
        Metric(name="Security Score", value=71, unit=None, category="security"),
    ]
    issues = [
        Issue(title="High Largest Contentful Paint", description="slow", severity="medium", category="performance"),
        Issue(title="Uses HTTPS", description="", severity="low", category="best-practices"),
        Issue(title="Meta description", description="", severity="medium", category="seo"),
    ]
    recommendations = [
        Recommendation(
            id=uuid.uuid4(),
            rule_id="slow-lcp",
            category="performance",
            priority="high",
            title="Improve Largest Contentful Paint",
            description="d",
            implementation_details="f",
            impact=9,
            effort=5,
            priority_score=18.0,
        )
    ]
    return build_scan_result(scan, "https://example.com", metrics, issues, recommendations)


def test_build_scan_result():
    result = _scan_result()

    assert result["url"] == "https://example.com"
    assert result["status"] == "completed"
    assert result["completed_at"] == "2026-01-01T00:00:00+00:00"
    assert result["performance"]["score"] == 81
    assert result["performance"]["metrics"] == {"Largest Contentful Paint": {"value": 3100, "unit": "ms"}}
    assert result["performance"]["issues"][0]["title"] == "High Largest Contentful Paint"
    assert result["best_practices"]["issues"][0]["title"] == "Uses HTTPS"
    assert result["security"]["grade"] == "B"
    assert result["recommendations"][0]["title"] == "Improve Largest Contentful Paint"


def test_section_without_score_is_omitted():
    result = _scan_result()

    # An SEO issue without an SEO score has nowhere to go
    assert "seo" not in result


def test_premium_gets_full_result():
    result = _scan_result()
    assert filter_for_tier(result, premium=True) == result


def test_free_tier_redacts_details():
    filtered = filter_for_tier(_scan_result(), premium=False)

    assert filtered["performance"] == {"score": 81}
    assert filtered["accessibility"] == {"score": 92}
    assert filtered["security"] == {"score": 71, "grade": "B"}
    assert "recommendations" not in filtered
    assert set(filtered) == {
        "id",
        "url",
        "status",
        "error",
        "completed_at",
        "performance",
        "accessibility",
        "best_practices",
        "security",
    }
