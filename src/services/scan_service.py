"""Scan orchestration: create scans, run audits, persist results."""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, sessionmaker

from audits import (
    AuditResult,
    AxeRunner,
    BaseAuditRunner,
    LighthouseRunner,
    SecurityHeadersChecker,
    validate_url,
)
from config import Settings
from core.exceptions import NotFoundError, UpstreamToolError
from db.models import Category, Issue, Metric, Scan, ScanStatus, Severity
from db.repositories import (
    ScanRepository,
    WebsiteRepository,
    active_subscription_query,
    apply_status_transition,
)
from recommendations import RecommendationEngine
from services.alerts import check_alerts_for_scan, send_alert_notifications

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

# Metric name -> (threshold, unit); breaching it raises a performance issue
PERFORMANCE_THRESHOLDS = {
    "First Contentful Paint": (1800, "ms"),
    "Largest Contentful Paint": (2500, "ms"),
    "Cumulative Layout Shift": (0.1, None),
    "Total Blocking Time": (200, "ms"),
    "Speed Index": (3400, "ms"),
    "Server Response Time": (100, "ms"),
}

IMPACT_SEVERITY = {
    "critical": Severity.HIGH.value,
    "serious": Severity.HIGH.value,
    "moderate": Severity.MEDIUM.value,
    "minor": Severity.LOW.value,
}


@dataclass
class ScanOutcome:
    """What happened to a scan after the worker processed it."""

    scan_id: uuid.UUID
    status: ScanStatus
    error: str | None = None
    sources: dict[str, str] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "scan_id": str(self.scan_id),
            "status": self.status.value,
            "error": self.error,
            "sources": self.sources,
        }


async def initiate_scan(session: AsyncSession, url: str, user_id: uuid.UUID) -> Scan:
    """
    Create a pending scan for ``url`` on behalf of ``user_id``.

    The user's Website row is reused if it exists and created otherwise.
    Two scans of the same site may run at once; each gets its own row.
    """
    url = validate_url(url)
    website = await WebsiteRepository(session).get_or_create_for_user(user_id, url)
    scan = await ScanRepository(session).create(website.id)
    logger.info(f"Created scan {scan.id} for {url} (website {website.id})")
    return scan


def map_impact_to_severity(impact: str | None) -> str:
    return IMPACT_SEVERITY.get((impact or "").lower(), Severity.MEDIUM.value)


def build_report(
    lighthouse: AuditResult,
    axe: AuditResult,
    security: AuditResult,
) -> dict:
    """
    Merge the three audit payloads into one report.

    The Axe score and violations replace Lighthouse's accessibility
    section.
    """
    report = {
        "performance": lighthouse.data["performance"],
        "accessibility": lighthouse.data["accessibility"],
        "seo": lighthouse.data["seo"],
        "best_practices": lighthouse.data["best_practices"],
        "security": security.data,
    }

    report["accessibility"] = {
        "score": axe.data["score"],
        "issues": [
            {
                "title": violation["id"],
                "description": violation["description"],
                "severity": map_impact_to_severity(violation.get("impact")),
            }
            for violation in axe.data["violations"]
        ],
    }

    return report


def build_metric_rows(scan_id: uuid.UUID, report: dict) -> list[Metric]:
    rows = [
        Metric(
            scan_id=scan_id,
            name=name,
            value=data["value"],
            unit=data.get("unit"),
            category=Category.PERFORMANCE.value,
        )
        for name, data in report["performance"].get("metrics", {}).items()
    ]

    scores = [
        ("Performance Score", "performance", Category.PERFORMANCE),
        ("Accessibility Score", "accessibility", Category.ACCESSIBILITY),
        ("SEO Score", "seo", Category.SEO),
        ("Best Practices Score", "best_practices", Category.BEST_PRACTICES),
        ("Security Score", "security", Category.SECURITY),
    ]
    for name, section, category in scores:
        if report.get(section) is not None:
            rows.append(
                Metric(
                    scan_id=scan_id,
                    name=name,
                    value=report[section]["score"],
                    unit=None,
                    category=category.value,
                )
            )
    return rows


def performance_issues(metrics: dict) -> list[dict]:
    """Issues for metrics above their recommended threshold."""
    issues = []
    for name, data in metrics.items():
        if name not in PERFORMANCE_THRESHOLDS:
            continue
        threshold, unit = PERFORMANCE_THRESHOLDS[name]
        value = data["value"]
        if value <= threshold:
            continue
        suffix = f" {unit}" if unit else ""
        value_unit = f" {data['unit']}" if data.get("unit") else ""
        issues.append(
            {
                "title": f"High {name}",
                "description": (
                    f"{name} is {value}{value_unit}, which is above the "
                    f"recommended threshold of {threshold}{suffix}."
                ),
                "severity": "high" if value > threshold * 1.5 else "medium",
            }
        )
    return issues


def build_issue_rows(scan_id: uuid.UUID, report: dict) -> list[Issue]:
    sections = [
        (Category.PERFORMANCE, performance_issues(report["performance"].get("metrics", {}))),
        (Category.ACCESSIBILITY, report["accessibility"].get("issues", [])),
        (Category.SEO, report["seo"].get("issues", [])),
        (Category.BEST_PRACTICES, report["best_practices"].get("issues", [])),
        (Category.SECURITY, report["security"].get("issues", [])),
    ]
    return [
        Issue(
            scan_id=scan_id,
            title=issue["title"],
            description=issue.get("description") or "",
            severity=issue["severity"],
            category=category.value,
        )
        for category, issues in sections
        for issue in issues
    ]


class ScanService:
    """
    Runs the audit pipeline for a scan and records the outcome.

    Status moves pending -> in-progress -> completed | failed. Metrics,
    issues, recommendations and the completed status are written in one
    transaction, so a completed scan always has its rows.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: Settings,
        lighthouse: BaseAuditRunner | None = None,
        axe: BaseAuditRunner | None = None,
        security: BaseAuditRunner | None = None,
    ):
        self.session_factory = session_factory
        self.settings = settings
        self.lighthouse = lighthouse or LighthouseRunner(settings)
        self.axe = axe or AxeRunner(settings)
        self.security = security or SecurityHeadersChecker(settings)

    def process_scan(
        self,
        scan_id: uuid.UUID,
        progress: ProgressCallback | None = None,
    ) -> ScanOutcome:
        """
        Run all audits for a scan and persist the results.

        Raises:
            NotFoundError: if the scan does not exist. Every other failure
            is recorded on the scan as status=failed and returned.
        """
        report_progress = progress or (lambda _: None)

        with self.session_factory() as session:
            scan = session.get(Scan, scan_id)
            if not scan:
                raise NotFoundError(f"Scan {scan_id} not found")

            if scan.status.is_terminal:
                # Redelivered job for a scan that already finished
                logger.warning(f"Scan {scan_id} already {scan.status.value}, skipping")
                return ScanOutcome(scan_id, scan.status, error=scan.error)

            url = scan.website.url
            owner_id = scan.website.user_id
            if scan.status == ScanStatus.PENDING:
                apply_status_transition(scan, ScanStatus.IN_PROGRESS)
                session.commit()

        logger.info(f"Processing scan {scan_id} for {url}")
        report_progress(10)

        sources: dict[str, str] = {}
        try:
            lighthouse = self._run(self.lighthouse, url, sources)
            report_progress(40)
            axe = self._run(self.axe, url, sources)
            report_progress(70)
            security = self._run(self.security, url, sources)
            report_progress(90)

            report = build_report(lighthouse, axe, security)
            self._store_results(scan_id, owner_id, report)

        except Exception as e:
            logger.exception(f"Scan {scan_id} failed: {e}")
            self._mark_failed(scan_id, str(e))
            return ScanOutcome(scan_id, ScanStatus.FAILED, error=str(e), sources=sources)

        self._check_alerts(scan_id)
        report_progress(100)
        logger.info(f"Scan {scan_id} completed ({sources})")
        return ScanOutcome(scan_id, ScanStatus.COMPLETED, sources=sources)

    def _run(self, runner: BaseAuditRunner, url: str, sources: dict[str, str]) -> AuditResult:
        """Run one audit, applying the mock fallback policy on failure."""
        result = runner.run(url)

        if not result.ok:
            if not self.settings.allow_mock_fallback:
                raise UpstreamToolError(result.error)
            logger.warning(
                f"{runner.name} failed ({result.error}), using mock results"
            )
            result = runner.mock()

        sources[runner.name] = result.kind.value
        return result

    def _store_results(self, scan_id: uuid.UUID, owner_id: uuid.UUID, report: dict) -> None:
        with self.session_factory() as session, session.begin():
            scan = session.get(Scan, scan_id)
            if not scan:
                raise NotFoundError(f"Scan {scan_id} not found")

            session.add_all(build_metric_rows(scan_id, report))
            session.add_all(build_issue_rows(scan_id, report))

            if self._is_premium(session, owner_id):
                RecommendationEngine(session).generate(scan_id, report)

            apply_status_transition(scan, ScanStatus.COMPLETED)

    def _is_premium(self, session: Session, user_id: uuid.UUID) -> bool:
        subscription = session.execute(active_subscription_query(user_id)).scalars().first()
        return bool(subscription and subscription.is_premium)

    def _check_alerts(self, scan_id: uuid.UUID) -> None:
        """Fire threshold alerts for a completed scan. Never fails the scan."""
        try:
            with self.session_factory() as session, session.begin():
                triggers = check_alerts_for_scan(session, scan_id)
                send_alert_notifications(triggers)
        except Exception:
            logger.exception(f"Alert check failed for scan {scan_id}")
            return

        if triggers:
            logger.info(f"Scan {scan_id} triggered {len(triggers)} alert(s)")

    def _mark_failed(self, scan_id: uuid.UUID, error: str) -> None:
        try:
            with self.session_factory() as session, session.begin():
                scan = session.get(Scan, scan_id)
                if scan and not scan.status.is_terminal:
                    apply_status_transition(scan, ScanStatus.FAILED, error=error)
        except SQLAlchemyError:
            logger.exception(f"Could not record failure for scan {scan_id}")
