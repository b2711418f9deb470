"""Repository pattern for database operations used by the API."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InvalidStatusTransition
from db.models import (
    SCAN_TRANSITIONS,
    Issue,
    Metric,
    Recommendation,
    Scan,
    ScanStatus,
    Subscription,
    Website,
)


def website_name_from_url(url: str) -> str:
    """Display name for a website: the URL without scheme and trailing slash."""
    name = url.split("://", 1)[-1]
    return name.rstrip("/") or url


def apply_status_transition(
    scan: Scan,
    status: ScanStatus,
    error: str | None = None,
) -> None:
    """
    Move a scan to a new status, stamping timestamps.

    Raises InvalidStatusTransition for anything that is not a forward move,
    so a completed or failed scan never goes back to pending/in-progress.
    """
    current = ScanStatus(scan.status)
    if status not in SCAN_TRANSITIONS[current]:
        raise InvalidStatusTransition(
            f"Scan {scan.id} cannot move from {current.value} to {status.value}"
        )

    now = datetime.now(timezone.utc)
    scan.status = status
    if status == ScanStatus.IN_PROGRESS:
        scan.started_at = now
    elif status.is_terminal:
        scan.completed_at = now
    if error:
        scan.error = error


def active_subscription_query(user_id: uuid.UUID) -> Select:
    """Newest active subscription first; shared by the API and the worker."""
    return (
        select(Subscription)
        .where(Subscription.user_id == user_id, Subscription.status == "active")
        .order_by(Subscription.created_at.desc())
    )


class WebsiteRepository:
    """Handles Website database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_user(self, user_id: uuid.UUID, url: str) -> Website | None:
        result = await self.session.execute(
            select(Website).where(Website.user_id == user_id, Website.url == url)
        )
        return result.scalars().first()

    async def get_or_create_for_user(self, user_id: uuid.UUID, url: str) -> Website:
        """Return the user's website for ``url``, creating it on first scan."""
        website = await self.get_for_user(user_id, url)
        if website:
            return website

        website = Website(
            user_id=user_id,
            url=url,
            name=website_name_from_url(url),
            is_active=True,
        )
        self.session.add(website)
        await self.session.flush()  # Assigns the ID without committing
        return website


class ScanRepository:
    """Handles all Scan-related database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, website_id: uuid.UUID) -> Scan:
        """Create a new pending scan record."""
        scan = Scan(website_id=website_id, status=ScanStatus.PENDING)
        self.session.add(scan)
        await self.session.flush()
        return scan

    async def get_by_id(self, scan_id: uuid.UUID) -> Scan | None:
        """Retrieve a scan (with its website) by ID."""
        result = await self.session.execute(
            select(Scan).where(Scan.id == scan_id)
        )
        return result.scalars().first()

    async def get_with_website(self, scan_id: uuid.UUID) -> tuple[Scan, Website] | None:
        scan = await self.get_by_id(scan_id)
        if not scan:
            return None
        return scan, scan.website


class MetricRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_scan(self, scan_id: uuid.UUID) -> list[Metric]:
        result = await self.session.execute(
            select(Metric).where(Metric.scan_id == scan_id)
        )
        return list(result.scalars().all())


class IssueRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_scan(self, scan_id: uuid.UUID) -> list[Issue]:
        result = await self.session.execute(
            select(Issue).where(Issue.scan_id == scan_id)
        )
        return list(result.scalars().all())


class RecommendationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_scan(self, scan_id: uuid.UUID) -> list[Recommendation]:
        """Recommendations for a scan, highest priority first."""
        result = await self.session.execute(
            select(Recommendation)
            .where(Recommendation.scan_id == scan_id)
            .order_by(Recommendation.priority_score.desc())
        )
        return list(result.scalars().all())


class SubscriptionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_for_user(self, user_id: uuid.UUID) -> Subscription | None:
        result = await self.session.execute(active_subscription_query(user_id))
        return result.scalars().first()
