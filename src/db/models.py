"""SQLAlchemy database models for the scan pipeline."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ScanStatus(str, enum.Enum):
    """Status of a scan. Only ever moves forward."""

    PENDING = "pending"          # Scan queued, not yet picked up
    IN_PROGRESS = "in-progress"  # Worker is running audits
    COMPLETED = "completed"      # All audits ran, rows written
    FAILED = "failed"            # Unrecoverable error, see Scan.error

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.FAILED)


# Allowed forward moves; anything else is rejected by the repository.
SCAN_TRANSITIONS: dict[ScanStatus, set[ScanStatus]] = {
    ScanStatus.PENDING: {ScanStatus.IN_PROGRESS, ScanStatus.COMPLETED, ScanStatus.FAILED},
    ScanStatus.IN_PROGRESS: {ScanStatus.COMPLETED, ScanStatus.FAILED},
    ScanStatus.COMPLETED: set(),
    ScanStatus.FAILED: set(),
}


class Category(str, enum.Enum):
    """Categories shared by metrics, issues and recommendations."""

    PERFORMANCE = "performance"
    ACCESSIBILITY = "accessibility"
    SEO = "seo"
    BEST_PRACTICES = "best-practices"
    SECURITY = "security"


class Severity(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PlanType(str, enum.Enum):
    FREE = "free"
    PREMIUM = "premium"


class AlertCondition(str, enum.Enum):
    ABOVE = "above"
    BELOW = "below"


class Website(Base):
    """
    A site registered by a user.

    Websites are created the first time a user scans a URL and are
    soft-disabled through ``is_active``.
    """

    __tablename__ = "websites"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Owner; the users table lives in Supabase auth
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    url: Mapped[str] = mapped_column(String(2048), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    scans: Mapped[list["Scan"]] = relationship(
        back_populates="website",
        cascade="all, delete-orphan",
        order_by="Scan.created_at",
    )


class Scan(Base):
    """
    One execution of the audit pipeline against a website.

    Metrics and issues are only authoritative once status is COMPLETED.
    """

    __tablename__ = "scans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    website_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("websites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status: Mapped[ScanStatus] = mapped_column(
        Enum(ScanStatus, name="scan_status", values_callable=_enum_values),
        default=ScanStatus.PENDING,
        nullable=False,
        index=True,
    )

    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    website: Mapped["Website"] = relationship(back_populates="scans", lazy="joined")
    metrics: Mapped[list["Metric"]] = relationship(
        back_populates="scan",
        cascade="all, delete-orphan",
    )
    issues: Mapped[list["Issue"]] = relationship(
        back_populates="scan",
        cascade="all, delete-orphan",
    )
    recommendations: Mapped[list["Recommendation"]] = relationship(
        back_populates="scan",
        cascade="all, delete-orphan",
    )


class Metric(Base):
    """
    A single measured value for a scan, e.g. "Performance Score" or
    "Largest Contentful Paint".

    Names are expected to be unique per scan but this is not enforced.
    """

    __tablename__ = "metrics"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    scan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("scans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False)

    scan: Mapped["Scan"] = relationship(back_populates="metrics")


class Issue(Base):
    """A diagnostic finding, e.g. an accessibility violation."""

    __tablename__ = "issues"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    scan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("scans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)

    scan: Mapped["Scan"] = relationship(back_populates="issues")


class Recommendation(Base):
    """
    An actionable fix generated for premium users after a scan completes.
    """

    __tablename__ = "recommendations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    scan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("scans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    rule_id: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    implementation_details: Mapped[str] = mapped_column(Text, nullable=False)
    impact: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    effort: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    priority_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    reference_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    scan: Mapped["Scan"] = relationship(back_populates="recommendations")


class Subscription(Base):
    """
    A user's billing plan. Billing itself is handled by Stripe; only the
    fields needed to gate result detail are read here.
    """

    __tablename__ = "subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    plan_type: Mapped[str] = mapped_column(String(32), nullable=False, default=PlanType.FREE.value)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    current_period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    @property
    def is_premium(self) -> bool:
        return self.status == "active" and self.plan_type == PlanType.PREMIUM.value


class Alert(Base):
    """
    A user's threshold on one metric of a website, e.g. "Performance Score
    below 80". Checked after every completed scan of that website.
    """

    __tablename__ = "alerts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    website_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("websites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    metric_name: Mapped[str] = mapped_column(String(255), nullable=False)
    threshold: Mapped[float] = mapped_column(Float, nullable=False)
    condition: Mapped[AlertCondition] = mapped_column(
        Enum(AlertCondition, name="alert_condition", values_callable=_enum_values),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    website: Mapped["Website"] = relationship(lazy="joined")

    def is_triggered_by(self, value: float) -> bool:
        if self.condition == AlertCondition.ABOVE:
            return value > self.threshold
        return value < self.threshold


class AlertTrigger(Base):
    """One alert firing for one scan."""

    __tablename__ = "alert_triggers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    alert_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("alerts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    scan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("scans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    metric_value: Mapped[float] = mapped_column(Float, nullable=False)
    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    triggered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    alert: Mapped["Alert"] = relationship()
