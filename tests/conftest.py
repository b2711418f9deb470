"""
Test configuration and fixtures for the WebVital Scanner.

A SQLite file stands in for Postgres: the API reaches it through aiosqlite
and the scan service through the plain sqlite driver, both on the same file.
Audit runners, the job queue and Redis are replaced with in-process fakes.
"""

import copy
import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from typing import Generator

test_db_path = os.environ.setdefault("WEBVITAL_TEST_DB_PATH", tempfile.mktemp(suffix=".db"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_path}"
os.environ["ENVIRONMENT"] = "test"
os.environ["TESTING_MODE"] = "true"

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from api.routes.health import check_redis
from api.schemas import ServiceHealth
from audits.axe import MOCK_AXE_RESULT
from audits.base import AuditResult, BaseAuditRunner
from audits.lighthouse import MOCK_REPORT
from audits.security_headers import MOCK_SECURITY_RESULT
from config import Settings, get_settings
from db.models import (
    Alert,
    AlertCondition,
    AlertTrigger,
    Base,
    Issue,
    Metric,
    PlanType,
    Recommendation,
    Scan,
    ScanStatus,
    Subscription,
    Website,
)
from db.session import SyncSessionLocal, get_db_session, sync_engine
from services.scan_service import ScanService
from worker.queue import JobStatus, get_scan_queue

JWT_SECRET = "test-secret-that-is-long-enough-for-hs256-signing"

TEST_USER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
OTHER_USER_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")

# NullPool: every request gets a fresh aiosqlite connection on the
# TestClient's event loop
test_async_engine = create_async_engine(os.environ["DATABASE_URL"], poolclass=NullPool)
async_session_factory = async_sessionmaker(test_async_engine, class_=AsyncSession, expire_on_commit=False)


async def override_get_db_session():
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "testing_mode": True,
        "use_mock_results": False,
        "database_url": os.environ["DATABASE_URL"],
        "supabase_jwt_secret": JWT_SECRET,
    }
    values.update(overrides)
    return Settings(**values)


def make_token(
    user_id: uuid.UUID,
    role: str = "authenticated",
    secret: str = JWT_SECRET,
    expires_in: timedelta = timedelta(hours=1),
    audience: str | None = "authenticated",
) -> str:
    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    if audience is not None:
        payload["aud"] = audience
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id: uuid.UUID = TEST_USER_ID, role: str = "authenticated") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role=role)}"}


class FakeQueue:
    """Records enqueued scans and serves canned job states."""

    def __init__(self):
        self.enqueued: list[str] = []
        self.status_calls: list[str] = []
        self.statuses: dict[str, JobStatus] = {}

    def enqueue(self, scan_id: uuid.UUID) -> str:
        self.enqueued.append(str(scan_id))
        return str(scan_id)

    def job_status(self, scan_id: uuid.UUID) -> JobStatus:
        self.status_calls.append(str(scan_id))
        return self.statuses.get(str(scan_id), JobStatus(state="waiting"))


class FakeRunner(BaseAuditRunner):
    """Audit runner returning a fixed result, counting calls."""

    def __init__(self, settings: Settings, name: str, result: AuditResult, mock_data: dict):
        super().__init__(settings)
        self._name = name
        self.result = result
        self.mock_data = mock_data
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def run(self, url: str) -> AuditResult:
        self.calls.append(url)
        return self.result

    def mock(self) -> AuditResult:
        return AuditResult.mock(copy.deepcopy(self.mock_data))


def fake_runners(settings: Settings, failing: tuple[str, ...] = ()) -> dict[str, FakeRunner]:
    """Runners that succeed with the mock payloads, except those named in ``failing``."""
    payloads = {
        "lighthouse": MOCK_REPORT,
        "axe": MOCK_AXE_RESULT,
        "security": MOCK_SECURITY_RESULT,
    }
    runners = {}
    for key, payload in payloads.items():
        if key in failing:
            result = AuditResult.failed(f"{key} exploded")
        else:
            result = AuditResult.real(copy.deepcopy(payload))
        runners[key] = FakeRunner(settings, key, result, payload)
    return runners


def make_scan_service(settings: Settings, runners: dict[str, FakeRunner]) -> ScanService:
    return ScanService(
        SyncSessionLocal,
        settings,
        lighthouse=runners["lighthouse"],
        axe=runners["axe"],
        security=runners["security"],
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    Base.metadata.create_all(sync_engine)
    yield
    Base.metadata.drop_all(sync_engine)
    sync_engine.dispose()
    if os.path.exists(test_db_path):
        os.remove(test_db_path)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with SyncSessionLocal() as session, session.begin():
        for model in (AlertTrigger, Alert, Recommendation, Issue, Metric, Scan, Website, Subscription):
            session.execute(delete(model))


def create_scan(
    user_id: uuid.UUID = TEST_USER_ID,
    url: str = "https://example.com",
    status: ScanStatus = ScanStatus.PENDING,
    error: str | None = None,
) -> uuid.UUID:
    with SyncSessionLocal() as session, session.begin():
        website = Website(user_id=user_id, url=url, name=url.split("://", 1)[-1])
        session.add(website)
        session.flush()
        scan = Scan(website_id=website.id, status=status, error=error)
        if status.is_terminal:
            scan.completed_at = datetime.now(timezone.utc)
        session.add(scan)
        session.flush()
        return scan.id


def create_subscription(user_id: uuid.UUID, plan_type: str = PlanType.PREMIUM.value, status: str = "active"):
    with SyncSessionLocal() as session, session.begin():
        session.add(Subscription(user_id=user_id, plan_type=plan_type, status=status))


def create_alert(
    scan_id: uuid.UUID,
    metric_name: str,
    threshold: float,
    condition: AlertCondition,
    is_active: bool = True,
    user_id: uuid.UUID | None = None,
) -> uuid.UUID:
    """Alert on the website of ``scan_id``, owned by its owner unless ``user_id`` is given."""
    with SyncSessionLocal() as session, session.begin():
        website = session.get(Scan, scan_id).website
        alert = Alert(
            user_id=user_id or website.user_id,
            website_id=website.id,
            metric_name=metric_name,
            threshold=threshold,
            condition=condition,
            is_active=is_active,
        )
        session.add(alert)
        session.flush()
        return alert.id


def get_scan(scan_id: uuid.UUID) -> Scan:
    with SyncSessionLocal() as session:
        return session.get(Scan, scan_id)


# =============================================================================
# Application fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_queue() -> FakeQueue:
    return FakeQueue()


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from main import app

    return app


@pytest.fixture
def client(test_app, test_settings, fake_queue) -> Generator[TestClient, None, None]:
    """
    TestClient with the database, queue, settings and Redis check replaced.

    Tests that need different settings can reassign
    ``test_app.dependency_overrides[get_settings]``.
    """

    async def redis_ok() -> ServiceHealth:
        return ServiceHealth(status="ok")

    test_app.dependency_overrides[get_db_session] = override_get_db_session
    test_app.dependency_overrides[get_settings] = lambda: test_settings
    test_app.dependency_overrides[get_scan_queue] = lambda: fake_queue
    test_app.dependency_overrides[check_redis] = redis_ok

    with TestClient(test_app) as test_client:
        yield test_client

    test_app.dependency_overrides.clear()
