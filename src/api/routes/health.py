"""Health check endpoint."""

import logging
from datetime import datetime, timezone

import redis.asyncio as redis
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import HealthResponse, ServiceHealth
from config import Settings, get_settings
from db.session import get_db_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def check_database(db: AsyncSession = Depends(get_db_session)) -> ServiceHealth:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return ServiceHealth(status="error", message=str(e))
    return ServiceHealth(status="ok")


async def check_redis(settings: Settings = Depends(get_settings)) -> ServiceHealth:
    client = redis.from_url(settings.redis_url, socket_connect_timeout=2, socket_timeout=2)
    try:
        if not await client.ping():
            return ServiceHealth(status="error", message="Redis ping failed")
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        return ServiceHealth(status="error", message=str(e))
    finally:
        await client.aclose()
    return ServiceHealth(status="ok")


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
    summary="Health check",
    description="Check the API, database and Redis. Returns 503 when any is down.",
)
async def health_check(
    response: Response,
    settings: Settings = Depends(get_settings),
    database: ServiceHealth = Depends(check_database),
    redis_health: ServiceHealth = Depends(check_redis),
) -> HealthResponse:
    """Return service health status."""
    services = {
        "api": ServiceHealth(status="ok"),
        "database": database,
        "redis": redis_health,
    }
    degraded = any(service.status != "ok" for service in services.values())
    if degraded:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="degraded" if degraded else "ok",
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        environment=settings.environment,
        services=services,
    )
