"""Scan API endpoints."""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    CurrentUser,
    get_current_user,
    get_owned_scan,
    is_premium_user,
    parse_scan_id,
)
from api.schemas import (
    ErrorResponse,
    ScanCreatedData,
    ScanCreatedResponse,
    ScanCreateRequest,
    ScanResultsResponse,
    ScanStatusData,
    ScanStatusResponse,
)
from core.exceptions import NotFoundError, ScanError
from db.models import ScanStatus
from db.repositories import apply_status_transition
from db.session import get_db_session
from services.results import filter_for_tier, get_scan_result
from services.scan_service import initiate_scan
from worker.queue import ScanQueue, get_scan_queue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scan", tags=["Scans"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=ScanCreatedResponse,
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    summary="Create a new scan",
    description="Queue a new website scan. Returns immediately with the scan ID.",
)
async def create_scan(
    request: ScanCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    queue: ScanQueue = Depends(get_scan_queue),
) -> ScanCreatedResponse:
    """
    Create a new scan job.

    The scan row is committed before the job is queued so the worker can
    always load it. Poll GET /scan/status?id= for progress.
    """
    scan = await initiate_scan(db, request.url, user.id)
    await db.commit()

    try:
        queue.enqueue(scan.id)
    except Exception as e:
        logger.exception(f"Failed to enqueue scan {scan.id}: {e}")
        apply_status_transition(scan, ScanStatus.FAILED, error="Failed to queue scan")
        await db.commit()
        raise ScanError("Failed to queue scan")

    return ScanCreatedResponse(data=ScanCreatedData(scan_id=scan.id))


@router.get(
    "/status",
    response_model=ScanStatusResponse,
    responses=ERROR_RESPONSES,
    summary="Get scan status",
    description="Current status and progress of a scan. Never modifies the scan.",
)
async def get_scan_status(
    scan_id: str | None = Query(default=None, alias="id"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    queue: ScanQueue = Depends(get_scan_queue),
) -> ScanStatusResponse:
    scan = await get_owned_scan(db, parse_scan_id(scan_id), user)

    # Finished scans are answered from the database alone
    if scan.status.is_terminal:
        progress, error = 100, scan.error
    else:
        job = queue.job_status(scan.id)
        progress, error = job.progress, job.error or scan.error

    return ScanStatusResponse(
        data=ScanStatusData(
            id=scan.id,
            website_id=scan.website_id,
            status=scan.status.value,
            progress=progress,
            error=error,
            completed_at=scan.completed_at,
        )
    )


@router.get(
    "/results",
    response_model=ScanResultsResponse,
    responses=ERROR_RESPONSES,
    summary="Get scan results",
    description="Scan results; free plans see category scores only.",
)
async def get_scan_results(
    scan_id: str | None = Query(default=None, alias="id"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ScanResultsResponse:
    scan = await get_owned_scan(db, parse_scan_id(scan_id), user)

    result = await get_scan_result(db, scan.id)
    if result is None:
        raise NotFoundError("Scan results not found")

    premium = await is_premium_user(db, user)
    return ScanResultsResponse(data=filter_for_tier(result, premium), is_premium=premium)
