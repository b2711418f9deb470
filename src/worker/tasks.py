"""Celery tasks for running website scans."""

import uuid

from celery.utils.log import get_task_logger

from config import settings
from core.exceptions import NotFoundError
from db.session import SyncSessionLocal
from services.scan_service import ScanService
from worker import events  # noqa: F401  (connects lifecycle signal handlers)
from worker.celery_app import celery_app

# Logger for tasks
logger = get_task_logger(__name__)

# One orchestrator per worker process, using the synchronous session factory
# (Celery doesn't play well with async, so we use sync SQLAlchemy here)
scan_service = ScanService(SyncSessionLocal, settings)


@celery_app.task(bind=True, name="worker.tasks.process_scan")
def process_scan(self, scan_id: str) -> dict:
    """
    Run every audit for a scan and store the results.

    Scan failures are recorded on the scan row and returned, never raised,
    so the job itself only fails for an unknown scan id.
    """
    logger.info(f"Starting scan {scan_id}")

    def report_progress(progress: int) -> None:
        self.update_state(state="PROGRESS", meta={"progress": progress})

    try:
        outcome = scan_service.process_scan(uuid.UUID(scan_id), progress=report_progress)
    except NotFoundError as e:
        logger.error(str(e))
        raise

    logger.info(f"Scan {scan_id} finished with status {outcome.status.value}")
    return outcome.as_dict()
