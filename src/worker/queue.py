"""API-side handle on the scan job queue."""

import logging
import uuid
from dataclasses import dataclass

from celery.result import AsyncResult

from worker.celery_app import celery_app

logger = logging.getLogger(__name__)

# Celery task state -> job state reported to clients
JOB_STATES = {
    "PENDING": "waiting",
    "RECEIVED": "waiting",
    "RETRY": "waiting",
    "STARTED": "active",
    "PROGRESS": "active",
    "SUCCESS": "completed",
    "FAILURE": "failed",
    "REVOKED": "failed",
}


@dataclass
class JobStatus:
    state: str
    progress: int = 0
    error: str | None = None


class ScanQueue:
    """
    Enqueue scan jobs and read their progress.

    The job id is always the scan id, so one scan maps to exactly one job.
    """

    task_name = "worker.tasks.process_scan"

    def __init__(self, app=celery_app):
        self.app = app

    def enqueue(self, scan_id: uuid.UUID) -> str:
        job_id = str(scan_id)

        if self.app.conf.task_always_eager:
            # send_task ignores eager mode, so run the registered task here
            import worker.tasks  # noqa: F401

            self.app.tasks[self.task_name].apply(args=[job_id], task_id=job_id)
            logger.info(f"Ran scan job {job_id} in-process")
            return job_id

        self.app.send_task(self.task_name, args=[job_id], task_id=job_id)
        logger.info(f"Enqueued scan job {job_id}")
        return job_id

    def job_status(self, scan_id: uuid.UUID) -> JobStatus:
        """
        Current state of a scan's job.

        The result backend being unreachable is not an error for callers:
        the job is reported as waiting with no progress.
        """
        result = AsyncResult(str(scan_id), app=self.app)
        try:
            state = result.state
            info = result.info
        except Exception as e:
            logger.warning(f"Could not read job status for {scan_id}: {e}")
            return JobStatus(state="waiting")

        job_state = JOB_STATES.get(state, "waiting")

        if job_state == "completed":
            return JobStatus(state=job_state, progress=100)
        if job_state == "failed":
            return JobStatus(state=job_state, progress=0, error=str(info) if info else None)

        progress = 0
        if isinstance(info, dict):
            progress = int(info.get("progress", 0))
        return JobStatus(state=job_state, progress=progress)


def get_scan_queue() -> ScanQueue:
    """FastAPI dependency for the scan queue."""
    return ScanQueue()
