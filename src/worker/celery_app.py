"""Celery application configuration."""

from celery import Celery
from celery.signals import setup_logging

from config import settings
from core.logging import configure_logging

SCAN_QUEUE = "scans"

# Create Celery app
celery_app = Celery(
    "webvital",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Configure Celery
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task routing - all scan tasks go to the "scans" queue
    task_routes={
        "worker.tasks.*": {"queue": SCAN_QUEUE},
    },

    # Task execution settings
    task_acks_late=True,  # Acknowledge after task completes
    task_reject_on_worker_lost=True,  # Requeue if worker dies
    task_track_started=True,  # STARTED state lets the API report "active"
    worker_prefetch_multiplier=1,  # One task at a time (scans are heavy)

    # Development only: run jobs in-process instead of through Redis
    task_always_eager=settings.celery_task_always_eager,
    task_store_eager_result=settings.celery_task_always_eager,

    # Result expiration (24 hours)
    result_expires=86400,

    # Retry settings for broker connection
    broker_connection_retry_on_startup=True,
)

# Auto-discover tasks from the worker.tasks module
celery_app.autodiscover_tasks(["worker"])


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    """Use the application's log format instead of Celery's."""
    configure_logging(settings)
