"""
Job lifecycle events.

Celery task signals are translated into ``on_active`` / ``on_completed`` /
``on_failed`` calls on every registered listener. Listeners must not raise;
an exception from one listener is logged and the others still run.
"""

import logging

from celery.signals import task_failure, task_prerun, task_success

logger = logging.getLogger(__name__)

SCAN_TASK_NAME = "worker.tasks.process_scan"


class QueueListener:
    """Observer for scan job lifecycle events. Override what you need."""

    def on_active(self, scan_id: str) -> None:
        pass

    def on_completed(self, scan_id: str, result: dict | None) -> None:
        pass

    def on_failed(self, scan_id: str, error: str) -> None:
        pass


class LoggingQueueListener(QueueListener):
    def on_active(self, scan_id: str) -> None:
        logger.info(f"Scan job {scan_id} active")

    def on_completed(self, scan_id: str, result: dict | None) -> None:
        status = (result or {}).get("status")
        logger.info(f"Scan job {scan_id} completed (scan status: {status})")

    def on_failed(self, scan_id: str, error: str) -> None:
        logger.error(f"Scan job {scan_id} failed: {error}")


_listeners: list[QueueListener] = [LoggingQueueListener()]


def register_listener(listener: QueueListener) -> None:
    if listener not in _listeners:
        _listeners.append(listener)


def unregister_listener(listener: QueueListener) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


def _notify(event: str, *args) -> None:
    for listener in list(_listeners):
        try:
            getattr(listener, event)(*args)
        except Exception:
            logger.exception(f"Queue listener {listener!r} failed handling {event}")


def _is_scan_task(sender) -> bool:
    return getattr(sender, "name", sender) == SCAN_TASK_NAME


@task_prerun.connect
def _on_task_prerun(sender=None, task_id=None, **kwargs) -> None:
    if _is_scan_task(sender):
        _notify("on_active", task_id)


@task_success.connect
def _on_task_success(sender=None, result=None, **kwargs) -> None:
    if _is_scan_task(sender):
        _notify("on_completed", sender.request.id, result)


@task_failure.connect
def _on_task_failure(sender=None, task_id=None, exception=None, **kwargs) -> None:
    if _is_scan_task(sender):
        _notify("on_failed", task_id, str(exception))
