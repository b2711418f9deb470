"""Metric threshold alerts, checked once a scan has completed."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models import Alert, AlertTrigger, Metric, Scan

logger = logging.getLogger(__name__)


def check_alerts_for_scan(session: Session, scan_id: uuid.UUID) -> list[AlertTrigger]:
    """
    Record a trigger for every active alert the scan's metrics breach.

    Only alerts owned by the website's owner are considered. When a metric
    name appears more than once the first row wins.
    """
    scan = session.get(Scan, scan_id)
    if not scan:
        return []

    values: dict[str, float] = {}
    for metric in session.execute(select(Metric).where(Metric.scan_id == scan_id)).scalars():
        values.setdefault(metric.name, metric.value)

    alerts = session.execute(
        select(Alert).where(
            Alert.website_id == scan.website_id,
            Alert.user_id == scan.website.user_id,
            Alert.is_active.is_(True),
        )
    ).scalars().all()

    triggers = []
    for alert in alerts:
        value = values.get(alert.metric_name)
        if value is None or not alert.is_triggered_by(value):
            continue
        trigger = AlertTrigger(alert=alert, scan_id=scan_id, metric_value=value, notification_sent=False)
        session.add(trigger)
        triggers.append(trigger)

    session.flush()
    return triggers


def send_alert_notifications(triggers: list[AlertTrigger]) -> None:
    # Delivery is a log line for now; the trigger row records that it went out
    for trigger in triggers:
        alert = trigger.alert
        logger.warning(
            f"Alert triggered for {alert.website.url}: {alert.metric_name} is "
            f"{trigger.metric_value} which is {alert.condition.value} threshold {alert.threshold}"
        )
        trigger.notification_sent = True
