"""
Domain service: Alert deduplication gate.

A second alert of the same type for the same subject is suppressed while the
most recent one is younger than the dedup window. The window is wall-clock
and measured at check time. Naive datetimes are read as UTC.
"""
import datetime as dt
import logging
from typing import Iterable, Optional

from livestock_analytics.domain.models import AlertType, Notification, as_utc

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_WINDOW = dt.timedelta(hours=24)


def most_recent_alert(
    subject_id: str,
    alert_type: AlertType,
    recent_alerts: Iterable[Notification],
) -> Optional[Notification]:
    """Latest alert of `alert_type` whose metadata names `subject_id`."""
    matching = [
        alert for alert in recent_alerts
        if alert.type == alert_type and alert.subject_id == subject_id
    ]
    if not matching:
        return None
    return max(matching, key=lambda alert: alert.created_at)


def should_create_alert(
    subject_id: str,
    alert_type: AlertType,
    recent_alerts: Iterable[Notification],
    now: dt.datetime,
    window: dt.timedelta = DEFAULT_DEDUP_WINDOW,
) -> bool:
    """
    Decide whether a new alert may be created.

    Args:
        subject_id: Entity the alert is about (batch, inventory item, invoice)
        alert_type: Notification type of the candidate
        recent_alerts: Previously created alerts; other subjects/types are ignored
        now: Time of the check
        window: Dedup window

    Returns:
        False iff a matching alert was created less than `window` before `now`
    """
    latest = most_recent_alert(subject_id, alert_type, recent_alerts)
    if latest is None:
        return True

    age = as_utc(now) - as_utc(latest.created_at)
    if age < window:
        logger.debug(
            f"Suppressing {alert_type.value} for {subject_id}: "
            f"previous alert is {age} old"
        )
        return False
    return True


def dedup_bucket(now: dt.datetime, window: dt.timedelta = DEFAULT_DEDUP_WINDOW) -> int:
    """Index of the fixed window containing `now`, counted from the Unix epoch."""
    return int(as_utc(now).timestamp() // window.total_seconds())


def dedup_key(
    subject_id: str,
    alert_type: AlertType,
    now: dt.datetime,
    window: dt.timedelta = DEFAULT_DEDUP_WINDOW,
) -> str:
    """
    Uniqueness key the record store enforces on insert.

    Two inserts for the same subject and type in the same bucket collide, so
    racing evaluations cannot both write.
    """
    return f"{subject_id}:{alert_type.value}:{dedup_bucket(now, window)}"
