"""
Application service: Turn alert candidates into persisted notifications.
"""
import asyncio
import datetime as dt
import logging
import weakref
from dataclasses import dataclass, field
from typing import Hashable, Optional, Sequence

from livestock_analytics.config import settings
from livestock_analytics.domain.alerts import AlertCandidate
from livestock_analytics.domain.models import (
    AlertType,
    Notification,
    NotificationPreferences,
    as_utc,
)
from livestock_analytics.infrastructure.record_store_client import (
    DuplicateAlertError,
    RecordStoreClient,
    RecordStoreError,
)
from livestock_analytics.services.domain.deduplication import dedup_key, should_create_alert

logger = logging.getLogger(__name__)


@dataclass
class DispatchFailure:
    """A subject whose alert could not be checked or persisted."""
    subject_id: str
    alert_type: Optional[AlertType]
    error: str
    status_code: int = 502


@dataclass
class DispatchResult:
    notifications: list[Notification] = field(default_factory=list)
    failures: list[DispatchFailure] = field(default_factory=list)

    def extend(self, other: "DispatchResult") -> None:
        self.notifications.extend(other.notifications)
        self.failures.extend(other.failures)


class KeyedLocks:
    """
    One asyncio lock per key, held only while someone uses it.

    A lock is dropped from the table once no task holds or awaits it, so
    the table does not grow with every subject ever seen.
    """

    def __init__(self):
        self._locks: weakref.WeakValueDictionary[Hashable, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


class NotificationDispatcher:
    """
    Application service that gates and persists alert candidates.

    For each candidate, in order:
    1. Deduplication against the most recent alert of the same type and subject
    2. The owning user's notification preference
    3. Insert, keyed by a dedup bucket the record store enforces as unique

    The preference check runs after dedup and before any write, so an alert
    suppressed by preference never consumes the dedup window. Check and
    insert for one (farm, subject, type) run under a lock so concurrent
    triggers in this process cannot both pass the gate.
    """

    def __init__(
        self,
        record_store: RecordStoreClient,
        dedup_window: Optional[dt.timedelta] = None,
    ):
        """
        Initialize the dispatcher with dependencies.

        Args:
            record_store: Record store used to query and insert notifications
            dedup_window: Dedup window (defaults to the configured hours)
        """
        self.record_store = record_store
        self.dedup_window = dedup_window or dt.timedelta(hours=settings.dedup_window_hours)
        self._locks = KeyedLocks()

    async def dispatch(
        self,
        candidates: Sequence[AlertCandidate],
        user_id: str,
        farm_id: Optional[str],
        preferences: NotificationPreferences,
        now: dt.datetime,
    ) -> DispatchResult:
        """
        Dispatch alert candidates for one user.

        A record store failure on one candidate is recorded and the
        remaining candidates are still dispatched.

        Returns:
            DispatchResult with the notifications created and the failures
        """
        now = as_utc(now)
        result = DispatchResult()

        for candidate in candidates:
            try:
                notification = await self._dispatch_one(
                    candidate, user_id, farm_id, preferences, now
                )
            except RecordStoreError as e:
                logger.error(
                    f"Failed to dispatch {candidate.alert_type.value} "
                    f"for {candidate.subject_id}: {e.message}"
                )
                result.failures.append(DispatchFailure(
                    subject_id=candidate.subject_id,
                    alert_type=candidate.alert_type,
                    error=e.message,
                    status_code=e.status_code,
                ))
                continue

            if notification is not None:
                result.notifications.append(notification)

        return result

    async def _dispatch_one(
        self,
        candidate: AlertCandidate,
        user_id: str,
        farm_id: Optional[str],
        preferences: NotificationPreferences,
        now: dt.datetime,
    ) -> Optional[Notification]:
        alert_type = candidate.alert_type
        subject_id = candidate.subject_id

        async with self._locks.lock((farm_id, subject_id, alert_type)):
            recent = await self.record_store.get_recent_notifications(
                user_id=user_id,
                alert_type=alert_type,
                subject_id=subject_id,
                since=now - self.dedup_window,
            )
            if not should_create_alert(subject_id, alert_type, recent, now, self.dedup_window):
                return None

            if not preferences.allows(alert_type):
                logger.debug(f"User {user_id} has {alert_type.value} notifications disabled")
                return None

            notification = candidate.to_notification(user_id, farm_id, now)
            try:
                created = await self.record_store.create_notification(
                    notification,
                    dedup_key(subject_id, alert_type, now, self.dedup_window),
                )
            except DuplicateAlertError:
                logger.info(
                    f"Record store already holds {alert_type.value} for {subject_id} "
                    f"in this window; skipping"
                )
                return None

        logger.info(f"Created {alert_type.value} notification for {subject_id}")
        return created
