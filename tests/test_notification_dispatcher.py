"""
Unit tests for the notification dispatcher.

Tests cover:
- Creation and deduplication across evaluations
- Preference suppression without consuming the dedup window
- Record store uniqueness conflicts
- Concurrent dispatch of the same alert and lock cleanup
- Naive timestamps read as UTC
- Isolation of per-candidate failures
"""
import asyncio
import datetime as dt

import pytest

from livestock_analytics.domain.alerts import InvoiceDueAlert, LowBatchStockAlert, LowFeedStockAlert
from livestock_analytics.domain.models import AlertType, NotificationPreferences, Species
from livestock_analytics.infrastructure.record_store_client import RecordStoreError
from livestock_analytics.services.application.notification_dispatcher import (
    KeyedLocks,
    NotificationDispatcher,
)
from livestock_analytics.services.domain.deduplication import dedup_key


def low_stock(batch_id: str = "batch-1") -> LowBatchStockAlert:
    return LowBatchStockAlert(
        batch_id=batch_id,
        batch_name="House 1",
        species=Species.BROILER,
        current_quantity=80,
        remaining_percent=8.0,
    )



def low_feed(item_id: str) -> LowFeedStockAlert:
    return LowFeedStockAlert(item_id=item_id, feed_type="Starter", quantity_kg=2)

@pytest.fixture
def dispatcher(record_store) -> NotificationDispatcher:
    return NotificationDispatcher(record_store, dedup_window=dt.timedelta(hours=24))


@pytest.fixture
def all_enabled() -> NotificationPreferences:
    return NotificationPreferences()


# ============================================================
# Dispatch Tests
# ============================================================

class TestDispatch:
    """Tests for gating and persisting candidates."""

    @pytest.mark.asyncio
    async def test_creates_notification(self, dispatcher, record_store, all_enabled, now):
        """A new candidate becomes a persisted notification."""
        result = await dispatcher.dispatch([low_stock()], "user-1", "farm-1", all_enabled, now)

        assert len(result.notifications) == 1
        assert result.failures == []
        notification = result.notifications[0]
        assert notification.id is not None
        assert notification.type == AlertType.LOW_STOCK
        assert notification.subject_id == "batch-1"
        assert notification.farm_id == "farm-1"
        assert record_store.dedup_keys == {dedup_key("batch-1", AlertType.LOW_STOCK, now)}

    @pytest.mark.asyncio
    async def test_repeat_within_window_is_suppressed(self, dispatcher, record_store, all_enabled, now):
        """The same alert an hour later creates nothing."""
        await dispatcher.dispatch([low_stock()], "user-1", "farm-1", all_enabled, now)
        result = await dispatcher.dispatch(
            [low_stock()], "user-1", "farm-1", all_enabled, now + dt.timedelta(hours=1)
        )

        assert result.notifications == []
        assert len(record_store.notifications) == 1
        assert record_store.insert_attempts == 1

    @pytest.mark.asyncio
    async def test_repeat_after_window_is_created(self, dispatcher, record_store, all_enabled, now):
        """The same alert 25 hours later is created again."""
        await dispatcher.dispatch([low_stock()], "user-1", "farm-1", all_enabled, now)
        result = await dispatcher.dispatch(
            [low_stock()], "user-1", "farm-1", all_enabled, now + dt.timedelta(hours=25)
        )

        assert len(result.notifications) == 1
        assert len(record_store.notifications) == 2

    @pytest.mark.asyncio
    async def test_subjects_are_independent(self, dispatcher, record_store, all_enabled, now):
        """Different subjects and types do not suppress each other."""
        invoice = InvoiceDueAlert(invoice_id="batch-1", invoice_number="INV-1", days_until_due=2)
        result = await dispatcher.dispatch(
            [low_stock("batch-1"), low_stock("batch-2"), invoice], "user-1", "farm-1", all_enabled, now
        )

        assert len(result.notifications) == 3

    @pytest.mark.asyncio
    async def test_naive_history_does_not_block_other_subjects(
        self, dispatcher, record_store, all_enabled, make_notification, now
    ):
        """A stored notification without a timezone is read as UTC."""
        created_at = (now - dt.timedelta(hours=1)).replace(tzinfo=None)
        record_store.notifications.append(make_notification(AlertType.LOW_STOCK, "feed-1", created_at))

        result = await dispatcher.dispatch(
            [low_feed("feed-1"), low_feed("feed-2")], "user-1", "farm-1", all_enabled, now
        )

        assert [n.subject_id for n in result.notifications] == ["feed-2"]
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_naive_now_is_utc(self, dispatcher, record_store, all_enabled, now):
        await dispatcher.dispatch([low_stock()], "user-1", "farm-1", all_enabled, now)
        later = (now + dt.timedelta(hours=1)).replace(tzinfo=None)

        result = await dispatcher.dispatch([low_stock()], "user-1", "farm-1", all_enabled, later)

        assert result.notifications == []
        assert result.failures == []


# ============================================================
# Preference Tests
# ============================================================

class TestPreferences:
    """Tests for user notification preferences."""

    @pytest.mark.asyncio
    async def test_disabled_type_is_not_written(self, dispatcher, record_store, now):
        preferences = NotificationPreferences.model_validate({"lowStock": False})

        result = await dispatcher.dispatch([low_stock()], "user-1", "farm-1", preferences, now)

        assert result.notifications == []
        assert record_store.insert_attempts == 0

    @pytest.mark.asyncio
    async def test_suppressed_alert_does_not_consume_window(self, dispatcher, record_store, now):
        """Re-enabling a type inside the window delivers the alert at once."""
        disabled = NotificationPreferences.model_validate({"lowStock": False})
        await dispatcher.dispatch([low_stock()], "user-1", "farm-1", disabled, now)

        result = await dispatcher.dispatch(
            [low_stock()], "user-1", "farm-1", NotificationPreferences(), now + dt.timedelta(hours=1)
        )

        assert len(result.notifications) == 1

    def test_legacy_keys(self):
        """Older settings keys map to their notification types."""
        preferences = NotificationPreferences.model_validate({
            "medicationExpiry": False,
            "batchPerformance": False,
            "somethingNew": False,
        })

        assert not preferences.allows(AlertType.EXPIRING_MEDICATION)
        assert not preferences.allows(AlertType.GROWTH_DEVIATION)
        assert not preferences.allows(AlertType.EARLY_HARVEST)
        assert preferences.allows(AlertType.LOW_STOCK)

    def test_explicit_key_wins_over_legacy(self):
        preferences = NotificationPreferences.model_validate({
            "waterQualityAlert": False,
            "waterQuality": True,
        })

        assert preferences.allows(AlertType.WATER_QUALITY)


# ============================================================
# Concurrency Tests
# ============================================================

class TestConcurrency:
    """Tests for concurrent triggers."""

    @pytest.mark.asyncio
    async def test_concurrent_dispatch_creates_one(self, dispatcher, record_store, all_enabled, now):
        """Two simultaneous dispatches of one alert create a single notification."""
        results = await asyncio.gather(
            dispatcher.dispatch([low_stock()], "user-1", "farm-1", all_enabled, now),
            dispatcher.dispatch([low_stock()], "user-1", "farm-1", all_enabled, now),
        )

        assert sum(len(r.notifications) for r in results) == 1
        assert len(record_store.notifications) == 1

    @pytest.mark.asyncio
    async def test_conflict_from_other_process_is_suppression(self, dispatcher, record_store, all_enabled, now):
        """A dedup key already taken by another process is not an error."""
        record_store.dedup_keys.add(dedup_key("batch-1", AlertType.LOW_STOCK, now))

        result = await dispatcher.dispatch([low_stock()], "user-1", "farm-1", all_enabled, now)

        assert result.notifications == []
        assert result.failures == []
        assert record_store.insert_attempts == 1

    @pytest.mark.asyncio
    async def test_locks_released_after_dispatch(self, dispatcher, all_enabled, now):
        """Locks of finished dispatches do not accumulate."""
        await asyncio.gather(
            dispatcher.dispatch([low_stock("batch-1")], "user-1", "farm-1", all_enabled, now),
            dispatcher.dispatch([low_stock("batch-2")], "user-1", "farm-1", all_enabled, now),
        )

        assert len(dispatcher._locks) == 0

    def test_keyed_locks_share_a_live_lock(self):
        locks = KeyedLocks()
        held = locks.lock("farm-1")

        assert locks.lock("farm-1") is held
        assert locks.lock("farm-2") is not held
        assert len(locks) == 1


# ============================================================
# Failure Isolation Tests
# ============================================================

class TestFailureIsolation:
    """Tests for partial failure handling."""

    @pytest.mark.asyncio
    async def test_failed_insert_does_not_stop_others(self, dispatcher, record_store, all_enabled, now):
        """A failing candidate is reported and the rest are still dispatched."""
        original = record_store.create_notification

        async def flaky_create(notification, key):
            if notification.subject_id == "batch-2":
                raise RecordStoreError("Record store request failed: 500", status_code=500)
            return await original(notification, key)

        record_store.create_notification = flaky_create

        result = await dispatcher.dispatch(
            [low_stock("batch-1"), low_stock("batch-2"), low_stock("batch-3")],
            "user-1", "farm-1", all_enabled, now,
        )

        assert [n.subject_id for n in result.notifications] == ["batch-1", "batch-3"]
        assert len(result.failures) == 1
        assert result.failures[0].subject_id == "batch-2"
        assert result.failures[0].alert_type == AlertType.LOW_STOCK
        assert result.failures[0].status_code == 500
