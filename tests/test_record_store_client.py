"""
Unit tests for the record store client.

Tests cover:
- Successful API responses and model parsing
- Retry logic on 5xx errors
- No retry on 4xx errors
- Default settings for unknown users
- Naive notification timestamps
- Notification insert with dedup key and conflict handling
- Async context manager
"""
import datetime as dt
import json

import pytest
import httpx
import respx
from unittest.mock import AsyncMock

from livestock_analytics.config import settings
from livestock_analytics.domain.models import (
    AlertType,
    Batch,
    Notification,
    Species,
)
from livestock_analytics.infrastructure.record_store_client import (
    DuplicateAlertError,
    RecordNotFoundError,
    RecordStoreClient,
    RecordStoreError,
    get_record_store_client,
)


BATCH_JSON = {
    "id": "batch-1",
    "farmId": "farm-1",
    "species": "catfish",
    "batchName": "Pond A",
    "acquisitionDate": "2026-08-18",
    "initialQuantity": 1000,
    "currentQuantity": 800,
    "status": "active",
}


# ============================================================
# Client Initialization Tests
# ============================================================

class TestClientInitialization:
    """Tests for client initialization."""

    def test_client_initialization(self):
        """Client should initialize with configured base URL."""
        client = RecordStoreClient()

        assert client.base_url == settings.record_store_base_url
        assert client.client is not None

    def test_singleton_pattern(self):
        """get_record_store_client should return the same instance."""
        import livestock_analytics.infrastructure.record_store_client as module
        module._record_store_client = None

        client1 = get_record_store_client()
        client2 = get_record_store_client()

        assert client1 is client2


# ============================================================
# Async Context Manager Tests
# ============================================================

class TestAsyncContextManager:
    """Tests for async context manager functionality."""

    @pytest.mark.asyncio
    async def test_context_manager_enter(self):
        """__aenter__ should return the client instance."""
        client = RecordStoreClient()

        async with client as ctx_client:
            assert ctx_client is client

    @pytest.mark.asyncio
    async def test_context_manager_exit_closes_client(self):
        """__aexit__ should close the HTTP client."""
        client = RecordStoreClient()
        client.close = AsyncMock()

        async with client:
            pass

        client.close.assert_called_once()


# ============================================================
# Record Fetch Tests
# ============================================================

class TestRecordFetch:
    """Tests for fetching and parsing records."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_active_batches_envelope(self):
        """Batches are parsed from a results envelope."""
        client = RecordStoreClient()
        route = respx.get(f"{client.base_url}/farms/farm-1/batches").mock(
            return_value=httpx.Response(200, json={"results": [BATCH_JSON]})
        )

        batches = await client.list_active_batches("farm-1")

        assert len(batches) == 1
        assert isinstance(batches[0], Batch)
        assert batches[0].species == Species.CATFISH
        assert batches[0].display_name == "Pond A"
        assert route.calls.last.request.url.params["status"] == "active"
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_weight_samples_bare_list(self):
        """A bare JSON list is accepted."""
        client = RecordStoreClient()
        respx.get(f"{client.base_url}/batches/batch-1/weight-samples").mock(
            return_value=httpx.Response(200, json=[
                {"date": "2026-09-01", "averageWeightKg": 0.18, "sampleSize": 20},
                {"date": "2026-09-08", "averageWeightKg": 0.45, "sampleSize": 20},
            ])
        )

        samples = await client.get_weight_samples("batch-1")

        assert [s.average_weight_kg for s in samples] == [0.18, 0.45]
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_latest_water_quality_empty(self):
        """No readings gives None."""
        client = RecordStoreClient()
        respx.get(f"{client.base_url}/batches/batch-1/water-quality").mock(
            return_value=httpx.Response(200, json=[])
        )

        assert await client.get_latest_water_quality("batch-1") is None
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_water_quality_readings_since(self):
        client = RecordStoreClient()
        route = respx.get(f"{client.base_url}/batches/batch-1/water-quality").mock(
            return_value=httpx.Response(200, json=[{
                "date": "2026-10-16T06:00:00Z",
                "ph": 7.1,
                "temperatureCelsius": 28.5,
                "dissolvedOxygenMgL": 6.2,
                "ammoniaMgL": 0.01,
            }])
        )

        readings = await client.get_water_quality_readings("batch-1", dt.date(2026, 10, 10))

        assert [r.dissolved_oxygen_mg_l for r in readings] == [6.2]
        assert route.calls.last.request.url.params["since"] == "2026-10-10"
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_vaccinations_with_due_date(self):
        client = RecordStoreClient()
        route = respx.get(f"{client.base_url}/batches/batch-1/vaccinations").mock(
            return_value=httpx.Response(200, json={"results": [{
                "id": "vac-1",
                "vaccineName": "Newcastle",
                "dateAdministered": "2026-09-20",
                "nextDueDate": "2026-10-20",
            }]})
        )

        vaccinations = await client.get_vaccinations("batch-1")

        assert vaccinations[0].vaccine_name == "Newcastle"
        assert vaccinations[0].next_due_date == dt.date(2026, 10, 20)
        assert route.calls.last.request.url.params["hasNextDueDate"] == "true"
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_feed_records(self):
        client = RecordStoreClient()
        respx.get(f"{client.base_url}/batches/batch-1/feed-records").mock(
            return_value=httpx.Response(200, json=[
                {"date": "2026-10-01", "feedType": "Grower", "quantityKg": 250},
                {"date": "2026-10-08", "feedType": "Grower", "quantityKg": 300.5},
            ])
        )

        records = await client.get_feed_records("batch-1")

        assert sum(r.quantity_kg for r in records) == pytest.approx(550.5)
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_growth_standards_by_species(self):
        client = RecordStoreClient()
        route = respx.get(f"{client.base_url}/growth-standards").mock(
            return_value=httpx.Response(200, json=[
                {"species": "broiler", "day": 0, "expected_weight_g": 42},
                {"species": "broiler", "day": 7, "expected_weight_g": 180},
            ])
        )

        standards = await client.get_growth_standards(Species.BROILER)

        assert [s.expected_weight_g for s in standards] == [42, 180]
        assert route.calls.last.request.url.params["species"] == "broiler"
        await client.close()


# ============================================================
# User Settings Tests
# ============================================================

class TestUserSettings:
    """Tests for user settings retrieval."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_stored_settings(self):
        """Stored thresholds and preferences are parsed."""
        client = RecordStoreClient()
        respx.get(f"{client.base_url}/users/user-1/settings").mock(
            return_value=httpx.Response(200, json={
                "thresholds": {
                    "mortalityAlertPercent": 8,
                    "mortalityAlertQuantity": 25,
                    "speciesThresholds": {"broiler": {"amber": 2, "red": 4}},
                },
                "notifications": {"highMortality": False, "medicationExpiry": False},
            })
        )

        user_settings = await client.get_user_settings("user-1")

        assert user_settings.user_id == "user-1"
        assert user_settings.thresholds.mortality_alert_percent == 8
        assert user_settings.thresholds.species_thresholds[Species.BROILER].red == 4
        assert not user_settings.notifications.allows(AlertType.HIGH_MORTALITY)
        assert not user_settings.notifications.allows(AlertType.EXPIRING_MEDICATION)
        assert user_settings.notifications.allows(AlertType.LOW_STOCK)
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_unknown_user_gets_defaults(self):
        """A 404 for settings yields the configured defaults."""
        client = RecordStoreClient()
        respx.get(f"{client.base_url}/users/user-9/settings").mock(
            return_value=httpx.Response(404, text="Not Found")
        )

        user_settings = await client.get_user_settings("user-9")

        assert user_settings.user_id == "user-9"
        assert user_settings.thresholds.mortality_alert_percent == settings.default_mortality_alert_percent
        assert user_settings.notifications.allows(AlertType.HIGH_MORTALITY)
        await client.close()


# ============================================================
# Notification Tests
# ============================================================

class TestNotifications:
    """Tests for notification queries and inserts."""

    @pytest.fixture
    def notification(self) -> Notification:
        return Notification(
            user_id="user-1",
            farm_id="farm-1",
            type=AlertType.HIGH_MORTALITY,
            title="High Mortality Alert",
            message="Pond A: 200 deaths",
            metadata={"subjectId": "batch-1"},
            created_at=dt.datetime(2026, 10, 17, 6, 0, tzinfo=dt.timezone.utc),
        )

    @pytest.mark.asyncio
    @respx.mock
    async def test_recent_notifications_query(self):
        """The query names user, type, subject and window start."""
        client = RecordStoreClient()
        since = dt.datetime(2026, 10, 16, 6, 0, tzinfo=dt.timezone.utc)
        route = respx.get(f"{client.base_url}/notifications").mock(
            return_value=httpx.Response(200, json={"results": []})
        )

        result = await client.get_recent_notifications("user-1", AlertType.HIGH_MORTALITY, "batch-1", since)

        assert result == []
        params = route.calls.last.request.url.params
        assert params["type"] == "highMortality"
        assert params["subjectId"] == "batch-1"
        assert params["since"] == since.isoformat()
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_naive_created_at_is_utc(self):
        """Rows stored without a timezone are read as UTC."""
        client = RecordStoreClient()
        respx.get(f"{client.base_url}/notifications").mock(
            return_value=httpx.Response(200, json=[{
                "id": "n-1",
                "userId": "user-1",
                "type": "lowStock",
                "title": "Low Feed Stock",
                "message": "Starter feed is running low",
                "metadata": {"subjectId": "feed-1"},
                "createdAt": "2026-10-17T05:00:00",
            }])
        )
        since = dt.datetime(2026, 10, 16, 6, 0, tzinfo=dt.timezone.utc)

        result = await client.get_recent_notifications("user-1", AlertType.LOW_STOCK, "feed-1", since)

        assert result[0].created_at == dt.datetime(2026, 10, 17, 5, 0, tzinfo=dt.timezone.utc)
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_sends_dedup_key(self, notification):
        """Inserts carry the dedup key in the body and as idempotency key."""
        client = RecordStoreClient()
        route = respx.post(f"{client.base_url}/notifications").mock(
            return_value=httpx.Response(201, json={
                **notification.model_dump(mode="json", by_alias=True),
                "id": "n-1",
            })
        )

        created = await client.create_notification(notification, "batch-1:highMortality:20743")

        assert created.id == "n-1"
        assert created.subject_id == "batch-1"
        request = route.calls.last.request
        body = json.loads(request.content)
        assert body["dedupKey"] == "batch-1:highMortality:20743"
        assert body["type"] == "highMortality"
        assert body["userId"] == "user-1"
        assert "id" not in body
        assert request.headers["Idempotency-Key"] == "batch-1:highMortality:20743"
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_conflict(self, notification):
        """A 409 means the dedup key is taken."""
        client = RecordStoreClient()
        respx.post(f"{client.base_url}/notifications").mock(
            return_value=httpx.Response(409, text="duplicate dedupKey")
        )

        with pytest.raises(DuplicateAlertError):
            await client.create_notification(notification, "batch-1:highMortality:20743")

        assert respx.calls.call_count == 1
        await client.close()


# ============================================================
# Error Handling Tests
# ============================================================

class TestErrorHandling:
    """Tests for error handling."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_4xx_error_no_retry(self):
        """4xx errors should not trigger retry."""
        client = RecordStoreClient()
        respx.get(f"{client.base_url}/batches/missing").mock(
            return_value=httpx.Response(404, text="Not Found")
        )

        with pytest.raises(RecordNotFoundError):
            await client.get_batch("missing")

        assert respx.calls.call_count == 1
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_other_4xx_is_record_store_error(self):
        client = RecordStoreClient()
        respx.get(f"{client.base_url}/batches/batch-1").mock(
            return_value=httpx.Response(403, text="Forbidden")
        )

        with pytest.raises(RecordStoreError) as exc_info:
            await client.get_batch("batch-1")

        assert exc_info.value.status_code == 403
        assert respx.calls.call_count == 1
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_5xx_error_triggers_retry(self):
        """5xx errors should trigger retry."""
        client = RecordStoreClient()

        # First call fails with 500, second succeeds
        route = respx.get(f"{client.base_url}/batches/batch-1")
        route.side_effect = [
            httpx.Response(500, text="Internal Server Error"),
            httpx.Response(200, json=BATCH_JSON),
        ]

        batch = await client.get_batch("batch-1")

        assert batch.id == "batch-1"
        assert respx.calls.call_count == 2  # Retried once
        await client.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
