"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample batches, weight samples and growth standards
- Default tenant thresholds and user settings
- An in-memory record store
- Mock record store client
- FastAPI test client
"""
import datetime as dt
import itertools
from typing import Dict, List, Optional

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from livestock_analytics.main import app
from livestock_analytics.domain.models import (
    AlertType,
    Batch,
    FeedInventoryItem,
    FeedRecord,
    GrowthStandard,
    Invoice,
    MedicationInventoryItem,
    MortalityCause,
    MortalityRecord,
    Notification,
    Species,
    TenantThresholds,
    UserSettings,
    Vaccination,
    WaterQualityReading,
    WeightSample,
)
from livestock_analytics.infrastructure.record_store_client import (
    DuplicateAlertError,
    RecordNotFoundError,
    RecordStoreClient,
    RecordStoreError,
)


NOW = dt.datetime(2026, 10, 17, 6, 0, tzinfo=dt.timezone.utc)
TODAY = NOW.date()


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def now() -> dt.datetime:
    return NOW


@pytest.fixture
def broiler_curve() -> list[GrowthStandard]:
    """Broiler growth standards for the first five weeks."""
    return [
        GrowthStandard(species=Species.BROILER, day=day, expected_weight_g=weight)
        for day, weight in [
            (0, 42), (7, 180), (14, 450), (21, 900), (28, 1450), (35, 2000),
        ]
    ]


@pytest.fixture
def catfish_curve() -> list[GrowthStandard]:
    return [
        GrowthStandard(species=Species.CATFISH, day=day, expected_weight_g=weight)
        for day, weight in [(0, 5), (30, 60), (60, 200), (90, 400), (120, 650)]
    ]


@pytest.fixture
def broiler_batch() -> Batch:
    """Broiler batch acquired 14 days before TODAY, no losses."""
    return Batch(
        id="batch-broiler",
        farm_id="farm-1",
        species=Species.BROILER,
        name="House 1",
        acquisition_date=TODAY - dt.timedelta(days=14),
        initial_quantity=1000,
        current_quantity=1000,
    )


@pytest.fixture
def catfish_batch() -> Batch:
    """Catfish batch that lost 200 of 1000 fish."""
    return Batch(
        id="batch-catfish",
        farm_id="farm-1",
        species=Species.CATFISH,
        name="Pond A",
        acquisition_date=TODAY - dt.timedelta(days=60),
        initial_quantity=1000,
        current_quantity=800,
    )


@pytest.fixture
def catfish_mortality() -> list[MortalityRecord]:
    return [
        MortalityRecord(batch_id="batch-catfish", quantity=120, date=TODAY - dt.timedelta(days=5),
                        cause=MortalityCause.DISEASE),
        MortalityRecord(batch_id="batch-catfish", quantity=80, date=TODAY - dt.timedelta(days=3),
                        cause=MortalityCause.SUFFOCATION),
    ]


@pytest.fixture
def good_water_reading() -> WaterQualityReading:
    return WaterQualityReading(
        batch_id="batch-catfish",
        date=NOW - dt.timedelta(hours=2),
        ph=7.2,
        temperature_celsius=28.0,
        dissolved_oxygen_mg_l=6.5,
        ammonia_mg_l=0.01,
    )


@pytest.fixture
def alert_thresholds() -> TenantThresholds:
    """Thresholds used by the end-to-end mortality scenario."""
    return TenantThresholds(
        mortality_alert_percent=10.0,
        mortality_alert_quantity=50,
        low_stock_threshold_percent=10.0,
        growth_deviation_tolerance_percent=10.0,
    )


@pytest.fixture
def user_settings(alert_thresholds) -> UserSettings:
    return UserSettings(user_id="user-1", thresholds=alert_thresholds)


def build_notification(
    alert_type: AlertType,
    subject_id: str,
    created_at: dt.datetime,
    user_id: str = "user-1",
) -> Notification:
    return Notification(
        id=f"n-{subject_id}-{created_at.isoformat()}",
        user_id=user_id,
        farm_id="farm-1",
        type=alert_type,
        title="Existing alert",
        message="Existing alert",
        metadata={"subjectId": subject_id},
        created_at=created_at,
    )


# ============================================================
# In-memory Record Store
# ============================================================

class FakeRecordStore:
    """
    In-memory stand-in for RecordStoreClient.

    Implements the same coroutine API, enforces the dedup key as unique on
    notification insert and records every insert attempt.
    """

    def __init__(self):
        self.settings: Dict[str, UserSettings] = {}
        self.batches: Dict[str, Batch] = {}
        self.samples: Dict[str, List[WeightSample]] = {}
        self.mortality: Dict[str, List[MortalityRecord]] = {}
        self.water: Dict[str, List[WaterQualityReading]] = {}
        self.standards: Dict[Species, List[GrowthStandard]] = {}
        self.feed: Dict[str, List[FeedInventoryItem]] = {}
        self.medication: Dict[str, List[MedicationInventoryItem]] = {}
        self.invoices: Dict[str, List[Invoice]] = {}
        self.feed_records: Dict[str, List[FeedRecord]] = {}
        self.vaccinations: Dict[str, List[Vaccination]] = {}
        self.notifications: List[Notification] = []
        self.dedup_keys: set[str] = set()
        self.insert_attempts = 0
        self.failing_batches: set[str] = set()
        self.failing_farms: set[str] = set()
        self.standards_calls = 0
        self._ids = itertools.count(1)

    def add_batch(self, batch: Batch) -> None:
        self.batches[batch.id] = batch

    async def get_user_settings(self, user_id: str) -> UserSettings:
        return self.settings.get(user_id, UserSettings(user_id=user_id))

    async def list_active_batches(self, farm_id: str) -> List[Batch]:
        if farm_id in self.failing_farms:
            raise RecordStoreError(f"Record store request error: {farm_id}", status_code=503)
        return [b for b in self.batches.values() if b.farm_id == farm_id and not b.is_terminal]

    async def get_batch(self, batch_id: str) -> Batch:
        if batch_id not in self.batches:
            raise RecordNotFoundError(f"Not found: GET /batches/{batch_id}")
        return self.batches[batch_id]

    async def get_weight_samples(self, batch_id: str) -> List[WeightSample]:
        if batch_id in self.failing_batches:
            raise RecordNotFoundError(f"Not found: GET /batches/{batch_id}/weight-samples")
        return list(self.samples.get(batch_id, []))

    async def get_mortality_records(self, batch_id: str) -> List[MortalityRecord]:
        return list(self.mortality.get(batch_id, []))

    async def get_latest_water_quality(self, batch_id: str) -> Optional[WaterQualityReading]:
        readings = sorted(self.water.get(batch_id, []), key=lambda r: r.date)
        return readings[-1] if readings else None

    async def get_water_quality_readings(self, batch_id: str, since: dt.date) -> List[WaterQualityReading]:
        readings = [r for r in self.water.get(batch_id, []) if r.date.date() >= since]
        return sorted(readings, key=lambda r: r.date)

    async def get_vaccinations(self, batch_id: str) -> List[Vaccination]:
        return [v for v in self.vaccinations.get(batch_id, []) if v.next_due_date is not None]

    async def get_feed_records(self, batch_id: str) -> List[FeedRecord]:
        return list(self.feed_records.get(batch_id, []))

    async def get_growth_standards(self, species: Species) -> List[GrowthStandard]:
        self.standards_calls += 1
        return list(self.standards.get(species, []))

    async def get_feed_inventory(self, farm_id: str) -> List[FeedInventoryItem]:
        return list(self.feed.get(farm_id, []))

    async def get_medication_inventory(self, farm_id: str) -> List[MedicationInventoryItem]:
        return list(self.medication.get(farm_id, []))

    async def get_open_invoices(self, farm_id: str) -> List[Invoice]:
        return [i for i in self.invoices.get(farm_id, []) if i.is_open]

    async def get_recent_notifications(
        self,
        user_id: str,
        alert_type: AlertType,
        subject_id: str,
        since: dt.datetime,
    ) -> List[Notification]:
        return [
            n for n in self.notifications
            if n.user_id == user_id
            and n.type == alert_type
            and n.subject_id == subject_id
            and n.created_at >= since
        ]

    async def create_notification(self, notification: Notification, dedup_key: str) -> Notification:
        self.insert_attempts += 1
        if dedup_key in self.dedup_keys:
            raise DuplicateAlertError(f"Conflict: {dedup_key}")
        self.dedup_keys.add(dedup_key)
        created = notification.model_copy(update={"id": f"n-{next(self._ids)}"})
        self.notifications.append(created)
        return created


@pytest.fixture
def record_store() -> FakeRecordStore:
    return FakeRecordStore()


# ============================================================
# Mock Record Store Client Fixtures
# ============================================================

@pytest.fixture
def mock_record_store(broiler_batch, broiler_curve):
    """Create a mock record store client."""
    mock_client = AsyncMock(spec=RecordStoreClient)
    mock_client.get_batch.return_value = broiler_batch
    mock_client.get_weight_samples.return_value = [
        WeightSample(date=broiler_batch.acquisition_date, average_weight_kg=0.18),
        WeightSample(date=broiler_batch.acquisition_date + dt.timedelta(days=7), average_weight_kg=0.45),
    ]
    mock_client.get_mortality_records.return_value = []
    mock_client.get_growth_standards.return_value = broiler_curve
    mock_client.get_user_settings.return_value = UserSettings(user_id="user-1")
    mock_client.get_water_quality_readings.return_value = []
    return mock_client


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)


@pytest.fixture
def make_notification():
    """Build previously-created notifications for dedup history."""
    return build_notification
