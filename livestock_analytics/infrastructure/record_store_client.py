"""
Infrastructure layer: Record store client with retry logic.

The record store owns batches, observations, inventory, invoices, user
settings and notifications. This client is the only I/O boundary of the
analytics engine.
"""
import datetime as dt
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from livestock_analytics.config import settings
from livestock_analytics.domain.models import (
    AlertType,
    Batch,
    BatchStatus,
    FeedInventoryItem,
    FeedRecord,
    GrowthStandard,
    Invoice,
    InvoiceStatus,
    MedicationInventoryItem,
    MortalityRecord,
    Notification,
    Species,
    TenantThresholds,
    UserSettings,
    Vaccination,
    WaterQualityReading,
    WeightSample,
)
from livestock_analytics.infrastructure.api_constants import (
    APIConstants,
    RecordStoreEndpoints,
)

logger = logging.getLogger(__name__)


class RecordStoreError(Exception):
    """Raised when the record store cannot serve a request."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RecordNotFoundError(RecordStoreError):
    def __init__(self, message: str):
        super().__init__(message, status_code=APIConstants.NOT_FOUND)


class DuplicateAlertError(RecordStoreError):
    """The record store rejected a notification whose dedup key already exists."""

    def __init__(self, message: str):
        super().__init__(message, status_code=APIConstants.CONFLICT)


def default_user_settings(user_id: str) -> UserSettings:
    """Settings for a user who never saved any."""
    return UserSettings(
        user_id=user_id,
        thresholds=TenantThresholds(
            mortality_alert_percent=settings.default_mortality_alert_percent,
            mortality_alert_quantity=settings.default_mortality_alert_quantity,
            low_stock_threshold_percent=settings.default_low_stock_threshold_percent,
            growth_deviation_tolerance_percent=settings.default_growth_deviation_tolerance_percent,
        ),
    )


def _parse_list(model: type[BaseModel], data: Any) -> list:
    """Accept either a bare JSON list or a `{"results": [...]}` envelope."""
    items = data.get("results", []) if isinstance(data, dict) else data
    return [model.model_validate(item) for item in items]


class RecordStoreClient:
    """
    Client for the farm record store API.
    Implements retry logic with exponential backoff.
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None):
        """Initialize the client with configuration."""
        self.base_url = base_url or settings.record_store_base_url
        self.api_key = api_key if api_key is not None else settings.record_store_api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "accept": APIConstants.CONTENT_TYPE_JSON,
            },
            timeout=settings.record_store_timeout,
        )

    async def __aenter__(self) -> "RecordStoreClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.TransportError)),
        reraise=True,
    )
    async def _send(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        response = await self.client.request(method, endpoint, **kwargs)
        # Retry on server errors (5xx)
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Any:
        """
        Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments for the request

        Returns:
            Decoded JSON body

        Raises:
            RecordNotFoundError: On 404
            DuplicateAlertError: On 409
            RecordStoreError: On any other failure after retries
        """
        try:
            response = await self._send(method, endpoint, **kwargs)
        except httpx.HTTPStatusError as e:
            raise RecordStoreError(
                f"Record store request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise RecordStoreError(f"Record store request error: {str(e)}", status_code=503) from e

        # Don't retry on client errors (4xx)
        if response.status_code == APIConstants.NOT_FOUND:
            raise RecordNotFoundError(f"Not found: {method} {endpoint}")
        if response.status_code == APIConstants.CONFLICT:
            raise DuplicateAlertError(f"Conflict: {response.text}")
        if response.status_code >= 400:
            raise RecordStoreError(
                f"Record store request failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        return response.json()

    async def get_user_settings(self, user_id: str) -> UserSettings:
        """
        Fetch a user's thresholds and notification preferences.

        Users without stored settings get the configured defaults.
        """
        try:
            data = await self._make_request("GET", RecordStoreEndpoints.user_settings(user_id))
        except RecordNotFoundError:
            logger.info(f"No stored settings for user {user_id}; using defaults")
            return default_user_settings(user_id)
        return UserSettings.model_validate({"userId": user_id, **data})

    async def list_active_batches(self, farm_id: str) -> List[Batch]:
        data = await self._make_request(
            "GET",
            RecordStoreEndpoints.farm_batches(farm_id),
            params={"status": BatchStatus.ACTIVE.value},
        )
        return _parse_list(Batch, data)

    async def get_batch(self, batch_id: str) -> Batch:
        data = await self._make_request("GET", RecordStoreEndpoints.batch(batch_id))
        return Batch.model_validate(data)

    async def get_weight_samples(self, batch_id: str) -> List[WeightSample]:
        """Weight samples of a batch, ordered by date."""
        data = await self._make_request(
            "GET",
            RecordStoreEndpoints.weight_samples(batch_id),
            params={"order": "asc"},
        )
        return _parse_list(WeightSample, data)

    async def get_mortality_records(self, batch_id: str) -> List[MortalityRecord]:
        data = await self._make_request("GET", RecordStoreEndpoints.mortality_records(batch_id))
        return _parse_list(MortalityRecord, data)

    async def get_latest_water_quality(self, batch_id: str) -> Optional[WaterQualityReading]:
        data = await self._make_request(
            "GET",
            RecordStoreEndpoints.water_quality(batch_id),
            params={"order": "desc", "limit": 1},
        )
        readings = _parse_list(WaterQualityReading, data)
        return readings[0] if readings else None

    async def get_water_quality_readings(
        self,
        batch_id: str,
        since: dt.date,
    ) -> List[WaterQualityReading]:
        """Readings of a batch taken on or after `since`."""
        data = await self._make_request(
            "GET",
            RecordStoreEndpoints.water_quality(batch_id),
            params={"since": since.isoformat(), "order": "asc"},
        )
        return _parse_list(WaterQualityReading, data)

    async def get_vaccinations(self, batch_id: str) -> List[Vaccination]:
        """Vaccinations of a batch that have a next due date."""
        data = await self._make_request(
            "GET",
            RecordStoreEndpoints.vaccinations(batch_id),
            params={"hasNextDueDate": "true"},
        )
        return _parse_list(Vaccination, data)

    async def get_feed_records(self, batch_id: str) -> List[FeedRecord]:
        data = await self._make_request("GET", RecordStoreEndpoints.feed_records(batch_id))
        return _parse_list(FeedRecord, data)

    async def get_growth_standards(self, species: Species) -> List[GrowthStandard]:
        data = await self._make_request(
            "GET",
            RecordStoreEndpoints.GROWTH_STANDARDS,
            params={"species": species.value},
        )
        return _parse_list(GrowthStandard, data)

    async def get_feed_inventory(self, farm_id: str) -> List[FeedInventoryItem]:
        data = await self._make_request("GET", RecordStoreEndpoints.feed_inventory(farm_id))
        return _parse_list(FeedInventoryItem, data)

    async def get_medication_inventory(self, farm_id: str) -> List[MedicationInventoryItem]:
        data = await self._make_request("GET", RecordStoreEndpoints.medication_inventory(farm_id))
        return _parse_list(MedicationInventoryItem, data)

    async def get_open_invoices(self, farm_id: str) -> List[Invoice]:
        data = await self._make_request(
            "GET",
            RecordStoreEndpoints.invoices(farm_id),
            params=[
                ("status", InvoiceStatus.UNPAID.value),
                ("status", InvoiceStatus.PARTIAL.value),
            ],
        )
        return _parse_list(Invoice, data)

    async def get_recent_notifications(
        self,
        user_id: str,
        alert_type: AlertType,
        subject_id: str,
        since: dt.datetime,
    ) -> List[Notification]:
        """Notifications of one type about one subject created at or after `since`."""
        data = await self._make_request(
            "GET",
            RecordStoreEndpoints.NOTIFICATIONS,
            params={
                "userId": user_id,
                "type": alert_type.value,
                "subjectId": subject_id,
                "since": since.isoformat(),
            },
        )
        return _parse_list(Notification, data)

    async def create_notification(
        self,
        notification: Notification,
        dedup_key: str,
    ) -> Notification:
        """
        Insert a notification.

        The record store enforces `dedup_key` as a unique key.

        Raises:
            DuplicateAlertError: If a notification with the same key exists
        """
        body: Dict[str, Any] = notification.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
        )
        body["dedupKey"] = dedup_key
        data = await self._make_request(
            "POST",
            RecordStoreEndpoints.NOTIFICATIONS,
            json=body,
            headers={APIConstants.IDEMPOTENCY_HEADER: dedup_key},
        )
        return Notification.model_validate(data)


# Singleton instance
_record_store_client: Optional[RecordStoreClient] = None


def get_record_store_client() -> RecordStoreClient:
    """
    Get or create the singleton record store client instance.

    Returns:
        RecordStoreClient instance
    """
    global _record_store_client
    if _record_store_client is None:
        _record_store_client = RecordStoreClient()
    return _record_store_client
