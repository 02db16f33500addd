"""
Record store endpoint constants and configuration.

This module contains all record store endpoint paths and related constants.
Centralizing these values makes it easy to swap out endpoints or update API versions.
"""


class RecordStoreEndpoints:
    """Record store endpoint paths."""

    # Farm-scoped collections
    FARM_BASE = "/farms/{farm_id}"
    FARM_BATCHES = f"{FARM_BASE}/batches"
    FEED_INVENTORY = f"{FARM_BASE}/feed-inventory"
    MEDICATION_INVENTORY = f"{FARM_BASE}/medication-inventory"
    INVOICES = f"{FARM_BASE}/invoices"

    # Batch-scoped collections
    BATCH_BY_ID = "/batches/{batch_id}"
    WEIGHT_SAMPLES = f"{BATCH_BY_ID}/weight-samples"
    MORTALITY_RECORDS = f"{BATCH_BY_ID}/mortality-records"
    WATER_QUALITY = f"{BATCH_BY_ID}/water-quality"
    VACCINATIONS = f"{BATCH_BY_ID}/vaccinations"
    FEED_RECORDS = f"{BATCH_BY_ID}/feed-records"

    # Reference data
    GROWTH_STANDARDS = "/growth-standards"

    # Users
    USER_SETTINGS = "/users/{user_id}/settings"
    NOTIFICATIONS = "/notifications"

    @classmethod
    def farm_batches(cls, farm_id: str) -> str:
        return cls.FARM_BATCHES.format(farm_id=farm_id)

    @classmethod
    def feed_inventory(cls, farm_id: str) -> str:
        return cls.FEED_INVENTORY.format(farm_id=farm_id)

    @classmethod
    def medication_inventory(cls, farm_id: str) -> str:
        return cls.MEDICATION_INVENTORY.format(farm_id=farm_id)

    @classmethod
    def invoices(cls, farm_id: str) -> str:
        return cls.INVOICES.format(farm_id=farm_id)

    @classmethod
    def batch(cls, batch_id: str) -> str:
        return cls.BATCH_BY_ID.format(batch_id=batch_id)

    @classmethod
    def weight_samples(cls, batch_id: str) -> str:
        return cls.WEIGHT_SAMPLES.format(batch_id=batch_id)

    @classmethod
    def mortality_records(cls, batch_id: str) -> str:
        return cls.MORTALITY_RECORDS.format(batch_id=batch_id)

    @classmethod
    def water_quality(cls, batch_id: str) -> str:
        return cls.WATER_QUALITY.format(batch_id=batch_id)

    @classmethod
    def vaccinations(cls, batch_id: str) -> str:
        return cls.VACCINATIONS.format(batch_id=batch_id)

    @classmethod
    def feed_records(cls, batch_id: str) -> str:
        return cls.FEED_RECORDS.format(batch_id=batch_id)

    @classmethod
    def user_settings(cls, user_id: str) -> str:
        return cls.USER_SETTINGS.format(user_id=user_id)


class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"
    IDEMPOTENCY_HEADER = "Idempotency-Key"

    # Status codes with special meaning
    NOT_FOUND = 404
    CONFLICT = 409
