"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Record Store Configuration
    record_store_base_url: str = Field(
        default="http://localhost:3000/api",
        description="Base URL for the farm record store API"
    )
    record_store_api_key: str = Field(
        default="",
        description="API key for authentication against the record store"
    )
    record_store_timeout: float = Field(
        default=30.0,
        description="Request timeout in seconds for record store calls"
    )

    # Retry Configuration
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for record store calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Alerting windows
    dedup_window_hours: float = Field(
        default=24.0,
        description="Sliding window during which a repeat alert for the same subject is suppressed"
    )
    medication_expiry_window_days: int = Field(
        default=30,
        description="Days ahead of expiry at which medication starts alerting"
    )
    invoice_due_window_days: int = Field(
        default=7,
        description="Days ahead of the due date at which an invoice starts alerting"
    )
    harvest_window_days: int = Field(
        default=7,
        description="Days ahead of the target harvest date at which a batch starts alerting"
    )
    vaccination_due_window_days: int = Field(
        default=7,
        description="Days ahead of the next due date at which a vaccination starts alerting"
    )
    water_summary_window_days: int = Field(
        default=7,
        description="Days of water quality readings summarized in a batch performance report"
    )
    chart_sample_window_days: int = Field(
        default=14,
        description="Largest gap between weight samples that the growth chart interpolates across"
    )

    # Default tenant thresholds (used when a user has no stored settings)
    default_mortality_alert_percent: float = Field(
        default=5.0,
        description="Mortality rate (percent) at which a high-mortality alert may fire"
    )
    default_mortality_alert_quantity: int = Field(
        default=10,
        description="Cumulative deaths at which a high-mortality alert may fire"
    )
    default_low_stock_threshold_percent: float = Field(
        default=10.0,
        description="Remaining stock (percent) at or below which a low-stock alert fires"
    )
    default_growth_deviation_tolerance_percent: float = Field(
        default=10.0,
        description="Weight deviation from the growth standard tolerated before alerting"
    )

    # Water quality limits for aquatic batches
    water_ph_min: float = Field(default=6.5, description="Minimum acceptable pH")
    water_ph_max: float = Field(default=8.5, description="Maximum acceptable pH")
    water_temperature_min: float = Field(
        default=25.0,
        description="Minimum acceptable water temperature in Celsius"
    )
    water_temperature_max: float = Field(
        default=32.0,
        description="Maximum acceptable water temperature in Celsius"
    )
    water_dissolved_oxygen_min: float = Field(
        default=5.0,
        description="Minimum acceptable dissolved oxygen in mg/L"
    )
    water_ammonia_max: float = Field(
        default=0.02,
        description="Maximum acceptable ammonia in mg/L"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=60,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Livestock Growth & Health Analytics",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
