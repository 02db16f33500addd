"""
Domain models for batches, observations, thresholds and notifications.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, databases, etc.).
"""
import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class Species(str, Enum):
    """Livestock species tracked by the farm."""
    BROILER = "broiler"
    LAYER = "layer"
    CATFISH = "catfish"
    TILAPIA = "tilapia"
    CATTLE = "cattle"
    GOATS = "goats"
    SHEEP = "sheep"
    BEES = "bees"

    @property
    def is_aquatic(self) -> bool:
        return self in (Species.CATFISH, Species.TILAPIA)


class BatchStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    DEPLETED = "depleted"


class MortalityCause(str, Enum):
    DISEASE = "disease"
    PREDATOR = "predator"
    WEATHER = "weather"
    UNKNOWN = "unknown"
    OTHER = "other"
    STARVATION = "starvation"
    INJURY = "injury"
    POISONING = "poisoning"
    SUFFOCATION = "suffocation"
    TURNING_SICK = "turning_sick"


class AlertType(str, Enum):
    """Notification types understood by the surrounding application."""
    LOW_STOCK = "lowStock"
    HIGH_MORTALITY = "highMortality"
    INVOICE_DUE = "invoiceDue"
    BATCH_HARVEST = "batchHarvest"
    GROWTH_DEVIATION = "growthDeviation"
    EARLY_HARVEST = "earlyHarvest"
    WATER_QUALITY = "waterQuality"
    EXPIRING_MEDICATION = "expiringMedication"
    SUDDEN_MORTALITY = "suddenMortality"
    VACCINATION_DUE = "vaccinationDue"
    HIGH_FEED_CONVERSION = "highFeedConversion"


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class HealthStatus(str, Enum):
    """Three-tier mortality health classification."""
    GREEN = "green"
    AMBER = "amber"
    RED = "red"


class PerformanceStatus(str, Enum):
    BEHIND = "behind"
    ON_TRACK = "on_track"
    AHEAD = "ahead"


class ADGMethod(str, Enum):
    """Strategy used to estimate average daily gain."""
    TWO_SAMPLES = "two_samples"
    SINGLE_SAMPLE = "single_sample"
    GROWTH_CURVE_ESTIMATE = "growth_curve_estimate"


class WaterParameter(str, Enum):
    PH = "ph"
    TEMPERATURE = "temperatureCelsius"
    DISSOLVED_OXYGEN = "dissolvedOxygenMgL"
    AMMONIA = "ammoniaMgL"


class ParameterStatus(str, Enum):
    OPTIMAL = "optimal"
    ACCEPTABLE = "acceptable"
    WARNING = "warning"
    CRITICAL = "critical"


def as_utc(value: dt.datetime) -> dt.datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


class DomainModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Batch(DomainModel):
    """A cohort of animals of one species tracked as a unit."""
    id: str
    farm_id: str
    species: Species
    name: Optional[str] = Field(default=None, alias="batchName")
    acquisition_date: dt.date
    initial_quantity: int = Field(ge=1)
    current_quantity: int = Field(ge=0)
    status: BatchStatus = BatchStatus.ACTIVE
    target_weight_g: Optional[float] = Field(default=None, gt=0)
    target_harvest_date: Optional[dt.date] = None

    @model_validator(mode="after")
    def _current_within_initial(self) -> "Batch":
        if self.current_quantity > self.initial_quantity:
            raise ValueError(
                f"current_quantity {self.current_quantity} exceeds "
                f"initial_quantity {self.initial_quantity}"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in (BatchStatus.SOLD, BatchStatus.DEPLETED)

    @property
    def display_name(self) -> str:
        return self.name or self.species.value

    def age_in_days(self, today: dt.date) -> int:
        return (today - self.acquisition_date).days


class WeightSample(DomainModel):
    """Average weight observed on a sample of a batch."""
    batch_id: Optional[str] = None
    date: dt.date
    average_weight_kg: float = Field(gt=0)
    sample_size: int = Field(default=1, ge=1)


class GrowthStandard(DomainModel):
    """Reference expected weight for a species at a given day of life."""
    species: Optional[Species] = None
    day: int = Field(ge=0)
    expected_weight_g: float = Field(ge=0, alias="expected_weight_g")


class MortalityRecord(DomainModel):
    batch_id: Optional[str] = None
    quantity: int = Field(ge=1)
    date: dt.date
    cause: MortalityCause = MortalityCause.UNKNOWN


class WaterQualityReading(DomainModel):
    batch_id: Optional[str] = None
    date: dt.datetime
    ph: float
    temperature_celsius: float
    dissolved_oxygen_mg_l: float = Field(alias="dissolvedOxygenMgL")
    ammonia_mg_l: float = Field(alias="ammoniaMgL")


class FeedRecord(DomainModel):
    """Feed given to a batch on one day."""
    batch_id: Optional[str] = None
    date: dt.date
    feed_type: Optional[str] = None
    quantity_kg: float = Field(ge=0)


class Vaccination(DomainModel):
    id: str
    batch_id: Optional[str] = None
    vaccine_name: str
    date_administered: Optional[dt.date] = None
    next_due_date: Optional[dt.date] = None


class FeedInventoryItem(DomainModel):
    id: str
    farm_id: str
    feed_type: str
    quantity_kg: float = Field(ge=0)
    min_threshold_kg: float = Field(default=0, ge=0)
    capacity_kg: Optional[float] = Field(default=None, gt=0)


class MedicationInventoryItem(DomainModel):
    id: str
    farm_id: str
    medication_name: str
    quantity: float = Field(ge=0)
    unit: str = "units"
    min_threshold: float = Field(default=0, ge=0)
    capacity: Optional[float] = Field(default=None, gt=0)
    expiry_date: Optional[dt.date] = None


class InvoiceStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class Invoice(DomainModel):
    id: str
    farm_id: str
    invoice_number: str
    customer_name: Optional[str] = None
    due_date: Optional[dt.date] = None
    status: InvoiceStatus = InvoiceStatus.UNPAID

    @property
    def is_open(self) -> bool:
        return self.status in (InvoiceStatus.UNPAID, InvoiceStatus.PARTIAL)


class SpeciesThresholds(DomainModel):
    """Mortality-rate percentages at which a batch turns amber and red."""
    amber: float = Field(ge=0)
    red: float = Field(ge=0)

    class Config:
        frozen = True


class TenantThresholds(DomainModel):
    """Per-tenant alerting thresholds with per-species health overrides."""
    mortality_alert_percent: float = Field(default=5.0, ge=0)
    mortality_alert_quantity: int = Field(default=10, ge=0)
    low_stock_threshold_percent: float = Field(default=10.0, ge=0)
    growth_deviation_tolerance_percent: float = Field(default=10.0, gt=0)
    species_thresholds: Dict[Species, SpeciesThresholds] = Field(default_factory=dict)

    class Config:
        frozen = True


# Older settings rows use these keys for some notification types
LEGACY_PREFERENCE_KEYS: Dict[str, tuple] = {
    "medicationExpiry": (AlertType.EXPIRING_MEDICATION,),
    "waterQualityAlert": (AlertType.WATER_QUALITY,),
    "batchPerformance": (AlertType.GROWTH_DEVIATION, AlertType.EARLY_HARVEST),
    "highMortality": (AlertType.SUDDEN_MORTALITY,),
}


class NotificationPreferences(DomainModel):
    """Per-user on/off switch for each notification type."""
    enabled: Dict[AlertType, bool] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _accept_flat_map(cls, data: Any) -> Any:
        """Accept the stored `{"lowStock": true, ...}` shape; unknown keys are ignored."""
        if not isinstance(data, dict) or "enabled" in data:
            return data

        known = {alert_type.value for alert_type in AlertType}
        enabled: Dict[str, bool] = {}
        for key, value in data.items():
            for alert_type in LEGACY_PREFERENCE_KEYS.get(key, ()):
                enabled.setdefault(alert_type.value, bool(value))
            if key in known:
                enabled[key] = bool(value)
        return {"enabled": enabled}

    def allows(self, alert_type: AlertType) -> bool:
        # Types the user never configured are delivered
        return self.enabled.get(alert_type, True)


class UserSettings(DomainModel):
    """Snapshot of one user's thresholds and notification preferences."""
    user_id: str
    thresholds: TenantThresholds = Field(default_factory=TenantThresholds)
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)


class Notification(DomainModel):
    """A persisted alert. New alerts are always new rows."""
    id: Optional[str] = None
    user_id: str
    farm_id: Optional[str] = None
    type: AlertType
    title: str
    message: str
    action_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    read: bool = False
    created_at: dt.datetime

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: dt.datetime) -> dt.datetime:
        return as_utc(value)

    @property
    def subject_id(self) -> Optional[str]:
        return self.metadata.get("subjectId")


class ADGResult(DomainModel):
    adg_grams_per_day: float
    method: ADGMethod


class HarvestProjection(DomainModel):
    days_remaining: int = Field(ge=0)
    harvest_date: dt.date


class ChartPoint(DomainModel):
    """One day of the growth chart."""
    day: int
    expected_weight_g: float
    actual_weight_g: Optional[float] = None
    deviation_percent: Optional[float] = None


class GrowthPerformance(DomainModel):
    """Derived growth metrics for a batch at a point in time."""
    age_days: int
    current_weight_g: float
    expected_weight_g: float
    performance_index: float
    deviation_percent: float
    status: PerformanceStatus
    adg: ADGResult
    expected_adg_grams_per_day: float
    projection: Optional[HarvestProjection] = None


class CauseShare(DomainModel):
    cause: MortalityCause
    count: int
    quantity: int
    percentage: float


class WaterQualitySummary(DomainModel):
    """Averages and grades over a set of water quality readings."""
    reading_count: int
    averages: Dict[WaterParameter, Optional[float]]
    statuses: Dict[WaterParameter, ParameterStatus]
    alert_count: int
    issue_count: int


class BatchPerformanceReport(DomainModel):
    """Everything the batch dashboard shows about growth and health."""
    batch_id: str
    species: Species
    growth: Optional[GrowthPerformance] = None
    mortality_rate: float
    health_status: HealthStatus
    cause_distribution: List[CauseShare] = Field(default_factory=list)
    chart: List[ChartPoint] = Field(default_factory=list)
    water_quality: Optional[WaterQualitySummary] = None
