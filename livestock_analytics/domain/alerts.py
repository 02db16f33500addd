"""
Alert candidates produced by the alert evaluators.

Each kind of alert is its own model with a typed payload. All of them expose
`subject_id` (the entity the alert is about) and `alert_type` (the
notification type it is delivered as), which is what deduplication keys on.
"""
import datetime as dt
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import Field

from livestock_analytics.domain.models import (
    AlertSeverity,
    AlertType,
    DomainModel,
    HarvestProjection,
    HealthStatus,
    Notification,
    Species,
)


class BaseAlert(DomainModel):
    """Common behaviour of every alert candidate."""

    alert_type: ClassVar[AlertType]
    severity: AlertSeverity = AlertSeverity.WARNING

    @property
    def subject_id(self) -> str:
        raise NotImplementedError

    @property
    def title(self) -> str:
        raise NotImplementedError

    @property
    def message(self) -> str:
        raise NotImplementedError

    @property
    def action_url(self) -> Optional[str]:
        return None

    def payload(self) -> Dict[str, Any]:
        """Kind-specific metadata stored with the notification."""
        return {}

    def notification_metadata(self) -> Dict[str, Any]:
        return {
            "subjectId": self.subject_id,
            "severity": self.severity.value,
            **self.payload(),
        }

    def to_notification(
        self,
        user_id: str,
        farm_id: Optional[str],
        now: dt.datetime,
    ) -> Notification:
        return Notification(
            user_id=user_id,
            farm_id=farm_id,
            type=self.alert_type,
            title=self.title,
            message=self.message,
            action_url=self.action_url,
            metadata=self.notification_metadata(),
            created_at=now,
        )


class BatchAlert(BaseAlert):
    """Alert about a single batch."""
    batch_id: str
    batch_name: str
    species: Species

    @property
    def subject_id(self) -> str:
        return self.batch_id

    @property
    def action_url(self) -> Optional[str]:
        return f"/batches/{self.batch_id}"

    def payload(self) -> Dict[str, Any]:
        return {"batchId": self.batch_id, "species": self.species.value}


class HighMortalityAlert(BatchAlert):
    kind: Literal["high_mortality"] = "high_mortality"
    alert_type: ClassVar[AlertType] = AlertType.HIGH_MORTALITY

    mortality_rate: float
    total_deaths: int
    health_status: HealthStatus

    @property
    def title(self) -> str:
        return "High Mortality Alert"

    @property
    def message(self) -> str:
        return (
            f"{self.batch_name}: {self.total_deaths} deaths "
            f"({self.mortality_rate:.1f}% mortality, status {self.health_status.value})"
        )

    def payload(self) -> Dict[str, Any]:
        return {
            **super().payload(),
            "mortalityRate": self.mortality_rate,
            "totalDeaths": self.total_deaths,
            "healthStatus": self.health_status.value,
        }


class SuddenMortalityAlert(BatchAlert):
    kind: Literal["sudden_mortality"] = "sudden_mortality"
    alert_type: ClassVar[AlertType] = AlertType.SUDDEN_MORTALITY
    severity: AlertSeverity = AlertSeverity.CRITICAL

    recent_deaths: int
    daily_mortality_rate: float

    @property
    def title(self) -> str:
        return "Sudden Death Alert"

    @property
    def message(self) -> str:
        return (
            f"{self.batch_name}: {self.recent_deaths} deaths in 24h "
            f"({self.daily_mortality_rate:.1f}%)"
        )

    def payload(self) -> Dict[str, Any]:
        return {
            **super().payload(),
            "recentDeaths": self.recent_deaths,
            "dailyMortalityRate": self.daily_mortality_rate,
        }


class VaccinationDueAlert(BatchAlert):
    """Overdue or upcoming vaccination. The subject is the vaccination record."""
    kind: Literal["vaccination_due"] = "vaccination_due"
    alert_type: ClassVar[AlertType] = AlertType.VACCINATION_DUE

    vaccination_id: str
    vaccine_name: str
    due_date: dt.date
    days_until_due: int

    @property
    def subject_id(self) -> str:
        return self.vaccination_id

    @property
    def is_overdue(self) -> bool:
        return self.days_until_due < 0

    @property
    def title(self) -> str:
        return "Overdue Vaccine" if self.is_overdue else "Upcoming Vaccine"

    @property
    def message(self) -> str:
        if self.is_overdue:
            return (
                f"{self.batch_name}: {self.vaccine_name} was due on {self.due_date.isoformat()}"
            )
        return f"{self.batch_name}: {self.vaccine_name} due in {self.days_until_due} days"

    def payload(self) -> Dict[str, Any]:
        return {
            **super().payload(),
            "vaccinationId": self.vaccination_id,
            "vaccineName": self.vaccine_name,
            "dueDate": self.due_date.isoformat(),
        }


class HighFeedConversionAlert(BatchAlert):
    kind: Literal["high_feed_conversion"] = "high_feed_conversion"
    alert_type: ClassVar[AlertType] = AlertType.HIGH_FEED_CONVERSION

    feed_conversion_ratio: float
    target_ratio: float

    @property
    def title(self) -> str:
        return "High Feed Conversion Ratio"

    @property
    def message(self) -> str:
        return (
            f"{self.batch_name}: FCR {self.feed_conversion_ratio:.2f} "
            f"(target: {self.target_ratio:g})"
        )

    def payload(self) -> Dict[str, Any]:
        return {
            **super().payload(),
            "actualFcr": self.feed_conversion_ratio,
            "targetFcr": self.target_ratio,
        }


class LowBatchStockAlert(BatchAlert):
    kind: Literal["low_batch_stock"] = "low_batch_stock"
    alert_type: ClassVar[AlertType] = AlertType.LOW_STOCK

    current_quantity: int
    remaining_percent: float

    @property
    def title(self) -> str:
        return "Low Batch Stock"

    @property
    def message(self) -> str:
        return (
            f"{self.batch_name} is down to {self.current_quantity} head "
            f"({self.remaining_percent:.1f}% remaining)"
        )

    def payload(self) -> Dict[str, Any]:
        return {
            **super().payload(),
            "currentQuantity": self.current_quantity,
            "remainingPercent": self.remaining_percent,
        }


class LowFeedStockAlert(BaseAlert):
    kind: Literal["low_feed_stock"] = "low_feed_stock"
    alert_type: ClassVar[AlertType] = AlertType.LOW_STOCK

    item_id: str
    feed_type: str
    quantity_kg: float
    remaining_percent: Optional[float] = None

    @property
    def subject_id(self) -> str:
        return self.item_id

    @property
    def title(self) -> str:
        return "Low Feed Stock"

    @property
    def message(self) -> str:
        return f"{self.feed_type} feed is running low ({self.quantity_kg:.1f}kg remaining)"

    @property
    def action_url(self) -> Optional[str]:
        return "/inventory"

    def payload(self) -> Dict[str, Any]:
        return {
            "feedInventoryId": self.item_id,
            "feedType": self.feed_type,
            "quantityKg": self.quantity_kg,
            "remainingPercent": self.remaining_percent,
        }


class LowMedicationStockAlert(BaseAlert):
    kind: Literal["low_medication_stock"] = "low_medication_stock"
    alert_type: ClassVar[AlertType] = AlertType.LOW_STOCK

    item_id: str
    medication_name: str
    quantity: float
    unit: str
    remaining_percent: Optional[float] = None

    @property
    def subject_id(self) -> str:
        return self.item_id

    @property
    def title(self) -> str:
        return "Low Medication Stock"

    @property
    def message(self) -> str:
        return f"{self.medication_name} is running low ({self.quantity:g} {self.unit} remaining)"

    @property
    def action_url(self) -> Optional[str]:
        return "/inventory"

    def payload(self) -> Dict[str, Any]:
        return {
            "medicationInventoryId": self.item_id,
            "medicationName": self.medication_name,
            "quantity": self.quantity,
            "remainingPercent": self.remaining_percent,
        }


class ExpiringMedicationAlert(BaseAlert):
    kind: Literal["expiring_medication"] = "expiring_medication"
    alert_type: ClassVar[AlertType] = AlertType.EXPIRING_MEDICATION

    item_id: str
    medication_name: str
    expiry_date: dt.date
    days_until_expiry: int

    @property
    def subject_id(self) -> str:
        return self.item_id

    @property
    def title(self) -> str:
        if self.days_until_expiry < 0:
            return "Medication Expired"
        return "Medication Expiring Soon"

    @property
    def message(self) -> str:
        if self.days_until_expiry < 0:
            return f"{self.medication_name} expired on {self.expiry_date.isoformat()}"
        return f"{self.medication_name} expires in {self.days_until_expiry} days"

    @property
    def action_url(self) -> Optional[str]:
        return "/inventory"

    def payload(self) -> Dict[str, Any]:
        return {
            "medicationInventoryId": self.item_id,
            "medicationName": self.medication_name,
            "expiryDate": self.expiry_date.isoformat(),
            "daysUntilExpiry": self.days_until_expiry,
        }


class WaterQualityAlert(BatchAlert):
    kind: Literal["water_quality"] = "water_quality"
    alert_type: ClassVar[AlertType] = AlertType.WATER_QUALITY

    issues: List[str] = Field(min_length=1)
    reading_date: dt.datetime

    @property
    def title(self) -> str:
        return "Water Quality Alert"

    @property
    def message(self) -> str:
        return f"{self.batch_name}: " + "; ".join(self.issues)

    def payload(self) -> Dict[str, Any]:
        return {
            **super().payload(),
            "issues": list(self.issues),
            "readingDate": self.reading_date.isoformat(),
        }


class GrowthDeviationAlert(BatchAlert):
    kind: Literal["growth_deviation"] = "growth_deviation"
    alert_type: ClassVar[AlertType] = AlertType.GROWTH_DEVIATION

    performance_index: float
    deviation_percent: float
    adg_grams_per_day: float
    projection: Optional[HarvestProjection] = None

    @property
    def title(self) -> str:
        if self.severity == AlertSeverity.CRITICAL:
            return "Critical: Batch Growth Severely Behind"
        return "Warning: Batch Growth Behind Schedule"

    @property
    def message(self) -> str:
        message = (
            f"{self.batch_name} is at {self.performance_index:.0f}% of the expected weight "
            f"({self.deviation_percent:+.1f}%), gaining {self.adg_grams_per_day:.1f} g/day."
        )
        if self.projection is None:
            return message + " Review feed and health; no harvest date can be projected."
        return message + f" Projected harvest: {self.projection.harvest_date.isoformat()}."

    def payload(self) -> Dict[str, Any]:
        return {
            **super().payload(),
            "performanceIndex": self.performance_index,
            "deviationPercent": self.deviation_percent,
            "adgGramsPerDay": self.adg_grams_per_day,
        }


class EarlyHarvestAlert(BatchAlert):
    kind: Literal["early_harvest"] = "early_harvest"
    alert_type: ClassVar[AlertType] = AlertType.EARLY_HARVEST
    severity: AlertSeverity = AlertSeverity.INFO

    performance_index: float
    deviation_percent: float
    projection: Optional[HarvestProjection] = None

    @property
    def title(self) -> str:
        return "Info: Early Harvest Opportunity"

    @property
    def message(self) -> str:
        message = (
            f"{self.batch_name} is {self.deviation_percent:.1f}% ahead of the growth standard."
        )
        if self.projection is None:
            return message
        if self.projection.days_remaining == 0:
            return message + " Target weight already reached."
        return (
            message + f" Target weight expected in {self.projection.days_remaining} days "
            f"({self.projection.harvest_date.isoformat()})."
        )

    def payload(self) -> Dict[str, Any]:
        payload = {
            **super().payload(),
            "performanceIndex": self.performance_index,
            "deviationPercent": self.deviation_percent,
        }
        if self.projection is not None:
            payload["projectedHarvestDate"] = self.projection.harvest_date.isoformat()
            payload["daysRemaining"] = self.projection.days_remaining
        return payload


class BatchHarvestAlert(BatchAlert):
    kind: Literal["batch_harvest"] = "batch_harvest"
    alert_type: ClassVar[AlertType] = AlertType.BATCH_HARVEST
    severity: AlertSeverity = AlertSeverity.INFO

    target_harvest_date: dt.date
    days_until_harvest: int
    current_quantity: int

    @property
    def title(self) -> str:
        return "Batch Ready for Harvest"

    @property
    def message(self) -> str:
        return (
            f"{self.batch_name} batch is ready for harvest in {self.days_until_harvest} days "
            f"({self.current_quantity} units)"
        )

    def payload(self) -> Dict[str, Any]:
        return {
            **super().payload(),
            "daysUntilHarvest": self.days_until_harvest,
            "targetHarvestDate": self.target_harvest_date.isoformat(),
        }


class InvoiceDueAlert(BaseAlert):
    kind: Literal["invoice_due"] = "invoice_due"
    alert_type: ClassVar[AlertType] = AlertType.INVOICE_DUE

    invoice_id: str
    invoice_number: str
    customer_name: Optional[str] = None
    days_until_due: int

    @property
    def subject_id(self) -> str:
        return self.invoice_id

    @property
    def title(self) -> str:
        return "Invoice Due Soon"

    @property
    def message(self) -> str:
        return (
            f"Invoice {self.invoice_number} for {self.customer_name or 'customer'} "
            f"is due in {self.days_until_due} days"
        )

    @property
    def action_url(self) -> Optional[str]:
        return f"/invoices/{self.invoice_id}"

    def payload(self) -> Dict[str, Any]:
        return {
            "invoiceId": self.invoice_id,
            "invoiceNumber": self.invoice_number,
            "daysUntilDue": self.days_until_due,
        }


AlertCandidate = Annotated[
    Union[
        HighMortalityAlert,
        SuddenMortalityAlert,
        VaccinationDueAlert,
        HighFeedConversionAlert,
        LowBatchStockAlert,
        LowFeedStockAlert,
        LowMedicationStockAlert,
        ExpiringMedicationAlert,
        WaterQualityAlert,
        GrowthDeviationAlert,
        EarlyHarvestAlert,
        BatchHarvestAlert,
        InvoiceDueAlert,
    ],
    Field(discriminator="kind"),
]
