"""
Domain service: Alert evaluators.

One pure function per alert source. Each takes current entity state and the
tenant's thresholds and returns an alert candidate, or None when the
condition does not hold. No evaluator performs I/O.
"""
import datetime as dt
from typing import List, Optional, Sequence, Union

from livestock_analytics.domain.alerts import (
    BatchHarvestAlert,
    EarlyHarvestAlert,
    ExpiringMedicationAlert,
    GrowthDeviationAlert,
    HighFeedConversionAlert,
    HighMortalityAlert,
    InvoiceDueAlert,
    LowBatchStockAlert,
    LowFeedStockAlert,
    LowMedicationStockAlert,
    SuddenMortalityAlert,
    VaccinationDueAlert,
    WaterQualityAlert,
)
from livestock_analytics.domain.models import (
    AlertSeverity,
    Batch,
    FeedInventoryItem,
    FeedRecord,
    GrowthPerformance,
    HealthStatus,
    Invoice,
    MedicationInventoryItem,
    MortalityRecord,
    TenantThresholds,
    Vaccination,
    WaterQualityReading,
    WeightSample,
)
from livestock_analytics.services.domain.growth_forecaster import (
    batch_feed_conversion_ratio,
    target_feed_conversion_ratio,
)
from livestock_analytics.services.domain.health_classifier import (
    health_status,
    mortality_rate,
    mortality_rate_from_deaths,
    recent_deaths,
)
from livestock_analytics.services.domain.water_quality import (
    WaterQualityLimits,
    water_quality_issues,
)


def remaining_percent(current: float, reference: float) -> float:
    """Share of `reference` still on hand; 0 when the reference is not positive."""
    if reference <= 0:
        return 0.0
    return current / reference * 100


def evaluate_high_mortality(
    batch: Batch,
    total_deaths: int,
    thresholds: TenantThresholds,
) -> Optional[HighMortalityAlert]:
    """High mortality needs both the rate and the head count at or over threshold."""
    rate = mortality_rate(batch.initial_quantity, batch.current_quantity)

    if rate < thresholds.mortality_alert_percent:
        return None
    if total_deaths < thresholds.mortality_alert_quantity:
        return None

    status = health_status(rate, batch.species, thresholds.species_thresholds)
    return HighMortalityAlert(
        batch_id=batch.id,
        batch_name=batch.display_name,
        species=batch.species,
        mortality_rate=rate,
        total_deaths=total_deaths,
        health_status=status,
        severity=AlertSeverity.CRITICAL if status == HealthStatus.RED else AlertSeverity.WARNING,
    )


def evaluate_low_batch_stock(
    batch: Batch,
    thresholds: TenantThresholds,
) -> Optional[LowBatchStockAlert]:
    """Fires when the remaining share of the cohort is at or below the tenant threshold."""
    remaining = remaining_percent(batch.current_quantity, batch.initial_quantity)
    if remaining > thresholds.low_stock_threshold_percent:
        return None

    return LowBatchStockAlert(
        batch_id=batch.id,
        batch_name=batch.display_name,
        species=batch.species,
        current_quantity=batch.current_quantity,
        remaining_percent=remaining,
        severity=(
            AlertSeverity.CRITICAL
            if remaining <= thresholds.low_stock_threshold_percent / 2
            else AlertSeverity.WARNING
        ),
    )


def _stock_is_low(
    quantity: float,
    floor: float,
    capacity: Optional[float],
    threshold_percent: float,
) -> tuple[bool, Optional[float]]:
    remaining = remaining_percent(quantity, capacity) if capacity else None
    below_floor = quantity < floor
    below_percent = remaining is not None and remaining <= threshold_percent
    return below_floor or below_percent, remaining


def evaluate_low_feed_stock(
    item: FeedInventoryItem,
    thresholds: TenantThresholds,
) -> Optional[LowFeedStockAlert]:
    """Fires below the item's absolute floor or at/below the tenant percent of capacity."""
    low, remaining = _stock_is_low(
        item.quantity_kg,
        item.min_threshold_kg,
        item.capacity_kg,
        thresholds.low_stock_threshold_percent,
    )
    if not low:
        return None

    return LowFeedStockAlert(
        item_id=item.id,
        feed_type=item.feed_type,
        quantity_kg=item.quantity_kg,
        remaining_percent=remaining,
        severity=AlertSeverity.CRITICAL if item.quantity_kg == 0 else AlertSeverity.WARNING,
    )


def evaluate_low_medication_stock(
    item: MedicationInventoryItem,
    thresholds: TenantThresholds,
) -> Optional[LowMedicationStockAlert]:
    low, remaining = _stock_is_low(
        item.quantity,
        item.min_threshold,
        item.capacity,
        thresholds.low_stock_threshold_percent,
    )
    if not low:
        return None

    return LowMedicationStockAlert(
        item_id=item.id,
        medication_name=item.medication_name,
        quantity=item.quantity,
        unit=item.unit,
        remaining_percent=remaining,
        severity=AlertSeverity.CRITICAL if item.quantity == 0 else AlertSeverity.WARNING,
    )


def evaluate_expiring_medication(
    item: MedicationInventoryItem,
    today: dt.date,
    window_days: int,
) -> Optional[ExpiringMedicationAlert]:
    """Fires for medication expiring within `window_days`, or already expired."""
    if item.expiry_date is None:
        return None

    days_until_expiry = (item.expiry_date - today).days
    if days_until_expiry > window_days:
        return None

    return ExpiringMedicationAlert(
        item_id=item.id,
        medication_name=item.medication_name,
        expiry_date=item.expiry_date,
        days_until_expiry=days_until_expiry,
        severity=AlertSeverity.CRITICAL if days_until_expiry < 0 else AlertSeverity.WARNING,
    )


def evaluate_water_quality(
    batch: Batch,
    reading: Optional[WaterQualityReading],
    limits: WaterQualityLimits = WaterQualityLimits(),
) -> Optional[WaterQualityAlert]:
    """Fires iff the reading violates at least one limit; the alert carries the violations."""
    if reading is None:
        return None

    issues = water_quality_issues(reading, limits)
    if not issues:
        return None

    return WaterQualityAlert(
        batch_id=batch.id,
        batch_name=batch.display_name,
        species=batch.species,
        issues=issues,
        reading_date=reading.date,
        severity=AlertSeverity.CRITICAL if len(issues) > 1 else AlertSeverity.WARNING,
    )


def evaluate_growth(
    batch: Batch,
    performance: Optional[GrowthPerformance],
    thresholds: TenantThresholds,
) -> Optional[Union[GrowthDeviationAlert, EarlyHarvestAlert]]:
    """
    Compare a batch's growth against the tenant's deviation tolerance.

    Behind by the tolerance or more gives a growth deviation alert (critical
    at twice the tolerance); ahead by the tolerance or more gives an early
    harvest alert.
    """
    if performance is None:
        return None

    tolerance = thresholds.growth_deviation_tolerance_percent
    deviation = performance.deviation_percent

    if deviation <= -tolerance:
        return GrowthDeviationAlert(
            batch_id=batch.id,
            batch_name=batch.display_name,
            species=batch.species,
            performance_index=performance.performance_index,
            deviation_percent=deviation,
            adg_grams_per_day=performance.adg.adg_grams_per_day,
            projection=performance.projection,
            severity=(
                AlertSeverity.CRITICAL if deviation <= -2 * tolerance else AlertSeverity.WARNING
            ),
        )

    if deviation >= tolerance:
        return EarlyHarvestAlert(
            batch_id=batch.id,
            batch_name=batch.display_name,
            species=batch.species,
            performance_index=performance.performance_index,
            deviation_percent=deviation,
            projection=performance.projection,
        )

    return None


def evaluate_batch_harvest(
    batch: Batch,
    today: dt.date,
    window_days: int,
) -> Optional[BatchHarvestAlert]:
    """Fires for an active batch whose target harvest date is within the window."""
    if batch.is_terminal or batch.target_harvest_date is None:
        return None

    days_until_harvest = (batch.target_harvest_date - today).days
    if not 0 <= days_until_harvest <= window_days:
        return None

    return BatchHarvestAlert(
        batch_id=batch.id,
        batch_name=batch.display_name,
        species=batch.species,
        target_harvest_date=batch.target_harvest_date,
        days_until_harvest=days_until_harvest,
        current_quantity=batch.current_quantity,
    )


def evaluate_invoice_due(
    invoice: Invoice,
    today: dt.date,
    window_days: int,
) -> Optional[InvoiceDueAlert]:
    """Fires for an unpaid or part-paid invoice due within the window."""
    if not invoice.is_open or invoice.due_date is None:
        return None

    days_until_due = (invoice.due_date - today).days
    if not 0 <= days_until_due <= window_days:
        return None

    return InvoiceDueAlert(
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        customer_name=invoice.customer_name,
        days_until_due=days_until_due,
        severity=AlertSeverity.WARNING if days_until_due <= 1 else AlertSeverity.INFO,
    )


def evaluate_sudden_mortality(
    batch: Batch,
    records: Sequence[MortalityRecord],
    thresholds: TenantThresholds,
    today: dt.date,
) -> Optional[SuddenMortalityAlert]:
    """
    Flag a spike of deaths recorded since yesterday.

    Unlike high mortality, either condition is enough: the share of the
    current head count lost over the tenant percent, or the number of deaths
    over the tenant quantity.
    """
    deaths = recent_deaths(records, today - dt.timedelta(days=1))
    if deaths == 0:
        return None

    rate = mortality_rate_from_deaths(batch.current_quantity, deaths)
    if (
        rate <= thresholds.mortality_alert_percent
        and deaths <= thresholds.mortality_alert_quantity
    ):
        return None

    return SuddenMortalityAlert(
        batch_id=batch.id,
        batch_name=batch.display_name,
        species=batch.species,
        recent_deaths=deaths,
        daily_mortality_rate=rate,
    )


def evaluate_vaccinations(
    batch: Batch,
    vaccinations: Sequence[Vaccination],
    today: dt.date,
    window_days: int,
) -> List[VaccinationDueAlert]:
    """One alert per vaccination overdue (critical) or due within the window (info)."""
    alerts = []
    for vaccination in vaccinations:
        if vaccination.next_due_date is None:
            continue
        days_until_due = (vaccination.next_due_date - today).days
        if days_until_due > window_days:
            continue
        alerts.append(VaccinationDueAlert(
            batch_id=batch.id,
            batch_name=batch.display_name,
            species=batch.species,
            vaccination_id=vaccination.id,
            vaccine_name=vaccination.vaccine_name,
            due_date=vaccination.next_due_date,
            days_until_due=days_until_due,
            severity=AlertSeverity.CRITICAL if days_until_due < 0 else AlertSeverity.INFO,
        ))
    return alerts


# FCR over these multiples of the species target is poor
FCR_WARNING_FACTOR = 1.2
FCR_CRITICAL_FACTOR = 1.4


def evaluate_feed_conversion(
    batch: Batch,
    feed_records: Sequence[FeedRecord],
    samples: Sequence[WeightSample],
) -> Optional[HighFeedConversionAlert]:
    """Fires when the batch's FCR is more than 20% over the species target."""
    ratio = batch_feed_conversion_ratio(batch, feed_records, samples)
    if ratio is None:
        return None

    target = target_feed_conversion_ratio(batch.species)
    if ratio <= target * FCR_WARNING_FACTOR:
        return None

    return HighFeedConversionAlert(
        batch_id=batch.id,
        batch_name=batch.display_name,
        species=batch.species,
        feed_conversion_ratio=ratio,
        target_ratio=target,
        severity=(
            AlertSeverity.CRITICAL
            if ratio > target * FCR_CRITICAL_FACTOR
            else AlertSeverity.WARNING
        ),
    )
