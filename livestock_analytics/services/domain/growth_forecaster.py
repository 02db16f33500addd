"""
Domain service: Growth forecasting from weight observations and growth standards.

Pure functions, no I/O:
- Average daily gain (ADG) with fallback strategy ordering
- Performance index, deviation and status classification
- Harvest date projection
- Day-by-day growth chart series
- Feed conversion ratio
"""
import bisect
import datetime as dt
import logging
import math
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

import numpy as np

from livestock_analytics.domain.growth_curve import (
    interpolate_expected_weight,
    sort_standards,
)
from livestock_analytics.domain.models import (
    ADGMethod,
    ADGResult,
    Batch,
    ChartPoint,
    FeedRecord,
    GrowthPerformance,
    GrowthStandard,
    HarvestProjection,
    PerformanceStatus,
    Species,
    WeightSample,
)

logger = logging.getLogger(__name__)

GRAMS_PER_KG = 1000.0

BEHIND_BELOW_INDEX = 95.0
AHEAD_ABOVE_INDEX = 105.0


def _usable_samples(samples: Sequence[WeightSample]) -> list[WeightSample]:
    """Samples with a finite weight, newest first."""
    usable = [s for s in samples if math.isfinite(s.average_weight_kg)]
    if len(usable) != len(samples):
        logger.debug(f"Skipped {len(samples) - len(usable)} non-finite weight samples")
    return sorted(usable, key=lambda s: s.date, reverse=True)


def expected_adg(
    age_days: float,
    growth_standards: Sequence[GrowthStandard],
) -> float:
    """
    Implied daily gain (g/day) from the slope of the growth curve at `age_days`.

    Uses the segment bracketing the age; falls back to the nearest segment
    before, then after, then the average slope of the whole curve.
    """
    curve = sort_standards(growth_standards)
    if not curve:
        return 0.0

    before = [s for s in curve if s.day <= age_days]
    after = [s for s in curve if s.day > age_days]

    if before and after:
        return _slope(before[-1], after[0])
    if len(before) >= 2:
        return _slope(before[-2], before[-1])
    if len(after) >= 2:
        return _slope(after[0], after[1])
    if len(curve) >= 2:
        return _slope(curve[0], curve[-1])
    return 0.0


def _slope(first: GrowthStandard, second: GrowthStandard) -> float:
    return (second.expected_weight_g - first.expected_weight_g) / (second.day - first.day)


def estimate_adg(
    samples: Sequence[WeightSample],
    acquisition_date: dt.date,
    current_age_days: int,
    growth_standards: Sequence[GrowthStandard],
) -> ADGResult:
    """
    Estimate average daily gain in grams per day.

    Strategy, in priority order:
    1. Two most recent samples: weight delta over days between them.
       Negative values (weight loss) are returned unclamped.
    2. A single sample: weight over days since acquisition (floored at 1 day).
    3. No samples: slope of the growth curve around the current age.

    Args:
        samples: Weight samples in any order
        acquisition_date: Date the batch was acquired
        current_age_days: Age of the batch today
        growth_standards: Growth curve for the batch's species

    Returns:
        ADGResult with the gain and the method used
    """
    ordered = _usable_samples(samples)

    if len(ordered) >= 2:
        latest, prior = ordered[0], ordered[1]
        days_between = (latest.date - prior.date).days
        if days_between > 0:
            gain_g = (latest.average_weight_kg - prior.average_weight_kg) * GRAMS_PER_KG
            return ADGResult(
                adg_grams_per_day=gain_g / days_between,
                method=ADGMethod.TWO_SAMPLES,
            )
        # Same-day samples carry no rate information
        logger.debug(f"Latest samples share date {latest.date}; using single-sample ADG")
        ordered = ordered[:1]

    if len(ordered) == 1:
        sample = ordered[0]
        days_since_acquisition = max(1, (sample.date - acquisition_date).days)
        return ADGResult(
            adg_grams_per_day=sample.average_weight_kg * GRAMS_PER_KG / days_since_acquisition,
            method=ADGMethod.SINGLE_SAMPLE,
        )

    return ADGResult(
        adg_grams_per_day=expected_adg(current_age_days, growth_standards),
        method=ADGMethod.GROWTH_CURVE_ESTIMATE,
    )


def performance_index(actual_weight_g: float, expected_weight_g: float) -> float:
    """Actual weight as a percentage of expected; 0 when expected is not positive."""
    if expected_weight_g <= 0:
        return 0.0
    return actual_weight_g / expected_weight_g * 100


def classify_status(index: float) -> PerformanceStatus:
    """Classify a performance index. 95 and 105 are both on track."""
    if index < BEHIND_BELOW_INDEX:
        return PerformanceStatus.BEHIND
    if index > AHEAD_ABOVE_INDEX:
        return PerformanceStatus.AHEAD
    return PerformanceStatus.ON_TRACK


def deviation_percent(actual_weight_g: float, expected_weight_g: float) -> float:
    """Signed deviation from expected (positive = ahead); 0 when expected is not positive."""
    if expected_weight_g <= 0:
        return 0.0
    return (actual_weight_g - expected_weight_g) / expected_weight_g * 100


def project_harvest(
    current_weight_g: float,
    target_weight_g: float,
    adg_grams_per_day: float,
    today: Optional[dt.date] = None,
) -> Optional[HarvestProjection]:
    """
    Project when a batch reaches its target weight.

    Returns:
        HarvestProjection, or None when the batch is below target and
        not gaining weight
    """
    today = today or dt.date.today()

    if current_weight_g >= target_weight_g:
        return HarvestProjection(days_remaining=0, harvest_date=today)

    if adg_grams_per_day <= 0:
        return None

    days_remaining = math.ceil((target_weight_g - current_weight_g) / adg_grams_per_day)
    return HarvestProjection(
        days_remaining=days_remaining,
        harvest_date=today + dt.timedelta(days=days_remaining),
    )


def _observed_weights_by_day(
    samples: Sequence[WeightSample],
    acquisition_date: dt.date,
) -> dict[int, float]:
    """Observed weight in grams keyed by day of life; same-day samples are averaged."""
    grouped: dict[int, list[float]] = {}
    for sample in _usable_samples(samples):
        day = (sample.date - acquisition_date).days
        grouped.setdefault(day, []).append(sample.average_weight_kg * GRAMS_PER_KG)
    return {day: float(np.mean(weights)) for day, weights in grouped.items()}


def _actual_weight_on(
    day: int,
    observed: dict[int, float],
    observed_days: list[int],
    sample_window_days: int,
) -> Optional[float]:
    if day in observed:
        return observed[day]

    position = bisect.bisect_left(observed_days, day)
    if position == 0 or position == len(observed_days):
        return None

    prev_day, next_day = observed_days[position - 1], observed_days[position]
    if next_day - prev_day > sample_window_days:
        return None

    return float(np.interp(
        day,
        [prev_day, next_day],
        [observed[prev_day], observed[next_day]],
    ))


def build_chart_series(
    acquisition_date: dt.date,
    current_age_days: int,
    growth_standards: Sequence[GrowthStandard],
    samples: Sequence[WeightSample],
    sample_window_days: int = 14,
) -> list[ChartPoint]:
    """
    Build one chart point per day from day 0 to `current_age_days` inclusive.

    Expected weight comes from the interpolated growth curve. Actual weight
    is set on days with a sample, and on days between two consecutive samples
    at most `sample_window_days` apart (linear interpolation); otherwise None.

    Args:
        acquisition_date: Date the batch was acquired (day 0)
        current_age_days: Last day of the series
        growth_standards: Growth curve for the species
        samples: Weight samples in any order
        sample_window_days: Largest sample gap to interpolate across

    Returns:
        List of ChartPoint ordered by day
    """
    if current_age_days < 0:
        return []

    curve = sort_standards(growth_standards)
    days = np.arange(current_age_days + 1, dtype=float)
    if curve:
        expected = np.interp(
            days,
            [s.day for s in curve],
            [s.expected_weight_g for s in curve],
        )
    else:
        expected = np.zeros_like(days)

    observed = _observed_weights_by_day(samples, acquisition_date)
    observed_days = sorted(observed)

    series = []
    for day in range(current_age_days + 1):
        expected_g = float(expected[day])
        actual_g = _actual_weight_on(day, observed, observed_days, sample_window_days)
        series.append(ChartPoint(
            day=day,
            expected_weight_g=expected_g,
            actual_weight_g=actual_g,
            deviation_percent=(
                deviation_percent(actual_g, expected_g) if actual_g is not None else None
            ),
        ))

    return series


def assess_growth(
    batch: Batch,
    samples: Sequence[WeightSample],
    growth_standards: Sequence[GrowthStandard],
    today: dt.date,
) -> Optional[GrowthPerformance]:
    """
    Derive the growth metrics of a batch as of `today`.

    The latest sample is compared against the curve at the sample's own age.
    Without samples the batch is assumed to be on the curve.

    Returns:
        GrowthPerformance, or None when the species has no growth curve
    """
    if not growth_standards:
        return None

    age_days = batch.age_in_days(today)
    adg = estimate_adg(samples, batch.acquisition_date, age_days, growth_standards)

    ordered = _usable_samples(samples)
    if ordered:
        latest = ordered[0]
        sample_age = (latest.date - batch.acquisition_date).days
        current_weight_g = latest.average_weight_kg * GRAMS_PER_KG
        expected_weight_g = interpolate_expected_weight(sample_age, growth_standards)
    else:
        expected_weight_g = interpolate_expected_weight(age_days, growth_standards)
        current_weight_g = expected_weight_g

    index = performance_index(current_weight_g, expected_weight_g)

    projection = None
    if batch.target_weight_g:
        projection = project_harvest(
            current_weight_g,
            batch.target_weight_g,
            adg.adg_grams_per_day,
            today=today,
        )

    return GrowthPerformance(
        age_days=age_days,
        current_weight_g=current_weight_g,
        expected_weight_g=expected_weight_g,
        performance_index=index,
        deviation_percent=deviation_percent(current_weight_g, expected_weight_g),
        status=classify_status(index),
        adg=adg,
        expected_adg_grams_per_day=expected_adg(age_days, growth_standards),
        projection=projection,
    )


# Industry FCR targets; species not listed use the poultry default
DEFAULT_TARGET_FCR = 1.8
TARGET_FCR: Mapping[Species, float] = MappingProxyType({
    Species.CATFISH: 1.5,
})


def target_feed_conversion_ratio(species: Species) -> float:
    return TARGET_FCR.get(species, DEFAULT_TARGET_FCR)


def feed_conversion_ratio(
    total_feed_kg: float,
    average_weight_kg: float,
    head_count: int,
) -> Optional[float]:
    """
    Feed eaten per kilogram of live weight on hand.

    Returns:
        The ratio, or None when there is no feed, weight or stock to compare
    """
    live_weight_kg = average_weight_kg * head_count
    if total_feed_kg <= 0 or live_weight_kg <= 0:
        return None
    return total_feed_kg / live_weight_kg


def batch_feed_conversion_ratio(
    batch: Batch,
    feed_records: Sequence[FeedRecord],
    samples: Sequence[WeightSample],
) -> Optional[float]:
    """FCR from all feed given to a batch and its latest weight sample."""
    ordered = _usable_samples(samples)
    if not ordered:
        return None
    return feed_conversion_ratio(
        sum(record.quantity_kg for record in feed_records),
        ordered[0].average_weight_kg,
        batch.current_quantity,
    )
