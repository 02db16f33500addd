"""
Domain service: Water quality checks for aquatic batches.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from livestock_analytics.config import settings
from livestock_analytics.domain.models import (
    ParameterStatus,
    WaterParameter,
    WaterQualityReading,
    WaterQualitySummary,
)


@dataclass(frozen=True)
class WaterQualityLimits:
    """Acceptable range for each parameter. Boundary values are acceptable."""

    ph_min: float = 6.5
    ph_max: float = 8.5
    temperature_min: float = 25.0
    temperature_max: float = 32.0
    dissolved_oxygen_min: float = 5.0
    ammonia_max: float = 0.02

    @classmethod
    def from_settings(cls) -> "WaterQualityLimits":
        return cls(
            ph_min=settings.water_ph_min,
            ph_max=settings.water_ph_max,
            temperature_min=settings.water_temperature_min,
            temperature_max=settings.water_temperature_max,
            dissolved_oxygen_min=settings.water_dissolved_oxygen_min,
            ammonia_max=settings.water_ammonia_max,
        )


_READING_FIELDS = {
    WaterParameter.PH: "ph",
    WaterParameter.TEMPERATURE: "temperature_celsius",
    WaterParameter.DISSOLVED_OXYGEN: "dissolved_oxygen_mg_l",
    WaterParameter.AMMONIA: "ammonia_mg_l",
}


def water_quality_issues(
    reading: WaterQualityReading,
    limits: WaterQualityLimits = WaterQualityLimits(),
) -> list[str]:
    """
    Describe every violated water quality condition.

    Args:
        reading: Water quality reading
        limits: Acceptable ranges

    Returns:
        One message per violation; empty when the water is within limits
    """
    issues = []

    if reading.ph < limits.ph_min:
        issues.append(f"pH too low ({reading.ph}, min: {limits.ph_min})")
    if reading.ph > limits.ph_max:
        issues.append(f"pH too high ({reading.ph}, max: {limits.ph_max})")
    if reading.temperature_celsius < limits.temperature_min:
        issues.append(
            f"Temperature too low ({reading.temperature_celsius}°C, "
            f"min: {limits.temperature_min}°C)"
        )
    if reading.temperature_celsius > limits.temperature_max:
        issues.append(
            f"Temperature too high ({reading.temperature_celsius}°C, "
            f"max: {limits.temperature_max}°C)"
        )
    if reading.dissolved_oxygen_mg_l < limits.dissolved_oxygen_min:
        issues.append(
            f"Dissolved oxygen too low ({reading.dissolved_oxygen_mg_l}mg/L, "
            f"min: {limits.dissolved_oxygen_min}mg/L)"
        )
    if reading.ammonia_mg_l > limits.ammonia_max:
        issues.append(
            f"Ammonia too high ({reading.ammonia_mg_l}mg/L, max: {limits.ammonia_max}mg/L)"
        )

    return issues


def parameter_status(
    parameter: WaterParameter,
    value: float,
    limits: WaterQualityLimits = WaterQualityLimits(),
) -> ParameterStatus:
    """
    Grade a single parameter value.

    Optimal sits well inside the acceptable range, acceptable is within the
    limits, warning is a short distance outside them, critical is beyond.
    """
    if parameter == WaterParameter.PH:
        if limits.ph_min + 0.5 <= value <= limits.ph_max - 0.5:
            return ParameterStatus.OPTIMAL
        if limits.ph_min <= value <= limits.ph_max:
            return ParameterStatus.ACCEPTABLE
        if limits.ph_min - 1 <= value <= limits.ph_max + 1:
            return ParameterStatus.WARNING
        return ParameterStatus.CRITICAL

    if parameter == WaterParameter.TEMPERATURE:
        if limits.temperature_min + 1 <= value <= limits.temperature_max - 1:
            return ParameterStatus.OPTIMAL
        if limits.temperature_min <= value <= limits.temperature_max:
            return ParameterStatus.ACCEPTABLE
        if limits.temperature_min - 3 <= value <= limits.temperature_max + 3:
            return ParameterStatus.WARNING
        return ParameterStatus.CRITICAL

    if parameter == WaterParameter.DISSOLVED_OXYGEN:
        if value >= limits.dissolved_oxygen_min + 2:
            return ParameterStatus.OPTIMAL
        if value >= limits.dissolved_oxygen_min:
            return ParameterStatus.ACCEPTABLE
        if value >= limits.dissolved_oxygen_min - 2:
            return ParameterStatus.WARNING
        return ParameterStatus.CRITICAL

    if value <= limits.ammonia_max / 2:
        return ParameterStatus.OPTIMAL
    if value <= limits.ammonia_max:
        return ParameterStatus.ACCEPTABLE
    if value <= limits.ammonia_max * 2:
        return ParameterStatus.WARNING
    return ParameterStatus.CRITICAL


def average_parameter(
    readings: Sequence[WaterQualityReading],
    parameter: WaterParameter,
) -> Optional[float]:
    if not readings:
        return None
    field = _READING_FIELDS[parameter]
    return float(np.mean([getattr(reading, field) for reading in readings]))


def summarize_readings(
    readings: Sequence[WaterQualityReading],
    limits: WaterQualityLimits = WaterQualityLimits(),
) -> WaterQualitySummary:
    """
    Summarize a set of readings.

    Averages and the status of each average per parameter; counts of
    readings in alert and of individual violations.
    """
    averages = {}
    statuses = {}
    for parameter in WaterParameter:
        average = average_parameter(readings, parameter)
        averages[parameter] = average
        statuses[parameter] = (
            parameter_status(parameter, average, limits)
            if average is not None
            else ParameterStatus.ACCEPTABLE
        )

    alert_count = 0
    issue_count = 0
    for reading in readings:
        issues = water_quality_issues(reading, limits)
        if issues:
            alert_count += 1
        issue_count += len(issues)

    return WaterQualitySummary(
        reading_count=len(readings),
        averages=averages,
        statuses=statuses,
        alert_count=alert_count,
        issue_count=issue_count,
    )
