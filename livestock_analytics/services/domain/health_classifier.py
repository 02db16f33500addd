"""
Domain service: Mortality rate and health status classification.

Acceptable mortality differs sharply by species, so health status is
classified against per-species thresholds. A tenant may replace the
thresholds of a species as a whole; there is no per-field merge.
"""
import datetime as dt
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from livestock_analytics.domain.models import (
    CauseShare,
    HealthStatus,
    MortalityRecord,
    Species,
    SpeciesThresholds,
)


DEFAULT_THRESHOLDS: Mapping[Species, SpeciesThresholds] = MappingProxyType({
    Species.BROILER: SpeciesThresholds(amber=5.0, red=10.0),
    Species.LAYER: SpeciesThresholds(amber=3.0, red=6.0),
    Species.CATFISH: SpeciesThresholds(amber=10.0, red=20.0),
    Species.TILAPIA: SpeciesThresholds(amber=10.0, red=20.0),
    Species.CATTLE: SpeciesThresholds(amber=2.0, red=5.0),
    Species.GOATS: SpeciesThresholds(amber=3.0, red=7.0),
    Species.SHEEP: SpeciesThresholds(amber=3.0, red=7.0),
    Species.BEES: SpeciesThresholds(amber=15.0, red=30.0),
})


class ThresholdTable:
    """
    Two-layer threshold lookup: tenant overrides first, system defaults second.

    Instances are read-only and may be shared across concurrent evaluations.
    """

    def __init__(
        self,
        overrides: Optional[Mapping[Species, SpeciesThresholds]] = None,
        defaults: Mapping[Species, SpeciesThresholds] = DEFAULT_THRESHOLDS,
    ):
        self._overrides = MappingProxyType(dict(overrides or {}))
        self._defaults = defaults

    def resolve(self, species: Species) -> SpeciesThresholds:
        override = self._overrides.get(species)
        if override is not None:
            return override
        return self._defaults[species]


def mortality_rate(initial_quantity: int, current_quantity: int) -> float:
    """
    Percentage of the initial cohort lost, never negative.

    Not capped at 100: re-stocking bookkeeping can push cumulative losses past
    the original cohort size and that value is reported as-is.
    """
    if initial_quantity <= 0:
        return 0.0
    return max(0.0, (initial_quantity - current_quantity) / initial_quantity * 100)


def mortality_rate_from_deaths(base_quantity: int, deaths: int) -> float:
    """Recorded deaths as a percentage of `base_quantity`, not capped at 100."""
    if base_quantity <= 0:
        return 0.0
    return max(0.0, deaths / base_quantity * 100)


def health_status(
    rate: float,
    species: Species,
    custom_thresholds: Optional[Mapping[Species, SpeciesThresholds]] = None,
) -> HealthStatus:
    """
    Classify a mortality rate for a species.

    Args:
        rate: Mortality rate in percent
        species: Batch species
        custom_thresholds: Tenant overrides, applied per whole species

    Returns:
        RED at or above the red threshold, AMBER at or above amber, else GREEN
    """
    thresholds = ThresholdTable(custom_thresholds).resolve(species)

    if rate >= thresholds.red:
        return HealthStatus.RED
    if rate >= thresholds.amber:
        return HealthStatus.AMBER
    return HealthStatus.GREEN


def total_deaths(records: Iterable[MortalityRecord]) -> int:
    return sum(record.quantity for record in records)


def recent_deaths(records: Iterable[MortalityRecord], since: dt.date) -> int:
    """Deaths recorded on or after `since`."""
    return sum(record.quantity for record in records if record.date >= since)


def cause_distribution(records: Iterable[MortalityRecord]) -> list[CauseShare]:
    """
    Break recorded deaths down by cause.

    Returns:
        One entry per cause, largest share first; empty when nothing died
    """
    by_cause: dict = {}
    for record in records:
        count, quantity = by_cause.get(record.cause, (0, 0))
        by_cause[record.cause] = (count + 1, quantity + record.quantity)

    deaths = sum(quantity for _, quantity in by_cause.values())
    if deaths == 0:
        return []

    shares = [
        CauseShare(
            cause=cause,
            count=count,
            quantity=quantity,
            percentage=quantity / deaths * 100,
        )
        for cause, (count, quantity) in by_cause.items()
    ]
    return sorted(shares, key=lambda share: share.quantity, reverse=True)
