"""
Read-only growth-standard reference table.

Expected weight by species and day of life. Rows are reference data shared by
every evaluation, so the table is immutable once built.
"""
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence, Tuple

import numpy as np

from livestock_analytics.domain.models import GrowthStandard, Species


def sort_standards(standards: Iterable[GrowthStandard]) -> Tuple[GrowthStandard, ...]:
    """Return standards ordered by day, keeping the first row seen for a day."""
    by_day: dict[int, GrowthStandard] = {}
    for standard in standards:
        by_day.setdefault(standard.day, standard)
    return tuple(by_day[day] for day in sorted(by_day))


def interpolate_expected_weight(
    day: float,
    standards: Sequence[GrowthStandard],
) -> float:
    """
    Expected weight in grams at `day`.

    Linear interpolation between the nearest bracketing standard days,
    clamped to the first/last row outside the curve. An empty curve
    yields 0.

    Args:
        day: Day of life (may be fractional)
        standards: Growth standards, in any order

    Returns:
        Expected weight in grams
    """
    ordered = sort_standards(standards)
    if not ordered:
        return 0.0

    days = np.array([s.day for s in ordered], dtype=float)
    weights = np.array([s.expected_weight_g for s in ordered], dtype=float)
    return float(np.interp(day, days, weights))


class GrowthCurveTable:
    """Growth standards keyed by species."""

    def __init__(self, rows: Iterable[GrowthStandard] = ()):
        grouped: dict[Species, list[GrowthStandard]] = {}
        for row in rows:
            if row.species is None:
                raise ValueError(f"Growth standard for day {row.day} has no species")
            grouped.setdefault(row.species, []).append(row)

        self._curves: Mapping[Species, Tuple[GrowthStandard, ...]] = MappingProxyType(
            {species: sort_standards(curve) for species, curve in grouped.items()}
        )

    @classmethod
    def for_single_species(
        cls,
        species: Species,
        standards: Iterable[GrowthStandard],
    ) -> "GrowthCurveTable":
        rows = [s.model_copy(update={"species": species}) for s in standards]
        return cls(rows)

    def for_species(self, species: Species) -> Tuple[GrowthStandard, ...]:
        return self._curves.get(species, ())
