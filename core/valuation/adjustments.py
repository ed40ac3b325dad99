"""
Adjustment Calculator

Computes the per-comparable adjustment vector:
- Location (distance bands)
- Size (relative area difference past a no-op threshold)
- Condition (subject condition against a neutral 1.0 baseline)
- Floor (premium curve delta)
- Age (build-year distance from the reference year)
- Features (additive amenity credits)

Pure function of the subject, the comparable and the Coefficient Tables.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from .models import (
    AdjustmentVector,
    ComparableTransaction,
    PropertyCondition,
    SubjectProperty,
)
from .tables import CoefficientTables, Step


class AdjustmentCalculator:
    """
    Applies the coefficient tables to one subject/comparable pair.

    Holds only immutable configuration; safe to share across threads.
    """

    def __init__(self, tables: CoefficientTables, reference_year: Optional[int] = None):
        """
        Args:
            tables: Coefficient tables to apply
            reference_year: Valuation year (default: current year)
        """
        self._tables = tables
        self._reference_year = reference_year or date.today().year

    def adjust(
        self,
        subject: SubjectProperty,
        comparable: ComparableTransaction,
    ) -> AdjustmentVector:
        """
        Compute the adjustment vector for one comparable.

        Returns:
            AdjustmentVector whose total is the sum of its six components
        """
        details = subject.details
        return AdjustmentVector(
            location=self.location_adjustment(comparable.distance),
            size=self.size_adjustment(details.built_area, comparable.built_area),
            condition=self.condition_adjustment(details.condition),
            floor=self.floor_adjustment(details.floor, comparable.floor),
            age=self.age_adjustment(details.build_year),
            features=self.features_adjustment(subject),
        )

    def location_adjustment(self, distance_km: Optional[float]) -> float:
        """First distance band the comparable falls inside, else the default."""
        if distance_km is None:
            return self._tables.location_default
        return _step_lookup(
            self._tables.location_steps, distance_km, self._tables.location_default
        )

    def size_adjustment(self, subject_area: float, comp_area: float) -> float:
        """
        Proportional correction for a smaller/larger comparable.

        Differences under the no-op threshold are ignored.
        """
        if comp_area <= 0:
            return 0.0
        diff = (subject_area - comp_area) / comp_area
        if abs(diff) < self._tables.size_noop_threshold:
            return 0.0
        return diff * self._tables.size_factor

    def condition_adjustment(self, condition: PropertyCondition) -> float:
        # The comparable's own condition is not recorded; the subject's
        # condition is priced against the neutral 1.0 baseline.
        return self._tables.condition_multipliers[condition] - 1

    def floor_adjustment(self, subject_floor: int, comp_floor: Optional[int]) -> float:
        if comp_floor is None:
            return 0.0
        return self._tables.floor_value(subject_floor) - self._tables.floor_value(comp_floor)

    def age_adjustment(self, build_year: int) -> float:
        reference = self._reference_year - self._tables.age_reference_offset_years
        years_diff = abs(build_year - reference)
        return _step_lookup(self._tables.age_steps, years_diff, self._tables.age_default)

    def features_adjustment(self, subject: SubjectProperty) -> float:
        details = subject.details
        tables = self._tables
        adjustment = 0.0
        if details.elevator:
            adjustment += tables.feature_value("elevator")
        if details.parking > 0:
            adjustment += tables.feature_value("parking") * details.parking
        if details.storage:
            adjustment += tables.feature_value("storage")
        if details.balcony:
            adjustment += tables.feature_value("balcony")
        if details.accessible:
            adjustment += tables.feature_value("accessible")
        return adjustment


def _step_lookup(steps: tuple[Step, ...], value: float, default: float) -> float:
    for step in steps:
        if value < step.limit:
            return step.adjustment
    return default
