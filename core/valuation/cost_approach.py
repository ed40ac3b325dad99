"""
Cost Approach Method

Value = land value + replacement construction cost - accumulated
depreciation. Depreciation is straight-line over the economic life,
driven by an effective age that scales actual age by condition.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Final, List, Optional

from .models import (
    CalculationStep,
    CostApproachDetails,
    PropertyCondition,
    QualityCheck,
    QualityCode,
    QualitySeverity,
    SubjectProperty,
    ValuationMethod,
    ValuationResult,
    ValueRange,
    round_half_up,
    round_to_thousand,
)
from .narrative import assumptions_for, cost_methodology, limitations_for
from .tables import CoefficientTables
from utils.formatting import format_currency, format_percent


logger = logging.getLogger(__name__)


COST_CONFIDENCE: Final = 75
RANGE_SPREAD: Final = 0.10

# Typical construction cost band per sqm
MIN_TYPICAL_COST_PER_SQM: Final = 3_000
MAX_TYPICAL_COST_PER_SQM: Final = 20_000
HIGH_DEPRECIATION_RATE: Final = 0.80


class CostApproachMethod:
    """Land plus depreciated replacement cost."""

    def __init__(self, tables: CoefficientTables, reference_date: Optional[date] = None):
        self._tables = tables
        self._reference_date = reference_date or date.today()

    def effective_age(self, actual_age: int, condition: PropertyCondition) -> int:
        return round_half_up(actual_age * self._tables.effective_age_factors[condition])

    def valuate(
        self,
        subject: SubjectProperty,
        land_value: float,
        construction_cost_per_sqm: float,
    ) -> ValuationResult:
        details = subject.details
        economic_life = self._tables.economic_life_years

        actual_age = max(0, self._reference_date.year - details.build_year)
        effective_age = self.effective_age(actual_age, details.condition)

        building_cost = details.built_area * construction_cost_per_sqm
        depreciation_rate = effective_age / economic_life
        depreciation = building_cost * depreciation_rate
        building_value = building_cost - depreciation
        total_value = round_to_thousand(land_value + building_value)

        bounds = sorted((
            round_to_thousand(total_value * (1 - RANGE_SPREAD)),
            round_to_thousand(total_value * (1 + RANGE_SPREAD)),
        ))

        calculations = (
            CalculationStep(
                step="Land value",
                description="Land value as supplied",
                formula="land value",
                inputs={"Estimated land value": format_currency(land_value)},
                result=land_value,
            ),
            CalculationStep(
                step="Construction cost",
                description="Replacement cost of the building as new",
                formula="built area × construction cost per sqm",
                inputs={
                    "Built area": details.built_area,
                    "Cost per sqm": construction_cost_per_sqm,
                },
                result=building_cost,
            ),
            CalculationStep(
                step="Depreciation",
                description="Accumulated depreciation from age and wear",
                formula="(effective age / economic life) × construction cost",
                inputs={
                    "Effective age": effective_age,
                    "Economic life": economic_life,
                    "Depreciation rate": format_percent(depreciation_rate * 100),
                },
                result=depreciation,
            ),
            CalculationStep(
                step="Total value",
                description="Land value plus depreciated building value",
                formula="land value + (construction cost - depreciation)",
                inputs={"Land value": land_value, "Building value": building_value},
                result=total_value,
            ),
        )

        checks = build_cost_quality_checks(land_value, construction_cost_per_sqm, depreciation_rate)

        logger.debug(
            "Cost approach for %s: age=%d effective=%d rate=%.3f value=%s",
            subject.id, actual_age, effective_age, depreciation_rate, total_value,
        )

        return ValuationResult(
            method=ValuationMethod.COST_APPROACH,
            estimated_value=total_value,
            value_range=ValueRange(min=bounds[0], max=bounds[1]),
            confidence=COST_CONFIDENCE,
            methodology=cost_methodology(subject, land_value, construction_cost_per_sqm),
            calculations=calculations,
            reconciliation=(
                "Value set by the cost approach: land value plus replacement construction "
                f"cost less depreciation. The building is {actual_age} years old (effective "
                f"age {effective_age}) with a depreciation rate of "
                f"{format_percent(depreciation_rate * 100)}."
            ),
            assumptions=assumptions_for(ValuationMethod.COST_APPROACH),
            limitations=limitations_for(ValuationMethod.COST_APPROACH),
            quality_checks=tuple(checks),
            details=CostApproachDetails(
                land_value=land_value,
                construction_cost_per_sqm=construction_cost_per_sqm,
                building_cost=building_cost,
                actual_age=actual_age,
                effective_age=effective_age,
                depreciation_rate=depreciation_rate,
                depreciation=depreciation,
                building_value=building_value,
            ),
        )


def build_cost_quality_checks(
    land_value: float,
    construction_cost_per_sqm: float,
    depreciation_rate: float,
) -> List[QualityCheck]:
    checks: List[QualityCheck] = []

    if not land_value > 0:
        checks.append(QualityCheck(
            severity=QualitySeverity.ERROR,
            code=QualityCode.MISSING_INPUT,
            message="Land value must be greater than 0",
        ))
    if not construction_cost_per_sqm > 0:
        checks.append(QualityCheck(
            severity=QualitySeverity.ERROR,
            code=QualityCode.MISSING_INPUT,
            message="Construction cost per sqm must be greater than 0",
        ))
    if not MIN_TYPICAL_COST_PER_SQM <= construction_cost_per_sqm <= MAX_TYPICAL_COST_PER_SQM:
        checks.append(QualityCheck(
            severity=QualitySeverity.WARNING,
            code=QualityCode.PARAMETER_OUT_OF_RANGE,
            message="Construction cost per sqm outside the typical range (3,000-20,000); verify the figure",
        ))
    if depreciation_rate > HIGH_DEPRECIATION_RATE:
        checks.append(QualityCheck(
            severity=QualitySeverity.WARNING,
            code=QualityCode.PARAMETER_OUT_OF_RANGE,
            message=(
                f"Unusually high depreciation rate ({format_percent(depreciation_rate * 100)}); "
                "check build year and condition"
            ),
        ))

    return checks
