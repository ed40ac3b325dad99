"""
Income Approach Method

Direct capitalisation of net operating income:

    gross     = monthly rent × 12
    effective = gross × (1 - vacancy)
    NOI       = effective × (1 - operating expense ratio)
    value     = NOI / cap rate

The range re-capitalises NOI at cap rate ± 50bp.
"""

from __future__ import annotations

import logging
from typing import Final, List

from .models import (
    CalculationStep,
    IncomeApproachDetails,
    QualityCheck,
    QualityCode,
    QualitySeverity,
    SubjectProperty,
    ValuationMethod,
    ValuationResult,
    ValueRange,
    round_to_thousand,
)
from .narrative import assumptions_for, income_methodology, limitations_for
from utils.formatting import format_currency, format_percent


logger = logging.getLogger(__name__)


INCOME_CONFIDENCE: Final = 80
CAP_RATE_SPREAD: Final = 0.005

DEFAULT_VACANCY_RATE: Final = 0.05
DEFAULT_OPEX_RATIO: Final = 0.30
DEFAULT_CAP_RATE: Final = 0.05

# Typical assumption bands
MAX_TYPICAL_VACANCY: Final = 0.30
MIN_TYPICAL_OPEX: Final = 0.10
MAX_TYPICAL_OPEX: Final = 0.60
MIN_TYPICAL_CAP_RATE: Final = 0.03
MAX_TYPICAL_CAP_RATE: Final = 0.12


def _capitalise(noi: float, rate: float) -> float:
    return round_to_thousand(noi / rate)


class IncomeApproachMethod:
    """Direct capitalisation of stabilised NOI."""

    def valuate(
        self,
        subject: SubjectProperty,
        monthly_rent: float,
        vacancy_rate: float = DEFAULT_VACANCY_RATE,
        operating_expense_ratio: float = DEFAULT_OPEX_RATIO,
        capitalization_rate: float = DEFAULT_CAP_RATE,
    ) -> ValuationResult:
        """
        Capitalise the subject's rental income.

        A non-positive cap rate yields a zero value with an error check
        rather than an exception.
        """
        gross_annual = monthly_rent * 12
        vacancy_loss = gross_annual * vacancy_rate
        effective_gross = gross_annual - vacancy_loss
        operating_expenses = effective_gross * operating_expense_ratio
        noi = effective_gross - operating_expenses

        if capitalization_rate > 0:
            estimated_value = _capitalise(noi, capitalization_rate)
            low = _capitalise(noi, capitalization_rate + CAP_RATE_SPREAD)
            upper_rate = capitalization_rate - CAP_RATE_SPREAD
            high = _capitalise(noi, upper_rate) if upper_rate > 0 else estimated_value
        else:
            estimated_value = low = high = 0.0

        bounds = (min(low, high, estimated_value), max(low, high, estimated_value))

        calculations = (
            CalculationStep(
                step="Gross annual income",
                description="Expected rental income for one year",
                formula="monthly rent × 12",
                inputs={"Monthly rent": monthly_rent},
                result=gross_annual,
            ),
            CalculationStep(
                step="Effective gross income",
                description="Gross income less vacancy loss",
                formula="gross income × (1 - vacancy rate)",
                inputs={
                    "Gross income": gross_annual,
                    "Vacancy rate": format_percent(vacancy_rate * 100),
                },
                result=effective_gross,
            ),
            CalculationStep(
                step="Net operating income (NOI)",
                description="Effective income less operating expenses",
                formula="effective income × (1 - expense ratio)",
                inputs={
                    "Effective income": effective_gross,
                    "Expense ratio": format_percent(operating_expense_ratio * 100),
                    "Annual expenses": operating_expenses,
                },
                result=noi,
            ),
            CalculationStep(
                step="Capitalised value",
                description="Property value from income and capitalisation rate",
                formula="NOI / capitalisation rate",
                inputs={
                    "NOI": noi,
                    "Capitalisation rate": format_percent(capitalization_rate * 100, decimals=2),
                },
                result=estimated_value,
            ),
        )

        checks = build_income_quality_checks(
            monthly_rent, vacancy_rate, operating_expense_ratio, capitalization_rate
        )

        if estimated_value:
            yield_text = format_percent(noi / estimated_value * 100, decimals=2)
        else:
            yield_text = "n/a"

        logger.debug(
            "Income approach for %s: NOI=%.0f cap=%.4f value=%s",
            subject.id, noi, capitalization_rate, estimated_value,
        )

        return ValuationResult(
            method=ValuationMethod.INCOME_APPROACH,
            estimated_value=estimated_value,
            value_range=ValueRange(min=bounds[0], max=bounds[1]),
            confidence=INCOME_CONFIDENCE,
            methodology=income_methodology(monthly_rent, capitalization_rate, vacancy_rate),
            calculations=calculations,
            reconciliation=(
                "Value set by capitalising rental income. Expected yield of "
                f"{yield_text} at a capitalisation rate of "
                f"{format_percent(capitalization_rate * 100, decimals=2)}. Annual net "
                f"operating income of {format_currency(noi)}."
            ),
            assumptions=assumptions_for(ValuationMethod.INCOME_APPROACH),
            limitations=limitations_for(ValuationMethod.INCOME_APPROACH),
            quality_checks=tuple(checks),
            details=IncomeApproachDetails(
                monthly_rent=monthly_rent,
                vacancy_rate=vacancy_rate,
                operating_expense_ratio=operating_expense_ratio,
                capitalization_rate=capitalization_rate,
                gross_annual_income=gross_annual,
                effective_gross_income=effective_gross,
                operating_expenses=operating_expenses,
                net_operating_income=noi,
            ),
        )


def build_income_quality_checks(
    monthly_rent: float,
    vacancy_rate: float,
    operating_expense_ratio: float,
    capitalization_rate: float,
) -> List[QualityCheck]:
    checks: List[QualityCheck] = []

    if not monthly_rent > 0:
        checks.append(QualityCheck(
            severity=QualitySeverity.ERROR,
            code=QualityCode.MISSING_INPUT,
            message="Monthly rent must be greater than 0",
        ))
    if vacancy_rate < 0 or vacancy_rate > MAX_TYPICAL_VACANCY:
        checks.append(QualityCheck(
            severity=QualitySeverity.WARNING,
            code=QualityCode.PARAMETER_OUT_OF_RANGE,
            message="Vacancy rate outside the typical range (0%-30%); verify the assumption",
        ))
    if operating_expense_ratio < MIN_TYPICAL_OPEX or operating_expense_ratio > MAX_TYPICAL_OPEX:
        checks.append(QualityCheck(
            severity=QualitySeverity.WARNING,
            code=QualityCode.PARAMETER_OUT_OF_RANGE,
            message="Operating expense ratio outside the typical range (10%-60%); verify the assumption",
        ))
    if capitalization_rate <= 0:
        checks.append(QualityCheck(
            severity=QualitySeverity.ERROR,
            code=QualityCode.MISSING_INPUT,
            message="Capitalisation rate must be greater than 0",
        ))
    elif capitalization_rate < MIN_TYPICAL_CAP_RATE or capitalization_rate > MAX_TYPICAL_CAP_RATE:
        checks.append(QualityCheck(
            severity=QualitySeverity.WARNING,
            code=QualityCode.PARAMETER_OUT_OF_RANGE,
            message="Capitalisation rate outside the typical range (3%-12%); verify the assumption",
        ))

    return checks
