"""
Narrative text attached to valuation results.

Methodology statements, assumptions and limitations per method. Kept
apart from the calculators so wording can change without touching the
arithmetic.
"""

from __future__ import annotations

from typing import Final

from .models import SubjectProperty, ValuationMethod
from utils.formatting import format_currency, format_percent


COMMON_ASSUMPTIONS: Final[tuple[str, ...]] = (
    "The valuation reflects the condition of the property at the inspection date",
    "The property is assumed to be in lawful and proper use",
    "No in-depth structural survey was carried out",
    "Data supplied by the client is assumed correct to the best of their knowledge",
)

METHOD_ASSUMPTIONS: Final[dict[ValuationMethod, tuple[str, ...]]] = {
    ValuationMethod.COMPARABLE_SALES: (
        "The selected transactions reflect relevant market conditions",
        "Adjustments are based on market analysis and historical data",
    ),
    ValuationMethod.COST_APPROACH: (
        "Construction costs reflect current market data",
        "The depreciation rate reflects the property's condition and expected economic life",
    ),
    ValuationMethod.INCOME_APPROACH: (
        "Rents reflect an active and orderly rental market",
        "Vacancy and operating expenses are based on market averages",
    ),
}

COMMON_LIMITATIONS: Final[tuple[str, ...]] = (
    "The valuation is valid at the valuation date only and ignores future changes",
    "The valuation treats the property as is, excluding future improvements",
    "Value may change with market and economic conditions",
)

# Below this many comparables the sales comparison should be corroborated.
LIMITED_SAMPLE_THRESHOLD: Final = 5


def assumptions_for(method: ValuationMethod) -> tuple[str, ...]:
    return COMMON_ASSUMPTIONS + METHOD_ASSUMPTIONS.get(method, ())


def limitations_for(method: ValuationMethod, comp_count: int = 0) -> tuple[str, ...]:
    limitations = list(COMMON_LIMITATIONS)

    if method == ValuationMethod.COMPARABLE_SALES and comp_count < LIMITED_SAMPLE_THRESHOLD:
        limitations.append(
            "The number of comparable transactions is limited; "
            "corroborate with an additional method"
        )
    if method == ValuationMethod.COST_APPROACH:
        limitations.append("The cost approach does not necessarily reflect open-market price")
    if method == ValuationMethod.INCOME_APPROACH:
        limitations.append(
            "The result depends on the income, expense and capitalisation rate assumptions"
        )

    return tuple(limitations)


def comparable_methodology(comp_count: int, subject: SubjectProperty) -> str:
    area = ", ".join(p for p in (subject.address.neighborhood, subject.address.city) if p)
    return (
        f"The sales comparison approach analyses {comp_count} comparable transactions "
        f"in {area}. Transactions were selected for similarity in property type, size, "
        "location, condition and sale period. Each was adjusted by accepted market "
        "coefficients to align it with the subject, and the final value weights the "
        "transactions by similarity and relevance."
    )


PROFESSIONAL_METHODOLOGY: Final = (
    "Professional sales comparison with hard pre-filtering, absolute adjustments "
    "and weighting by time, distance and data quality."
)


def cost_methodology(subject: SubjectProperty, land_value: float, cost_per_sqm: float) -> str:
    return (
        f"The cost approach adds the land value ({format_currency(land_value)}) to the "
        f"replacement construction cost ({format_currency(cost_per_sqm)} per sqm) less "
        "accumulated depreciation. It suits unique properties or markets with too few "
        f"comparable sales. Construction costs reflect current data for {subject.address.city}."
    )


def income_methodology(monthly_rent: float, cap_rate: float, vacancy_rate: float) -> str:
    return (
        f"The income approach capitalises expected rent ({format_currency(monthly_rent)} "
        f"per month) net of vacancy ({format_percent(vacancy_rate * 100)}) and operating "
        f"expenses. The capitalisation rate ({format_percent(cap_rate * 100)}) is derived "
        "from market analysis of similar properties. It suits income-producing assets "
        "and mirrors investor pricing."
    )


HYBRID_METHODOLOGY: Final = (
    "Reconciliation of valuation methods weighted by method relevance and data quality."
)
