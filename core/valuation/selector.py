"""
Method Selector

Decision table keyed on property type:
- Residential: sales comparison, falling back to cost
- Commercial: income capitalisation, falling back to sales comparison then cost
- Land: cost approach, falling back to sales comparison

Missing data never blocks a recommendation; it is reported as required
inputs and warnings.
"""

from __future__ import annotations

from typing import Final, List

from .models import (
    PropertyType,
    RequiredInput,
    SubjectProperty,
    ValuationContext,
    ValuationMethod,
    ValuationRecommendation,
)


MIN_RECOMMENDED_COMPARABLES: Final = 3


def recommend_valuation_method(
    subject: SubjectProperty,
    context: ValuationContext = ValuationContext(),
) -> ValuationRecommendation:
    """
    Recommend a primary valuation method for the subject.

    Args:
        subject: Property being valued
        context: What supporting data is available

    Returns:
        ValuationRecommendation with ordered fallbacks
    """
    reasons: List[str] = []
    warnings: List[str] = []
    required: List[RequiredInput] = []

    property_type = subject.property_type

    if property_type.is_residential:
        reasons.append("Residential property: sales comparison is the accepted default")

        selected_count = sum(1 for c in context.comparables if c.selected)
        if selected_count == 0:
            required.append(RequiredInput.COMPARABLES)
            warnings.append("No comparables selected; a comparable set is required to run the valuation")
        elif selected_count < MIN_RECOMMENDED_COMPARABLES:
            warnings.append(
                f"Fewer than {MIN_RECOMMENDED_COMPARABLES} comparables selected; "
                "confidence is expected to drop"
            )

        return ValuationRecommendation(
            recommended_method=ValuationMethod.COMPARABLE_SALES,
            fallback_methods=(ValuationMethod.COST_APPROACH,),
            reasons=tuple(reasons),
            required_inputs=tuple(required),
            warnings=tuple(warnings),
        )

    if property_type == PropertyType.COMMERCIAL:
        reasons.append("Commercial / income-producing property: capitalisation reflects NOI and market yield")

        if not context.has_monthly_rent:
            required.append(RequiredInput.MONTHLY_RENT)
            warnings.append("No monthly rent provided; it is required for NOI and capitalisation")

        return ValuationRecommendation(
            recommended_method=ValuationMethod.INCOME_APPROACH,
            fallback_methods=(ValuationMethod.COMPARABLE_SALES, ValuationMethod.COST_APPROACH),
            reasons=tuple(reasons),
            required_inputs=tuple(required),
            warnings=tuple(warnings),
        )

    if property_type == PropertyType.LAND:
        reasons.append("Land: valued by the cost approach (land plus development cost)")
        warnings.append("A land residual / extraction method is not implemented")

        if not context.has_land_value:
            required.append(RequiredInput.LAND_VALUE)
        if not context.has_construction_cost_per_sqm:
            required.append(RequiredInput.CONSTRUCTION_COST_PER_SQM)

        return ValuationRecommendation(
            recommended_method=ValuationMethod.COST_APPROACH,
            fallback_methods=(ValuationMethod.COMPARABLE_SALES,),
            reasons=tuple(reasons),
            required_inputs=tuple(required),
            warnings=tuple(warnings),
        )

    # Unreachable while PropertyType stays closed
    warnings.append(f"Unrecognised property type {property_type!r}; using the default method")
    return ValuationRecommendation(
        recommended_method=ValuationMethod.COMPARABLE_SALES,
        fallback_methods=(ValuationMethod.COST_APPROACH, ValuationMethod.INCOME_APPROACH),
        reasons=tuple(reasons),
        required_inputs=tuple(required),
        warnings=tuple(warnings),
    )
