"""
Reconciliation (Hybrid) Method

Combines any subset of method results into one estimate:
- Weight-normalised mean of the estimates, rounded to 1,000
- Envelope range over every input range
- Weight-normalised confidence
- Union of input quality checks plus a method-divergence warning
"""

from __future__ import annotations

import logging
from typing import Final, Mapping, Optional, Sequence, Union

from .models import (
    CalculationStep,
    EmptyReconciliationError,
    HybridDetails,
    QualityCheck,
    QualityCode,
    QualitySeverity,
    ValuationMethod,
    ValuationResult,
    ValueRange,
    clamp_confidence,
    round_to_thousand,
)
from .narrative import HYBRID_METHODOLOGY
from utils.formatting import format_currency


logger = logging.getLogger(__name__)


DEFAULT_WEIGHTS: Final[dict[ValuationMethod, float]] = {
    ValuationMethod.COMPARABLE_SALES: 0.6,
    ValuationMethod.INCOME_APPROACH: 0.6,
    ValuationMethod.COST_APPROACH: 0.4,
    ValuationMethod.HYBRID: 0.0,
}

# Weight for a method with neither a caller nor a default weight
FALLBACK_WEIGHT: Final = 1.0

DIVERGENCE_THRESHOLD_PERCENT: Final = 20.0

WeightKey = Union[ValuationMethod, str]


def reconcile_valuations(
    results: Sequence[ValuationResult],
    weights: Optional[Mapping[WeightKey, float]] = None,
) -> ValuationResult:
    """
    Merge several method results into one hybrid result.

    Args:
        results: Results from one or more valuation methods
        weights: Optional per-method weights, keyed by ValuationMethod or
            its string value; missing methods use DEFAULT_WEIGHTS

    Returns:
        ValuationResult tagged HYBRID

    Raises:
        EmptyReconciliationError: No results, or every weight is zero
    """
    if not results:
        raise EmptyReconciliationError("No valuation results to reconcile")

    overrides = _normalise_weights(weights or {})
    weighted = [
        (result, max(overrides.get(result.method, DEFAULT_WEIGHTS.get(result.method, FALLBACK_WEIGHT)), 0.0))
        for result in results
    ]
    weighted = [(result, weight) for result, weight in weighted if weight > 0]

    total_weight = sum(weight for _, weight in weighted)
    if total_weight <= 0:
        raise EmptyReconciliationError("Every reconciliation weight is zero")

    estimated_value = round_to_thousand(
        sum(result.estimated_value * weight for result, weight in weighted) / total_weight
    )
    confidence = clamp_confidence(
        sum(result.confidence * weight for result, weight in weighted) / total_weight
    )
    value_range = ValueRange(
        min=round_to_thousand(min(r.value_range.min for r in results)),
        max=round_to_thousand(max(r.value_range.max for r in results)),
    )

    checks = [check for result in results for check in result.quality_checks]
    spread = divergence_percent(results)
    if len(results) >= 2 and spread >= DIVERGENCE_THRESHOLD_PERCENT:
        checks.append(QualityCheck(
            severity=QualitySeverity.WARNING,
            code=QualityCode.METHOD_DIVERGENCE,
            message=(
                f"Significant divergence between methods (about {spread:.1f}%); "
                "the reconciliation should be analysed and justified"
            ),
        ))
        logger.warning("Method divergence of %.1f%% across %d results", spread, len(results))

    weight_inputs = {result.method.value: weight for result, weight in weighted}

    return ValuationResult(
        method=ValuationMethod.HYBRID,
        estimated_value=estimated_value,
        value_range=value_range,
        confidence=confidence,
        methodology=HYBRID_METHODOLOGY,
        calculations=(
            CalculationStep(
                step="Method reconciliation",
                description=f"Weighting of {len(results)} valuation results",
                formula="Σ(method value × weight) / Σ(weights)",
                inputs=dict(weight_inputs),
                result=estimated_value,
            ),
        ),
        reconciliation=_reconciliation_text(results, estimated_value),
        assumptions=_ordered_union(r.assumptions for r in results),
        limitations=_ordered_union(r.limitations for r in results),
        quality_checks=tuple(checks),
        details=HybridDetails(
            weights=weight_inputs,
            method_values=tuple((r.method.value, r.estimated_value) for r in results),
            spread_percent=spread,
        ),
    )


def divergence_percent(results: Sequence[ValuationResult]) -> float:
    """Spread of the estimates as a percentage of their midpoint."""
    values = [r.estimated_value for r in results]
    low, high = min(values), max(values)
    mid = (low + high) / 2
    if mid <= 0:
        return 0.0
    return (high - low) / mid * 100


def _normalise_weights(weights: Mapping[WeightKey, float]) -> dict[ValuationMethod, float]:
    normalised: dict[ValuationMethod, float] = {}
    for key, weight in weights.items():
        method = key if isinstance(key, ValuationMethod) else ValuationMethod.from_string(key)
        if method is None:
            raise ValueError(f"Unknown valuation method in weights: {key!r}")
        normalised[method] = weight
    return normalised


def _ordered_union(groups) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for group in groups:
        for item in group:
            seen.setdefault(item, None)
    return tuple(seen)


def _reconciliation_text(results: Sequence[ValuationResult], estimated_value: float) -> str:
    parts = " | ".join(
        f"{r.method.value}: {format_currency(r.estimated_value)} (confidence {r.confidence}%)"
        for r in results
    )
    return (
        f"Reconciled the following valuation methods: {parts}. The final value is "
        f"{format_currency(estimated_value)} according to the method weights and data quality."
    )
