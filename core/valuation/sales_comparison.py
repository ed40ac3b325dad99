"""
Sales Comparison Method

Implements:
- Per-comparable adjustment (Adjustment Calculator)
- Similarity-weighted mean as the point estimate
- Standard-deviation value range
- Confidence scoring from sample size, spread and similarity
- Quality diagnostics (low sample, high variation, large adjustment, outliers)

The professional variant replaces percentage adjustments with absolute
amounts off a market price-per-sqm baseline, hard-filters the comparable
set, and weights each comparable by time, distance and data quality.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import date
from statistics import fmean, pstdev
from typing import Final, List, Optional, Sequence

from .adjustments import AdjustmentCalculator
from .models import (
    CalculationStep,
    ComparableTransaction,
    NoComparablesError,
    QualityCheck,
    QualityCode,
    QualitySeverity,
    SalesComparisonDetails,
    SubjectProperty,
    TransactionDetail,
    ValuationMethod,
    ValuationResult,
    ValueRange,
    clamp_confidence,
    round_half_up,
    round_to_thousand,
)
from .narrative import (
    PROFESSIONAL_METHODOLOGY,
    assumptions_for,
    comparable_methodology,
    limitations_for,
)
from .tables import CoefficientTables
from utils.formatting import format_currency, format_percent


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# Weight for comparables without a similarity score
DEFAULT_SIMILARITY: Final = 50

# Confidence scoring
BASE_CONFIDENCE: Final = 90
MIN_COMPS_ACCEPTABLE: Final = 3
MIN_COMPS_TARGET: Final = 5
CV_HIGH_PERCENT: Final = 20
CV_VERY_HIGH_PERCENT: Final = 30
SIMILARITY_LOW: Final = 60
SIMILARITY_VERY_LOW: Final = 50

# Quality diagnostics
LARGE_ADJUSTMENT_THRESHOLD: Final = 0.30
OUTLIER_Z_SCORE: Final = 2.0

DAYS_PER_MONTH: Final = 30


@dataclass(frozen=True)
class AdjustedComparable:
    """A comparable with its adjusted price and relative adjustment total."""

    comparable: ComparableTransaction
    adjusted_price: float
    adjustment_total: float
    weight: float = 1.0


class SalesComparisonMethod:
    """
    Sales comparison valuation.

    Pipeline order:
    1. SELECT - keep comparables flagged as selected
    2. ADJUST - run the Adjustment Calculator per comparable
    3. AGGREGATE - similarity-weighted mean, standard deviation range
    4. SCORE - confidence and quality diagnostics
    """

    def __init__(self, tables: CoefficientTables, reference_date: Optional[date] = None):
        """
        Args:
            tables: Coefficient tables
            reference_date: Valuation date (default: today)
        """
        self._tables = tables
        self._reference_date = reference_date or date.today()
        self._calculator = AdjustmentCalculator(tables, self._reference_date.year)

    # =========================================================================
    # Simple Variant
    # =========================================================================

    def valuate(
        self,
        subject: SubjectProperty,
        comparables: Sequence[ComparableTransaction],
    ) -> ValuationResult:
        """
        Value the subject from its selected comparables.

        Raises:
            NoComparablesError: if no comparable is selected
        """
        selected = [c for c in comparables if c.selected]
        if not selected:
            logger.warning("Sales comparison for %s has no selected comparables", subject.id)
            raise NoComparablesError("No comparables selected for sales comparison")

        adjusted_comps = [
            c.with_adjustments(self._calculator.adjust(subject, c)) for c in selected
        ]
        entries = [
            AdjustedComparable(
                comparable=c,
                adjusted_price=c.adjusted_price,
                adjustment_total=c.adjustments.total,
                weight=_similarity(c),
            )
            for c in adjusted_comps
        ]
        prices = [e.adjusted_price for e in entries]

        avg_adjusted_price = fmean(prices)
        weighted_value = _weighted_mean(entries)
        final_value = round_to_thousand(weighted_value)
        std_dev = pstdev(prices)
        value_range = ValueRange(
            min=round_to_thousand(final_value - std_dev),
            max=round_to_thousand(final_value + std_dev),
        )

        calculations = (
            CalculationStep(
                step="Average adjusted price",
                description=f"Mean of {len(selected)} comparable transactions after adjustment",
                formula="Σ(sale price × (1 + adjustments)) / transaction count",
                inputs={
                    "Transactions": len(selected),
                    "Price range": f"{format_currency(min(prices))} - {format_currency(max(prices))}",
                },
                result=avg_adjusted_price,
            ),
            CalculationStep(
                step="Weighted value",
                description="Final value after weighting transactions by relevance",
                formula="Σ(adjusted price × similarity weight) / Σ(weights)",
                inputs={"Weighting": "similarity score"},
                result=weighted_value,
            ),
        )

        confidence = _confidence(selected, std_dev, avg_adjusted_price)
        checks = build_quality_checks(entries, std_dev, avg_adjusted_price)

        logger.debug(
            "Sales comparison for %s: %d comps, value=%s, std=%.0f, confidence=%d",
            subject.id, len(selected), final_value, std_dev, confidence,
        )

        return ValuationResult(
            method=ValuationMethod.COMPARABLE_SALES,
            estimated_value=final_value,
            value_range=value_range,
            confidence=confidence,
            methodology=comparable_methodology(len(selected), subject),
            calculations=calculations,
            reconciliation=_reconciliation_text(prices, final_value, confidence),
            assumptions=assumptions_for(ValuationMethod.COMPARABLE_SALES),
            limitations=limitations_for(ValuationMethod.COMPARABLE_SALES, len(selected)),
            quality_checks=tuple(checks),
            details=SalesComparisonDetails(
                comparables=tuple(adjusted_comps),
                unweighted_mean=avg_adjusted_price,
                weighted_mean=weighted_value,
                standard_deviation=std_dev,
                coefficient_of_variation=_cv_percent(std_dev, avg_adjusted_price),
            ),
        )

    # =========================================================================
    # Professional Variant
    # =========================================================================

    def valuate_professional(
        self,
        subject: SubjectProperty,
        comparables: Sequence[ComparableTransaction],
    ) -> ValuationResult:
        """
        Value the subject with hard filtering and decay weighting.

        Raises:
            NoComparablesError: if no comparable survives the hard filter
        """
        prof = self._tables.professional
        radius_km = prof.radius_for(subject.address.city)
        filtered = self.hard_filter(subject, comparables)
        dropped = sum(1 for c in comparables if c.selected) - len(filtered)
        if dropped:
            logger.warning(
                "Hard filter dropped %d comparables for %s (radius %.1f km)",
                dropped, subject.id, radius_km,
            )
        if not filtered:
            logger.warning("No comparables for %s survived the hard filter", subject.id)
            raise NoComparablesError("No comparables remain after quality filtering")

        market_ppsqm = market_price_per_sqm(filtered)

        entries: List[AdjustedComparable] = []
        breakdowns: List[dict[str, float]] = []
        for comp in filtered:
            breakdown = self.absolute_adjustments(subject, comp, market_ppsqm)
            adjusted_price = comp.sale_price + sum(breakdown.values())
            weight = (
                self.time_decay(comp.sale_date)
                * self.distance_decay(comp.distance)
                * self.data_quality_score(breakdown)
            )
            entries.append(AdjustedComparable(
                comparable=replace(comp, adjusted_price=adjusted_price),
                adjusted_price=adjusted_price,
                adjustment_total=(adjusted_price - comp.sale_price) / comp.sale_price,
                weight=weight,
            ))
            breakdowns.append(breakdown)

        total_weight = sum(e.weight for e in entries)
        final_raw = _weighted_mean(entries)
        final_value = round_to_thousand(final_raw)
        prices = [e.adjusted_price for e in entries]
        std_dev = pstdev(prices)
        value_range = ValueRange(
            min=round_to_thousand(final_raw - std_dev),
            max=round_to_thousand(final_raw + std_dev),
        )

        calculations = (
            CalculationStep(
                step="Hard filter",
                description="Comparables retained after area, price and radius filters",
                formula="|Δarea| / area ≤ max deviation ∧ price > 0 ∧ distance ≤ radius",
                inputs={
                    "Candidates": sum(1 for c in comparables if c.selected),
                    "Radius (km)": radius_km,
                },
                result=len(filtered),
            ),
            CalculationStep(
                step="Market price per sqm",
                description="Mean price per sqm of filtered transactions",
                formula="Σ(price per sqm) / transaction count",
                inputs={"Transactions": len(filtered)},
                result=market_ppsqm,
            ),
            CalculationStep(
                step="Transaction weighting",
                description="Adjusted prices weighted by time, distance and data quality",
                formula="Σ(adjusted price × weight) / Σ(weights)",
                inputs={"Σ weights": total_weight},
                result=final_value,
            ),
        )

        confidence = _confidence(filtered, std_dev, final_raw)
        checks = build_quality_checks(entries, std_dev, final_raw)

        details = tuple(
            TransactionDetail(
                id=e.comparable.id,
                address=e.comparable.address,
                base_price=e.comparable.sale_price,
                adjusted_price=e.adjusted_price,
                weight=e.weight,
                adjustments=breakdown,
            )
            for e, breakdown in zip(entries, breakdowns)
        )

        logger.debug(
            "Professional sales comparison for %s: %d comps, ppsqm=%s, value=%s",
            subject.id, len(filtered), market_ppsqm, final_value,
        )

        return ValuationResult(
            method=ValuationMethod.COMPARABLE_SALES,
            estimated_value=final_value,
            value_range=value_range,
            confidence=confidence,
            methodology=PROFESSIONAL_METHODOLOGY,
            calculations=calculations,
            reconciliation=(
                f"Final value set by weighting {len(filtered)} transactions after "
                "adjustment and time/distance weighting."
            ),
            assumptions=assumptions_for(ValuationMethod.COMPARABLE_SALES),
            limitations=limitations_for(ValuationMethod.COMPARABLE_SALES, len(filtered)),
            quality_checks=tuple(checks),
            transaction_details=details,
            details=SalesComparisonDetails(
                comparables=tuple(e.comparable for e in entries),
                unweighted_mean=fmean(prices),
                weighted_mean=final_raw,
                standard_deviation=std_dev,
                coefficient_of_variation=_cv_percent(std_dev, final_raw),
                professional=True,
                market_price_per_sqm=market_ppsqm,
            ),
        )

    def hard_filter(
        self,
        subject: SubjectProperty,
        comparables: Sequence[ComparableTransaction],
    ) -> List[ComparableTransaction]:
        """
        Drop comparables that differ too much to be evidence.

        A comparable must be selected, within the area deviation, have a
        positive price and (when its distance is known) lie inside the
        city-density radius.
        """
        prof = self._tables.professional
        radius_km = prof.radius_for(subject.address.city)
        subject_area = subject.details.built_area

        result = []
        for comp in comparables:
            if not comp.selected:
                continue
            if subject_area <= 0 or abs(comp.built_area - subject_area) / subject_area > prof.max_area_deviation:
                continue
            if comp.sale_price <= 0:
                continue
            if comp.distance is not None and comp.distance > radius_km:
                continue
            result.append(comp)
        return result

    def absolute_adjustments(
        self,
        subject: SubjectProperty,
        comp: ComparableTransaction,
        market_ppsqm: float,
    ) -> dict[str, float]:
        """
        Absolute amount adjustments, keyed by component.

        Only components that could be computed are recorded; a comparable
        without a known floor carries no floor entry.
        """
        prof = self._tables.professional
        details = subject.details

        breakdown = {
            "area": (details.built_area - comp.built_area) * market_ppsqm * prof.area_weight,
        }
        if comp.floor is not None:
            breakdown["floor"] = (details.floor - comp.floor) * prof.floor_coefficient

        # Comparables carry no condition; the comparable is scored as the
        # subject's condition, so this term is zero until they do.
        subject_score = prof.condition_scores[details.condition]
        comp_score = subject_score
        breakdown["condition"] = (subject_score - comp_score) * comp.sale_price * prof.condition_coefficient
        return breakdown

    def time_decay(self, sale_date: Optional[date]) -> float:
        """exp(-months / 24), floored; 1.0 for same-day or undated sales."""
        if sale_date is None:
            return 1.0
        months = max(0.0, (self._reference_date - sale_date).days / DAYS_PER_MONTH)
        if months == 0:
            return 1.0
        prof = self._tables.professional
        return _bounded_decay(months / prof.time_decay_months, prof.decay_floor)

    def distance_decay(self, distance_km: Optional[float]) -> float:
        """exp(-km / 2), floored; 1.0 for zero or unknown distance."""
        if distance_km is None or distance_km <= 0:
            return 1.0
        prof = self._tables.professional
        return _bounded_decay(distance_km / prof.distance_decay_km, prof.decay_floor)

    def data_quality_score(self, breakdown: dict[str, float]) -> float:
        prof = self._tables.professional
        if len(breakdown) < prof.min_recorded_components:
            return prof.data_quality_penalty
        return 1.0


# =============================================================================
# Shared Helpers
# =============================================================================


def market_price_per_sqm(comparables: Sequence[ComparableTransaction]) -> int:
    """Rounded mean price per sqm; areas under 1 sqm count as 1."""
    values = [c.sale_price / max(1.0, c.built_area) for c in comparables]
    return round_half_up(fmean(values))


def build_quality_checks(
    entries: Sequence[AdjustedComparable],
    std_dev: float,
    mean_price: float,
) -> List[QualityCheck]:
    """
    Diagnostics for a comparable set.

    - low-sample: fewer than 3 comparables
    - high-variation: coefficient of variation above 20%
    - large-adjustment: any |total adjustment| above 30%
    - outlier: any adjusted price with |z| above 2
    """
    checks: List[QualityCheck] = []

    if len(entries) < MIN_COMPS_ACCEPTABLE:
        checks.append(QualityCheck(
            severity=QualitySeverity.WARNING,
            code=QualityCode.LOW_SAMPLE,
            message=(
                "Fewer than 3 comparable transactions selected; add transactions "
                "or corroborate with another method"
            ),
        ))

    cv = _cv_percent(std_dev, mean_price)
    if cv > CV_HIGH_PERCENT:
        checks.append(QualityCheck(
            severity=QualitySeverity.WARNING,
            code=QualityCode.HIGH_VARIATION,
            message=f"High standard deviation relative to the mean (CV={cv:.1f}%); wide value range",
        ))

    for entry in entries:
        if abs(entry.adjustment_total) > LARGE_ADJUSTMENT_THRESHOLD:
            checks.append(QualityCheck(
                severity=QualitySeverity.WARNING,
                code=QualityCode.LARGE_ADJUSTMENT,
                message=(
                    f'Transaction "{entry.comparable.address}" received an unusually large '
                    f"total adjustment ({format_percent(entry.adjustment_total * 100)})"
                ),
            ))

    if std_dev > 0:
        for entry in entries:
            z = abs((entry.adjusted_price - mean_price) / std_dev)
            if z > OUTLIER_Z_SCORE:
                checks.append(QualityCheck(
                    severity=QualitySeverity.WARNING,
                    code=QualityCode.OUTLIER,
                    message=f'Transaction "{entry.comparable.address}" is an outlier in the set (z={z:.2f})',
                ))

    return checks


def _similarity(comp: ComparableTransaction) -> float:
    # A score of 0 is treated as unscored.
    return comp.similarity_score or DEFAULT_SIMILARITY


def _weighted_mean(entries: Sequence[AdjustedComparable]) -> float:
    total_weight = sum(e.weight for e in entries)
    return sum(e.adjusted_price * e.weight for e in entries) / total_weight


def _cv_percent(std_dev: float, mean_price: float) -> float:
    if mean_price <= 0:
        return 0.0
    return std_dev / mean_price * 100


def _bounded_decay(x: float, floor: float) -> float:
    return min(1.0, max(floor, math.exp(-x)))


def _confidence(
    comparables: Sequence[ComparableTransaction],
    std_dev: float,
    mean_price: float,
) -> int:
    """
    Confidence score (40-95).

    Starts at 90 and is penalised for small samples, wide spread and low
    average similarity.
    """
    cv = _cv_percent(std_dev, mean_price)
    confidence = BASE_CONFIDENCE

    if len(comparables) < MIN_COMPS_ACCEPTABLE:
        confidence -= 15
    if len(comparables) < MIN_COMPS_TARGET:
        confidence -= 10
    if cv > CV_HIGH_PERCENT:
        confidence -= 15
    if cv > CV_VERY_HIGH_PERCENT:
        confidence -= 10

    avg_similarity = fmean(_similarity(c) for c in comparables)
    if avg_similarity < SIMILARITY_LOW:
        confidence -= 10
    if avg_similarity < SIMILARITY_VERY_LOW:
        confidence -= 10

    return clamp_confidence(confidence)


def _reconciliation_text(prices: Sequence[float], final_value: float, confidence: int) -> str:
    low, high = min(prices), max(prices)
    spread = (high - low) / final_value * 100 if final_value else 0.0
    return (
        f"After analysing {len(prices)} transactions adjusted to the subject, values ranged "
        f"from {format_currency(low)} to {format_currency(high)} (spread {spread:.1f}%). "
        f"The final value of {format_currency(final_value)} weights the most relevant "
        f"transactions. Valuation confidence: {confidence}%."
    )
