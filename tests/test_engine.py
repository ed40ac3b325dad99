"""
Tests for the ValuationEngine facade and shared model contracts

Verifies:
- ValuationResult invariants are enforced at construction
- Half-up rounding helpers
- Enum string parsing
- Engine delegates to each method with its bound tables and date
"""

import pytest

from core.valuation import (
    PropertyCondition,
    PropertyType,
    QualityCode,
    ValuationEngine,
    ValuationMethod,
    ValuationResult,
    ValueRange,
)
from core.valuation.models import clamp_confidence, round_half_up, round_to_thousand


@pytest.fixture
def engine(tables, reference_date):
    return ValuationEngine(tables, reference_date)


class TestValuationResultInvariants:

    def test_estimate_outside_range_rejected(self):
        with pytest.raises(ValueError):
            ValuationResult(
                method=ValuationMethod.COST_APPROACH,
                estimated_value=3_000_000,
                value_range=ValueRange(min=1_000_000, max=2_000_000),
                confidence=75,
                methodology="",
            )

    @pytest.mark.parametrize("confidence", [39, 96])
    def test_confidence_outside_bounds_rejected(self, confidence):
        with pytest.raises(ValueError):
            ValuationResult(
                method=ValuationMethod.COST_APPROACH,
                estimated_value=1_000_000,
                value_range=ValueRange(min=1_000_000, max=1_000_000),
                confidence=confidence,
                methodology="",
            )

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError):
            ValueRange(min=2, max=1)


class TestRounding:

    def test_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2
        assert round_half_up(-2.5) == -3

    def test_to_thousand(self):
        assert round_to_thousand(1_500) == 2_000
        assert round_to_thousand(2_283_333.3) == 2_283_000

    def test_clamp_confidence(self):
        assert clamp_confidence(12) == 40
        assert clamp_confidence(100) == 95
        assert clamp_confidence(77.5) == 78


class TestEnumParsing:

    def test_sales_comparison_alias(self):
        assert ValuationMethod.from_string("sales-comparison") == ValuationMethod.COMPARABLE_SALES
        assert ValuationMethod.from_string("COMPARABLE_SALES") == ValuationMethod.COMPARABLE_SALES

    def test_unknown_method(self):
        assert ValuationMethod.from_string("appraisal") is None

    def test_property_type(self):
        assert PropertyType.from_string("Garden_Apartment") == PropertyType.GARDEN_APARTMENT
        assert PropertyType.LAND.is_residential is False

    def test_condition(self):
        assert PropertyCondition.from_string("renovation_needed") == PropertyCondition.RENOVATION_NEEDED


class TestEngine:

    def test_defaults(self):
        engine = ValuationEngine()
        assert engine.tables is not None
        assert engine.reference_date is not None

    def test_adjustments(self, engine, subject, create_comp):
        assert engine.calculate_adjustments(subject, create_comp()).total == pytest.approx(0.125)

    def test_screen_comparables(self, engine, subject, create_comp):
        screened = engine.screen_comparables(subject, [create_comp(), create_comp()])

        assert screened.outlier_ids == ()
        assert all(c.similarity_score == pytest.approx(89.5) for c in screened.comparables)

    def test_comparable_sales(self, engine, subject, create_comp):
        result = engine.calculate_comparable_sales_approach(subject, [create_comp() for _ in range(3)])
        assert result.estimated_value == 2_250_000

    def test_professional(self, engine, subject, create_comp):
        result = engine.calculate_comparable_sales_approach_professional(
            subject, [create_comp(distance=0), create_comp(distance=0)]
        )
        assert result.details.professional is True

    def test_cost(self, engine, subject):
        result = engine.calculate_cost_approach(subject, 1_500_000, 10_000)
        assert result.estimated_value == 2_283_000

    def test_income(self, engine, subject):
        assert engine.calculate_income_approach(subject, 10_000).estimated_value == 1_596_000

    def test_full_pipeline(self, engine, subject, create_comp):
        recommendation = engine.recommend_valuation_method(subject)
        sales = engine.calculate_comparable_sales_approach(subject, [create_comp() for _ in range(5)])
        cost = engine.calculate_cost_approach(subject, 1_500_000, 10_000)

        hybrid = engine.reconcile_valuations([sales, cost])

        assert recommendation.recommended_method == ValuationMethod.COMPARABLE_SALES
        assert hybrid.method == ValuationMethod.HYBRID
        assert sales.estimated_value < hybrid.estimated_value < cost.estimated_value
        assert not hybrid.checks_with(QualityCode.METHOD_DIVERGENCE)

    def test_result_serialises(self, engine, subject):
        data = engine.calculate_cost_approach(subject, 1_500_000, 10_000).to_dict()

        assert data["method"] == "cost-approach"
        assert data["value_range"] == {"min": 2_055_000, "max": 2_511_000}
        assert data["details"]["effective_age"] == 13
