"""
Tests for the Adjustment Calculator

Verifies each of the six components and that total is always their sum.
"""

import pytest

from core.valuation import AdjustmentCalculator, PropertyCondition


@pytest.fixture
def calculator(tables, reference_date):
    return AdjustmentCalculator(tables, reference_date.year)


class TestLocation:

    @pytest.mark.parametrize(
        "distance, expected",
        [
            (0.0, 0.02),
            (0.3, 0.02),
            (0.5, 0.01),
            (0.7, 0.01),
            (1.5, 0.0),
            (2.0, -0.02),
            (5.0, -0.02),
        ],
    )
    def test_distance_bands(self, calculator, distance, expected):
        assert calculator.location_adjustment(distance) == pytest.approx(expected)

    def test_unknown_distance_gets_default(self, calculator):
        assert calculator.location_adjustment(None) == pytest.approx(-0.02)


class TestSize:

    def test_small_difference_ignored(self, calculator):
        assert calculator.size_adjustment(102, 100) == 0.0

    def test_smaller_comparable_adjusted_up(self, calculator):
        # 25% larger subject, scaled by 0.5
        assert calculator.size_adjustment(100, 80) == pytest.approx(0.125)

    def test_larger_comparable_adjusted_down(self, calculator):
        assert calculator.size_adjustment(100, 125) == pytest.approx(-0.1)

    def test_zero_area_comparable(self, calculator):
        assert calculator.size_adjustment(100, 0) == 0.0


class TestCondition:

    def test_good_is_neutral(self, calculator):
        assert calculator.condition_adjustment(PropertyCondition.GOOD) == pytest.approx(0.0)

    def test_new_is_premium(self, calculator):
        assert calculator.condition_adjustment(PropertyCondition.NEW) == pytest.approx(0.10)

    def test_renovation_needed_is_discount(self, calculator):
        assert calculator.condition_adjustment(PropertyCondition.RENOVATION_NEEDED) == pytest.approx(-0.20)


class TestFloor:

    def test_ground_floor_comparable(self, calculator):
        assert calculator.floor_adjustment(3, 0) == pytest.approx(0.05)

    def test_same_floor(self, calculator):
        assert calculator.floor_adjustment(3, 3) == 0.0

    def test_high_floors_capped(self, calculator):
        assert calculator.floor_adjustment(15, 9) == 0.0

    def test_unknown_comparable_floor(self, calculator):
        assert calculator.floor_adjustment(3, None) == 0.0


class TestAge:

    @pytest.mark.parametrize(
        "build_year, expected",
        [
            (2004, 0.02),
            (2007, 0.02),
            (2010, 0.0),
            (1990, 0.0),
            (1980, -0.03),
            (1950, -0.05),
        ],
    )
    def test_year_bands(self, calculator, build_year, expected):
        assert calculator.age_adjustment(build_year) == pytest.approx(expected)


class TestFeatures:

    def test_standard_subject(self, calculator, subject):
        # elevator + 1 parking + storage + balcony
        assert calculator.features_adjustment(subject) == pytest.approx(0.105)

    def test_parking_per_spot(self, calculator, make_subject):
        assert calculator.features_adjustment(make_subject(parking=2)) == pytest.approx(0.145)

    def test_no_amenities(self, calculator, make_subject):
        bare = make_subject(parking=0, storage=False, balcony=False, elevator=False)
        assert calculator.features_adjustment(bare) == 0.0


class TestAdjust:

    def test_vector_components(self, calculator, subject, create_comp):
        vector = calculator.adjust(subject, create_comp())

        assert vector.location == pytest.approx(0.02)
        assert vector.size == 0.0
        assert vector.condition == pytest.approx(0.0)
        assert vector.floor == 0.0
        assert vector.age == 0.0
        assert vector.features == pytest.approx(0.105)
        assert vector.total == pytest.approx(0.125)

    def test_total_is_sum_of_components(self, calculator, subject, create_comp):
        comp = create_comp(built_area=70, distance=4.0, floor=0)
        vector = calculator.adjust(subject, comp)

        assert vector.total == pytest.approx(
            vector.location + vector.size + vector.condition
            + vector.floor + vector.age + vector.features
        )

    def test_comparable_not_mutated(self, calculator, subject, create_comp):
        comp = create_comp()
        vector = calculator.adjust(subject, comp)
        adjusted = comp.with_adjustments(vector)

        assert comp.adjusted_price == 0.0
        assert comp.adjustments.total == 0.0
        assert adjusted.adjusted_price == pytest.approx(2_250_000)
