"""
Valuation Engine facade.

Binds one set of Coefficient Tables and a valuation date to every method
calculator. Holds only immutable configuration; one instance can serve
any number of concurrent valuations.
"""

from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Sequence

from .adjustments import AdjustmentCalculator
from .comparable_scoring import ScreeningResult, screen_comparables
from .cost_approach import CostApproachMethod
from .income_approach import (
    DEFAULT_CAP_RATE,
    DEFAULT_OPEX_RATIO,
    DEFAULT_VACANCY_RATE,
    IncomeApproachMethod,
)
from .models import (
    AdjustmentVector,
    ComparableTransaction,
    SubjectProperty,
    ValuationContext,
    ValuationRecommendation,
    ValuationResult,
)
from .reconciliation import WeightKey, reconcile_valuations
from .sales_comparison import SalesComparisonMethod
from .selector import recommend_valuation_method
from .tables import CoefficientTables, load_tables


class ValuationEngine:
    """
    Entry point for all valuation methods.

    Pipeline order:
    1. SCREEN - score comparables and deselect price outliers
    2. RECOMMEND - pick a method from property type and available data
    3. VALUATE - run one or more method calculators
    4. RECONCILE - optionally merge results into a hybrid estimate
    """

    def __init__(
        self,
        tables: Optional[CoefficientTables] = None,
        reference_date: Optional[date] = None,
    ):
        """
        Args:
            tables: Coefficient tables (default: bundled tables)
            reference_date: Valuation date (default: today)
        """
        self._tables = tables or load_tables()
        self._reference_date = reference_date or date.today()
        self._adjustments = AdjustmentCalculator(self._tables, self._reference_date.year)
        self._sales = SalesComparisonMethod(self._tables, self._reference_date)
        self._cost = CostApproachMethod(self._tables, self._reference_date)
        self._income = IncomeApproachMethod()

    @property
    def tables(self) -> CoefficientTables:
        return self._tables

    @property
    def reference_date(self) -> date:
        return self._reference_date

    def calculate_adjustments(
        self,
        subject: SubjectProperty,
        comparable: ComparableTransaction,
    ) -> AdjustmentVector:
        return self._adjustments.adjust(subject, comparable)

    def screen_comparables(
        self,
        subject: SubjectProperty,
        comparables: Sequence[ComparableTransaction],
    ) -> ScreeningResult:
        return screen_comparables(subject, comparables)

    def calculate_comparable_sales_approach(
        self,
        subject: SubjectProperty,
        comparables: Sequence[ComparableTransaction],
    ) -> ValuationResult:
        return self._sales.valuate(subject, comparables)

    def calculate_comparable_sales_approach_professional(
        self,
        subject: SubjectProperty,
        comparables: Sequence[ComparableTransaction],
    ) -> ValuationResult:
        return self._sales.valuate_professional(subject, comparables)

    def calculate_cost_approach(
        self,
        subject: SubjectProperty,
        land_value: float,
        construction_cost_per_sqm: float,
    ) -> ValuationResult:
        return self._cost.valuate(subject, land_value, construction_cost_per_sqm)

    def calculate_income_approach(
        self,
        subject: SubjectProperty,
        monthly_rent: float,
        vacancy_rate: float = DEFAULT_VACANCY_RATE,
        operating_expense_ratio: float = DEFAULT_OPEX_RATIO,
        capitalization_rate: float = DEFAULT_CAP_RATE,
    ) -> ValuationResult:
        return self._income.valuate(
            subject,
            monthly_rent,
            vacancy_rate=vacancy_rate,
            operating_expense_ratio=operating_expense_ratio,
            capitalization_rate=capitalization_rate,
        )

    def reconcile_valuations(
        self,
        results: Sequence[ValuationResult],
        weights: Optional[Mapping[WeightKey, float]] = None,
    ) -> ValuationResult:
        return reconcile_valuations(results, weights)

    def recommend_valuation_method(
        self,
        subject: SubjectProperty,
        context: Optional[ValuationContext] = None,
    ) -> ValuationRecommendation:
        return recommend_valuation_method(subject, context or ValuationContext())
