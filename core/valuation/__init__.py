"""
Valuation Engine

Pure calculators turning a subject property plus market data into an
auditable estimate:
- Comparable similarity scoring and outlier screening
- Sales comparison (simple and professional variants)
- Cost approach
- Income capitalisation
- Reconciliation of several methods into a hybrid estimate
- Method selection by property type and data availability
"""

from .models import (
    Address,
    AdjustmentVector,
    CalculationStep,
    ComparableTransaction,
    CostApproachDetails,
    EmptyReconciliationError,
    HybridDetails,
    IncomeApproachDetails,
    NoComparablesError,
    PropertyCondition,
    PropertyDetails,
    PropertyType,
    QualityCheck,
    QualityCode,
    QualitySeverity,
    RequiredInput,
    SalesComparisonDetails,
    SubjectProperty,
    TransactionDetail,
    ValuationContext,
    ValuationError,
    ValuationMethod,
    ValuationRecommendation,
    ValuationResult,
    ValueRange,
)
from .tables import CoefficientTableError, CoefficientTables, load_tables, load_tables_from_path
from .adjustments import AdjustmentCalculator
from .comparable_scoring import (
    ScoredComparable,
    ScreeningResult,
    filter_price_outliers_by_iqr,
    rank_comparables,
    score_comparable,
    screen_comparables,
)
from .sales_comparison import SalesComparisonMethod
from .cost_approach import CostApproachMethod
from .income_approach import IncomeApproachMethod
from .reconciliation import reconcile_valuations
from .selector import recommend_valuation_method
from .engine import ValuationEngine

__all__ = [
    # Models
    "Address",
    "AdjustmentVector",
    "CalculationStep",
    "ComparableTransaction",
    "CostApproachDetails",
    "HybridDetails",
    "IncomeApproachDetails",
    "PropertyCondition",
    "PropertyDetails",
    "PropertyType",
    "QualityCheck",
    "QualityCode",
    "QualitySeverity",
    "RequiredInput",
    "SalesComparisonDetails",
    "SubjectProperty",
    "TransactionDetail",
    "ValuationContext",
    "ValuationMethod",
    "ValuationRecommendation",
    "ValuationResult",
    "ValueRange",
    # Errors
    "ValuationError",
    "NoComparablesError",
    "EmptyReconciliationError",
    "CoefficientTableError",
    # Tables
    "CoefficientTables",
    "load_tables",
    "load_tables_from_path",
    # Methods
    "AdjustmentCalculator",
    "ScoredComparable",
    "ScreeningResult",
    "score_comparable",
    "rank_comparables",
    "filter_price_outliers_by_iqr",
    "screen_comparables",
    "SalesComparisonMethod",
    "CostApproachMethod",
    "IncomeApproachMethod",
    "reconcile_valuations",
    "recommend_valuation_method",
    "ValuationEngine",
]
