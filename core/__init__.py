"""
Appraisal Valuation Engine - Core Business Logic

This module provides the valuation pipeline:
1. Ingestion (schema validation, JSON/CSV comparable import)
2. Method Selection (property type and data availability)
3. Valuation (sales comparison, cost approach, income capitalisation)
4. Reconciliation (weighted hybrid estimate)
"""

from .valuation import (
    ComparableTransaction,
    SubjectProperty,
    PropertyType,
    PropertyCondition,
    ValuationMethod,
    ValuationResult,
    ValuationRecommendation,
    ValuationError,
    ValuationEngine,
)

from .ingestion import (
    RecordValidationResult,
    validate_property_data,
    validate_comparable_data,
    parse_property,
    parse_comparable,
    import_comparables_from_json,
    parse_csv,
)

__all__ = [
    # Valuation
    "ComparableTransaction",
    "SubjectProperty",
    "PropertyType",
    "PropertyCondition",
    "ValuationMethod",
    "ValuationResult",
    "ValuationRecommendation",
    "ValuationError",
    "ValuationEngine",
    # Ingestion
    "RecordValidationResult",
    "validate_property_data",
    "validate_comparable_data",
    "parse_property",
    "parse_comparable",
    "import_comparables_from_json",
    "parse_csv",
]
