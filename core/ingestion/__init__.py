"""
Valuation Engine - Ingestion Layer

Boundary validation and import of raw property and comparable records.
Nothing reaches a calculator without passing through here.
"""

from core.ingestion.schema import (
    RecordValidationResult,
    parse_comparable,
    parse_property,
    parse_sale_date,
    validate_comparable_data,
    validate_property_data,
)
from core.ingestion.importer import (
    CSVParseResult,
    FieldMapping,
    ImportResult,
    RecordError,
    RowError,
    detect_field_mapping,
    import_comparables_from_json,
    parse_csv,
)

__all__ = [
    # Schema validators
    "RecordValidationResult",
    "validate_property_data",
    "validate_comparable_data",
    "parse_property",
    "parse_comparable",
    "parse_sale_date",
    # Import
    "ImportResult",
    "RecordError",
    "CSVParseResult",
    "RowError",
    "FieldMapping",
    "detect_field_mapping",
    "import_comparables_from_json",
    "parse_csv",
]
