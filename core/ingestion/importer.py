"""
Comparable Import - JSON and CSV

Turns external transaction files into ComparableTransaction records.
Every row is validated on its own: good rows are returned alongside a
list of per-row errors, and a bad row never aborts the batch.

CSV headers are auto-detected from common English, camelCase and Hebrew
column names.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Final, Optional, Pattern

from core.ingestion.schema import parse_comparable
from core.valuation.models import ComparableTransaction, PropertyType


logger = logging.getLogger(__name__)


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class RecordError:
    """Rejected JSON record; index is -1 when the whole document is bad."""

    index: int
    message: str

    def to_dict(self) -> dict:
        return {"index": self.index, "message": self.message}


@dataclass(frozen=True)
class RowError:
    """Rejected CSV row; row is the 1-based line number, 0 for the file."""

    row: int
    message: str

    def to_dict(self) -> dict:
        return {"row": self.row, "message": self.message}


@dataclass(frozen=True)
class ImportResult:
    comparables: tuple[ComparableTransaction, ...] = ()
    errors: tuple[RecordError, ...] = ()

    def to_dict(self) -> dict:
        return {
            "comparables": [c.to_dict() for c in self.comparables],
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True)
class FieldMapping:
    """CSV header detected for each comparable field, None if absent."""

    address: Optional[str] = None
    type: Optional[str] = None
    sale_price: Optional[str] = None
    sale_date: Optional[str] = None
    built_area: Optional[str] = None
    rooms: Optional[str] = None
    floor: Optional[str] = None

    @property
    def missing_required(self) -> list[str]:
        return [name for name in REQUIRED_CSV_FIELDS if getattr(self, name) is None]

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "address": self.address,
            "type": self.type,
            "sale_price": self.sale_price,
            "sale_date": self.sale_date,
            "built_area": self.built_area,
            "rooms": self.rooms,
            "floor": self.floor,
        }


@dataclass(frozen=True)
class CSVParseResult:
    comparables: tuple[ComparableTransaction, ...] = ()
    errors: tuple[RowError, ...] = ()
    field_mapping: FieldMapping = field(default_factory=FieldMapping)

    def to_dict(self) -> dict:
        return {
            "comparables": [c.to_dict() for c in self.comparables],
            "errors": [e.to_dict() for e in self.errors],
            "field_mapping": self.field_mapping.to_dict(),
        }


# =============================================================================
# Header Detection
# =============================================================================

HEADER_PATTERNS: Final[dict[str, Pattern[str]]] = {
    "address": re.compile(r"^(address|כתובת|loc|location)$", re.IGNORECASE),
    "type": re.compile(r"^(type|סוג|property_type|propertyType)$", re.IGNORECASE),
    "sale_price": re.compile(r"^(price|מחיר|sale_price|sale|salePrice)$", re.IGNORECASE),
    "sale_date": re.compile(r"^(date|תאריך|sale_date|saleDate)$", re.IGNORECASE),
    "built_area": re.compile(r"^(area|שטח|sqm|m2|built_area|builtArea)$", re.IGNORECASE),
    "rooms": re.compile(r"^(rooms|חדרים|bedrooms|bed)$", re.IGNORECASE),
    "floor": re.compile(r"^(floor|קומה|level)$", re.IGNORECASE),
}

REQUIRED_CSV_FIELDS: Final = ("address", "sale_price", "built_area")

# Free-text type names seen in transaction exports
PROPERTY_TYPE_ALIASES: Final[dict[str, PropertyType]] = {
    "flat": PropertyType.APARTMENT,
    "דירה": PropertyType.APARTMENT,
    "דירת גן": PropertyType.GARDEN_APARTMENT,
    "garden apartment": PropertyType.GARDEN_APARTMENT,
    "פנטהאוז": PropertyType.PENTHOUSE,
    "דופלקס": PropertyType.DUPLEX,
    "בית": PropertyType.HOUSE,
    "קוטג'": PropertyType.HOUSE,
    "cottage": PropertyType.HOUSE,
    "סטודיו": PropertyType.STUDIO,
    "מסחרי": PropertyType.COMMERCIAL,
    "retail": PropertyType.COMMERCIAL,
    "office": PropertyType.COMMERCIAL,
    "קרקע": PropertyType.LAND,
    "plot": PropertyType.LAND,
}


def detect_field_mapping(headers: list[str]) -> FieldMapping:
    """Map each comparable field to the first header matching its pattern."""
    found: dict[str, str] = {}
    for name, pattern in HEADER_PATTERNS.items():
        for header in headers:
            if pattern.match(header.strip()):
                found[name] = header
                break
    return FieldMapping(**found)


def normalise_property_type(raw_type: str) -> str:
    """
    Map an export's type label onto a PropertyType value.

    Unknown labels pass through unchanged so validation can reject them.
    """
    if not raw_type or not raw_type.strip():
        return PropertyType.APARTMENT.value
    cleaned = raw_type.strip()
    alias = PROPERTY_TYPE_ALIASES.get(cleaned.lower())
    return alias.value if alias else cleaned


# =============================================================================
# JSON Import
# =============================================================================


def import_comparables_from_json(text: str) -> ImportResult:
    """
    Import comparables from a JSON array of records.

    Extra fields are ignored. Imported comparables are always selected.

    Args:
        text: JSON document

    Returns:
        ImportResult with the parsed comparables and per-record errors
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Rejected comparables import: invalid JSON (%s)", exc)
        return ImportResult(errors=(RecordError(index=-1, message="Invalid JSON"),))

    if not isinstance(parsed, list):
        logger.warning("Rejected comparables import: top level is not an array")
        return ImportResult(
            errors=(RecordError(index=-1, message="Input must be an array of transactions"),)
        )

    comparables: list[ComparableTransaction] = []
    errors: list[RecordError] = []

    for index, record in enumerate(parsed):
        if not isinstance(record, dict):
            errors.append(RecordError(index=index, message="Transaction must be an object"))
            logger.warning("Rejected comparable at index %d: not an object", index)
            continue

        comparable, result = parse_comparable({**record, "selected": True})
        if comparable is None:
            message = "; ".join(result.errors)
            errors.append(RecordError(index=index, message=message))
            logger.warning("Rejected comparable at index %d: %s", index, message)
            continue
        comparables.append(comparable)

    return ImportResult(comparables=tuple(comparables), errors=tuple(errors))


# =============================================================================
# CSV Import
# =============================================================================


def _cell(row: list[str], headers: list[str], header: Optional[str]) -> str:
    if header is None:
        return ""
    idx = headers.index(header)
    return row[idx].strip() if idx < len(row) else ""


def parse_csv(text: str, sale_date_default: Optional[date] = None) -> CSVParseResult:
    """
    Parse comparables from CSV text.

    Args:
        text: CSV document with a header row
        sale_date_default: Sale date for rows without one (default: today)

    Returns:
        CSVParseResult with comparables, per-row errors and the header mapping
    """
    non_blank = [line for line in text.splitlines() if line.strip()]
    if len(non_blank) < 2:
        return CSVParseResult(
            errors=(RowError(row=0, message="CSV must contain a header row and at least one data row"),)
        )

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")), skipinitialspace=True)
    headers: list[str] = []
    for raw_headers in reader:
        if any(h.strip() for h in raw_headers):
            headers = [h.strip() for h in raw_headers]
            break

    mapping = detect_field_mapping(headers)
    missing = mapping.missing_required
    if missing:
        logger.warning("CSV import missing required columns: %s", ", ".join(missing))
        return CSVParseResult(
            errors=(RowError(row=0, message=f"Missing required columns: {', '.join(missing)}"),),
            field_mapping=mapping,
        )

    default_date = (sale_date_default or date.today()).isoformat()
    comparables: list[ComparableTransaction] = []
    errors: list[RowError] = []

    for row in reader:
        if not any(cell.strip() for cell in row):
            continue
        line = reader.line_num

        try:
            record = _row_record(row, headers, mapping, default_date, line)
        except ValueError as exc:
            errors.append(RowError(row=line, message=str(exc)))
            logger.warning("Rejected CSV row %d: %s", line, exc)
            continue

        comparable, result = parse_comparable(record)
        if comparable is None:
            message = "; ".join(result.errors)
            errors.append(RowError(row=line, message=message))
            logger.warning("Rejected CSV row %d: %s", line, message)
            continue
        comparables.append(comparable)

    logger.info("Parsed %d comparables from CSV (%d rejected rows)", len(comparables), len(errors))
    return CSVParseResult(
        comparables=tuple(comparables),
        errors=tuple(errors),
        field_mapping=mapping,
    )


def _row_record(
    row: list[str],
    headers: list[str],
    mapping: FieldMapping,
    default_date: str,
    line: int,
) -> dict[str, Any]:
    """
    Convert one CSV row into a raw comparable record.

    Raises:
        ValueError: if price, area, rooms or floor are not numeric
    """
    try:
        sale_price = float(_cell(row, headers, mapping.sale_price).replace(",", ""))
        built_area = float(_cell(row, headers, mapping.built_area).replace(",", ""))
    except ValueError:
        raise ValueError("Invalid price or area") from None

    record: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "address": _cell(row, headers, mapping.address) or f"Property {line}",
        "type": normalise_property_type(_cell(row, headers, mapping.type)),
        "sale_price": sale_price,
        "sale_date": _cell(row, headers, mapping.sale_date) or default_date,
        "built_area": built_area,
        "selected": True,
    }

    rooms = _cell(row, headers, mapping.rooms)
    if rooms:
        try:
            record["rooms"] = float(rooms)
        except ValueError:
            raise ValueError(f"Invalid rooms value: {rooms!r}") from None

    floor = _cell(row, headers, mapping.floor)
    if floor:
        try:
            record["floor"] = int(float(floor))
        except ValueError:
            raise ValueError(f"Invalid floor value: {floor!r}") from None

    return record
