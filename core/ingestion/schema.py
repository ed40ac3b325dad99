"""
Record Schema Validators - Boundary Contract for Valuation Inputs

Raw property and comparable records are checked here before any
calculator sees them. Validation collects every violation rather than
stopping at the first; parsing never raises.

Keys are accepted in snake_case or camelCase.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Final, Optional

from core.valuation.models import (
    Address,
    ComparableTransaction,
    PropertyCondition,
    PropertyDetails,
    PropertyType,
    SubjectProperty,
)


MIN_BUILD_YEAR: Final = 1800
MAX_BUILD_YEAR: Final = 2200

AMENITY_FIELDS: Final = ("storage", "balcony", "elevator", "accessible")

_MISSING: Final = object()


@dataclass(frozen=True)
class RecordValidationResult:
    """Outcome of validating one raw record."""

    valid: bool
    errors: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"valid": self.valid, "errors": list(self.errors)}


# =============================================================================
# Key Lookup
# =============================================================================


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _get(data: dict[str, Any], key: str, default: Any = _MISSING) -> Any:
    """Look a field up by its snake_case name or the camelCase equivalent."""
    if key in data:
        return data[key]
    camel = _camel(key)
    if camel in data:
        return data[camel]
    return default


def _type_value(data: dict[str, Any]) -> Any:
    value = _get(data, "type")
    if value is _MISSING:
        value = _get(data, "property_type")
    return value


# =============================================================================
# Field Checks
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def _is_whole(value: Any) -> bool:
    return _is_number(value) and float(value).is_integer()


def _check_positive(data: dict, key: str, errors: list[str]) -> None:
    value = _get(data, key)
    if value is _MISSING or value is None:
        errors.append(f"{key} is required")
    elif not _is_number(value) or value <= 0:
        errors.append(f"{key} must be a number greater than 0: {value!r}")


def _check_non_negative(data: dict, key: str, errors: list[str], required: bool = True) -> None:
    value = _get(data, key)
    if value is _MISSING or value is None:
        if required:
            errors.append(f"{key} is required")
    elif not _is_number(value) or value < 0:
        errors.append(f"{key} must be a non-negative number: {value!r}")


def _check_non_negative_int(data: dict, key: str, errors: list[str], required: bool = True) -> None:
    value = _get(data, key)
    if value is _MISSING or value is None:
        if required:
            errors.append(f"{key} is required")
    elif not _is_whole(value) or value < 0:
        errors.append(f"{key} must be a non-negative integer: {value!r}")


def _check_enum(value: Any, enum_cls, key: str, errors: list[str]) -> None:
    if value is _MISSING or value is None:
        errors.append(f"{key} is required")
    elif isinstance(value, enum_cls):
        return
    elif not isinstance(value, str) or enum_cls.from_string(value) is None:
        errors.append(f"Invalid {key}: {value!r}")


def parse_sale_date(value: Any) -> Optional[date]:
    """
    Parse an ISO date or datetime string.

    Returns:
        date if parseable, None otherwise
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


# =============================================================================
# Validation Functions
# =============================================================================


def validate_property_data(data: dict[str, Any]) -> RecordValidationResult:
    """
    Validate a raw subject-property record.

    Expected shape:
        {"id", "type", "address": {...}, "details": {...},
         "features": [...], "description": "..."}

    Args:
        data: Raw property record

    Returns:
        RecordValidationResult listing every violation
    """
    if not isinstance(data, dict):
        return RecordValidationResult(valid=False, errors=("Property record must be an object",))

    errors: list[str] = []

    # === Identity ===
    prop_id = _get(data, "id")
    if not isinstance(prop_id, str) or not prop_id.strip():
        errors.append("id is required and cannot be empty")

    _check_enum(_type_value(data), PropertyType, "type", errors)

    # === Address ===
    address = _get(data, "address")
    if not isinstance(address, dict):
        errors.append("address is required")
    else:
        for key in ("street", "city"):
            value = _get(address, key)
            if not isinstance(value, str):
                errors.append(f"address.{key} must be a string")
        for key in ("neighborhood", "postal_code"):
            value = _get(address, key, "")
            if value is not None and not isinstance(value, str):
                errors.append(f"address.{key} must be a string")

    # === Physical details ===
    details = _get(data, "details")
    if not isinstance(details, dict):
        errors.append("details is required")
    else:
        _check_positive(details, "built_area", errors)
        total_area = _get(details, "total_area", None)
        if total_area is not None and (not _is_number(total_area) or total_area <= 0):
            errors.append(f"total_area must be a number greater than 0: {total_area!r}")
        _check_non_negative(details, "rooms", errors)
        _check_non_negative_int(details, "bedrooms", errors)
        _check_non_negative_int(details, "bathrooms", errors)
        _check_non_negative_int(details, "floor", errors)
        _check_non_negative_int(details, "total_floors", errors, required=False)
        _check_non_negative_int(details, "parking", errors)

        build_year = _get(details, "build_year")
        if build_year is _MISSING or build_year is None:
            errors.append("build_year is required")
        elif not _is_whole(build_year) or not MIN_BUILD_YEAR <= build_year <= MAX_BUILD_YEAR:
            errors.append(
                f"build_year must be an integer between {MIN_BUILD_YEAR} and {MAX_BUILD_YEAR}: {build_year!r}"
            )

        _check_enum(_get(details, "condition"), PropertyCondition, "condition", errors)

        for key in AMENITY_FIELDS:
            value = _get(details, key)
            if not isinstance(value, bool):
                errors.append(f"{key} must be a boolean")

    features = _get(data, "features", [])
    if not isinstance(features, (list, tuple)) or not all(isinstance(f, str) for f in features):
        errors.append("features must be a list of strings")

    return RecordValidationResult(valid=not errors, errors=tuple(errors))


def validate_comparable_data(data: dict[str, Any]) -> RecordValidationResult:
    """
    Validate a raw comparable-transaction record.

    Args:
        data: Raw comparable record

    Returns:
        RecordValidationResult listing every violation
    """
    if not isinstance(data, dict):
        return RecordValidationResult(valid=False, errors=("Comparable record must be an object",))

    errors: list[str] = []

    comp_id = _get(data, "id", None)
    if comp_id is not None and (not isinstance(comp_id, str) or not comp_id.strip()):
        errors.append("id cannot be empty")

    address = _get(data, "address")
    if not isinstance(address, str) or not address.strip():
        errors.append("address is required and cannot be empty")

    _check_enum(_type_value(data), PropertyType, "type", errors)
    _check_positive(data, "sale_price", errors)

    sale_date = _get(data, "sale_date")
    if sale_date is _MISSING or sale_date is None:
        errors.append("sale_date is required")
    elif parse_sale_date(sale_date) is None:
        errors.append(f"sale_date must be an ISO date: {sale_date!r}")

    _check_positive(data, "built_area", errors)
    _check_non_negative(data, "rooms", errors, required=False)
    _check_non_negative_int(data, "floor", errors, required=False)
    _check_non_negative(data, "distance", errors, required=False)
    comp_build_year = _get(data, "build_year", None)
    if comp_build_year is not None and (
        not _is_whole(comp_build_year) or not MIN_BUILD_YEAR <= comp_build_year <= MAX_BUILD_YEAR
    ):
        errors.append(
            f"build_year must be an integer between {MIN_BUILD_YEAR} and {MAX_BUILD_YEAR}: {comp_build_year!r}"
        )

    score = _get(data, "similarity_score", None)
    if score is not None and (not _is_number(score) or not 0 <= score <= 100):
        errors.append(f"similarity_score must be between 0 and 100: {score!r}")

    selected = _get(data, "selected", True)
    if not isinstance(selected, bool):
        errors.append("selected must be a boolean")

    return RecordValidationResult(valid=not errors, errors=tuple(errors))


# =============================================================================
# Parsing
# =============================================================================


def _enum(value: Any, enum_cls):
    return value if isinstance(value, enum_cls) else enum_cls.from_string(value)


def parse_property(
    data: dict[str, Any],
) -> tuple[Optional[SubjectProperty], RecordValidationResult]:
    """
    Validate and build a SubjectProperty.

    Returns:
        Tuple of (SubjectProperty or None, validation result)
    """
    result = validate_property_data(data)
    if not result.valid:
        return None, result

    address = _get(data, "address")
    details = _get(data, "details")
    total_floors = _get(details, "total_floors", None)
    total_area = _get(details, "total_area", None)

    subject = SubjectProperty(
        id=_get(data, "id").strip(),
        address=Address(
            street=_get(address, "street"),
            city=_get(address, "city"),
            neighborhood=_get(address, "neighborhood", "") or "",
            postal_code=_get(address, "postal_code", "") or "",
        ),
        property_type=_enum(_type_value(data), PropertyType),
        details=PropertyDetails(
            built_area=float(_get(details, "built_area")),
            rooms=float(_get(details, "rooms")),
            bedrooms=int(_get(details, "bedrooms")),
            bathrooms=int(_get(details, "bathrooms")),
            floor=int(_get(details, "floor")),
            build_year=int(_get(details, "build_year")),
            condition=_enum(_get(details, "condition"), PropertyCondition),
            total_floors=int(total_floors) if total_floors is not None else None,
            total_area=float(total_area) if total_area is not None else None,
            parking=int(_get(details, "parking")),
            storage=_get(details, "storage"),
            balcony=_get(details, "balcony"),
            elevator=_get(details, "elevator"),
            accessible=_get(details, "accessible"),
        ),
        features=tuple(_get(data, "features", [])),
        description=_get(data, "description", "") or "",
    )
    return subject, result


def parse_comparable(
    data: dict[str, Any],
) -> tuple[Optional[ComparableTransaction], RecordValidationResult]:
    """
    Validate and build a ComparableTransaction.

    A missing id is replaced by a fresh uuid4. A missing floor counts as
    ground floor; an explicit null floor means the floor is unknown.

    Returns:
        Tuple of (ComparableTransaction or None, validation result)
    """
    result = validate_comparable_data(data)
    if not result.valid:
        return None, result

    floor = _get(data, "floor", 0)
    distance = _get(data, "distance", 0.0)
    build_year = _get(data, "build_year", None)
    score = _get(data, "similarity_score", None)

    comparable = ComparableTransaction(
        id=_get(data, "id", None) or str(uuid.uuid4()),
        address=_get(data, "address").strip(),
        property_type=_enum(_type_value(data), PropertyType),
        sale_price=float(_get(data, "sale_price")),
        sale_date=parse_sale_date(_get(data, "sale_date")),
        built_area=float(_get(data, "built_area")),
        rooms=float(_get(data, "rooms", 0) or 0),
        floor=int(floor) if floor is not None else None,
        distance=float(distance) if distance is not None else None,
        selected=_get(data, "selected", True),
        similarity_score=float(score) if score is not None else None,
        build_year=int(build_year) if build_year is not None else None,
    )
    return comparable, result
