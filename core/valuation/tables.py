"""
Coefficient Tables for the Valuation Engine.

Condition multipliers, the floor premium curve, feature values,
effective-age factors and the distance/age/size steps live in a JSON
document so appraisers can recalibrate them without touching the
algorithms. Tables are loaded once and injected into calculators.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Final, Mapping, Optional, Union

from .models import PropertyCondition


logger = logging.getLogger(__name__)

DEFAULT_TABLES_PATH: Final = Path(__file__).with_name("coefficients.json")


def normalise_city(city: str) -> str:
    """Case- and whitespace-insensitive city key."""
    return " ".join(str(city).split()).casefold()


class CoefficientTableError(ValueError):
    """Raised when a coefficient table document is malformed."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Coefficient table invalid: {'; '.join(errors)}")


# =============================================================================
# Table Types
# =============================================================================


@dataclass(frozen=True)
class Step:
    """One band of a step function: applies while the driver is below limit."""

    limit: float
    adjustment: float


@dataclass(frozen=True)
class ProfessionalCoefficients:
    """Coefficients for the professional sales comparison variant."""

    dense_cities: frozenset[str]
    dense_radius_km: float
    default_radius_km: float
    max_area_deviation: float
    area_weight: float
    floor_coefficient: float
    condition_coefficient: float
    condition_scores: Mapping[PropertyCondition, float]
    time_decay_months: float
    distance_decay_km: float
    decay_floor: float
    min_recorded_components: int
    data_quality_penalty: float

    def radius_for(self, city: str) -> float:
        """Search radius in km; dense metros get the tight radius."""
        if normalise_city(city) in self.dense_cities:
            return self.dense_radius_km
        return self.default_radius_km


@dataclass(frozen=True)
class CoefficientTables:
    """
    Immutable, versioned coefficient configuration.

    Shared read-only across calculations; never mutated after load.
    """

    version: str
    condition_multipliers: Mapping[PropertyCondition, float]
    max_floor_key: int
    floor_adjustments: Mapping[int, float]
    feature_values: Mapping[str, float]
    effective_age_factors: Mapping[PropertyCondition, float]
    location_steps: tuple[Step, ...]
    location_default: float
    size_noop_threshold: float
    size_factor: float
    age_reference_offset_years: int
    age_steps: tuple[Step, ...]
    age_default: float
    economic_life_years: int
    professional: ProfessionalCoefficients

    def floor_value(self, floor: int) -> float:
        """Premium for a floor, capped at max_floor_key; unknown keys are 0."""
        key = min(floor, self.max_floor_key)
        return self.floor_adjustments.get(key, 0.0)

    def feature_value(self, name: str) -> float:
        return self.feature_values.get(name, 0.0)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CoefficientTables":
        """
        Build tables from a parsed JSON document.

        Raises:
            CoefficientTableError: listing every problem found
        """
        errors: list[str] = []

        condition_multipliers = _condition_map(
            data.get("condition_multipliers"), "condition_multipliers", errors
        )
        effective_age_factors = _condition_map(
            data.get("effective_age_factors"), "effective_age_factors", errors
        )

        floor = _section(data, "floor", errors)
        max_floor_key = floor.get("max_floor_key")
        if not isinstance(max_floor_key, int) or max_floor_key < 0:
            errors.append("floor.max_floor_key must be a non-negative integer")
            max_floor_key = 0
        floor_adjustments: dict[int, float] = {}
        for key, value in _section(floor, "adjustments", errors, "floor.adjustments").items():
            try:
                floor_adjustments[int(key)] = float(value)
            except (TypeError, ValueError):
                errors.append(f"floor.adjustments[{key!r}] is not numeric")

        feature_values: dict[str, float] = {}
        for key, value in _section(data, "feature_values", errors).items():
            try:
                feature_values[key] = float(value)
            except (TypeError, ValueError):
                errors.append(f"feature_values[{key!r}] is not numeric")

        location = _section(data, "location", errors)
        location_steps = _steps(
            location.get("distance_adjustments"), "max_km", "location", errors
        )
        age = _section(data, "age_adjustment", errors)
        age_steps = _steps(age.get("steps"), "max_years_diff", "age_adjustment", errors)

        size = _section(data, "size_adjustment", errors)
        cost = _section(data, "cost", errors)
        professional = _professional(_section(data, "professional", errors), errors)

        try:
            tables = cls(
                version=str(data.get("version", "unversioned")),
                condition_multipliers=condition_multipliers,
                max_floor_key=max_floor_key,
                floor_adjustments=MappingProxyType(floor_adjustments),
                feature_values=MappingProxyType(feature_values),
                effective_age_factors=effective_age_factors,
                location_steps=location_steps,
                location_default=float(location.get("default_adjustment", 0.0)),
                size_noop_threshold=float(size.get("noop_threshold", 0.0)),
                size_factor=float(size.get("factor", 1.0)),
                age_reference_offset_years=int(age.get("reference_offset_years", 0)),
                age_steps=age_steps,
                age_default=float(age.get("default_adjustment", 0.0)),
                economic_life_years=int(cost.get("economic_life_years", 60)),
                professional=professional,
            )
        except (TypeError, ValueError) as e:
            errors.append(str(e))
            tables = None

        if tables is not None and tables.economic_life_years <= 0:
            errors.append("cost.economic_life_years must be positive")

        if errors:
            raise CoefficientTableError(errors)
        return tables


# =============================================================================
# Parsing Helpers
# =============================================================================


def _section(
    data: dict[str, Any], key: str, errors: list[str], name: Optional[str] = None
) -> dict[str, Any]:
    """Nested object at key; absent or null is empty, anything else is an error."""
    raw = data.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        errors.append(f"{name or key} must be an object")
        return {}
    return raw


def _condition_map(
    raw: Any, name: str, errors: list[str]
) -> Mapping[PropertyCondition, float]:
    result: dict[PropertyCondition, float] = {}
    if not isinstance(raw, dict):
        errors.append(f"{name} is required")
        return MappingProxyType(result)

    for condition in PropertyCondition:
        value = raw.get(condition.value)
        if value is None:
            errors.append(f"{name} missing condition {condition.value!r}")
            continue
        try:
            result[condition] = float(value)
        except (TypeError, ValueError):
            errors.append(f"{name}[{condition.value!r}] is not numeric")
    return MappingProxyType(result)


def _steps(raw: Any, limit_key: str, name: str, errors: list[str]) -> tuple[Step, ...]:
    if not isinstance(raw, list):
        errors.append(f"{name} steps must be a list")
        return ()

    steps: list[Step] = []
    for i, item in enumerate(raw):
        try:
            steps.append(Step(limit=float(item[limit_key]), adjustment=float(item["adjustment"])))
        except (KeyError, TypeError, ValueError):
            errors.append(f"{name} step {i} is malformed")

    limits = [s.limit for s in steps]
    if limits != sorted(limits):
        errors.append(f"{name} steps must be sorted by {limit_key}")
    return tuple(steps)


def _professional(raw: dict[str, Any], errors: list[str]) -> Optional[ProfessionalCoefficients]:
    condition_scores = _condition_map(
        raw.get("condition_scores"), "professional.condition_scores", errors
    )
    try:
        return ProfessionalCoefficients(
            dense_cities=frozenset(normalise_city(c) for c in raw.get("dense_cities", [])),
            dense_radius_km=float(raw.get("dense_radius_km", 1.0)),
            default_radius_km=float(raw.get("default_radius_km", 3.0)),
            max_area_deviation=float(raw.get("max_area_deviation", 0.25)),
            area_weight=float(raw.get("area_weight", 0.6)),
            floor_coefficient=float(raw.get("floor_coefficient", 10000)),
            condition_coefficient=float(raw.get("condition_coefficient", 0.03)),
            condition_scores=condition_scores,
            time_decay_months=float(raw.get("time_decay_months", 24)),
            distance_decay_km=float(raw.get("distance_decay_km", 2.0)),
            decay_floor=float(raw.get("decay_floor", 0.5)),
            min_recorded_components=int(raw.get("min_recorded_components", 3)),
            data_quality_penalty=float(raw.get("data_quality_penalty", 0.9)),
        )
    except (TypeError, ValueError) as e:
        errors.append(f"professional: {e}")
        return None


# =============================================================================
# Loading
# =============================================================================


def load_tables_from_path(path: Union[str, Path]) -> CoefficientTables:
    """
    Load coefficient tables from a JSON file.

    Raises:
        CoefficientTableError: if the file is unreadable or malformed
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CoefficientTableError([f"cannot read {path}: {e}"]) from e

    if not isinstance(data, dict):
        raise CoefficientTableError([f"{path} must contain a JSON object"])

    tables = CoefficientTables.from_dict(data)
    logger.info("Loaded coefficient tables v%s from %s", tables.version, path)
    return tables


@lru_cache(maxsize=None)
def _cached_tables(path: str) -> CoefficientTables:
    return load_tables_from_path(path)


def load_tables(path: Optional[Union[str, Path]] = None) -> CoefficientTables:
    """
    Process-wide tables, loaded once per path.

    Args:
        path: Table document (default: bundled coefficients.json)
    """
    resolved = Path(path) if path else DEFAULT_TABLES_PATH
    return _cached_tables(str(resolved.resolve()))
