"""
Data models for the Valuation Engine.

Defines the subject property, comparable transactions, adjustment vectors
and the ValuationResult contract consumed by reporting and export.

All records are frozen: the engine never mutates caller-supplied data and
returns fresh copies wherever a calculation fills in derived fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Optional, Union


# =============================================================================
# Enums
# =============================================================================


class PropertyType(Enum):
    """
    Property type classification.

    Residential types are valued by sales comparison; commercial by income
    capitalisation; land by the cost approach.
    """

    APARTMENT = "apartment"
    HOUSE = "house"
    PENTHOUSE = "penthouse"
    GARDEN_APARTMENT = "garden-apartment"
    DUPLEX = "duplex"
    STUDIO = "studio"
    COMMERCIAL = "commercial"
    LAND = "land"

    @classmethod
    def from_string(cls, value: str) -> Optional["PropertyType"]:
        """Convert string to PropertyType, case-insensitive."""
        normalised = value.lower().strip().replace("_", "-")
        for member in cls:
            if member.value == normalised:
                return member
        return None

    @property
    def is_residential(self) -> bool:
        return self in RESIDENTIAL_TYPES


RESIDENTIAL_TYPES = frozenset({
    PropertyType.APARTMENT,
    PropertyType.HOUSE,
    PropertyType.PENTHOUSE,
    PropertyType.GARDEN_APARTMENT,
    PropertyType.DUPLEX,
    PropertyType.STUDIO,
})


class PropertyCondition(Enum):
    """Physical condition of a property, best to worst."""

    NEW = "new"
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    RENOVATION_NEEDED = "renovation-needed"

    @classmethod
    def from_string(cls, value: str) -> Optional["PropertyCondition"]:
        """Convert string to PropertyCondition, case-insensitive."""
        normalised = value.lower().strip().replace("_", "-")
        for member in cls:
            if member.value == normalised:
                return member
        return None


class ValuationMethod(Enum):
    """
    Closed set of method tags carried by every ValuationResult.

    "sales-comparison" is accepted as an alias of COMPARABLE_SALES.
    """

    COMPARABLE_SALES = "comparable-sales"
    COST_APPROACH = "cost-approach"
    INCOME_APPROACH = "income-approach"
    HYBRID = "hybrid"

    @classmethod
    def from_string(cls, value: str) -> Optional["ValuationMethod"]:
        normalised = value.lower().strip().replace("_", "-")
        if normalised == "sales-comparison":
            return cls.COMPARABLE_SALES
        for member in cls:
            if member.value == normalised:
                return member
        return None


class QualitySeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class QualityCode(Enum):
    """
    Closed set of diagnostic codes.

    Downstream UIs filter and sort on these; messages are free text.
    """

    MISSING_INPUT = "missing-input"
    LOW_SAMPLE = "low-sample"
    HIGH_VARIATION = "high-variation"
    OUTLIER = "outlier"
    LARGE_ADJUSTMENT = "large-adjustment"
    PARAMETER_OUT_OF_RANGE = "parameter-out-of-range"
    METHOD_DIVERGENCE = "method-divergence"


class RequiredInput(Enum):
    """Input categories the Method Selector may report as missing."""

    COMPARABLES = "comparables"
    LAND_VALUE = "land-value"
    CONSTRUCTION_COST_PER_SQM = "construction-cost-per-sqm"
    MONTHLY_RENT = "monthly-rent"


# =============================================================================
# Errors
# =============================================================================


class ValuationError(ValueError):
    """Raised when a method cannot produce a meaningful result."""


class NoComparablesError(ValuationError):
    """No selected (or no surviving) comparables for sales comparison."""


class EmptyReconciliationError(ValuationError):
    """Nothing to reconcile: no results, or every weight is zero."""


# =============================================================================
# Subject Property
# =============================================================================


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    neighborhood: str = ""
    postal_code: str = ""

    @property
    def display(self) -> str:
        """Street and city, comma separated."""
        parts = [p for p in (self.street, self.city) if p]
        return ", ".join(parts)


@dataclass(frozen=True)
class PropertyDetails:
    """Physical details of the subject property."""

    built_area: float  # sqm
    rooms: float
    bedrooms: int
    bathrooms: int
    floor: int
    build_year: int
    condition: PropertyCondition
    total_floors: Optional[int] = None
    total_area: Optional[float] = None
    parking: int = 0
    storage: bool = False
    balcony: bool = False
    elevator: bool = False
    accessible: bool = False


@dataclass(frozen=True)
class SubjectProperty:
    """
    The property being valued.

    Immutable input to every calculation.
    """

    id: str
    address: Address
    property_type: PropertyType
    details: PropertyDetails
    features: tuple[str, ...] = ()
    description: str = ""

    def to_dict(self) -> dict:
        d = self.details
        return {
            "id": self.id,
            "address": {
                "street": self.address.street,
                "city": self.address.city,
                "neighborhood": self.address.neighborhood,
                "postal_code": self.address.postal_code,
            },
            "type": self.property_type.value,
            "details": {
                "built_area": d.built_area,
                "total_area": d.total_area,
                "rooms": d.rooms,
                "bedrooms": d.bedrooms,
                "bathrooms": d.bathrooms,
                "floor": d.floor,
                "total_floors": d.total_floors,
                "build_year": d.build_year,
                "condition": d.condition.value,
                "parking": d.parking,
                "storage": d.storage,
                "balcony": d.balcony,
                "elevator": d.elevator,
                "accessible": d.accessible,
            },
            "features": list(self.features),
            "description": self.description,
        }


# =============================================================================
# Adjustments & Comparables
# =============================================================================


@dataclass(frozen=True)
class AdjustmentVector:
    """
    Per-comparable adjustment, each component a fraction of sale price.

    total is derived, never stored.
    """

    location: float = 0.0
    size: float = 0.0
    condition: float = 0.0
    floor: float = 0.0
    age: float = 0.0
    features: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.location
            + self.size
            + self.condition
            + self.floor
            + self.age
            + self.features
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "location": self.location,
            "size": self.size,
            "condition": self.condition,
            "floor": self.floor,
            "age": self.age,
            "features": self.features,
            "total": self.total,
        }


@dataclass(frozen=True)
class ComparableTransaction:
    """
    A prior sale used as evidence for the subject's value.

    Only comparables with selected=True take part in a valuation. The
    address is display text and is never geocoded.
    """

    id: str
    address: str
    property_type: PropertyType
    sale_price: float
    sale_date: date
    built_area: float
    rooms: float = 0.0
    floor: Optional[int] = 0
    distance: Optional[float] = 0.0  # km from subject
    adjustments: AdjustmentVector = field(default_factory=AdjustmentVector)
    adjusted_price: float = 0.0
    selected: bool = True
    similarity_score: Optional[float] = None  # 0-100
    build_year: Optional[int] = None

    @property
    def price_per_sqm(self) -> float:
        if self.built_area <= 0:
            return 0.0
        return self.sale_price / self.built_area

    def with_adjustments(self, adjustments: AdjustmentVector) -> "ComparableTransaction":
        """Copy carrying the given adjustments and the implied adjusted price."""
        return replace(
            self,
            adjustments=adjustments,
            adjusted_price=self.sale_price * (1 + adjustments.total),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "address": self.address,
            "type": self.property_type.value,
            "sale_price": self.sale_price,
            "sale_date": self.sale_date.isoformat(),
            "built_area": self.built_area,
            "rooms": self.rooms,
            "floor": self.floor,
            "distance": self.distance,
            "adjustments": self.adjustments.to_dict(),
            "adjusted_price": self.adjusted_price,
            "price_per_sqm": self.price_per_sqm,
            "selected": self.selected,
            "similarity_score": self.similarity_score,
            "build_year": self.build_year,
        }


# =============================================================================
# Valuation Result
# =============================================================================


@dataclass(frozen=True)
class QualityCheck:
    severity: QualitySeverity
    code: QualityCode
    message: str

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "code": self.code.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class CalculationStep:
    """One audited step of a calculation."""

    step: str
    description: str
    formula: str
    inputs: dict[str, Union[float, str]]
    result: float

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "description": self.description,
            "formula": self.formula,
            "inputs": dict(self.inputs),
            "result": self.result,
        }


@dataclass(frozen=True)
class ValueRange:
    min: float
    max: float

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"range min {self.min} exceeds max {self.max}")

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class TransactionDetail:
    """Per-comparable audit line for the professional variant."""

    id: str
    address: str
    base_price: float
    adjusted_price: float
    weight: float
    adjustments: dict[str, float]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "address": self.address,
            "base_price": self.base_price,
            "adjusted_price": self.adjusted_price,
            "weight": self.weight,
            "adjustments": dict(self.adjustments),
        }


# Method-specific payloads. ValuationResult.details holds exactly one,
# matching ValuationResult.method.


@dataclass(frozen=True)
class SalesComparisonDetails:
    comparables: tuple[ComparableTransaction, ...]
    unweighted_mean: float
    weighted_mean: float
    standard_deviation: float
    coefficient_of_variation: float  # percent
    professional: bool = False
    market_price_per_sqm: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "comparables": [c.to_dict() for c in self.comparables],
            "unweighted_mean": self.unweighted_mean,
            "weighted_mean": self.weighted_mean,
            "standard_deviation": self.standard_deviation,
            "coefficient_of_variation": self.coefficient_of_variation,
            "professional": self.professional,
            "market_price_per_sqm": self.market_price_per_sqm,
        }


@dataclass(frozen=True)
class CostApproachDetails:
    land_value: float
    construction_cost_per_sqm: float
    building_cost: float
    actual_age: int
    effective_age: int
    depreciation_rate: float
    depreciation: float
    building_value: float

    def to_dict(self) -> dict:
        return {
            "land_value": self.land_value,
            "construction_cost_per_sqm": self.construction_cost_per_sqm,
            "building_cost": self.building_cost,
            "actual_age": self.actual_age,
            "effective_age": self.effective_age,
            "depreciation_rate": self.depreciation_rate,
            "depreciation": self.depreciation,
            "building_value": self.building_value,
        }


@dataclass(frozen=True)
class IncomeApproachDetails:
    monthly_rent: float
    vacancy_rate: float
    operating_expense_ratio: float
    capitalization_rate: float
    gross_annual_income: float
    effective_gross_income: float
    operating_expenses: float
    net_operating_income: float

    def to_dict(self) -> dict:
        return {
            "monthly_rent": self.monthly_rent,
            "vacancy_rate": self.vacancy_rate,
            "operating_expense_ratio": self.operating_expense_ratio,
            "capitalization_rate": self.capitalization_rate,
            "gross_annual_income": self.gross_annual_income,
            "effective_gross_income": self.effective_gross_income,
            "operating_expenses": self.operating_expenses,
            "net_operating_income": self.net_operating_income,
        }


@dataclass(frozen=True)
class HybridDetails:
    weights: dict[str, float]
    method_values: tuple[tuple[str, float], ...]  # (method, value) per input, in input order
    spread_percent: float

    def to_dict(self) -> dict:
        return {
            "weights": dict(self.weights),
            "method_values": [
                {"method": method, "value": value} for method, value in self.method_values
            ],
            "spread_percent": self.spread_percent,
        }


MethodDetails = Union[
    SalesComparisonDetails,
    CostApproachDetails,
    IncomeApproachDetails,
    HybridDetails,
]


@dataclass(frozen=True)
class ValuationResult:
    """
    Output contract of every valuation method.

    Consumed verbatim by report generation and export; field names are a
    stable boundary.

    Invariants:
        - value_range contains estimated_value
        - 40 <= confidence <= 95
    """

    method: ValuationMethod
    estimated_value: float
    value_range: ValueRange
    confidence: int
    methodology: str
    calculations: tuple[CalculationStep, ...] = ()
    reconciliation: str = ""
    assumptions: tuple[str, ...] = ()
    limitations: tuple[str, ...] = ()
    quality_checks: tuple[QualityCheck, ...] = ()
    transaction_details: tuple[TransactionDetail, ...] = ()
    details: Optional[MethodDetails] = None

    def __post_init__(self) -> None:
        if not self.value_range.contains(self.estimated_value):
            raise ValueError(
                f"estimated value {self.estimated_value} outside range "
                f"{self.value_range.min}-{self.value_range.max}"
            )
        if not MIN_CONFIDENCE <= self.confidence <= MAX_CONFIDENCE:
            raise ValueError(f"confidence {self.confidence} outside [40, 95]")

    def checks_with(self, code: QualityCode) -> list[QualityCheck]:
        return [c for c in self.quality_checks if c.code == code]

    @property
    def has_errors(self) -> bool:
        return any(c.severity == QualitySeverity.ERROR for c in self.quality_checks)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "method": self.method.value,
            "estimated_value": self.estimated_value,
            "value_range": self.value_range.to_dict(),
            "confidence": self.confidence,
            "methodology": self.methodology,
            "calculations": [c.to_dict() for c in self.calculations],
            "reconciliation": self.reconciliation,
            "assumptions": list(self.assumptions),
            "limitations": list(self.limitations),
            "quality_checks": [c.to_dict() for c in self.quality_checks],
            "transaction_details": [t.to_dict() for t in self.transaction_details],
            "details": self.details.to_dict() if self.details else None,
        }


MIN_CONFIDENCE = 40
MAX_CONFIDENCE = 95


def round_half_up(value: float) -> int:
    """
    Round halves away from zero.

    Python's round() is banker's rounding; valuations follow the
    conventional half-up rule.
    """
    sign = -1 if value < 0 else 1
    return sign * int(abs(value) + 0.5)


def round_to_thousand(value: float) -> float:
    """Round to the nearest 1,000."""
    return float(round_half_up(value / 1000) * 1000)


def clamp_confidence(value: float) -> int:
    """Round and clamp a confidence score to [40, 95]."""
    return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, round_half_up(value)))


# =============================================================================
# Method Selection
# =============================================================================


@dataclass(frozen=True)
class ValuationContext:
    """Data availability passed to the Method Selector."""

    comparables: tuple[ComparableTransaction, ...] = ()
    has_land_value: bool = False
    has_construction_cost_per_sqm: bool = False
    has_monthly_rent: bool = False


@dataclass(frozen=True)
class ValuationRecommendation:
    recommended_method: ValuationMethod
    fallback_methods: tuple[ValuationMethod, ...]
    reasons: tuple[str, ...] = ()
    required_inputs: tuple[RequiredInput, ...] = ()
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "recommended_method": self.recommended_method.value,
            "fallback_methods": [m.value for m in self.fallback_methods],
            "reasons": list(self.reasons),
            "required_inputs": [r.value for r in self.required_inputs],
            "warnings": list(self.warnings),
        }
