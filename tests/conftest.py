"""
Shared fixtures for the valuation engine tests.

All tests run against a fixed valuation date and the bundled
coefficient tables.
"""

import sys
from dataclasses import replace
from datetime import date
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.valuation import (
    Address,
    ComparableTransaction,
    PropertyCondition,
    PropertyDetails,
    PropertyType,
    SubjectProperty,
    load_tables,
)


@pytest.fixture
def reference_date():
    """Fixed valuation date for deterministic tests."""
    return date(2024, 6, 1)


@pytest.fixture
def tables():
    """Bundled coefficient tables."""
    return load_tables()


@pytest.fixture
def subject():
    """Standard subject: 4-room apartment on Levinsky 22, Tel Aviv."""
    return SubjectProperty(
        id="prop-001",
        address=Address(
            street="Levinsky 22",
            city="Tel Aviv",
            neighborhood="Florentin",
            postal_code="6606122",
        ),
        property_type=PropertyType.APARTMENT,
        details=PropertyDetails(
            built_area=100,
            rooms=4,
            bedrooms=3,
            bathrooms=2,
            floor=3,
            total_floors=6,
            build_year=2010,
            condition=PropertyCondition.GOOD,
            parking=1,
            storage=True,
            balcony=True,
            elevator=True,
            accessible=False,
        ),
        features=("renovated kitchen",),
        description="Bright apartment near the Levinsky market",
    )


@pytest.fixture
def make_subject(subject):
    """Factory fixture: the standard subject with overridden fields."""
    def _make(property_type=None, city=None, **details):
        result = subject
        if details:
            result = replace(result, details=replace(result.details, **details))
        if property_type is not None:
            result = replace(result, property_type=property_type)
        if city is not None:
            result = replace(result, address=replace(result.address, city=city))
        return result
    return _make


@pytest.fixture
def create_comp(reference_date):
    """Factory fixture for creating comparable transactions."""
    counter = iter(range(1, 1000))

    def _create(
        sale_price: float = 2_000_000,
        built_area: float = 100,
        distance=0.3,
        floor=3,
        sale_date: date = None,
        similarity_score=None,
        selected: bool = True,
        address: str = None,
        property_type: PropertyType = PropertyType.APARTMENT,
    ) -> ComparableTransaction:
        n = next(counter)
        return ComparableTransaction(
            id=f"comp-{n}",
            address=address or f"Florentin {n}, Tel Aviv",
            property_type=property_type,
            sale_price=sale_price,
            sale_date=sale_date or reference_date,
            built_area=built_area,
            rooms=4,
            floor=floor,
            distance=distance,
            selected=selected,
            similarity_score=similarity_score,
        )
    return _create
