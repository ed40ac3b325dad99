"""
Tests for Coefficient Tables

Verifies:
- Bundled tables load and cover every condition
- Floor lookups cap at the maximum key
- Malformed documents are rejected with every problem listed
- Tables are immutable and cached per path
"""

import json
from dataclasses import FrozenInstanceError

import pytest

from core.valuation import (
    CoefficientTableError,
    CoefficientTables,
    PropertyCondition,
    load_tables,
    load_tables_from_path,
)
from core.valuation.tables import DEFAULT_TABLES_PATH


@pytest.fixture
def table_data():
    """Raw bundled table document."""
    return json.loads(DEFAULT_TABLES_PATH.read_text(encoding="utf-8"))


class TestBundledTables:

    def test_every_condition_has_multiplier_and_age_factor(self, tables):
        for condition in PropertyCondition:
            assert condition in tables.condition_multipliers
            assert condition in tables.effective_age_factors

    def test_condition_multipliers_fall_with_condition(self, tables):
        values = [tables.condition_multipliers[c] for c in PropertyCondition]
        assert values == sorted(values, reverse=True)
        assert tables.condition_multipliers[PropertyCondition.GOOD] == 1.0

    def test_effective_age_factors_rise_with_wear(self, tables):
        values = [tables.effective_age_factors[c] for c in PropertyCondition]
        assert values == sorted(values)

    def test_steps_sorted(self, tables):
        location_limits = [s.limit for s in tables.location_steps]
        age_limits = [s.limit for s in tables.age_steps]
        assert location_limits == sorted(location_limits)
        assert age_limits == sorted(age_limits)

    def test_economic_life(self, tables):
        assert tables.economic_life_years == 60

    def test_professional_coefficients(self, tables):
        prof = tables.professional
        assert prof.max_area_deviation == 0.25
        assert prof.area_weight == 0.6
        assert prof.time_decay_months == 24
        assert prof.distance_decay_km == 2.0
        assert prof.decay_floor == 0.5

    def test_dense_city_radius(self, tables):
        assert tables.professional.radius_for("Tel Aviv") == 1.0
        assert tables.professional.radius_for("תל אביב") == 1.0
        assert tables.professional.radius_for("Netanya") == 3.0

    @pytest.mark.parametrize("city", ["tel aviv", "  TEL   AVIV ", "Tel Aviv\t"])
    def test_dense_city_match_ignores_case_and_spacing(self, tables, city):
        assert tables.professional.radius_for(city) == 1.0


class TestFloorLookup:

    def test_floor_above_max_key_is_capped(self, tables):
        assert tables.floor_value(25) == tables.floor_value(tables.max_floor_key)

    def test_missing_floor_key_counts_as_zero(self, table_data):
        table_data["floor"]["adjustments"] = {"0": -0.03, "2": 0.01}
        tables = CoefficientTables.from_dict(table_data)
        assert tables.floor_value(1) == 0.0
        assert tables.floor_value(2) == 0.01

    def test_unknown_feature_counts_as_zero(self, tables):
        assert tables.feature_value("swimming_pool") == 0.0


class TestMalformedTables:

    def test_missing_condition_rejected(self, table_data):
        del table_data["condition_multipliers"]["poor"]
        with pytest.raises(CoefficientTableError) as exc_info:
            CoefficientTables.from_dict(table_data)
        assert any("poor" in e for e in exc_info.value.errors)

    def test_unsorted_steps_rejected(self, table_data):
        table_data["location"]["distance_adjustments"].reverse()
        with pytest.raises(CoefficientTableError) as exc_info:
            CoefficientTables.from_dict(table_data)
        assert any("sorted" in e for e in exc_info.value.errors)

    def test_all_problems_listed(self, table_data):
        del table_data["effective_age_factors"]
        table_data["feature_values"]["elevator"] = "lots"
        with pytest.raises(CoefficientTableError) as exc_info:
            CoefficientTables.from_dict(table_data)
        assert len(exc_info.value.errors) >= 2

    @pytest.mark.parametrize("section", ["floor", "location", "professional", "feature_values", "cost"])
    @pytest.mark.parametrize("value", [[1, 2], "flat", 7])
    def test_non_object_section_rejected(self, table_data, section, value):
        table_data[section] = value
        with pytest.raises(CoefficientTableError) as exc_info:
            CoefficientTables.from_dict(table_data)
        assert f"{section} must be an object" in exc_info.value.errors

    def test_non_object_floor_adjustments_rejected(self, table_data):
        table_data["floor"]["adjustments"] = [0.01, 0.02]
        with pytest.raises(CoefficientTableError) as exc_info:
            CoefficientTables.from_dict(table_data)
        assert "floor.adjustments must be an object" in exc_info.value.errors

    def test_is_value_error(self, table_data):
        table_data["cost"]["economic_life_years"] = 0
        with pytest.raises(ValueError):
            CoefficientTables.from_dict(table_data)

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CoefficientTableError):
            load_tables_from_path(path)


class TestLoading:

    def test_override_path(self, tmp_path, table_data):
        table_data["version"] = "test-2"
        table_data["cost"]["economic_life_years"] = 50
        path = tmp_path / "tables.json"
        path.write_text(json.dumps(table_data), encoding="utf-8")

        tables = load_tables(path)

        assert tables.version == "test-2"
        assert tables.economic_life_years == 50

    def test_default_tables_cached(self):
        assert load_tables() is load_tables()

    def test_tables_frozen(self, tables):
        with pytest.raises(FrozenInstanceError):
            tables.size_factor = 1.0

    def test_maps_read_only(self, tables):
        with pytest.raises(TypeError):
            tables.condition_multipliers[PropertyCondition.NEW] = 2.0
