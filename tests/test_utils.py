"""
Tests for configuration and display formatting helpers
"""

import pytest

from utils import Config, format_currency, format_percent


class TestConfig:

    def test_defaults(self, monkeypatch):
        for name in (
            "VALUATION_TABLES_PATH",
            "LOG_LEVEL",
            "DEFAULT_VACANCY_RATE",
            "DEFAULT_OPEX_RATIO",
            "DEFAULT_CAP_RATE",
            "CURRENCY",
        ):
            monkeypatch.delenv(name, raising=False)

        config = Config.load()

        assert config.tables_path is None
        assert config.log_level == "INFO"
        assert config.default_vacancy_rate == 0.05
        assert config.default_opex_ratio == 0.30
        assert config.default_cap_rate == 0.05
        assert config.currency == "ILS"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("VALUATION_TABLES_PATH", "/etc/valuation/tables.json")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("DEFAULT_CAP_RATE", "0.065")
        monkeypatch.setenv("CURRENCY", "EUR")

        config = Config.load()

        assert config.tables_path == "/etc/valuation/tables.json"
        assert config.log_level == "DEBUG"
        assert config.default_cap_rate == 0.065
        assert config.currency == "EUR"

    def test_blank_tables_path_is_unset(self, monkeypatch):
        monkeypatch.setenv("VALUATION_TABLES_PATH", "   ")
        assert Config.load().tables_path is None

    def test_to_dict(self):
        assert set(Config().to_dict()) == {
            "tables_path",
            "log_level",
            "default_vacancy_rate",
            "default_opex_ratio",
            "default_cap_rate",
            "currency",
        }


class TestFormatting:

    @pytest.mark.parametrize(
        "amount, currency, expected",
        [
            (2_250_000, "ILS", "₪2,250,000"),
            (1_500.4, "GBP", "£1,500"),
            (-25_000, "USD", "-$25,000"),
            (990, "CHF", "CHF 990"),
        ],
    )
    def test_currency(self, amount, currency, expected):
        assert format_currency(amount, currency) == expected

    def test_percent(self):
        assert format_percent(21.6667) == "21.7%"
        assert format_percent(5, decimals=2) == "5.00%"
