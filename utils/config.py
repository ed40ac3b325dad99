"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _optional_env(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Coefficient tables (None = bundled defaults)
    tables_path: Optional[str] = field(
        default_factory=lambda: _optional_env("VALUATION_TABLES_PATH")
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Income approach assumptions
    default_vacancy_rate: float = field(
        default_factory=lambda: float(os.getenv("DEFAULT_VACANCY_RATE", "0.05"))
    )
    default_opex_ratio: float = field(
        default_factory=lambda: float(os.getenv("DEFAULT_OPEX_RATIO", "0.30"))
    )
    default_cap_rate: float = field(
        default_factory=lambda: float(os.getenv("DEFAULT_CAP_RATE", "0.05"))
    )

    # Display
    currency: str = field(default_factory=lambda: os.getenv("CURRENCY", "ILS"))

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "tables_path": self.tables_path,
            "log_level": self.log_level,
            "default_vacancy_rate": self.default_vacancy_rate,
            "default_opex_ratio": self.default_opex_ratio,
            "default_cap_rate": self.default_cap_rate,
            "currency": self.currency,
        }
