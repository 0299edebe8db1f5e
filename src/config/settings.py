"""Calculator settings using Pydantic Settings.

Centralized configuration for the lead-magnet calculation engine.

All values can be overridden with CALC_-prefixed environment variables
or a .env file, e.g.:
- CALC_CURRENCY_SYMBOL: Trailing currency symbol ("€")
- CALC_TIER_BELOW_RANGE_POLICY: first_tier | last_tier | zero
- CALC_LOG_JSON: Emit JSON logs instead of the readable format
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from models.calculator_config import BelowRangePolicy

DEFAULT_CATALOG_DIR = Path(__file__).parent / "price_catalogs"


class FormatSettings(BaseModel):
    """Number formatting convention for outputs (de-DE by default)."""

    model_config = ConfigDict(frozen=True)

    currency_symbol: str = Field(default="€", description="Symbol appended to currency outputs")
    decimal_separator: str = Field(default=",", description="Decimal separator")
    thousands_separator: str = Field(default=".", description="Digit grouping separator")
    number_max_fraction_digits: int = Field(
        default=3, ge=0, le=10,
        description="Maximum fraction digits for 'number' outputs"
    )


class CalculatorSettings(BaseSettings):
    """Main calculator settings."""

    model_config = SettingsConfigDict(
        env_prefix="CALC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Output formatting
    currency_symbol: str = Field(default="€", description="Symbol appended to currency outputs")
    decimal_separator: str = Field(default=",", description="Decimal separator")
    thousands_separator: str = Field(default=".", description="Digit grouping separator")
    number_max_fraction_digits: int = Field(
        default=3, ge=0, le=10,
        description="Maximum fraction digits for 'number' outputs"
    )

    # Pricing
    tier_below_range_policy: BelowRangePolicy = Field(
        default=BelowRangePolicy.FIRST_TIER,
        description="Tier used for values below the first tier's minimum"
    )
    price_catalog_dir: Path = Field(
        default=DEFAULT_CATALOG_DIR,
        description="Directory containing price catalog YAML files"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Structured JSON log output")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def formatting(self) -> FormatSettings:
        """Formatting convention taken from this settings instance."""
        return FormatSettings(
            currency_symbol=self.currency_symbol,
            decimal_separator=self.decimal_separator,
            thousands_separator=self.thousands_separator,
            number_max_fraction_digits=self.number_max_fraction_digits,
        )


@lru_cache
def get_settings() -> CalculatorSettings:
    """
    Get cached calculator settings instance.

    Returns:
        CalculatorSettings: Cached settings loaded from environment.
    """
    return CalculatorSettings()
