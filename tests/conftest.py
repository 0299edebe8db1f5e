"""Pytest configuration and fixtures for test suite."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from calculator.engine import CalculationEngine
from config.settings import CalculatorSettings
from models.calculator_config import CalculatorConfig, PriceTable


# =============================================================================
# PRICE TABLES
# =============================================================================

SBC_TIERS = [
    {"min": 1, "max": 10, "price": 500},
    {"min": 11, "max": 50, "price": 2000},
    {"min": 51, "max": 100, "price": 5000},
    {"min": 101, "price": 10000},
]


@pytest.fixture
def sbc_table() -> PriceTable:
    """Tiered Direct Routing SBC table."""
    return PriceTable(id="sbc", name="Direct Routing SBC", type="tiered", data={"tiers": SBC_TIERS})


@pytest.fixture
def license_table() -> PriceTable:
    """Per-unit licence table at 8.0 per user."""
    return PriceTable(id="license", name="Phone System Lizenz", type="per_unit", data={"unitPrice": 8.0})


@pytest.fixture
def plans_table() -> PriceTable:
    """Flat plan table with a non-numeric features entry."""
    return PriceTable(
        id="plans",
        name="Microsoft 365 Plans",
        type="flat",
        data={"basic": 5.0, "standard": 10.5, "features": ["Exchange", "Teams"]},
    )


@pytest.fixture
def price_tables(sbc_table, license_table, plans_table):
    return [sbc_table, license_table, plans_table]


# =============================================================================
# CONFIGURATIONS
# =============================================================================

@pytest.fixture
def settings() -> CalculatorSettings:
    """Settings with defaults only, independent of the process environment."""
    return CalculatorSettings(_env_file=None)


@pytest.fixture
def teams_config_dict():
    """Builder document for a small Teams cost calculator (camelCase keys)."""
    return {
        "variables": [
            {"id": "users", "type": "number", "defaultValue": 10},
            {"id": "plan", "type": "string", "defaultValue": "basic"},
        ],
        "priceTables": [
            {"id": "sbc", "name": "Direct Routing SBC", "type": "tiered", "data": {"tiers": SBC_TIERS}},
            {"id": "license", "name": "Phone System Lizenz", "type": "per_unit", "data": {"unitPrice": 8.0}},
            {"id": "plans", "name": "Microsoft 365 Plans", "type": "flat",
             "data": {"basic": 5.0, "standard": 10.5}},
        ],
        "calculations": [
            {"id": "licenses", "formula": "price(license, users)", "dependsOn": ["users"]},
            {"id": "plan_cost", "formula": "price(plans, plan) * users", "dependsOn": ["users", "plan"]},
            {"id": "sbc_cost", "formula": "price(sbc, users)", "dependsOn": ["users"]},
            {"id": "monthly", "formula": "licenses + plan_cost + sbc_cost",
             "dependsOn": ["licenses", "plan_cost", "sbc_cost"]},
            {"id": "yearly", "formula": "monthly * 12", "dependsOn": ["monthly"]},
        ],
        "conditions": [
            {"id": "discount", "if": "users >= 50", "then": "yearly * 0.1", "else": "0"},
        ],
        "outputs": [
            {"id": "monthly", "label": "Monatlich", "formula": "monthly", "format": "currency"},
            {"id": "yearly", "label": "Jährlich", "formula": "yearly - discount_result", "format": "currency"},
            {"id": "share", "label": "SBC-Anteil", "formula": "sbc_cost / monthly * 100", "format": "percentage"},
            {"id": "seats", "label": "Plätze", "formula": "users", "format": "text", "unit": "User"},
        ],
    }


@pytest.fixture
def teams_config(teams_config_dict) -> CalculatorConfig:
    return CalculatorConfig.model_validate(teams_config_dict)


@pytest.fixture
def engine(teams_config, settings) -> CalculationEngine:
    """Engine for the Teams calculator with default settings."""
    return CalculationEngine(teams_config, settings=settings)
