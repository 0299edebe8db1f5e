#!/usr/bin/env python3
"""
Example script showing how to use the calculation engine programmatically
"""
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from calculator.engine import CalculationEngine
from calculator.errors import UnresolvedGraph
from config.calculator_config_loader import PriceCatalogLoader, load_calculator_config


def example_inline_config():
    """Example: Configuration defined in code with its own price tables"""
    print("Example 1: Inline Configuration")
    print("=" * 60)

    config = {
        "variables": [{"id": "users", "type": "number"}],
        "priceTables": [
            {"id": "license", "name": "Lizenz", "type": "per_unit", "data": {"unitPrice": 8.0}},
            {
                "id": "sbc",
                "name": "SBC",
                "type": "tiered",
                "data": {"tiers": [
                    {"min": 1, "max": 10, "price": 500},
                    {"min": 11, "max": 50, "price": 2000},
                    {"min": 51, "price": 5000},
                ]},
            },
        ],
        "calculations": [
            {"id": "licenses", "formula": "price(license, users)", "dependsOn": ["users"]},
            {"id": "sbc_cost", "formula": "price(sbc, users)", "dependsOn": ["users"]},
            {"id": "total", "formula": "licenses + sbc_cost", "dependsOn": ["licenses", "sbc_cost"]},
        ],
        "outputs": [
            {"id": "total", "label": "Gesamtkosten", "formula": "total", "format": "currency"},
        ],
    }

    engine = CalculationEngine(config)
    for users in (5, 25, 120):
        engine.set_variable("users", users)
        outputs = engine.get_outputs()
        print(f"{users:>4} users: {outputs['total'].value}")
    print()


def example_catalog_config():
    """Example: Sample configuration priced from the Microsoft Teams catalog"""
    print("Example 2: Catalog Pricing")
    print("=" * 60)

    config_path = os.path.join(os.path.dirname(__file__), 'sample_configs', 'teams_calculator.yaml')
    config = load_calculator_config(config_path)
    tables = PriceCatalogLoader().load_catalog("microsoft_teams")

    engine = CalculationEngine(config, price_tables=tables)
    engine.set_variables({"users": 25, "international": True})

    for output_id, result in engine.get_outputs().items():
        print(f"{result.label:<20} {result.value}")
    print()


def example_missing_input():
    """Example: A calculation whose input was never answered"""
    print("Example 3: Missing Input")
    print("=" * 60)

    engine = CalculationEngine({
        "calculations": [
            {"id": "total", "formula": "seats * 10", "dependsOn": ["seats"]},
        ],
    })
    try:
        engine.calculate_all()
    except UnresolvedGraph as e:
        print(f"Not resolved: {e}")
        print(f"Missing: {e.missing}")
    print()


if __name__ == "__main__":
    example_inline_config()
    example_catalog_config()
    example_missing_input()
