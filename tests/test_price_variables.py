"""
Tests for builder price variables built from price tables.
"""

import pytest

from calculator.price_variables import build_price_variables, category_for
from config.calculator_config_loader import PriceCatalogLoader
from models.calculator_config import PriceTable


class TestBuildPriceVariables:

    def test_per_unit(self):
        table = PriceTable(
            id="support-tier1", name="Support Tier 1", type="per_unit",
            data={"unitPrice": 50, "description": "Basis-Support (8x5)"},
        )

        [variable] = build_price_variables([table])

        assert variable.id == "var_support-tier1"
        assert variable.variable_name == "support_tier1"
        assert variable.value == 50
        assert variable.unit == "CHF/User/Monat"
        assert variable.category == "IT-Services"
        assert variable.description == "Basis-Support (8x5)"

    def test_flat_uses_price_entry(self):
        table = PriceTable(id="m365_e3", name="Microsoft 365 E3", type="flat", data={"price": 32.0})
        [variable] = build_price_variables([table])
        assert variable.value == 32.0
        assert variable.category == "Microsoft"

    def test_flat_without_price(self):
        table = PriceTable(id="plans", name="Plans", type="flat", data={"basic": 5})
        assert build_price_variables([table])[0].value == 0

    def test_tiered_uses_first_tier(self):
        table = PriceTable(
            id="azure_vm_cost", name="Azure VM Kosten", type="tiered",
            data={"tiers": [{"min": 1, "max": 4, "price": 100}, {"min": 5, "price": 300}],
                  "description": "Kosten basierend auf vCPU-Anzahl"},
        )

        [variable] = build_price_variables([table], currency="EUR")

        assert variable.value == 100
        assert variable.unit == "EUR/Monat"
        assert variable.description == "Kosten basierend auf vCPU-Anzahl (Tier: 1-4)"

    def test_open_ended_first_tier(self):
        table = PriceTable(id="t", name="T", type="tiered", data={"tiers": [{"min": 1, "price": 9}]})
        assert build_price_variables([table])[0].description.endswith("(Tier: 1-∞)")

    def test_tiered_without_tiers_skipped(self):
        table = PriceTable(id="t", name="T", type="tiered", data={"tiers": []})
        assert build_price_variables([table]) == []

    def test_to_dict(self):
        table = PriceTable(id="x", name="X", type="per_unit", data={"unitPrice": 1})
        data = build_price_variables([table])[0].to_dict()
        assert data["variableName"] == "x"
        assert data["usedIn"] == []

    def test_shipped_catalogs(self):
        variables = build_price_variables(PriceCatalogLoader().load_all())
        by_id = {v.id: v for v in variables}

        assert len(variables) == 19
        assert by_id["var_direct_routing_sbc"].value == 500
        assert by_id["var_migration_service"].category == "Cloud"
        assert by_id["var_volume_discount"].category == "Sonstiges"


class TestCategoryFor:

    @pytest.mark.parametrize("name,expected", [
        ("Microsoft Phone System Lizenz", "Microsoft"),
        ("Calling Plan Domestic", "Sonstiges"),
        ("AWS EC2 Kosten", "Cloud"),
        ("Migrations-Service", "Cloud"),
        ("Security Services", "IT-Services"),
        ("Enterprise License", "Lizenzen"),
        ("Volumenrabatt", "Sonstiges"),
    ])
    def test_category(self, name, expected):
        assert category_for(name) == expected
