"""
Price variables for the calculator builder.

The builder shows every catalog price as an editable variable an author
can drop into formulas. Each price table becomes one record; tiered
tables are represented by their first tier.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from calculator.decimal_math import plain_number
from models.calculator_config import PriceTable, PriceTableType

# Keywords checked against the lowercased table name, first match wins
CATEGORY_KEYWORDS = [
    ("Microsoft", ("microsoft", "m365", "teams")),
    ("Cloud", ("azure", "aws", "cloud", "migration")),
    ("IT-Services", ("support", "outsourcing", "security")),
    ("Lizenzen", ("license", "lizenz")),
]
DEFAULT_CATEGORY = "Sonstiges"


@dataclass
class PriceVariable:
    id: str
    name: str
    variable_name: str
    value: float
    unit: str
    category: str
    description: str = ""
    used_in: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "variableName": self.variable_name,
            "value": self.value,
            "unit": self.unit,
            "category": self.category,
            "description": self.description,
            "usedIn": list(self.used_in),
        }


def category_for(name: str) -> str:
    lower = name.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in lower for k in keywords):
            return category
    return DEFAULT_CATEGORY


def _price_variable(table: PriceTable, currency: str) -> Optional[PriceVariable]:
    base = dict(
        id=f"var_{table.id}",
        name=table.name,
        variable_name=table.id.replace("-", "_"),
        category=category_for(table.name),
    )

    if table.type == PriceTableType.PER_UNIT:
        return PriceVariable(
            value=float(table.unit_price or 0),
            unit=f"{currency}/User/Monat",
            description=table.description,
            **base,
        )

    if table.type == PriceTableType.FLAT:
        price = table.data.get("price")
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            price = 0
        return PriceVariable(
            value=float(price),
            unit=f"{currency}/User/Monat",
            description=table.description,
            **base,
        )

    tiers = table.tiers
    if not tiers:
        return None
    first = tiers[0]
    upper = plain_number(first.max) if first.max is not None else "∞"
    return PriceVariable(
        value=first.price,
        unit=f"{currency}/Monat",
        description=f"{table.description} (Tier: {plain_number(first.min)}-{upper})",
        **base,
    )


def build_price_variables(tables: Iterable[PriceTable], currency: str = "CHF") -> List[PriceVariable]:
    """
    Convert price tables into builder price variables.

    Tiered tables without tiers are skipped.
    """
    variables = []
    for table in tables:
        variable = _price_variable(table, currency)
        if variable is not None:
            variables.append(variable)
    return variables
