"""
Calculator Configuration Models

Pydantic models for the configuration document authored in the wizard
builder: variables, price tables, calculations, conditions and outputs.

Documents arrive from the builder with camelCase keys (dependsOn,
defaultValue, unitPrice). Models accept both the camelCase aliases and
the snake_case field names, and are frozen once loaded.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class VariableType(str, Enum):
    """Semantic type of an input variable."""
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"


class PriceTableType(str, Enum):
    """Pricing model of a price table."""
    FLAT = "flat"          # string key -> price
    TIERED = "tiered"      # numeric value -> price of the matching tier
    PER_UNIT = "per_unit"  # units * unitPrice


class OutputFormat(str, Enum):
    """Rendering format of an output value."""
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    NUMBER = "number"
    TEXT = "text"


class BelowRangePolicy(str, Enum):
    """What a tiered table returns for a value below its first tier."""
    FIRST_TIER = "first_tier"
    LAST_TIER = "last_tier"
    ZERO = "zero"


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )


class Variable(_ConfigModel):
    """Input variable declared by the builder."""
    id: str = Field(description="Context key of the variable")
    name: Optional[str] = Field(default=None, description="Display name")
    type: VariableType = Field(default=VariableType.NUMBER, description="Semantic type")
    default_value: Any = Field(default=None, alias="defaultValue", description="Seed value")
    description: Optional[str] = None


class Tier(_ConfigModel):
    """
    A contiguous numeric range mapped to a fixed price.

    An open-ended tier leaves max unset.
    """
    min: float = Field(description="Inclusive lower bound")
    max: Optional[float] = Field(default=None, description="Inclusive upper bound")
    price: float = Field(default=0.0, description="Price for values in range")


class PriceTable(_ConfigModel):
    """
    Priced lookup structure.

    The payload in ``data`` depends on ``type``:
      flat:     {"<key>": <price>, ...}
      tiered:   {"tiers": [{"min": .., "max": .., "price": ..}, ...],
                 "below_range": "first_tier" | "last_tier" | "zero"}
      per_unit: {"unitPrice": <price>}

    Other keys (description, features) are carried along but never priced.
    """
    id: str
    name: str = ""
    type: PriceTableType
    data: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_payload(self) -> "PriceTable":
        if self.type == PriceTableType.TIERED:
            tiers = self.data.get("tiers")
            if tiers is not None and not isinstance(tiers, list):
                raise ValueError(f"Price table {self.id}: 'tiers' must be a list")
            # Validate each tier eagerly so lookups never see malformed rows
            for tier in tiers or []:
                Tier.model_validate(tier)
            policy = self.data.get("below_range")
            if policy is not None:
                BelowRangePolicy(policy)
        elif self.type == PriceTableType.PER_UNIT:
            unit_price = self.data.get("unitPrice")
            if unit_price is not None and not isinstance(unit_price, (int, float)):
                raise ValueError(f"Price table {self.id}: 'unitPrice' must be numeric")
        return self

    @property
    def tiers(self) -> List[Tier]:
        """Parsed tiers of a tiered table (empty for other types)."""
        if self.type != PriceTableType.TIERED:
            return []
        return [Tier.model_validate(t) for t in self.data.get("tiers") or []]

    @property
    def unit_price(self) -> Optional[float]:
        """Unit price of a per-unit table."""
        if self.type != PriceTableType.PER_UNIT:
            return None
        return self.data.get("unitPrice")

    @property
    def below_range(self) -> Optional[BelowRangePolicy]:
        """Per-table override of the below-range policy, if any."""
        policy = self.data.get("below_range")
        return BelowRangePolicy(policy) if policy is not None else None

    @property
    def description(self) -> str:
        return self.data.get("description", "") or ""


class Calculation(_ConfigModel):
    """A named formula plus its declared dependency ids."""
    id: str
    formula: str
    depends_on: List[str] = Field(default_factory=list, alias="dependsOn")
    description: Optional[str] = None


class Condition(_ConfigModel):
    """An if/then/else rule producing ``<id>_result`` in the context."""
    id: str
    if_: str = Field(alias="if", description="Condition formula")
    then: str = Field(description="Formula stored when the condition holds")
    else_: Optional[str] = Field(default=None, alias="else", description="Fallback formula")


class OutputConfig(_ConfigModel):
    """A formatted, user-facing result."""
    id: str
    label: str = ""
    formula: str
    format: OutputFormat = OutputFormat.TEXT
    unit: Optional[str] = None

    @field_validator("format", mode="before")
    @classmethod
    def _unknown_format_is_text(cls, value: Any) -> Any:
        if isinstance(value, OutputFormat):
            return value
        if not isinstance(value, str) or value not in {f.value for f in OutputFormat}:
            return OutputFormat.TEXT
        return value


class CalculatorConfig(_ConfigModel):
    """Complete calculator configuration of one lead magnet."""
    variables: List[Variable] = Field(default_factory=list)
    price_tables: List[PriceTable] = Field(default_factory=list, alias="priceTables")
    calculations: List[Calculation] = Field(default_factory=list)
    conditions: List[Condition] = Field(default_factory=list)
    outputs: List[OutputConfig] = Field(default_factory=list)

    def with_price_tables(self, price_tables: List[PriceTable]) -> "CalculatorConfig":
        """Return a copy whose price tables are replaced by ``price_tables``."""
        return self.model_copy(update={"price_tables": list(price_tables)})
