"""
Price Table Resolver.

Looks up prices from flat, tiered and per-unit tables. Lookups never
raise: an unknown table, an unknown key or an empty tier list yields 0
and a warning, so a public widget keeps rendering.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, Optional, Union

from models.calculator_config import (
    BelowRangePolicy,
    PriceTable,
    PriceTableType,
    Tier,
)

logger = logging.getLogger(__name__)

PriceKey = Union[str, int, float]


class PriceTableResolver:
    """
    Resolve prices from an immutable set of price tables.

    Args:
        tables: Price tables available to this session
        below_range_policy: Default for tiered values below the first tier;
                            a table's own ``below_range`` takes precedence
    """

    def __init__(
        self,
        tables: Iterable[PriceTable],
        below_range_policy: BelowRangePolicy = BelowRangePolicy.FIRST_TIER,
    ):
        self._tables: Dict[str, PriceTable] = {}
        for table in tables:
            if table.id in self._tables:
                logger.warning(f"Duplicate price table {table.id}, keeping the first definition")
                continue
            self._tables[table.id] = table
        self._below_range_policy = below_range_policy

    def get_table(self, table_id: str) -> Optional[PriceTable]:
        return self._tables.get(table_id)

    @property
    def table_ids(self) -> list:
        return list(self._tables)

    def get_price(self, table_id: str, key_or_value: PriceKey) -> float:
        """
        Look up a price.

        Args:
            table_id: ID of the price table
            key_or_value: String key for flat tables, numeric value for
                          tiered and per-unit tables

        Returns:
            The resolved price, or 0.0 when nothing matches
        """
        table = self._tables.get(table_id)
        if table is None:
            logger.warning(
                f"Price table {table_id} not found",
                extra={'extra_data': {'price_table': table_id}}
            )
            return 0.0

        if table.type == PriceTableType.FLAT:
            return self._flat_price(table, key_or_value)
        if table.type == PriceTableType.TIERED:
            value = _as_number(key_or_value)
            if value is None:
                logger.warning(f"Tiered table {table_id} needs a numeric value, got {key_or_value!r}")
                return 0.0
            return self._tiered_price(table, value)
        if table.type == PriceTableType.PER_UNIT:
            if key_or_value == "unitPrice":
                return float(table.unit_price or 0.0)
            units = _as_number(key_or_value)
            if units is None:
                logger.warning(f"Per-unit table {table_id} needs a numeric quantity, got {key_or_value!r}")
                return 0.0
            return self._per_unit_price(table, units)
        return 0.0

    def _flat_price(self, table: PriceTable, key: PriceKey) -> float:
        if not isinstance(key, str):
            logger.warning(f"Flat table {table.id} needs a string key, got {key!r}")
            return 0.0
        price = table.data.get(key)
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            logger.warning(
                f"Key {key} not priced in table {table.id}",
                extra={'extra_data': {'price_table': table.id, 'key': key}}
            )
            return 0.0
        return float(price)

    def _tiered_price(self, table: PriceTable, value: float) -> float:
        tiers = table.tiers
        if not tiers:
            logger.warning(f"Tiered table {table.id} has no tiers")
            return 0.0

        for tier in tiers:
            if value >= tier.min and (tier.max is None or value <= tier.max):
                return tier.price

        if value < tiers[0].min:
            return self._below_range_price(table, tiers)

        # Above every finite max, or inside a gap between tiers
        return tiers[-1].price

    def _below_range_price(self, table: PriceTable, tiers: list[Tier]) -> float:
        policy = table.below_range or self._below_range_policy
        if policy == BelowRangePolicy.FIRST_TIER:
            return tiers[0].price
        if policy == BelowRangePolicy.LAST_TIER:
            return tiers[-1].price
        return 0.0

    @staticmethod
    def _per_unit_price(table: PriceTable, units: float) -> float:
        unit_price = table.unit_price
        if not unit_price:
            return 0.0
        return units * unit_price


def _as_number(value: PriceKey) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    return None
