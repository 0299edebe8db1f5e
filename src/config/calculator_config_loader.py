"""
Calculator Configuration Loader.

Loads calculator configurations and price catalogs from YAML (or JSON)
files, enabling:
- Price updates without code changes
- Environment-specific unit price overrides
- Per-catalog metadata (version, currency, source)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from calculator.errors import ConfigurationError
from config.settings import DEFAULT_CATALOG_DIR
from models.calculator_config import CalculatorConfig, PriceTable, PriceTableType

logger = logging.getLogger(__name__)

# Catalogs shipped with the platform, in the order the builder lists them
DEFAULT_CATALOGS = ["microsoft_teams", "microsoft_365", "cloud_migration", "it_outsourcing"]

ENV_OVERRIDE_PREFIX = "PRICE_"
ENV_OVERRIDE_SUFFIX = "_UNIT_PRICE"


@dataclass
class CatalogMetadata:
    """Metadata about a price catalog file."""
    version: str
    catalog: str
    currency: str = "CHF"
    source: str = ""  # "platform", "partner", "custom"
    last_updated: str = ""
    notes: str = ""


def read_document(path: Path) -> Any:
    """Read a YAML or JSON file; JSON is chosen by the .json suffix."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}") from exc
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot parse {path}: {exc}") from exc


def load_calculator_config(path: Union[str, Path]) -> CalculatorConfig:
    """
    Load a calculator configuration document.

    Args:
        path: YAML or JSON file as exported by the builder

    Returns:
        Frozen CalculatorConfig

    Raises:
        ConfigurationError: If the file cannot be read or fails validation
    """
    path = Path(path)
    document = read_document(path)
    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ConfigurationError(f"{path} must contain a mapping, got {type(document).__name__}")

    try:
        config = CalculatorConfig.model_validate(document)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid calculator configuration in {path}: {exc}") from exc

    logger.info(
        f"Loaded calculator config from {path}",
        extra={'extra_data': {
            'calculations': len(config.calculations),
            'outputs': len(config.outputs),
        }}
    )
    return config


class PriceCatalogLoader:
    """
    Loads price catalogs (lists of price tables) from YAML files.

    Each ``<name>.yaml`` holds an optional ``_metadata`` block and a
    ``price_tables`` list. Loaded catalogs are cached per instance.

    Unit prices of per-unit tables can be overridden through the
    environment, e.g. ``PRICE_SUPPORT_TIER1_UNIT_PRICE=55``.
    """

    def __init__(self, catalog_dir: Optional[Path] = None):
        """
        Initialize the catalog loader.

        Args:
            catalog_dir: Directory containing catalog files.
                         Defaults to src/config/price_catalogs/
        """
        self.catalog_dir = Path(catalog_dir) if catalog_dir else DEFAULT_CATALOG_DIR
        self._catalogs: Dict[str, List[PriceTable]] = {}
        self._metadata: Dict[str, CatalogMetadata] = {}

    def available_catalogs(self) -> List[str]:
        """Catalog names found on disk; shipped catalogs first."""
        if not self.catalog_dir.is_dir():
            return []
        found = {p.stem for p in self.catalog_dir.glob("*.yaml")}
        shipped = [name for name in DEFAULT_CATALOGS if name in found]
        return shipped + sorted(found - set(shipped))

    def load_catalog(self, name: str) -> List[PriceTable]:
        """
        Load one catalog by name.

        Raises:
            ConfigurationError: If the catalog is missing or invalid
        """
        if name in self._catalogs:
            return self._catalogs[name]

        path = self.catalog_dir / f"{name}.yaml"
        if not path.exists():
            raise ConfigurationError(f"Price catalog {name} not found in {self.catalog_dir}")

        logger.info(f"Loading price catalog from {path}")
        document = read_document(path) or {}
        if not isinstance(document, dict):
            raise ConfigurationError(f"Price catalog {path} must contain a mapping")

        if '_metadata' in document:
            try:
                self._metadata[name] = CatalogMetadata(**document.pop('_metadata'))
            except TypeError as exc:
                raise ConfigurationError(f"Invalid metadata in {path}: {exc}") from exc

        raw_tables = [self._apply_env_overrides(t) for t in document.get('price_tables') or []]
        try:
            tables = [PriceTable.model_validate(t) for t in raw_tables]
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid price table in {path}: {exc}") from exc

        self._catalogs[name] = tables
        return tables

    def load_all(self) -> List[PriceTable]:
        """Merge every available catalog; the first definition of an id wins."""
        merged: Dict[str, PriceTable] = {}
        for name in self.available_catalogs():
            for table in self.load_catalog(name):
                if table.id in merged:
                    logger.warning(f"Price table {table.id} in catalog {name} shadows an earlier definition")
                    continue
                merged[table.id] = table
        return list(merged.values())

    def get_metadata(self, name: str) -> Optional[CatalogMetadata]:
        """Get metadata for a catalog."""
        self.load_catalog(name)  # Ensure loaded
        return self._metadata.get(name)

    def _apply_env_overrides(self, table: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a PRICE_<TABLE_ID>_UNIT_PRICE override to a per-unit table."""
        if not isinstance(table, dict) or table.get('type') != PriceTableType.PER_UNIT.value:
            return table

        key = f"{ENV_OVERRIDE_PREFIX}{str(table.get('id', '')).upper()}{ENV_OVERRIDE_SUFFIX}"
        value = os.environ.get(key)
        if value is None:
            return table

        try:
            unit_price = float(value)
        except ValueError:
            logger.warning(f"Could not parse env override: {key}={value}")
            return table

        logger.info(f"Applied env override: {table.get('id')}.unitPrice={unit_price}")
        data = dict(table.get('data') or {})
        data['unitPrice'] = unit_price
        return {**table, 'data': data}
