#!/usr/bin/env python3
"""
Builder preview tool for lead-magnet calculators.

Runs a calculator configuration outside the widget and prints JSON, so an
author can check outputs, validation findings and catalog prices.

Usage:
  python src/main.py evaluate calc.yaml --answers answers.json
  python src/main.py evaluate calc.yaml --set users=25 --catalog microsoft_teams --context
  python src/main.py validate calc.yaml --catalog microsoft_teams
  python src/main.py prices --catalog it_outsourcing --variables
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from calculator.engine import CalculationEngine
from calculator.errors import ConfigurationError, UnresolvedGraph
from calculator.price_variables import build_price_variables
from calculator.validation import CalculatorConfigValidator
from config.calculator_config_loader import PriceCatalogLoader, read_document, load_calculator_config
from config.settings import get_settings
from models.calculator_config import PriceTable
from services.logging_config import configure_logging, lead_magnet_id_var, session_id_var


def _parse_assignment(text: str) -> tuple:
    """Parse key=value; the value is read as JSON when possible (25, true, "x")."""
    key, sep, raw = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {text!r}")
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key.strip(), value


def _load_answers(args: argparse.Namespace) -> Dict[str, Any]:
    answers: Dict[str, Any] = {}
    if args.answers:
        document = read_document(Path(args.answers))
        if not isinstance(document, dict):
            raise ConfigurationError(f"{args.answers} must contain a mapping of answers")
        answers.update(document)
    for key, value in args.set or []:
        answers[key] = value
    return answers


def _load_tables(loader: PriceCatalogLoader, catalogs: Optional[List[str]], all_catalogs: bool) -> Optional[List[PriceTable]]:
    if all_catalogs:
        return loader.load_all()
    if not catalogs:
        return None
    tables: List[PriceTable] = []
    for name in catalogs:
        tables.extend(loader.load_catalog(name))
    return tables


def _print_json(payload: Any, stream=sys.stdout) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str), file=stream)


def cmd_evaluate(args: argparse.Namespace) -> int:
    session_token = session_id_var.set(args.session_id)
    lead_magnet_token = lead_magnet_id_var.set(args.lead_magnet or Path(args.config).stem)
    try:
        return _evaluate(args)
    finally:
        lead_magnet_id_var.reset(lead_magnet_token)
        session_id_var.reset(session_token)


def _evaluate(args: argparse.Namespace) -> int:
    config = load_calculator_config(args.config)
    loader = PriceCatalogLoader(get_settings().price_catalog_dir)
    tables = _load_tables(loader, args.catalog, args.all_catalogs)

    engine = CalculationEngine(config, price_tables=tables, session_id=args.session_id)
    engine.set_variables(_load_answers(args))

    try:
        outputs = engine.get_outputs()
    except UnresolvedGraph as exc:
        _print_json({
            "error": str(exc),
            "cycles": exc.cycles,
            "missing": exc.missing,
            "unresolved": exc.unresolved,
            "partialResults": exc.partial_results,
        }, stream=sys.stderr)
        return 1

    payload: Dict[str, Any] = {
        "outputs": {output_id: result.to_dict() for output_id, result in outputs.items()},
        "diagnostics": [d.to_dict() for d in engine.diagnostics],
    }
    if args.context:
        payload["context"] = engine.get_context()
    _print_json(payload)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    config = load_calculator_config(args.config)
    loader = PriceCatalogLoader(get_settings().price_catalog_dir)
    tables = _load_tables(loader, args.catalog, args.all_catalogs)
    if tables is not None:
        config = config.with_price_tables(tables)

    issues = CalculatorConfigValidator().validate(config)
    _print_json([
        {"field": i.field, "message": i.message, "severity": i.severity} for i in issues
    ])
    return 1 if any(i.severity == "error" for i in issues) else 0


def cmd_prices(args: argparse.Namespace) -> int:
    loader = PriceCatalogLoader(get_settings().price_catalog_dir)
    tables = _load_tables(loader, args.catalog, not args.catalog)

    if args.variables:
        _print_json([v.to_dict() for v in build_price_variables(tables, currency=args.currency)])
    else:
        _print_json([t.model_dump(mode="json") for t in tables])
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Preview and check lead-magnet calculator configurations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--env-file", default=".env", help="Path to env file to load")
    subparsers = parser.add_subparsers(dest="command", required=True)

    evaluate = subparsers.add_parser("evaluate", help="Compute outputs for a set of answers")
    evaluate.add_argument("config", help="Calculator configuration (YAML or JSON)")
    evaluate.add_argument("--answers", help="YAML or JSON file of field answers")
    evaluate.add_argument(
        "--set", action="append", type=_parse_assignment, metavar="KEY=VALUE",
        help="Set one answer (repeatable); values are parsed as JSON when possible",
    )
    evaluate.add_argument(
        "--catalog", action="append", metavar="NAME",
        help="Use price tables from a catalog instead of the configuration's own (repeatable)",
    )
    evaluate.add_argument("--all-catalogs", action="store_true", help="Use every available catalog")
    evaluate.add_argument("--context", action="store_true", help="Include the final context")
    evaluate.add_argument("--session-id", help="Session id attached to logs")
    evaluate.add_argument("--lead-magnet", help="Lead magnet id attached to logs (default: config file name)")
    evaluate.set_defaults(func=cmd_evaluate)

    validate = subparsers.add_parser("validate", help="Report configuration errors and warnings")
    validate.add_argument("config", help="Calculator configuration (YAML or JSON)")
    validate.add_argument(
        "--catalog", action="append", metavar="NAME",
        help="Check price() calls against a catalog instead of the configuration's own tables",
    )
    validate.add_argument("--all-catalogs", action="store_true", help="Check against every available catalog")
    validate.set_defaults(func=cmd_validate)

    prices = subparsers.add_parser("prices", help="List catalog price tables")
    prices.add_argument("--catalog", action="append", metavar="NAME", help="Catalog to list (default: all)")
    prices.add_argument("--variables", action="store_true", help="Show builder price variables")
    prices.add_argument("--currency", default="CHF", help="Currency used in price variable units")
    prices.set_defaults(func=cmd_prices)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv(args.env_file)
    settings = get_settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json)

    try:
        return args.func(args)
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
