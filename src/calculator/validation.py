from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Set

from calculator.formula import CompiledFormula, compile_formula
from calculator.scheduler import DependencyScheduler
from models.calculator_config import CalculatorConfig, PriceTableType


@dataclass
class ValidationIssue:
    field: str
    message: str
    severity: str = "error"  # "error" | "warning"


class CalculatorConfigValidator:
    """
    Static checks a builder runs before publishing a calculator.

    Errors make a configuration unusable (duplicate ids, formulas that
    cannot be parsed, dependency cycles). Warnings flag configurations
    that run but will likely compute something other than intended.
    """

    def validate(self, config: CalculatorConfig) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []

        issues.extend(self._check_duplicates("variables", (v.id for v in config.variables)))
        issues.extend(self._check_duplicates("priceTables", (t.id for t in config.price_tables)))
        issues.extend(self._check_duplicates("calculations", (c.id for c in config.calculations)))
        issues.extend(self._check_duplicates("conditions", (c.id for c in config.conditions)))
        issues.extend(self._check_duplicates("outputs", (o.id for o in config.outputs)))

        issues.extend(self._check_price_tables(config))

        table_ids = {t.id for t in config.price_tables}
        variable_ids = {v.id for v in config.variables}
        calculation_ids = {c.id for c in config.calculations}

        for calc in config.calculations:
            field = f"calculations.{calc.id}"
            compiled = compile_formula(calc.formula)
            issues.extend(self._check_formula(f"{field}.formula", compiled, table_ids))

            for dep in calc.depends_on:
                if dep not in variable_ids and dep not in calculation_ids:
                    issues.append(
                        ValidationIssue(
                            f"{field}.dependsOn",
                            f"Dependency {dep} is neither a variable nor a calculation; "
                            "it must be supplied at runtime.",
                            severity="warning",
                        )
                    )

            if compiled.is_valid:
                undeclared = [
                    name for name in compiled.variables
                    if name in calculation_ids and name != calc.id and name not in calc.depends_on
                ]
                for name in undeclared:
                    issues.append(
                        ValidationIssue(
                            f"{field}.dependsOn",
                            f"Formula uses calculation {name} without declaring it in dependsOn; "
                            "it may be evaluated before its value is current.",
                            severity="warning",
                        )
                    )

        for cycle in DependencyScheduler(config.calculations).find_cycles():
            path = " -> ".join(cycle + cycle[:1])
            issues.append(
                ValidationIssue(f"calculations.{cycle[0]}.dependsOn", f"Circular dependency: {path}.")
            )

        for condition in config.conditions:
            field = f"conditions.{condition.id}"
            issues.extend(self._check_formula(f"{field}.if", compile_formula(condition.if_), table_ids))
            issues.extend(self._check_formula(f"{field}.then", compile_formula(condition.then), table_ids))
            if condition.else_:
                issues.extend(
                    self._check_formula(f"{field}.else", compile_formula(condition.else_), table_ids)
                )

        for output in config.outputs:
            issues.extend(
                self._check_formula(f"outputs.{output.id}.formula", compile_formula(output.formula), table_ids)
            )

        return issues

    @staticmethod
    def _check_duplicates(section: str, ids: Iterable[str]) -> List[ValidationIssue]:
        counts = Counter(ids)
        return [
            ValidationIssue(f"{section}.{item_id}", f"Duplicate id {item_id} ({count} definitions).")
            for item_id, count in counts.items()
            if count > 1
        ]

    @staticmethod
    def _check_formula(field: str, compiled: CompiledFormula, table_ids: Set[str]) -> List[ValidationIssue]:
        if not compiled.is_valid:
            return [ValidationIssue(field, f"Formula {compiled.source!r} cannot be evaluated: {compiled.error}.")]
        return [
            ValidationIssue(field, f"price() refers to unknown price table {table_id}.", severity="warning")
            for table_id in compiled.price_tables
            if table_id not in table_ids
        ]

    @staticmethod
    def _check_price_tables(config: CalculatorConfig) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for table in config.price_tables:
            field = f"priceTables.{table.id}"

            if table.type == PriceTableType.PER_UNIT and not table.unit_price:
                issues.append(
                    ValidationIssue(f"{field}.unitPrice", "Per-unit table has no unit price; it always prices 0.",
                                    severity="warning")
                )

            if table.type != PriceTableType.TIERED:
                continue

            tiers = table.tiers
            if not tiers:
                issues.append(
                    ValidationIssue(f"{field}.tiers", "Tiered table has no tiers; it always prices 0.",
                                    severity="warning")
                )
                continue

            for i, tier in enumerate(tiers):
                if tier.max is not None and tier.max < tier.min:
                    issues.append(
                        ValidationIssue(f"{field}.tiers[{i}]", f"Tier max {tier.max} is below its min {tier.min}.",
                                        severity="warning")
                    )
                if i == 0:
                    continue
                previous = tiers[i - 1]
                if tier.min <= previous.min or previous.max is None or previous.max >= tier.min:
                    issues.append(
                        ValidationIssue(
                            f"{field}.tiers[{i}]",
                            "Tiers must be ordered by min without overlapping; "
                            "the first matching tier wins.",
                            severity="warning",
                        )
                    )
        return issues
