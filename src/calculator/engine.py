"""
Calculation Engine.

Facade over the calculator components for one lead-magnet session:

    context   -> VariableContext (user answers + computed results)
    prices    -> PriceTableResolver
    formulas  -> FormulaEvaluator (parsed once, evaluated per call)
    schedule  -> DependencyScheduler (topological order over calculations)
    rules     -> ConditionEvaluator
    outputs   -> OutputFormatter

The configuration is read-only for the engine's lifetime. Create one
engine per widget session; nothing is shared between instances.

Example:
    engine = CalculationEngine(config)
    engine.set_variables({"users": 25})
    for output_id, result in engine.get_outputs().items():
        print(output_id, result.value)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from calculator.conditions import ConditionEvaluator
from calculator.context import VariableContext
from calculator.errors import ConfigurationError
from calculator.formula import EvaluationResult, FormulaEvaluator
from calculator.output_formatter import OutputFormatter, OutputResult
from calculator.price_tables import PriceKey, PriceTableResolver
from calculator.scheduler import DependencyScheduler
from calculator.validation import CalculatorConfigValidator, ValidationIssue
from config.settings import CalculatorSettings, get_settings
from models.calculator_config import CalculatorConfig, PriceTable
from services.logging_config import CalculationLogger

logger = logging.getLogger(__name__)

ConfigInput = Union[CalculatorConfig, Mapping[str, Any]]


def _load_config(config: Optional[ConfigInput]) -> CalculatorConfig:
    if isinstance(config, CalculatorConfig):
        return config
    try:
        return CalculatorConfig.model_validate(dict(config or {}))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid calculator configuration: {exc}") from exc


def _load_price_tables(tables: Iterable[Union[PriceTable, Mapping[str, Any]]]) -> List[PriceTable]:
    loaded = []
    for table in tables:
        if isinstance(table, PriceTable):
            loaded.append(table)
            continue
        try:
            loaded.append(PriceTable.model_validate(dict(table)))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid price table: {exc}") from exc
    return loaded


class CalculationEngine:
    """
    Run a calculator configuration against one session's answers.

    Args:
        config: Calculator configuration (model or builder document)
        price_tables: Replaces the configuration's price tables, e.g. with
                      a catalog loaded by PriceCatalogLoader
        settings: Calculator settings; defaults to get_settings()
        session_id: Widget session id attached to pass logs

    Raises:
        ConfigurationError: If the configuration or a price table is invalid
    """

    def __init__(
        self,
        config: Optional[ConfigInput] = None,
        price_tables: Optional[Iterable[Union[PriceTable, Mapping[str, Any]]]] = None,
        settings: Optional[CalculatorSettings] = None,
        session_id: Optional[str] = None,
    ):
        self.config = _load_config(config)
        if price_tables is not None:
            self.config = self.config.with_price_tables(_load_price_tables(price_tables))

        self.settings = settings or get_settings()
        self.session_id = session_id

        self._context = VariableContext(self.config.variables)
        self._prices = PriceTableResolver(
            self.config.price_tables,
            below_range_policy=self.settings.tier_below_range_policy,
        )
        self._evaluator = FormulaEvaluator(self._context, self._prices)
        self._scheduler = DependencyScheduler(self.config.calculations)
        self._conditions = ConditionEvaluator(self.config.conditions)
        self._formatter = OutputFormatter(self.settings.formatting)
        self._calc_logger = CalculationLogger(session_id=session_id)

        self._precompile()

    def _precompile(self) -> None:
        formulas = [c.formula for c in self.config.calculations]
        for condition in self.config.conditions:
            formulas.extend(f for f in (condition.if_, condition.then, condition.else_) if f)
        formulas.extend(o.formula for o in self.config.outputs)

        for formula in formulas:
            compiled = self._evaluator.compile(formula)
            if not compiled.is_valid:
                logger.warning(
                    f"Formula {formula!r} will evaluate to 0: {compiled.error}",
                    extra={'extra_data': {'formula': formula, 'session_id': self.session_id}}
                )

    # =========================================================================
    # CONTEXT
    # =========================================================================

    def set_variable(self, variable_id: str, value: Any) -> None:
        self._context.set_variable(variable_id, value)

    def set_variables(self, values: Mapping[str, Any]) -> None:
        self._context.set_variables(values)

    def get_variable(self, variable_id: str) -> Any:
        return self._context.get_variable(variable_id)

    def get_context(self) -> Dict[str, Any]:
        """Shallow copy of the context (answers, calculation and condition results)."""
        return self._context.snapshot()

    def reset(self) -> None:
        """Clear the session: answers, results and diagnostics."""
        self._context.reset()
        self._evaluator.clear_diagnostics()

    # =========================================================================
    # PRICES AND FORMULAS
    # =========================================================================

    def get_price(self, table_id: str, key_or_value: PriceKey) -> float:
        return self._prices.get_price(table_id, key_or_value)

    def evaluate_formula(self, formula: str) -> float:
        """Evaluate an ad-hoc formula against the current context; never raises."""
        return self._evaluator.evaluate(formula)

    def evaluate_formula_detailed(self, formula: str) -> EvaluationResult:
        return self._evaluator.evaluate_detailed(formula)

    # =========================================================================
    # CALCULATIONS
    # =========================================================================

    def calculate(self, calculation_id: str) -> float:
        """
        Evaluate a single calculation without storing the result.

        Raises:
            UnknownCalculation: If the id is not configured
            MissingDependency: If a declared dependency is not in the context
        """
        return self._scheduler.calculate(calculation_id, self._context, self._evaluator)

    def calculate_all(self) -> Dict[str, float]:
        """
        Resolve every calculation in dependency order.

        Results are stored in the context under their calculation ids.

        Raises:
            UnresolvedGraph: On a dependency cycle or a missing input
        """
        self._evaluator.clear_diagnostics()
        return self._calculate_all()

    def _calculate_all(self) -> Dict[str, float]:
        return self._scheduler.calculate_all(self._context, self._evaluator, self._calc_logger)

    def evaluate_conditions(self) -> Dict[str, float]:
        """Apply conditions; returns the ``<id>_result`` values stored."""
        return self._conditions.evaluate(self._context, self._evaluator)

    def get_outputs(self) -> Dict[str, OutputResult]:
        """
        Recompute everything and render the configured outputs.

        Returns:
            output id -> OutputResult, in configuration order

        Raises:
            UnresolvedGraph: On a dependency cycle or a missing input
        """
        self._evaluator.clear_diagnostics()
        self._calculate_all()
        self.evaluate_conditions()

        outputs: Dict[str, OutputResult] = {}
        for output in self.config.outputs:
            result = self._evaluator.evaluate_detailed(output.formula)
            outputs[output.id] = OutputResult(
                label=output.label,
                value=self._formatter.format(result.value, output.format, output.unit),
                raw_value=result.value,
                defaulted=result.is_defaulted,
            )
        return outputs

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    @property
    def diagnostics(self) -> List[EvaluationResult]:
        """Evaluations that were partial or defaulted during the last pass."""
        return self._evaluator.diagnostics

    def validate(self) -> List[ValidationIssue]:
        """Static checks of the configuration (see CalculatorConfigValidator)."""
        return CalculatorConfigValidator().validate(self.config)
