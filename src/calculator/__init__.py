from .engine import CalculationEngine
from .context import VariableContext
from .price_tables import PriceTableResolver
from .formula import EvaluationResult, EvaluationStatus, FormulaEvaluator, compile_formula
from .scheduler import DependencyScheduler
from .conditions import ConditionEvaluator
from .output_formatter import OutputFormatter, OutputResult
from .validation import CalculatorConfigValidator, ValidationIssue
from .price_variables import PriceVariable, build_price_variables
from .errors import (
    CalculatorError,
    ConfigurationError,
    InvalidFormula,
    MissingDependency,
    UnknownCalculation,
    UnresolvedGraph,
)

__all__ = [
    "CalculationEngine",
    "VariableContext",
    "PriceTableResolver",
    "EvaluationResult",
    "EvaluationStatus",
    "FormulaEvaluator",
    "compile_formula",
    "DependencyScheduler",
    "ConditionEvaluator",
    "OutputFormatter",
    "OutputResult",
    "CalculatorConfigValidator",
    "ValidationIssue",
    "PriceVariable",
    "build_price_variables",
    "CalculatorError",
    "ConfigurationError",
    "InvalidFormula",
    "MissingDependency",
    "UnknownCalculation",
    "UnresolvedGraph",
]
