"""
Calculator error taxonomy.

Structural and configuration errors are raised to the caller so builder
and admin tooling can surface them. Per-formula runtime faults never reach
the caller; the evaluator logs them and degrades to 0.
"""

from typing import Dict, List, Optional


class CalculatorError(Exception):
    """Base class for errors raised by the calculation engine."""
    pass


class ConfigurationError(CalculatorError):
    """Raised when a configuration document cannot be loaded or validated."""
    pass


class UnknownCalculation(CalculatorError, KeyError):
    """Raised when a calculation id is not part of the configuration."""

    def __init__(self, calculation_id: str):
        self.calculation_id = calculation_id
        super().__init__(f"Calculation {calculation_id} not found")

    def __str__(self) -> str:
        return self.args[0]


class MissingDependency(CalculatorError):
    """Raised by a single-calculation lookup when a dependency is unknown."""

    def __init__(self, calculation_id: str, dependency: str):
        self.calculation_id = calculation_id
        self.dependency = dependency
        super().__init__(
            f"Dependency {dependency} of calculation {calculation_id} is not satisfied"
        )


class UnresolvedGraph(CalculatorError):
    """
    Raised when calculate_all() cannot resolve every calculation.

    Signals a configuration bug an author must fix: either a dependency
    cycle or an input that is genuinely missing from the context.

    Attributes:
        cycles: Each detected cycle as a list of calculation ids
        missing: calculation id -> input ids absent from the context
        unresolved: Every calculation id left without a result
        partial_results: Results of the calculations that did resolve
    """

    def __init__(
        self,
        cycles: Optional[List[List[str]]] = None,
        missing: Optional[Dict[str, List[str]]] = None,
        unresolved: Optional[List[str]] = None,
        partial_results: Optional[Dict[str, float]] = None,
    ):
        self.cycles = cycles or []
        self.missing = missing or {}
        self.unresolved = unresolved or []
        self.partial_results = partial_results or {}
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        parts = []
        if self.cycles:
            rendered = "; ".join(" -> ".join(c + c[:1]) for c in self.cycles)
            parts.append(f"circular dependencies: {rendered}")
        if self.missing:
            rendered = "; ".join(
                f"{calc} needs {', '.join(deps)}" for calc, deps in self.missing.items()
            )
            parts.append(f"missing inputs: {rendered}")
        if not parts:
            parts.append("no progress resolving calculations")
        return "Unresolved calculation graph (" + " | ".join(parts) + ")"


class InvalidFormula(CalculatorError):
    """Raised when a formula cannot be compiled into an expression tree."""

    def __init__(self, formula: str, reason: str):
        self.formula = formula
        self.reason = reason
        super().__init__(f"Invalid formula {formula!r}: {reason}")
