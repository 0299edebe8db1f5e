"""
Formula Evaluator.

Formulas are small arithmetic/boolean expressions authored in the
calculator builder, e.g.::

    users * phoneSystemPrice + max(0, users - 10) ^ 2
    price(direct_routing_sbc, users) * 12
    (budget > 1000) and not is_trial

Each formula is parsed once into an expression tree (Python ``ast`` with a
strict node whitelist) and evaluated against the live context on every
call. Identifiers resolve to whole context keys, so ``price`` can never
clobber part of ``unitPrice``.

Evaluation is fail-soft: unknown identifiers count as 0, and parse errors,
domain errors and non-finite results degrade to 0 with a warning. The
evaluator never raises to its caller.
"""

from __future__ import annotations

import ast
import keyword
import logging
import math
import operator
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from calculator.context import VariableContext
from calculator.errors import InvalidFormula
from models.calculator_config import PriceTableType

if TYPE_CHECKING:
    from calculator.price_tables import PriceTableResolver

logger = logging.getLogger(__name__)


def _log(value: float, base: Optional[float] = None) -> float:
    if base is None:
        return math.log(value)
    return math.log(value, base)


def _min(*values: float) -> float:
    if not values:
        raise ValueError("min() needs at least one argument")
    return min(values)


def _max(*values: float) -> float:
    if not values:
        raise ValueError("max() needs at least one argument")
    return max(values)


MATH_FUNCTIONS: Dict[str, Callable[..., float]] = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "log": _log,
    "exp": math.exp,
    "sqrt": math.sqrt,
    "abs": abs,
    "min": _min,
    "max": _max,
}

PRICE_FUNCTION = "price"

BOOLEAN_CONSTANTS = {"true": 1.0, "false": 0.0}

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
}

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}

_ALLOWED_NODES = (
    ast.Expression, ast.BinOp, ast.UnaryOp, ast.BoolOp, ast.Compare,
    ast.Call, ast.Name, ast.Load, ast.Constant,
    ast.And, ast.Or, ast.Not, ast.USub, ast.UAdd,
) + tuple(_BINARY_OPS) + tuple(_COMPARE_OPS)

_STRING_LITERAL = re.compile(r"(\"[^\"]*\"|'[^']*')")
_IDENTIFIER = re.compile(r"(?<![\w.])[A-Za-z_]\w*")
_NUMERIC_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_KEYWORD_PREFIX = "_kw_"
_OPERATOR_WORDS = frozenset({"and", "or", "not"})


class EvaluationStatus(str, Enum):
    """How a formula result came about."""
    OK = "ok"                # computed from known inputs
    PARTIAL = "partial"      # computed, but some inputs were unknown and counted as 0
    DEFAULTED = "defaulted"  # evaluation failed and the result was replaced by 0


@dataclass
class EvaluationResult:
    """Outcome of one formula evaluation."""
    formula: str
    value: float
    status: EvaluationStatus = EvaluationStatus.OK
    warnings: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @property
    def is_defaulted(self) -> bool:
        return self.status == EvaluationStatus.DEFAULTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "formula": self.formula,
            "value": self.value,
            "status": self.status.value,
            "warnings": list(self.warnings),
            "missing": list(self.missing),
        }


@dataclass(frozen=True)
class CompiledFormula:
    """
    A formula parsed into an expression tree.

    ``identifiers`` pairs each name used in the tree with the context key
    it stands for (keywords such as ``class`` are renamed for parsing).
    ``key_identifiers`` holds names used only as a price() key; they are
    resolved when the call runs because flat tables read them as strings.
    """
    source: str
    tree: Optional[ast.Expression] = None
    identifiers: Tuple[Tuple[str, str], ...] = ()
    key_identifiers: Tuple[Tuple[str, str], ...] = ()
    price_tables: Tuple[str, ...] = ()
    functions: Tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @property
    def variables(self) -> List[str]:
        """Context keys referenced by the formula."""
        return [original for _, original in self.identifiers + self.key_identifiers]


def _prepare(formula: str) -> Tuple[str, Dict[str, str]]:
    """Rewrite builder syntax into parseable source; returns (source, renamed)."""
    renamed: Dict[str, str] = {}

    def rename(match: re.Match) -> str:
        name = match.group(0)
        if keyword.iskeyword(name) and name not in _OPERATOR_WORDS:
            safe = f"{_KEYWORD_PREFIX}{name}"
            renamed[safe] = name
            return safe
        return name

    parts = _STRING_LITERAL.split(formula)
    # Odd indexes are string literals and stay untouched
    for i in range(0, len(parts), 2):
        segment = parts[i].replace("^", "**")
        parts[i] = _IDENTIFIER.sub(rename, segment)
    return "".join(parts), renamed


class _FormulaChecker(ast.NodeVisitor):
    """Reject anything outside the formula language and collect names."""

    def __init__(self, formula: str, renamed: Dict[str, str]):
        self.formula = formula
        self.renamed = renamed
        self.identifiers: Dict[str, str] = {}
        self.key_identifiers: Dict[str, str] = {}
        self.price_tables: List[str] = []
        self.functions: List[str] = []

    def generic_visit(self, node: ast.AST) -> None:
        if not isinstance(node, _ALLOWED_NODES):
            raise InvalidFormula(self.formula, f"unsupported syntax {type(node).__name__}")
        super().generic_visit(node)

    def visit_Constant(self, node: ast.Constant) -> None:
        if isinstance(node.value, bool) or isinstance(node.value, (int, float)):
            return
        raise InvalidFormula(self.formula, f"unsupported literal {node.value!r}")

    def visit_Name(self, node: ast.Name) -> None:
        self.identifiers.setdefault(node.id, self.renamed.get(node.id, node.id))

    def visit_Call(self, node: ast.Call) -> None:
        if not isinstance(node.func, ast.Name):
            raise InvalidFormula(self.formula, "only named functions can be called")
        if node.keywords:
            raise InvalidFormula(self.formula, "keyword arguments are not supported")
        name = node.func.id
        if name == PRICE_FUNCTION:
            self._visit_price(node)
            return
        if name.lower() not in MATH_FUNCTIONS:
            raise InvalidFormula(self.formula, f"unknown function {self.renamed.get(name, name)}")
        self.functions.append(name.lower())
        for arg in node.args:
            self.visit(arg)

    def _visit_price(self, node: ast.Call) -> None:
        if len(node.args) != 2:
            raise InvalidFormula(self.formula, "price() takes a table id and a key or value")
        table_arg, key_arg = node.args
        if isinstance(table_arg, ast.Name):
            self.price_tables.append(self.renamed.get(table_arg.id, table_arg.id))
        elif isinstance(table_arg, ast.Constant) and isinstance(table_arg.value, str):
            self.price_tables.append(table_arg.value)
        else:
            raise InvalidFormula(self.formula, "price() table id must be a name")
        self.functions.append(PRICE_FUNCTION)
        if isinstance(key_arg, ast.Constant) and isinstance(key_arg.value, str):
            return
        if isinstance(key_arg, ast.Name):
            self.key_identifiers.setdefault(key_arg.id, self.renamed.get(key_arg.id, key_arg.id))
            return
        self.visit(key_arg)


def compile_formula(formula: str) -> CompiledFormula:
    """
    Parse a formula into a CompiledFormula.

    Never raises: an invalid formula yields a CompiledFormula whose
    ``error`` explains the problem.
    """
    if not isinstance(formula, str) or not formula.strip():
        return CompiledFormula(source=str(formula or ""), error="empty formula")

    try:
        source, renamed = _prepare(formula)
        tree = ast.parse(source.strip(), mode="eval")
        checker = _FormulaChecker(formula, renamed)
        checker.visit(tree)
    except SyntaxError as exc:
        return CompiledFormula(source=formula, error=f"syntax error: {exc.msg}")
    except InvalidFormula as exc:
        return CompiledFormula(source=formula, error=exc.reason)
    except (ValueError, RecursionError) as exc:
        return CompiledFormula(source=formula, error=str(exc) or type(exc).__name__)

    return CompiledFormula(
        source=formula,
        tree=tree,
        identifiers=tuple(checker.identifiers.items()),
        key_identifiers=tuple(
            (name, original) for name, original in checker.key_identifiers.items()
            if name not in checker.identifiers
        ),
        price_tables=tuple(dict.fromkeys(checker.price_tables)),
        functions=tuple(dict.fromkeys(checker.functions)),
    )


def parse_float_prefix(text: str) -> Optional[float]:
    """
    Parse the leading number of a string, like JavaScript's parseFloat.

    Examples:
        >>> parse_float_prefix("12.5 users")
        12.5
        >>> parse_float_prefix("abc") is None
        True
    """
    match = _NUMERIC_PREFIX.match(text)
    if not match:
        return None
    value = float(match.group(0))
    return value if math.isfinite(value) else None


def coerce_value(value: Any) -> Tuple[Optional[float], Optional[str]]:
    """
    Coerce a context value to a number for formula evaluation.

    Returns:
        (number, warning). number is None when the value cannot stand in
        for a number and the identifier stays unresolved.
    """
    if value is None:
        return None, None
    if isinstance(value, bool):
        return (1.0 if value else 0.0), None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return 0.0, f"invalid numeric value {value!r}"
        return float(value), None
    if isinstance(value, (list, tuple, set, frozenset)):
        return float(len(value)), None
    if isinstance(value, str):
        return parse_float_prefix(value), None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None, None
    return (number, None) if math.isfinite(number) else (0.0, f"invalid numeric value {value!r}")


class _TreeEvaluator:
    """Walks one compiled tree with resolved bindings."""

    def __init__(
        self,
        compiled: CompiledFormula,
        bindings: Dict[str, float],
        context: VariableContext,
        price_resolver: Optional["PriceTableResolver"],
        missing: List[str],
    ):
        self.compiled = compiled
        self.bindings = bindings
        self.context = context
        self.price_resolver = price_resolver
        self.missing = missing

    def run(self) -> float:
        return self.eval(self.compiled.tree.body)

    def eval(self, node: ast.AST) -> float:
        if isinstance(node, ast.Constant):
            return float(node.value)
        if isinstance(node, ast.Name):
            return self.bindings[node.id]
        if isinstance(node, ast.BinOp):
            left = self.eval(node.left)
            right = self.eval(node.right)
            result = _BINARY_OPS[type(node.op)](left, right)
            if isinstance(result, complex):
                raise ValueError("result is not a real number")
            return result
        if isinstance(node, ast.UnaryOp):
            operand = self.eval(node.operand)
            if isinstance(node.op, ast.USub):
                return -operand
            if isinstance(node.op, ast.Not):
                return 0.0 if operand else 1.0
            return operand
        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                return 1.0 if all(self.eval(v) for v in node.values) else 0.0
            return 1.0 if any(self.eval(v) for v in node.values) else 0.0
        if isinstance(node, ast.Compare):
            left = self.eval(node.left)
            for op, comparator in zip(node.ops, node.comparators):
                right = self.eval(comparator)
                if not _COMPARE_OPS[type(op)](left, right):
                    return 0.0
                left = right
            return 1.0
        if isinstance(node, ast.Call):
            name = node.func.id
            if name == PRICE_FUNCTION:
                return self._price(node)
            args = [self.eval(arg) for arg in node.args]
            return float(MATH_FUNCTIONS[name.lower()](*args))
        raise InvalidFormula(self.compiled.source, f"unsupported syntax {type(node).__name__}")

    def _price(self, node: ast.Call) -> float:
        table_arg, key_arg = node.args
        if isinstance(table_arg, ast.Name):
            table_id = table_arg.id
            if table_id.startswith(_KEYWORD_PREFIX):
                table_id = table_id[len(_KEYWORD_PREFIX):]
        else:
            table_id = table_arg.value

        if self.price_resolver is None:
            logger.warning(f"No price tables available for price({table_id}, ...)")
            return 0.0

        table = self.price_resolver.get_table(table_id)
        if isinstance(key_arg, ast.Constant) and isinstance(key_arg.value, str):
            key: Any = key_arg.value
        elif isinstance(key_arg, ast.Name) and key_arg.id not in self.bindings:
            key = self._key_variable(key_arg.id, flat=table is not None and table.type == PriceTableType.FLAT)
        else:
            key = self.eval(key_arg)
        return float(self.price_resolver.get_price(table_id, key))

    def _key_variable(self, tree_name: str, flat: bool) -> Any:
        original = dict(self.compiled.key_identifiers).get(tree_name, tree_name)
        raw = self.context.get_variable(original)
        if flat and isinstance(raw, str):
            return raw
        number, _ = coerce_value(raw)
        if number is None:
            if original not in self.missing:
                self.missing.append(original)
            return "" if flat else 0.0
        return number


class FormulaEvaluator:
    """
    Evaluate formulas against a session's variable context.

    Compiled trees are cached per evaluator; the configuration they come
    from is immutable for the evaluator's lifetime.
    """

    def __init__(
        self,
        context: VariableContext,
        price_resolver: Optional["PriceTableResolver"] = None,
    ):
        self._context = context
        self._price_resolver = price_resolver
        self._cache: Dict[str, CompiledFormula] = {}
        self._diagnostics: List[EvaluationResult] = []

    def compile(self, formula: str) -> CompiledFormula:
        if not isinstance(formula, str):
            return compile_formula(formula)
        compiled = self._cache.get(formula)
        if compiled is None:
            compiled = compile_formula(formula)
            self._cache[formula] = compiled
        return compiled

    def evaluate(self, formula: str) -> float:
        """Evaluate a formula; always returns a finite float."""
        return self.evaluate_detailed(formula).value

    def evaluate_detailed(self, formula: str) -> EvaluationResult:
        """Evaluate a formula and report how the value came about."""
        result = self._evaluate(self.compile(formula))
        if result.status != EvaluationStatus.OK:
            self._diagnostics.append(result)
        return result

    @property
    def diagnostics(self) -> List[EvaluationResult]:
        """Non-OK evaluations since the last clear_diagnostics()."""
        return list(self._diagnostics)

    def clear_diagnostics(self) -> None:
        self._diagnostics = []

    def _evaluate(self, compiled: CompiledFormula) -> EvaluationResult:
        formula = compiled.source
        if not compiled.is_valid:
            message = f"Invalid formula {formula!r}: {compiled.error}"
            logger.warning(message, extra={'extra_data': {'formula': formula}})
            return EvaluationResult(formula, 0.0, EvaluationStatus.DEFAULTED, [message])

        warnings: List[str] = []
        missing: List[str] = []
        bindings: Dict[str, float] = {}
        for tree_name, original in compiled.identifiers:
            number, note = coerce_value(self._context.get_variable(original))
            if note:
                warnings.append(f"Variable {original} has {note}")
                logger.warning(f"Variable {original} has {note}")
            if number is None:
                if original in BOOLEAN_CONSTANTS:
                    number = BOOLEAN_CONSTANTS[original]
                else:
                    missing.append(original)
                    number = 0.0
            bindings[tree_name] = number

        try:
            value = _TreeEvaluator(
                compiled, bindings, self._context, self._price_resolver, missing
            ).run()
        except (ArithmeticError, ValueError, TypeError, RecursionError, InvalidFormula) as exc:
            message = f"Error evaluating formula {formula!r}: {exc or type(exc).__name__}"
            logger.warning(
                message,
                extra={'extra_data': {'formula': formula, 'context_keys': len(self._context)}}
            )
            return EvaluationResult(formula, 0.0, EvaluationStatus.DEFAULTED, warnings + [message], missing)

        if missing:
            message = f"Missing variables in formula {formula!r}: {missing}"
            warnings.append(message)
            logger.warning(message, extra={'extra_data': {'formula': formula, 'missing': missing}})

        if isinstance(value, bool):
            value = 1.0 if value else 0.0
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            message = f"Formula {formula!r} produced an invalid result: {value!r}"
            logger.warning(message, extra={'extra_data': {'formula': formula}})
            return EvaluationResult(formula, 0.0, EvaluationStatus.DEFAULTED, warnings + [message], missing)

        status = EvaluationStatus.PARTIAL if missing or warnings else EvaluationStatus.OK
        return EvaluationResult(formula, float(value), status, warnings, missing)
