"""
Tests for dependency scheduling of calculations.

Tests verify:
- Dependencies resolve before dependents, regardless of listing order
- Exactly one result per calculation id
- Cycles raise UnresolvedGraph naming the cycle
- Missing inputs raise UnresolvedGraph after resolvable calculations ran
- Single-calculation lookups raise UnknownCalculation / MissingDependency
"""

import pytest

from calculator.context import VariableContext
from calculator.errors import MissingDependency, UnknownCalculation, UnresolvedGraph
from calculator.formula import FormulaEvaluator
from calculator.scheduler import DependencyScheduler
from models.calculator_config import Calculation


def calc(calc_id, formula, *deps):
    """Helper to create a Calculation for tests."""
    return Calculation(id=calc_id, formula=formula, depends_on=list(deps))


@pytest.fixture
def context():
    return VariableContext()


@pytest.fixture
def evaluator(context):
    return FormulaEvaluator(context)


class TestOrdering:
    """Test execution order."""

    def test_dependency_resolves_first(self, context, evaluator):
        scheduler = DependencyScheduler([
            calc("A", "B + 1", "B"),
            calc("B", "10*2"),
        ])

        results = scheduler.calculate_all(context, evaluator)

        assert results == {"B": 20, "A": 21}
        assert list(results) == ["B", "A"]
        assert context.get_variable("A") == 21
        assert context.get_variable("B") == 20

    def test_independent_calculations_keep_configuration_order(self):
        scheduler = DependencyScheduler([
            calc("c", "1"),
            calc("a", "2"),
            calc("b", "3"),
        ])
        assert scheduler.execution_order() == ["c", "a", "b"]

    def test_chain(self, context, evaluator):
        context.set_variable("users", 4)
        scheduler = DependencyScheduler([
            calc("yearly", "monthly * 12", "monthly"),
            calc("monthly", "base + extra", "base", "extra"),
            calc("extra", "users * 2", "users"),
            calc("base", "users * 10", "users"),
        ])

        results = scheduler.calculate_all(context, evaluator)

        assert results["yearly"] == (40 + 8) * 12
        order = list(results)
        assert order.index("monthly") > order.index("base")
        assert order.index("monthly") > order.index("extra")
        assert order.index("yearly") > order.index("monthly")

    def test_one_result_per_calculation(self, context, evaluator):
        calculations = [calc(f"c{i}", f"{i}") for i in range(20)]
        calculations += [calc("sum", " + ".join(f"c{i}" for i in range(20)), *[f"c{i}" for i in range(20)])]

        results = DependencyScheduler(calculations).calculate_all(context, evaluator)

        assert len(results) == 21
        assert results["sum"] == sum(range(20))

    def test_stale_value_does_not_satisfy_calculation_dependency(self, context, evaluator):
        context.set_variables({"B": 999, "x": 1})
        scheduler = DependencyScheduler([
            calc("A", "B * 2", "B"),
            calc("B", "x + 1", "x"),
        ])

        results = scheduler.calculate_all(context, evaluator)

        assert results["A"] == 4

    def test_recompute_reflects_new_inputs(self, context, evaluator):
        scheduler = DependencyScheduler([calc("double", "x * 2", "x")])
        context.set_variable("x", 1)
        assert scheduler.calculate_all(context, evaluator) == {"double": 2}
        context.set_variable("x", 5)
        assert scheduler.calculate_all(context, evaluator) == {"double": 10}

    def test_empty_configuration(self, context, evaluator):
        assert DependencyScheduler([]).calculate_all(context, evaluator) == {}

    def test_duplicate_calculation_keeps_first(self):
        scheduler = DependencyScheduler([calc("a", "1"), calc("a", "2")])
        assert scheduler.calculation_ids == ["a"]


class TestUnresolvedGraph:
    """Test structural failures."""

    def test_cycle_raises(self, context, evaluator):
        scheduler = DependencyScheduler([
            calc("A", "B", "B"),
            calc("B", "A", "A"),
        ])

        with pytest.raises(UnresolvedGraph) as exc_info:
            scheduler.calculate_all(context, evaluator)

        assert exc_info.value.cycles == [["A", "B"]]
        assert exc_info.value.unresolved == ["A", "B"]
        assert "A -> B -> A" in str(exc_info.value)

    def test_self_dependency_is_a_cycle(self, context, evaluator):
        scheduler = DependencyScheduler([calc("A", "A + 1", "A")])
        with pytest.raises(UnresolvedGraph) as exc_info:
            scheduler.calculate_all(context, evaluator)
        assert exc_info.value.cycles == [["A"]]

    def test_cycle_raises_even_when_values_in_context(self, context, evaluator):
        context.set_variables({"A": 1, "B": 2})
        scheduler = DependencyScheduler([
            calc("A", "B", "B"),
            calc("B", "A", "A"),
        ])
        with pytest.raises(UnresolvedGraph):
            scheduler.calculate_all(context, evaluator)

    def test_missing_input_raises_after_partial_results(self, context, evaluator):
        context.set_variable("users", 10)
        scheduler = DependencyScheduler([
            calc("licenses", "users * 8", "users"),
            calc("support", "seats * 50", "seats"),
            calc("total", "licenses + support", "licenses", "support"),
        ])

        with pytest.raises(UnresolvedGraph) as exc_info:
            scheduler.calculate_all(context, evaluator)

        error = exc_info.value
        assert error.missing == {"support": ["seats"]}
        assert error.unresolved == ["support", "total"]
        assert error.partial_results == {"licenses": 80}
        assert context.get_variable("licenses") == 80
        assert "support needs seats" in str(error)

    def test_none_input_counts_as_missing(self, context, evaluator):
        context.set_variable("users", None)
        scheduler = DependencyScheduler([calc("a", "users", "users")])
        with pytest.raises(UnresolvedGraph):
            scheduler.calculate_all(context, evaluator)


class TestSingleCalculation:
    """Test calculate() for one calculation id."""

    def test_returns_value_without_storing(self, context, evaluator):
        context.set_variable("users", 3)
        scheduler = DependencyScheduler([calc("cost", "users * 8", "users")])

        assert scheduler.calculate("cost", context, evaluator) == 24
        assert context.get_variable("cost") is None

    def test_unknown_calculation(self, context, evaluator):
        with pytest.raises(UnknownCalculation) as exc_info:
            DependencyScheduler([]).calculate("nope", context, evaluator)
        assert str(exc_info.value) == "Calculation nope not found"

    def test_missing_dependency(self, context, evaluator):
        scheduler = DependencyScheduler([calc("cost", "users * 8", "users")])
        with pytest.raises(MissingDependency) as exc_info:
            scheduler.calculate("cost", context, evaluator)
        assert exc_info.value.dependency == "users"
        assert exc_info.value.calculation_id == "cost"
