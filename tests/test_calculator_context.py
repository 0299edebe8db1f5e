"""
Tests for the variable context store.

Tests verify:
- set/get round-trips for numbers, booleans and strings
- None counts as unknown
- Declared defaults seed the context and survive reset()
- snapshot() is a copy
"""

import pytest

from calculator.context import VariableContext
from models.calculator_config import Variable


class TestVariableContext:
    """Test basic context operations."""

    @pytest.mark.parametrize("value", [42, 2.5, True, False, "premium", [1, 2]])
    def test_set_then_get_returns_value(self, value):
        context = VariableContext()
        context.set_variable("field", value)
        assert context.get_variable("field") == value

    def test_unknown_key_returns_none(self):
        assert VariableContext().get_variable("nope") is None

    def test_none_counts_as_unknown(self):
        context = VariableContext()
        context.set_variable("users", None)

        assert context.has("users") is False
        assert "users" not in context
        assert context.get_variable("users", 0) == 0

    def test_false_and_zero_are_known(self):
        context = VariableContext()
        context.set_variables({"flag": False, "count": 0})

        assert context.has("flag")
        assert context.has("count")

    def test_set_variables_merges_and_overwrites(self):
        context = VariableContext()
        context.set_variables({"a": 1, "b": 2})
        context.set_variables({"b": 3, "c": 4})

        assert context.snapshot() == {"a": 1, "b": 3, "c": 4}

    def test_snapshot_is_a_copy(self):
        context = VariableContext()
        context.set_variable("a", 1)

        snapshot = context.snapshot()
        snapshot["a"] = 99

        assert context.get_variable("a") == 1


class TestContextDefaults:
    """Test seeding from declared variable defaults."""

    def test_defaults_seed_context(self):
        context = VariableContext([
            Variable(id="users", default_value=10),
            Variable(id="plan", defaultValue="basic"),
            Variable(id="optional"),
        ])

        assert context.snapshot() == {"users": 10, "plan": "basic"}

    def test_reset_restores_defaults(self):
        context = VariableContext([Variable(id="users", default_value=10)])
        context.set_variables({"users": 99, "extra": "x"})

        context.reset()

        assert context.snapshot() == {"users": 10}

    def test_reset_without_defaults_clears(self):
        context = VariableContext()
        context.set_variable("a", 1)
        context.reset()

        assert len(context) == 0
