"""
Tests for Decimal Math Utilities.

Displayed amounts must be deterministic: the same float always renders to
the same string, with halves rounded away from zero.
"""

import pytest
from decimal import Decimal

from calculator.decimal_math import (
    format_grouped,
    format_money,
    format_percentage,
    group_digits,
    money,
    plain_number,
    round_half_up,
    to_decimal,
)


class TestDecimalConversion:
    """Tests for value conversion to Decimal."""

    def test_to_decimal_from_int(self):
        assert to_decimal(100) == Decimal("100")

    def test_to_decimal_from_float_keeps_representation(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_to_decimal_from_string(self):
        assert to_decimal("100.50") == Decimal("100.50")

    def test_to_decimal_passthrough(self):
        value = Decimal("1.5")
        assert to_decimal(value) is value


class TestRounding:
    """Tests for ROUND_HALF_UP rounding."""

    def test_float_half_rounds_up(self):
        # round(2.675, 2) gives 2.67 on floats
        assert round_half_up(2.675, 2) == Decimal("2.68")

    def test_negative_half_rounds_away_from_zero(self):
        assert round_half_up(-2.5, 0) == Decimal("-3")

    def test_money_rounds_to_cents(self):
        assert money(100.999) == Decimal("101.00")
        assert money(0.005) == Decimal("0.01")


class TestGrouping:

    @pytest.mark.parametrize("digits,expected", [
        ("1", "1"),
        ("123", "123"),
        ("1234", "1.234"),
        ("1234567", "1.234.567"),
    ])
    def test_group_digits(self, digits, expected):
        assert group_digits(digits, ".") == expected

    def test_format_grouped_fixed_places(self):
        assert format_grouped(1234.5, 2) == "1.234,50"

    def test_format_grouped_strips_trailing_zeros(self):
        assert format_grouped(1234567.891, 3, strip_trailing_zeros=True) == "1.234.567,891"
        assert format_grouped(1000.0, 3, strip_trailing_zeros=True) == "1.000"
        assert format_grouped(2.5, 3, strip_trailing_zeros=True) == "2,5"

    def test_format_grouped_negative(self):
        assert format_grouped(-1234.5, 2) == "-1.234,50"

    def test_negative_zero_after_rounding(self):
        assert format_grouped(-0.001, 2) == "0,00"

    def test_custom_separators(self):
        assert format_grouped(1234567.5, 2, ".", ",") == "1,234,567.50"


class TestFormatting:

    def test_format_money(self):
        assert format_money(1234.5) == "1.234,50 €"

    def test_format_money_other_symbol(self):
        assert format_money(99, symbol="CHF") == "99,00 CHF"

    def test_format_money_without_symbol(self):
        assert format_money(5, symbol="") == "5,00"

    def test_format_percentage(self):
        assert format_percentage(12.345) == "12.35%"
        assert format_percentage(1234.5) == "1234.50%"

    def test_plain_number(self):
        assert plain_number(5.0) == "5"
        assert plain_number(2.5) == "2.5"
        assert plain_number(-3.0) == "-3"

    def test_determinism(self):
        results = {format_money(1234.565) for _ in range(50)}
        assert results == {"1.234,57 €"}
