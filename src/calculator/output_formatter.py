"""
Output Formatter.

Renders raw output values into the strings shown to a lead. The default
convention is German (de-DE); separators and the currency symbol come
from FormatSettings.

Formats:
    currency    1234.5      -> "1.234,50 €"
    percentage  12.345      -> "12.35%"
    number      1234567.891 -> "1.234.567,891"
    text        5.0, "m²"   -> "5 m²"
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from calculator.decimal_math import (
    format_grouped,
    format_money,
    format_percentage,
    plain_number,
)
from config.settings import FormatSettings
from models.calculator_config import OutputFormat


@dataclass
class OutputResult:
    """A labeled, formatted output value."""
    label: str
    value: str
    raw_value: float
    defaulted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "value": self.value,
            "rawValue": self.raw_value,
            "defaulted": self.defaulted,
        }


class OutputFormatter:
    """Format numbers according to an OutputFormat."""

    def __init__(self, settings: Optional[FormatSettings] = None):
        self.settings = settings or FormatSettings()

    def format(
        self,
        value: float,
        output_format: Union[OutputFormat, str, None] = OutputFormat.TEXT,
        unit: Optional[str] = None,
    ) -> str:
        fmt = _coerce_format(output_format)
        s = self.settings

        if fmt == OutputFormat.CURRENCY:
            return format_money(
                value,
                symbol=s.currency_symbol,
                decimal_separator=s.decimal_separator,
                thousands_separator=s.thousands_separator,
            )
        if fmt == OutputFormat.PERCENTAGE:
            return format_percentage(value)
        if fmt == OutputFormat.NUMBER:
            return format_grouped(
                value,
                s.number_max_fraction_digits,
                decimal_separator=s.decimal_separator,
                thousands_separator=s.thousands_separator,
                strip_trailing_zeros=True,
            )

        text = plain_number(float(value))
        return f"{text} {unit}" if unit else text


def _coerce_format(output_format: Union[OutputFormat, str, None]) -> OutputFormat:
    if isinstance(output_format, OutputFormat):
        return output_format
    try:
        return OutputFormat(output_format)
    except ValueError:
        return OutputFormat.TEXT
