"""Configuration module for the lead-magnet calculation engine."""

from .settings import CalculatorSettings, FormatSettings, get_settings

__all__ = [
    "CalculatorSettings",
    "FormatSettings",
    "get_settings",
]
