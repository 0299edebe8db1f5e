from .calculator_config import (
    BelowRangePolicy,
    Calculation,
    CalculatorConfig,
    Condition,
    OutputConfig,
    OutputFormat,
    PriceTable,
    PriceTableType,
    Tier,
    Variable,
    VariableType,
)

__all__ = [
    'BelowRangePolicy',
    'Calculation',
    'CalculatorConfig',
    'Condition',
    'OutputConfig',
    'OutputFormat',
    'PriceTable',
    'PriceTableType',
    'Tier',
    'Variable',
    'VariableType',
]
