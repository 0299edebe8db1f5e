"""
Services Module - Infrastructure services for the calculation engine.

- Logging and observability
"""

from .logging_config import (
    CalculationLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "CalculationLogger",
    "configure_logging",
    "get_logger",
]
