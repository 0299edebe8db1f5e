"""
Logging Configuration for the Lead-Magnet Calculation Engine.

Provides structured logging with:
- JSON formatting for production
- Human-readable formatting for development
- Calculation-pass logging for builder preview and debugging
"""

import logging
import json
import sys
import time
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from pathlib import Path
from contextvars import ContextVar

# Context variables for session tracking
session_id_var: ContextVar[Optional[str]] = ContextVar('session_id', default=None)
lead_magnet_id_var: ContextVar[Optional[str]] = ContextVar('lead_magnet_id', default=None)


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs logs as JSON objects for easy parsing by log aggregators.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add context variables
        session_id = session_id_var.get()
        if session_id:
            log_data["session_id"] = session_id

        lead_magnet_id = lead_magnet_id_var.get()
        if lead_magnet_id:
            log_data["lead_magnet_id"] = lead_magnet_id

        # Add extra fields from the record
        if hasattr(record, 'extra_data'):
            log_data.update(record.extra_data)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ReadableFormatter(logging.Formatter):
    """
    Human-readable log formatter for development.
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human readability."""
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']

        timestamp = datetime.now().strftime('%H:%M:%S.%f')[:-3]
        level = f"{color}{record.levelname:8s}{reset}"

        message = f"{timestamp} {level} [{record.name}] {record.getMessage()}"

        # Add extra fields
        if hasattr(record, 'extra_data') and record.extra_data:
            extras = ' | '.join(f"{k}={v}" for k, v in record.extra_data.items())
            message += f" | {extras}"

        return message


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that includes context in all log messages.
    """

    def process(self, msg: str, kwargs: Dict) -> tuple:
        """Add context to log message."""
        extra = kwargs.get('extra', {})

        session_id = session_id_var.get()
        if session_id:
            extra['session_id'] = session_id

        # Merge with any existing extra data
        if 'extra_data' not in extra:
            extra['extra_data'] = {}
        extra['extra_data'].update(
            {k: v for k, v in self.extra.items() if v is not None}
        )

        kwargs['extra'] = extra
        return msg, kwargs


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[Path] = None
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON formatted logs
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    root_logger.handlers.clear()

    if json_output:
        formatter = JsonFormatter()
    else:
        formatter = ReadableFormatter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JsonFormatter())  # Always JSON for files
        root_logger.addHandler(file_handler)


def get_logger(name: str, **extra) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (typically __name__)
        **extra: Additional context to include in all logs

    Returns:
        ContextLogger instance
    """
    base_logger = logging.getLogger(name)
    return ContextLogger(base_logger, extra)


class CalculationLogger:
    """
    Specialized logger for calculation passes.

    Records:
    - Pass start with the number of scheduled calculations
    - Each resolved calculation and its value
    - Warnings raised while evaluating formulas
    - Pass completion with per-step timings
    """

    def __init__(self, session_id: Optional[str] = None):
        """
        Initialize calculation logger.

        Args:
            session_id: Widget session id for correlation
        """
        self.logger = get_logger("calculator.pass", session_id=session_id)
        self.session_id = session_id
        self._start_time: Optional[float] = None
        self._step_times: Dict[str, float] = {}

    def start_pass(self, calculation_count: int) -> None:
        """Log calculation pass start."""
        self._start_time = time.time()
        self._step_times = {}
        self.logger.debug(
            "Starting calculation pass",
            extra={'extra_data': {'calculations': calculation_count}}
        )

    def log_step(self, calculation_id: str, value: float, step_start: float) -> None:
        """
        Log a resolved calculation with its timing.

        Args:
            calculation_id: Calculation that was evaluated
            value: Resulting value
            step_start: time.time() taken before evaluation
        """
        duration_ms = (time.time() - step_start) * 1000
        self._step_times[calculation_id] = round(duration_ms, 3)
        self.logger.debug(
            f"Calculated {calculation_id}",
            extra={'extra_data': {
                'calculation': calculation_id,
                'value': value,
                'duration_ms': round(duration_ms, 3),
            }}
        )

    def complete_pass(self, result_count: int) -> None:
        """Log final pass result."""
        duration_ms = (time.time() - self._start_time) * 1000 if self._start_time else 0
        self.logger.debug(
            "Calculation pass complete",
            extra={'extra_data': {
                'results': result_count,
                'duration_ms': round(duration_ms, 3),
                'step_times': self._step_times,
            }}
        )

    def log_warning(self, message: str, **data) -> None:
        """Log calculation warning."""
        self.logger.warning(
            message,
            extra={'extra_data': data}
        )

    def log_error(self, message: str, **data) -> None:
        """Log calculation error."""
        self.logger.error(
            message,
            extra={'extra_data': data}
        )
