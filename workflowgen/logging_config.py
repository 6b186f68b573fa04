"""Logging configuration for workflowgen."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Extra attributes the engine attaches to log records via ``extra=``
EXTRA_FIELDS: tuple[str, ...] = (
    "stage",
    "component",
    "template_name",
    "template_kind",
    "attempt",
    "error_code",
    "recoverable",
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging in CI."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                value = getattr(record, name)
                # Enum members (stages, codes) serialize by value
                log_data[name] = getattr(value, "value", value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for interactive use."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%H:%M:%S")

        extras = []
        if hasattr(record, "stage"):
            extras.append(f"stage={getattr(record.stage, 'value', record.stage)}")
        if hasattr(record, "template_name"):
            extras.append(f"template={record.template_name}")
        if hasattr(record, "attempt"):
            extras.append(f"attempt={record.attempt}")
        if hasattr(record, "error_code"):
            extras.append(f"code={getattr(record.error_code, 'value', record.error_code)}")

        extra_str = f" [{', '.join(extras)}]" if extras else ""

        message = f"{timestamp} {color}{record.levelname:8}{self.RESET} {record.name}: {record.getMessage()}{extra_str}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_logging(debug: bool = False, json_logs: bool = False) -> None:
    """Configure logging for the ``workflowgen`` logger tree.

    Args:
        debug: Enable debug level logging
        json_logs: Use JSON format (for CI and log shipping)
    """
    level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler(sys.stderr)

    if json_logs and not debug:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())

    package_logger = logging.getLogger("workflowgen")
    package_logger.setLevel(level)

    # Avoid duplicate output when configured more than once
    for existing_handler in package_logger.handlers[:]:
        package_logger.removeHandler(existing_handler)

    package_logger.addHandler(handler)
    package_logger.propagate = False

    package_logger.debug(f"Logging configured: level={logging.getLevelName(level)}, json={json_logs}")


def configure_from_settings(settings: Any = None) -> None:
    """Apply ``Settings.debug`` and ``Settings.json_logs`` via ``setup_logging``."""
    if settings is None:
        from workflowgen.config import settings
    setup_logging(debug=settings.debug, json_logs=settings.json_logs)
