"""Logging Setup.

One-call configuration for the notification engine's logs. JSON lines for
deployed hosts, a colored single line per record for development.

Besides the ids bound by ``NotificationContext``, records may carry
notification fields passed through ``extra=`` (alert type, severity,
channel, suppression decision, batch size); both formatters include them.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from pantry_alerts.logging_config.config import LogFormat, LoggingConfig
from pantry_alerts.logging_config.context import get_context_dict
from pantry_alerts.settings import RuntimeSettings

NOTIFICATION_FIELDS = ("alert_type", "severity", "channel_id", "decision", "batch_size")

# Short labels for the console line
_CONSOLE_LABELS = {
    "notification_id": "nid",
    "alert_id": "alert",
    "alert_type": "type",
    "channel_id": "channel",
}


def notification_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Context ids plus any notification fields attached to ``record``."""
    fields = get_context_dict()
    for name in NOTIFICATION_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    Fixed keys are timestamp, level, logger, message and service; the
    notification fields follow at the top level.
    """

    def __init__(self, service_name: str = "pantry-alerts", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }
        if self.include_caller:
            entry["function"] = record.funcName
            entry["line"] = record.lineno

        entry.update(notification_fields(record))

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S.%f")[:-3]

        line = (
            f"{color}{timestamp} {record.levelname:8s}{self.RESET} "
            f"{record.name}: {record.getMessage()}"
        )

        fields = notification_fields(record)
        if fields:
            parts = [f"{_CONSOLE_LABELS.get(k, k)}={v}" for k, v in fields.items()]
            line += f" [{', '.join(parts)}]"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)

        return line


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Install the notification log handler on the root logger.

    Args:
        config: Logging configuration. When omitted it is read from the
                runtime settings (``PANTRY_ALERTS_LOG_LEVEL``,
                ``PANTRY_ALERTS_LOG_FORMAT``, ``PANTRY_ALERTS_SERVICE_NAME``).
    """
    if config is None:
        config = LoggingConfig.from_runtime(RuntimeSettings())

    if config.format == LogFormat.JSON:
        formatter: logging.Formatter = StructuredFormatter(
            service_name=config.service_name,
            include_caller=config.include_caller,
        )
    else:
        formatter = ConsoleFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.level.value))

    # SQL echo and driver chatter stay out of notification logs
    for noisy in ("asyncio", "aiosqlite", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance; output goes through the configured formatter."""
    return logging.getLogger(name)
