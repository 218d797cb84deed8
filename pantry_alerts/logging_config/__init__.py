"""Structured logging for the notification engine.

Provides JSON/console log formatting and notification-scoped
log context.
"""

from pantry_alerts.logging_config.config import LogFormat, LoggingConfig, LogLevel
from pantry_alerts.logging_config.context import NotificationContext, get_context_dict
from pantry_alerts.logging_config.setup import configure_logging, get_logger

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "NotificationContext",
    "configure_logging",
    "get_context_dict",
    "get_logger",
]
