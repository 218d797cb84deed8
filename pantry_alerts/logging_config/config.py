"""Logging Configuration.

Settings for structured logging, log levels, and output formats.
"""

from dataclasses import dataclass
from enum import Enum


class LogLevel(str, Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


@dataclass
class LoggingConfig:
    """Structured logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    include_caller: bool = True
    service_name: str = "pantry-alerts"

    @classmethod
    def from_runtime(cls, runtime) -> "LoggingConfig":
        """Build from RuntimeSettings, keeping defaults for unknown values."""
        level = runtime.log_level.upper()
        fmt = runtime.log_format.lower()
        return cls(
            level=LogLevel(level) if level in LogLevel.__members__ else cls.level,
            format=LogFormat(fmt) if fmt in [f.value for f in LogFormat] else cls.format,
            service_name=runtime.service_name,
        )

