"""Settings and logging configuration."""

from .logging import JSONExceptionFormatter, get_logger, setup_logging
from .settings import Settings

__all__ = ["Settings", "setup_logging", "get_logger", "JSONExceptionFormatter"]
