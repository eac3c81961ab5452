"""Utility modules."""
from .logger import get_logger, set_user_context, configure_logging
from .exceptions import (
    MoneyLogError,
    ConfigError,
    ValidationError,
    NotFoundError,
    StorageError,
    DeliveryError
)
from .dates import parse_date, format_date

__all__ = [
    "get_logger",
    "set_user_context",
    "configure_logging",
    "MoneyLogError",
    "ConfigError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "DeliveryError",
    "parse_date",
    "format_date"
]
