"""Logging infrastructure with user context."""
import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from typing import Optional

from .paths import get_app_dir


class UserContextFilter(logging.Filter):
    """Add user context to log records.

    The user id is kept per thread so that report workers running in
    parallel tag their own lines.
    """

    def __init__(self):
        super().__init__()
        self._local = threading.local()

    @property
    def user_id(self) -> Optional[str]:
        return getattr(self._local, "user_id", None)

    @user_id.setter
    def user_id(self, value: Optional[str]):
        self._local.user_id = value

    def filter(self, record):
        """Add user_id to record."""
        record.user_id = self.user_id or "system"
        return True


class MoneyLogLogger:
    """Centralized logging manager."""

    def __init__(self, log_level: str = "INFO", max_bytes: int = 10 * 1024 * 1024, backup_count: int = 30):
        self.log_dir = get_app_dir() / "logs"
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / "moneylog.log"
        self.user_filter = UserContextFilter()

        self.logger = logging.getLogger("moneylog")
        self.logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Remove existing handlers
        self.logger.handlers.clear()

        file_handler = RotatingFileHandler(
            self.log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)

        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [user:%(user_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        file_handler.setFormatter(formatter)
        console_handler.setFormatter(formatter)

        file_handler.addFilter(self.user_filter)
        console_handler.addFilter(self.user_filter)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def set_user_context(self, user_id: Optional[str]):
        """Set current user context for logging in this thread."""
        self.user_filter.user_id = user_id

    def get_logger(self) -> logging.Logger:
        """Get the configured logger."""
        return self.logger


# Global logger instance
_logger_instance: Optional[MoneyLogLogger] = None


def get_logger(log_level: str = "INFO") -> logging.Logger:
    """Get or create global logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = MoneyLogLogger(log_level)
    return _logger_instance.get_logger()


def configure_logging(log_level: str = "INFO", max_file_size_mb: int = 10, backup_count: int = 30) -> logging.Logger:
    """Rebuild the global logger from loaded settings."""
    global _logger_instance
    _logger_instance = MoneyLogLogger(
        log_level,
        max_bytes=max_file_size_mb * 1024 * 1024,
        backup_count=backup_count
    )
    return _logger_instance.get_logger()


def set_user_context(user_id: Optional[str]):
    """Set user context for logging."""
    if _logger_instance:
        _logger_instance.set_user_context(None if user_id is None else str(user_id))
