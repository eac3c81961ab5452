"""Application settings loader from YAML configuration."""
import calendar
import os
import yaml
from pathlib import Path
from typing import Optional
from dataclasses import dataclass

from moneylog.stats.frequency import FREQUENCIES
from moneylog.utils.exceptions import ConfigError
from moneylog.utils.paths import get_app_dir

WEEKDAY_NAMES = [name.lower() for name in calendar.day_name]

DEFAULT_CONFIG_PATH = Path(__file__).with_name("defaults.yaml")


def resolve_config_path() -> Path:
    """
    Locate the settings file.

    Order: ``MONEYLOG_CONFIG``, then ``config.yaml`` in the app directory,
    then the defaults shipped with the package.
    """
    env_path = os.getenv("MONEYLOG_CONFIG")
    if env_path:
        return Path(env_path)

    user_path = get_app_dir() / "config.yaml"
    if user_path.exists():
        return user_path

    return DEFAULT_CONFIG_PATH


@dataclass
class AppSettings:
    """Application-wide settings loaded from config.yaml."""

    # App info
    app_name: str
    app_version: str

    # Logging
    log_level: str
    log_max_file_size_mb: int
    log_backup_count: int

    # Storage
    database_file: str

    # Reports
    default_frequency: str
    week_start: str
    polling_interval_minutes: int
    max_concurrent_users: int
    subject_prefix: str

    # Paths
    config_file: str

    # Google API
    google_api_scopes: list

    @classmethod
    def load(cls, config_path: Path = None) -> "AppSettings":
        """Load settings from YAML file."""
        if config_path is None:
            config_path = resolve_config_path()

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        try:
            settings = cls(
                app_name=config["app"]["name"],
                app_version=config["app"]["version"],
                log_level=config["logging"]["level"],
                log_max_file_size_mb=config["logging"]["max_file_size_mb"],
                log_backup_count=config["logging"]["backup_count"],
                database_file=config["storage"]["database_file"],
                default_frequency=config["reports"]["default_frequency"],
                week_start=config["reports"]["week_start"],
                polling_interval_minutes=config["reports"]["polling_interval_minutes"],
                max_concurrent_users=config["reports"]["max_concurrent_users"],
                subject_prefix=config["reports"]["subject_prefix"],
                config_file=config["paths"]["config_file"],
                google_api_scopes=config["google_api"]["scopes"]
            )
        except (KeyError, TypeError) as e:
            raise ConfigError(f"Missing setting in {config_path}: {e}")

        if settings.week_start.lower() not in WEEKDAY_NAMES:
            raise ConfigError(f"Unknown week start day: {settings.week_start}")

        if settings.default_frequency not in FREQUENCIES:
            raise ConfigError(f"Unknown default frequency: {settings.default_frequency}")

        return settings

    def runtime_defaults(self) -> dict:
        """Fallback values for keys missing from the runtime JSON config."""
        return {
            "report_frequency": self.default_frequency,
            "polling_interval_minutes": self.polling_interval_minutes,
            "max_concurrent_users": self.max_concurrent_users,
            "log_level": self.log_level,
        }

    @property
    def week_start_index(self) -> int:
        """Week start as a ``date.weekday()`` number (Monday is 0)."""
        return WEEKDAY_NAMES.index(self.week_start.lower())

    @property
    def database_path(self) -> Path:
        path = Path(self.database_file).expanduser()
        return path if path.is_absolute() else get_app_dir() / path

    @property
    def config_path(self) -> Path:
        path = Path(self.config_file).expanduser()
        return path if path.is_absolute() else get_app_dir() / path


# Global settings instance
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings.load()
    return _settings
