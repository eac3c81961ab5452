"""Runtime configuration manager (credentials, sender, schedule)."""
import json
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional

from moneylog.utils.exceptions import ConfigError
from moneylog.utils.paths import get_app_dir

FREQUENCY_CHOICES = ("daily", "weekly", "monthly", "quarterly", "yearly")


@dataclass
class Config:
    """Installation configuration."""
    sender_email: str
    polling_interval_minutes: int = 60
    report_frequency: str = "weekly"
    log_level: str = "INFO"
    max_concurrent_users: int = 3
    service_account_path: Optional[str] = None
    oauth_client_secrets: Optional[str] = None
    oauth_token_path: Optional[str] = None


class ConfigManager:
    """Loads and saves the JSON configuration file."""

    def __init__(self, config_file: Optional[Path] = None, defaults: Optional[Dict[str, Any]] = None):
        self.config_dir = get_app_dir()
        self.config_file = Path(config_file) if config_file else self.config_dir / "config.json"
        self.defaults = dict(defaults or {})

    def load_config(self) -> Optional[Config]:
        """
        Load configuration, returning None when no file exists yet.

        Keys missing from the file take their value from ``defaults``.
        """
        if not self.config_file.exists():
            return None

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load configuration: {e}")

        known = {f.name for f in fields(Config)}
        unknown = set(config_dict) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        try:
            return Config(**{**self.defaults, **config_dict})
        except TypeError as e:
            raise ConfigError(f"Failed to load configuration: {e}")

    def save_config(self, config: Config) -> None:
        """Write configuration as JSON."""
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(asdict(config), f, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save configuration: {e}")

    def validate_config(self, config: Config) -> tuple[bool, str]:
        """Validate configuration values."""
        if not config.sender_email or "@" not in config.sender_email:
            return False, "Sender email address is required"

        has_service_account = config.service_account_path and Path(config.service_account_path).exists()
        has_oauth = config.oauth_client_secrets and Path(config.oauth_client_secrets).exists()

        if not has_service_account and not has_oauth:
            return False, "Either service account or OAuth client secrets is required"

        if config.report_frequency not in FREQUENCY_CHOICES:
            return False, f"Report frequency must be one of: {', '.join(FREQUENCY_CHOICES)}"

        if config.polling_interval_minutes < 1:
            return False, "Polling interval must be at least 1 minute"

        if config.max_concurrent_users < 1:
            return False, "At least one concurrent user worker is required"

        return True, "Configuration is valid"
