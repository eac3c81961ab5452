"""Application directory resolution."""
import os
from pathlib import Path


def get_app_dir() -> Path:
    """Return the MoneyLog data directory, creating it if needed.

    Defaults to ``~/.moneylog``; ``MONEYLOG_HOME`` overrides it.
    """
    override = os.getenv("MONEYLOG_HOME")
    app_dir = Path(override) if override else Path.home() / ".moneylog"
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir
