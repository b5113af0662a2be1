"""User configuration for papertrade.

Settings are read from ``~/.config/papertrade/config.toml`` (or the file
named by ``PAPERTRADE_CONFIG``) and validated into pydantic models. A
missing file yields the defaults.
"""

import os
from pathlib import Path
from typing import Optional

import toml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from papertrade.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "papertrade"
CONFIG_ENV_VAR = "PAPERTRADE_CONFIG"


class TradingSettings(BaseModel):
    """Trading defaults."""

    starting_balance: float = Field(default=100000.0, gt=0, description="Initial virtual balance")
    risk_free_rate: float = Field(default=0.06, description="Rate used for Greeks")
    lot_size: int = Field(default=25, gt=0, description="Default derivative lot size")
    futures_margin_percent: float = Field(default=15.0, gt=0, le=100, description="Futures initial margin")
    quote_timeout_seconds: float = Field(default=5.0, gt=0, description="Batch quote fetch timeout")
    quote_max_age_hours: float = Field(default=24.0, gt=0, description="Age after which a stored quote is stale")

    model_config = {"frozen": True}


class LoggingSettings(BaseModel):
    """Logging options."""

    level: str = Field(default="WARNING", description="Log level name")
    file: Optional[Path] = Field(default=None, description="Optional log file")

    model_config = {"frozen": True}


class Settings(BaseModel):
    """Top-level papertrade settings."""

    username: str = Field(default="trader", min_length=1, description="Local username")
    db_path: Path = Field(default=CONFIG_DIR / "papertrade.db", description="SQLite database file")
    trading: TradingSettings = Field(default_factory=TradingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {"frozen": True}


# Process-wide settings (set by the CLI entry point or tests)
_settings: Optional[Settings] = None


def config_path() -> Path:
    """Path of the active configuration file."""
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override).expanduser() if override else CONFIG_DIR / "config.toml"


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from a TOML file.

    Args:
        path: Config file path. Defaults to ``config_path()``.

    Returns:
        Validated settings, or defaults when the file does not exist.

    Raises:
        ConfigurationError: If the file cannot be parsed or holds invalid values.
    """
    path = Path(path) if path else config_path()
    if not path.exists():
        return Settings()

    try:
        data = toml.load(path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigurationError(f"Could not read {path}: {e}", details={"path": str(path)}) from e

    try:
        return Settings.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid settings in {path}: {e}", details={"path": str(path)}) from e


def set_settings(settings: Settings) -> None:
    """Replace the process-wide settings."""
    global _settings
    _settings = settings


def get_settings() -> Settings:
    """Get the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Forget the process-wide settings so the next access reloads them."""
    global _settings
    _settings = None


def write_template(path: Optional[Path] = None, username: Optional[str] = None) -> Path:
    """Write a template configuration file.

    Args:
        path: Destination. Defaults to ``config_path()``.
        username: Username to put in the template.

    Returns:
        Path of the written file.
    """
    path = Path(path) if path else config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    defaults = Settings()
    template = {
        "username": username or defaults.username,
        "db_path": str(defaults.db_path),
        "trading": defaults.trading.model_dump(),
        "logging": {
            "level": defaults.logging.level,
        },
    }

    with open(path, "w") as f:
        toml.dump(template, f)

    return path
