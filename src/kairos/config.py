"""Configuration management for Kairos."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

KAIROS_HOME = Path(os.environ.get("KAIROS_HOME", Path.home() / "kairos"))
CONFIG_FILE = KAIROS_HOME / "config" / "kairos.conf"
DATA_DIR = KAIROS_HOME / "data"
LEGACY_HISTORY_FILE = KAIROS_HOME / "pomodoro_history.json"


@dataclass
class Config:
    """Kairos configuration."""

    data_dir: str = ""
    # Locale used for tag/project matching, e.g. "tr_TR"
    locale: str = ""
    focus_minutes: int = 25
    break_minutes: int = 5
    legacy_history_file: str = ""
    log_level: str = "WARNING"

    @property
    def data_path(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return DATA_DIR

    @property
    def legacy_history_path(self) -> Path:
        if self.legacy_history_file:
            return Path(self.legacy_history_file).expanduser()
        return LEGACY_HISTORY_FILE


def _parse_minutes(key: str, value: str, default: int) -> int:
    try:
        minutes = int(value)
    except ValueError:
        logger.warning(f"Invalid {key.upper()} value {value!r}, using {default}")
        return default
    if minutes < 1:
        logger.warning(f"{key.upper()} must be at least 1, using {default}")
        return default
    return minutes


def _unquote(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from kairos.conf."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "data_dir":
                config.data_dir = value
            case "locale":
                config.locale = value
            case "focus_minutes":
                config.focus_minutes = _parse_minutes(key, value, config.focus_minutes)
            case "break_minutes":
                config.break_minutes = _parse_minutes(key, value, config.break_minutes)
            case "legacy_history_file":
                config.legacy_history_file = value
            case "log_level":
                config.log_level = value.upper()
            case _:
                logger.debug(f"Ignoring unknown config key {key!r}")

    return config
