"""Unified configuration loaded from .mindscribe.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".mindscribe.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "mindscribe" / "config.toml"


class StorageConfig(BaseModel):
    """[storage] section."""

    data_dir: str = "~/.mindscribe"

    @property
    def path(self) -> Path:
        return Path(self.data_dir).expanduser()


class EditorConfig(BaseModel):
    """[editor] section."""

    excerpt_length: int = 150
    words_per_minute: int = 200
    autosave_interval: float = 30.0


class ProfileConfig(BaseModel):
    """[profile] section."""

    max_display_name: int = 50
    max_avatar_bytes: int = 5 * 1024 * 1024


class AuthConfig(BaseModel):
    """[auth] section."""

    min_password_length: int = 6
    max_failed_attempts: int = 5
    lockout_minutes: int = 5
    recent_login_minutes: int = 5


class LoggingConfig(BaseModel):
    """[logging] section."""

    level: str = "WARNING"


class MindScribeConfig(BaseModel):
    """Top-level configuration model."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    profile: ProfileConfig = Field(default_factory=ProfileConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path | None = None) -> MindScribeConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .mindscribe.toml in CWD
    3. ~/.config/mindscribe/config.toml

    Then overlay environment variables.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = MindScribeConfig.model_validate(data) if data else MindScribeConfig()
    return _apply_env_vars(config)


def merge_cli_overrides(config: MindScribeConfig, **cli_kwargs: object) -> MindScribeConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "data_dir": ("storage", "data_dir"),
        "log_level": ("logging", "level"),
        "autosave_interval": ("editor", "autosave_interval"),
    }

    for key, value in cli_kwargs.items():
        if value is None or key not in mapping:
            continue
        section, field = mapping[key]
        data[section][field] = value

    return MindScribeConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: MindScribeConfig) -> MindScribeConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "MINDSCRIBE_DATA_DIR": ("storage", "data_dir"),
        "MINDSCRIBE_LOG_LEVEL": ("logging", "level"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    interval_raw = os.environ.get("MINDSCRIBE_AUTOSAVE_INTERVAL")
    if interval_raw is not None:
        try:
            data["editor"]["autosave_interval"] = float(interval_raw)
        except ValueError:
            logger.warning("Ignoring invalid MINDSCRIBE_AUTOSAVE_INTERVAL=%r", interval_raw)

    return MindScribeConfig.model_validate(data)
