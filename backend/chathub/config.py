"""chathub application configuration.

Loads settings from a single YAML file:
  * chathub.settings.yaml: server, logging and hub limits

The path can be overridden with the CHATHUB_SETTINGS environment variable
or by passing ``settings_path`` to :func:`load_config`. Every field has a
default, so a missing file yields a working configuration.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("chathub.settings.yaml")
SETTINGS_ENV_VAR = "CHATHUB_SETTINGS"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 5000
    allowed_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])


class LoggingSettings(BaseModel):
    level: str = "info"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        if not isinstance(getattr(logging, value.upper(), None), int):
            raise ValueError(f"Unknown log level: {value}")
        return value.lower()


class HubSettings(BaseModel):
    """Limits enforced by the message hub."""
    default_room:         str = "general"
    room_log_capacity:    int = Field(default=500, ge=1)
    max_message_length:   int = Field(default=2000, ge=1)
    max_username_length:  int = Field(default=50, ge=1)
    max_room_name_length: int = Field(default=64, ge=1)
    default_page_size:    int = Field(default=20, ge=1)
    max_page_size:        int = Field(default=100, ge=1)
    outbound_queue_size:  int = Field(default=256, ge=1)
    max_sessions:         int = Field(default=0, ge=0)  # 0 = no limit


class AppConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    hub:     HubSettings     = Field(default_factory=HubSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def _resolve_settings_path(settings_path: Optional[Path]) -> Path:
    if settings_path is not None:
        return Path(settings_path)
    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path)
    return SETTINGS_FILE


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load settings from YAML into an *AppConfig* object."""
    path = _resolve_settings_path(settings_path)
    config = AppConfig(**_load_yaml(path))
    logger.info(
        "Settings loaded from %s (server=%s:%s, room_log_capacity=%s)",
        path,
        config.server.host,
        config.server.port,
        config.hub.room_log_capacity,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the cached configuration (used by tests)."""
    global _config
    _config = None
