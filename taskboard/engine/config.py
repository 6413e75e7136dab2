"""
Taskboard Configuration — Load and validate taskboard.yaml at startup.

Usage:
    from taskboard.engine.config import load_config, get_config
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from taskboard.engine.errors import ConfigError

CONFIG_FILENAME = "taskboard.yaml"

# Environment variable → (section, key)
ENV_OVERRIDES = {
    "TASKBOARD_BACKEND_URL": ("backend", "url"),
    "TASKBOARD_API_KEY": ("backend", "api_key"),
    "TASKBOARD_ENV": ("app", "environment"),
}


# ---------------------------------------------------------------------------
# Pydantic models for taskboard.yaml
# ---------------------------------------------------------------------------

class AppSection(BaseModel):
    name: str = "Taskboard"
    environment: str = "dev"

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


class BackendConfig(BaseModel):
    url: str = "http://localhost:54321"
    api_key: str = ""
    table: str = "tasks"
    timeout: float = 30.0

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    @property
    def auth_url(self) -> str:
        return f"{self.url}/auth/v1"


class AuthConfig(BaseModel):
    organization_domain: str = "botnoigroup.com"
    password_min_length: int = 6
    token_path: str = "~/.taskboard/session.json"


class BoardConfig(BaseModel):
    seed_on_failure: bool = True


class LogAsyncQueueConfig(BaseModel):
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".taskboard/logs"
    structured: bool = False
    async_queue: LogAsyncQueueConfig = LogAsyncQueueConfig()


class TaskboardConfig(BaseModel):
    """Root model for taskboard.yaml."""
    app: AppSection = AppSection()
    backend: BackendConfig = BackendConfig()
    auth: AuthConfig = AuthConfig()
    board: BoardConfig = BoardConfig()
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def environment(self) -> str:
        return self.app.environment


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[TaskboardConfig] = None


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from *start* (default CWD) looking for taskboard.yaml."""
    current = start or Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(raw: dict) -> dict:
    for var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(var)
        if value:
            section_data = dict(raw.get(section) or {})
            section_data[key] = value
            raw[section] = section_data
    return raw


def load_config(config_path: Optional[str] = None) -> TaskboardConfig:
    """
    Load and validate taskboard.yaml.

    Args:
        config_path: Explicit path to taskboard.yaml. If None, auto-discovers.

    Returns:
        Validated TaskboardConfig instance. Defaults when no file exists.

    Raises:
        ConfigError if the file cannot be parsed or fails validation.
    """
    global _config

    path = Path(config_path) if config_path else find_config_file()

    raw: dict = {}
    if path is not None and path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read {path}: {e}", path=str(path)) from e
        if not isinstance(raw, dict):
            raise ConfigError(f"{path} must contain a mapping", path=str(path))

    raw = _apply_env_overrides(raw)

    try:
        _config = TaskboardConfig(**raw)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}", path=str(path)) from e
    return _config


def get_config() -> TaskboardConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    global _config
    _config = None
