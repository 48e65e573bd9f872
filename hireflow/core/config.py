"""
hireflow Configuration — loads and merges config from multiple sources.

Precedence (highest to lowest):
1. Explicit overrides (passed in code)
2. Environment variables (HIREFLOW_*)
3. Project config (./hireflow.toml)
4. User config (~/.hireflow/config.toml)
5. Defaults (hardcoded)

Environment variable mapping:
    HIREFLOW_STORE_BACKEND → store.backend
    HIREFLOW_STORE_DB_PATH → store.db_path
    HIREFLOW_SCHEDULER_POLL_INTERVAL → scheduler.poll_interval
    HIREFLOW_LOG_LEVEL → logging.level
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from hireflow.core.errors import ConfigError

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Config Sub-Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class EngineConfig(BaseModel):
    """Rule engine configuration."""

    max_concurrency: int = Field(default=16, ge=1)


class StoreConfig(BaseModel):
    """Automation store configuration."""

    backend: Literal["sqlite", "memory"] = "sqlite"
    db_path: str = "~/.hireflow/automations.db"


class SchedulerConfig(BaseModel):
    """Delayed action scheduler configuration."""

    enabled: bool = True
    db_path: str = "~/.hireflow/delayed.db"
    poll_interval: int = Field(default=30, ge=1)  # seconds
    lease_timeout: int = Field(default=600, ge=1)  # seconds


class LoggingConfig(BaseModel):
    """Logging and audit trail configuration."""

    dir: str = "~/.hireflow/logs"
    level: str = "WARNING"
    audit_enabled: bool = True


class ExecutorsConfig(BaseModel):
    """Built-in executor configuration."""

    log_path: str = "~/.hireflow/actions.jsonl"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Main Config
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class HireflowConfig(BaseModel):
    """Root configuration for hireflow."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    executors: ExecutorsConfig = Field(default_factory=ExecutorsConfig)

    @staticmethod
    def load(
        overrides: dict[str, Any] | None = None,
        project_path: Path | None = None,
        user_path: Path | None = None,
    ) -> HireflowConfig:
        """
        Load configuration from all sources and merge.

        Precedence: overrides > env vars > project toml > user toml > defaults
        """
        merged: dict[str, Any] = {}

        user_config_path = user_path or get_hireflow_home() / "config.toml"
        if user_config_path.exists():
            _deep_merge(merged, _load_toml(user_config_path))

        project_config_path = project_path or Path.cwd() / "hireflow.toml"
        if project_config_path.exists():
            _deep_merge(merged, _load_toml(project_config_path))

        _deep_merge(merged, _load_from_env())

        if overrides:
            _deep_merge(merged, overrides)

        _substitute_env_vars(merged)

        try:
            return HireflowConfig(**merged)
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def store_path(self) -> Path:
        return Path(self.store.db_path).expanduser()

    def scheduler_path(self) -> Path:
        return Path(self.scheduler.db_path).expanduser()

    def log_dir(self) -> Path:
        return Path(self.logging.dir).expanduser()


def get_hireflow_home() -> Path:
    """Get the hireflow home directory (~/.hireflow)."""
    return Path.home() / ".hireflow"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Internal Helpers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file."""
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


_ENV_MAPPING = {
    "HIREFLOW_ENGINE_MAX_CONCURRENCY": ("engine", "max_concurrency"),
    "HIREFLOW_STORE_BACKEND": ("store", "backend"),
    "HIREFLOW_STORE_DB_PATH": ("store", "db_path"),
    "HIREFLOW_SCHEDULER_ENABLED": ("scheduler", "enabled"),
    "HIREFLOW_SCHEDULER_DB_PATH": ("scheduler", "db_path"),
    "HIREFLOW_SCHEDULER_POLL_INTERVAL": ("scheduler", "poll_interval"),
    "HIREFLOW_SCHEDULER_LEASE_TIMEOUT": ("scheduler", "lease_timeout"),
    "HIREFLOW_LOG_DIR": ("logging", "dir"),
    "HIREFLOW_LOG_LEVEL": ("logging", "level"),
    "HIREFLOW_AUDIT_ENABLED": ("logging", "audit_enabled"),
    "HIREFLOW_EXECUTOR_LOG_PATH": ("executors", "log_path"),
}


def _load_from_env() -> dict[str, Any]:
    """Load configuration from HIREFLOW_* environment variables."""
    result: dict[str, Any] = {}
    for env_var, (section, key) in _ENV_MAPPING.items():
        value = os.environ.get(env_var)
        if value is not None:
            result.setdefault(section, {})[key] = _convert_value(value)
    return result


def _convert_value(value: str) -> Any:
    """Convert string value to appropriate type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _deep_merge(base: dict, override: dict) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _expand(value: str) -> str:
    for var_name in _ENV_PATTERN.findall(value):
        value = value.replace(f"${{{var_name}}}", os.environ.get(var_name, ""))
    return value


def _substitute_env_vars(data: dict) -> None:
    """Recursively substitute ${ENV_VAR} patterns in string values."""
    for key, value in data.items():
        if isinstance(value, dict):
            _substitute_env_vars(value)
        elif isinstance(value, str):
            data[key] = _expand(value)
        elif isinstance(value, list):
            data[key] = [_expand(v) if isinstance(v, str) else v for v in value]
