# src/branchguard/config.py: Pydantic models for configuration.
# This module defines the schema for the 'config.yaml' file using Pydantic
# models. It is responsible for loading and validating the configuration:
# where the rules file lives, how logging is emitted and how long resolved
# space memberships are cached.

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .util.errors import ConfigError
from .util.paths import expand_path, get_default_config_path, get_default_rules_path


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_format: bool = Field(True, alias="json")

    model_config = {"populate_by_name": True}


class PermissionCacheConfig(BaseModel):
    ttl_sec: float = Field(default=60, gt=0)
    maxsize: int = Field(default=4096, gt=0)


class Config(BaseModel):
    version: int = 1
    rules_file: Optional[Path] = None
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    permission_cache: PermissionCacheConfig = Field(default_factory=PermissionCacheConfig)

    @field_validator("rules_file", mode="before")
    @classmethod
    def _expand_rules_file(cls, value):
        if value is None or value == "":
            return None
        return expand_path(value)

    def resolve_rules_file(self, override: Optional[Path] = None) -> Path:
        """Pick the rules file: explicit override, then config, then the XDG default."""
        if override is not None:
            return expand_path(override)
        if self.rules_file is not None:
            return self.rules_file
        return get_default_rules_path()


def load_config(path: Optional[Path] = None) -> Config:
    """
    Load, parse, and validate the configuration file.

    Args:
        path: The path to the configuration file. If None, uses the default
            path, and a missing default file yields the built-in defaults.

    Returns:
        A validated Config instance.

    Raises:
        ConfigError: If an explicit file is missing, or any file cannot be
            read, parsed or validated.
    """
    config_path = Path(path) if path is not None else get_default_config_path()
    if not config_path.is_file():
        if path is None:
            return Config()
        raise ConfigError(f"Configuration file not found at '{config_path}'.")

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file '{config_path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse configuration file '{config_path}': {e}") from e

    try:
        return Config.model_validate(data or {})
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed:\n{e}") from e
