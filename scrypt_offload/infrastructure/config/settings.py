"""Application settings using pydantic-settings."""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be read or is invalid."""


def _default_max_workers() -> int:
    return max(1, os.cpu_count() or 1)


class Settings(BaseSettings):
    """Service configuration - single source of truth.

    Values come from, in increasing priority: defaults, environment variables
    or a .env file, and a JSON configuration file passed with -c/--config.

    JSON files use the camelCase names (``minWorkers``, ``maxWorkers``,
    ``logPath``, ``ip``, ``port``, ``certificatePath``,
    ``certificateKeyPath``); the older ``logpath``, ``certificate`` and
    ``certificateKey`` names are accepted too.

    Usage:
        settings = get_settings()
        print(settings.max_workers)
        print(settings.tls_enabled)
    """

    # Worker pool
    min_workers: int = Field(
        default=1,
        ge=0,
        validation_alias=AliasChoices("min_workers", "minWorkers"),
    )
    max_workers: int = Field(
        default_factory=_default_max_workers,
        ge=0,
        validation_alias=AliasChoices("max_workers", "maxWorkers"),
    )
    idle_timeout: float = Field(
        default=60.0,
        gt=0,
        validation_alias=AliasChoices("idle_timeout", "idleTimeout"),
        description="Seconds an extra worker may stay idle before it exits.",
    )

    # Listener
    ip: str = Field(default="127.0.0.1")
    port: int = Field(default=8001, ge=0, le=65535)
    certificate_path: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("certificate_path", "certificatePath", "certificate"),
    )
    certificate_key_path: Path | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "certificate_key_path", "certificateKeyPath", "certificateKey"
        ),
    )

    # Logging
    log_path: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("log_path", "logPath", "logpath"),
        description="Directory holding scryptServer.log; stderr when unset.",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("log_level", "logLevel"),
    )

    # Application
    debug: bool = Field(default=False)
    app_name: str = Field(default="scrypt offload service")
    app_version: str = Field(default="1.0.0")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_worker_bounds(self) -> "Settings":
        """Ensure the pool bounds are consistent."""
        if self.max_workers < self.min_workers:
            raise ValueError("maxWorkers must be greater than or equal to minWorkers")
        return self

    @property
    def tls_enabled(self) -> bool:
        """Check if both certificate files are configured."""
        return self.certificate_path is not None and self.certificate_key_path is not None


def _field_names_by_alias() -> dict[str, str]:
    names: dict[str, str] = {}
    for field_name, field in Settings.model_fields.items():
        names[field_name] = field_name
        if isinstance(field.validation_alias, AliasChoices):
            for choice in field.validation_alias.choices:
                if isinstance(choice, str):
                    names[choice] = field_name
    return names


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Build settings, merging a JSON configuration file over the defaults.

    Args:
        config_path: Path to a JSON object with configuration values

    Returns:
        Settings instance

    Raises:
        ConfigurationError: The file cannot be read, is not a JSON object,
            or holds invalid values
    """
    if config_path is None:
        try:
            return Settings()
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    path = Path(config_path).resolve()
    try:
        overrides: Any = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Cannot read configuration file {path}: {exc}") from exc

    if not isinstance(overrides, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a JSON object")

    # Canonical field names, so file values outrank environment variables
    names = _field_names_by_alias()
    overrides = {names.get(key, key): value for key, value in overrides.items()}

    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {path}: {exc}") from exc


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the application lifecycle.
    For testing, clear the cache with: get_settings.cache_clear()

    Returns:
        Settings instance loaded from environment
    """
    return Settings()
