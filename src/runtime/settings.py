# SPDX-License-Identifier: MIT
"""Centralised application configuration management.

This module exposes :class:`Settings`, a ``pydantic-settings`` model that
combines values sourced from a YAML configuration file and environment
variables. Environment variables (and a ``.env`` file) take precedence over
file-based values and the merged configuration is validated before use.
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from codec import encode
from constants import BASE62, DEFAULT_HASH_ALGO
from io_utils.loader import load_app_config
from models import (
    BackendConfig,
    CanonicalConfig,
    GitHubBackendConfig,
    LocalBackendConfig,
)

LogLevel = Literal["fatal", "error", "warn", "notice", "info", "debug", "trace"]


class Settings(BaseSettings):
    """Application settings combining file-based and environment configuration."""

    log_level: LogLevel = Field("warn", description="Logging verbosity level.")
    logfire_token: str | None = Field(
        None, description="Logfire authentication token, if available.", repr=False
    )
    alphabet: str = Field(BASE62, description="Symbols used to render scope ids.")
    hash_algo: str = Field(
        DEFAULT_HASH_ALGO, description="hashlib algorithm locating scope metadata."
    )
    counter_attempts: int = Field(
        3, ge=1, description="Compare-and-swap attempts per counter update."
    )
    request_timeout: float = Field(
        30.0, gt=0, description="Per-request timeout in seconds for remote stores."
    )
    backend: BackendConfig = Field(
        default_factory=LocalBackendConfig, description="Content store backend."
    )
    canonical: CanonicalConfig = Field(
        default_factory=CanonicalConfig, description="URL canonicalisation rules."
    )

    model_config = SettingsConfigDict(
        env_prefix="SHORTPATH_", env_nested_delimiter="__", extra="ignore"
    )

    @field_validator("alphabet")
    @classmethod
    def _validate_alphabet(cls, value: str) -> str:
        """Ensure ``alphabet`` has at least two distinct symbols."""
        encode(1, value)
        return value

    @field_validator("hash_algo")
    @classmethod
    def _validate_hash_algo(cls, value: str) -> str:
        if value not in hashlib.algorithms_available:
            raise ValueError(f"unsupported hash algorithm '{value}'")
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive as init kwargs and rank below the environment.
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load and validate application settings.

    Configuration values are read from the application configuration file and
    then merged with environment variables using ``pydantic-settings``. When a
    value is provided in both sources the environment variable wins. A ``.env``
    file in the working directory is loaded automatically when present. A
    GitHub backend without a configured token falls back to ``GITHUB_TOKEN``.

    Args:
        config_path: Optional path to a YAML configuration file. When given
            the file must exist; the default ``config/app.yaml`` is optional.

    Returns:
        Settings: Fully validated application configuration.

    Raises:
        RuntimeError: If configuration values are missing or invalid.
    """
    try:
        if config_path:
            cfg_path = Path(config_path)
            config = load_app_config(cfg_path.parent, cfg_path.name, required=True)
        else:
            config = load_app_config()
    except FileNotFoundError as exc:
        raise RuntimeError(f"Configuration file not found: {config_path}") from exc
    env_file_path = Path(".env")
    env_file = env_file_path if env_file_path.exists() else None
    try:
        # Validate and merge configuration from file, env file and environment.
        settings = Settings(
            _env_file=env_file,
            **config.model_dump(exclude_none=True),
        )
    except ValidationError as exc:
        # Summarise validation issues so the caller receives clear feedback.
        details = "; ".join(
            f"{'.'.join(map(str, error['loc']))}: {error['msg']}"
            for error in exc.errors()
        )
        raise RuntimeError(f"Invalid configuration: {details}") from exc
    backend = settings.backend
    if isinstance(backend, GitHubBackendConfig) and backend.token is None:
        token = os.getenv("GITHUB_TOKEN")
        if token:
            backend.token = SecretStr(token)
    return settings


__all__ = ["LogLevel", "Settings", "load_settings"]
