from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import Field, field_validator

from zion.command_prefix import validate_command_prefix
from zion.constants import DEFAULT_COMMAND_PREFIX, DEFAULT_DATABASE_PATH, ConfigKey
from zion.core.common.exceptions import ConfigurationError
from zion.core.interfaces.model_bases import DomainModel

logger = logging.getLogger(__name__)

# Environment variable -> service whose api_key it fills
SERVICE_API_KEY_ENV: dict[str, str] = {
    "OPENWEATHER_API_KEY": "openweather",
    "NEWS_API_KEY": "newsapi",
    "NASA_API_KEY": "nasa",
    "ALPHA_VANTAGE_API_KEY": "alphavantage",
}


def _to_int(value: str, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(DomainModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.WARNING
    log_file: str | None = None


class RateLimitConfig(DomainModel):
    """Sliding window admission policy for one service."""

    requests: int = Field(default=100, gt=0)
    window_ms: int = Field(default=60_000, gt=0)


class RetryConfig(DomainModel):
    """Exponential backoff policy shared by every outbound call."""

    max_retries: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=10_000, ge=0)


class ServiceConfig(DomainModel):
    """Configuration for an external HTTP service."""

    base_url: str = ""
    timeout: float = 10.0  # seconds, per attempt
    requires_auth: bool = False
    api_key: str | None = None
    # query parameter carrying the key when requires_auth is set
    api_key_param: str = "apikey"
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate the base URL if provided."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with http:// or https://")
        return v.rstrip("/")


def _default_services() -> dict[str, ServiceConfig]:
    return {
        "openweather": ServiceConfig(
            base_url="https://api.openweathermap.org/data/2.5",
            timeout=5.0,
            requires_auth=True,
            api_key_param="appid",
            rate_limit=RateLimitConfig(requests=60, window_ms=60_000),
        ),
        "newsapi": ServiceConfig(
            base_url="https://newsapi.org/v2",
            timeout=10.0,
            requires_auth=True,
            api_key_param="apiKey",
            rate_limit=RateLimitConfig(requests=1000, window_ms=86_400_000),
        ),
        "nasa": ServiceConfig(
            base_url="https://api.nasa.gov",
            timeout=15.0,
            requires_auth=True,
            api_key_param="api_key",
            rate_limit=RateLimitConfig(requests=1000, window_ms=3_600_000),
        ),
        "alphavantage": ServiceConfig(
            base_url="https://www.alphavantage.co/query",
            timeout=10.0,
            requires_auth=True,
            api_key_param="apikey",
            rate_limit=RateLimitConfig(requests=5, window_ms=60_000),
        ),
        "ipapi": ServiceConfig(
            base_url="http://ip-api.com/json",
            timeout=5.0,
            rate_limit=RateLimitConfig(requests=150, window_ms=60_000),
        ),
        "generic": ServiceConfig(
            base_url="",
            timeout=10.0,
            rate_limit=RateLimitConfig(requests=100, window_ms=60_000),
        ),
    }


class AppConfig(DomainModel):
    """Complete application configuration."""

    command_prefix: str = DEFAULT_COMMAND_PREFIX
    database_path: str = DEFAULT_DATABASE_PATH
    history_limit: int = Field(default=10, gt=0)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    services: dict[str, ServiceConfig] = Field(default_factory=_default_services)

    @field_validator("command_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        err = validate_command_prefix(v)
        if err:
            raise ValueError(err)
        return v

    def api_keys(self) -> list[str]:
        """Return every configured service API key."""
        return [svc.api_key for svc in self.services.values() if svc.api_key]

    @classmethod
    def from_env(cls, *, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Create AppConfig from defaults plus environment variables.

        Returns:
            AppConfig instance
        """
        data = cls().model_dump()
        _merge_dicts(data, _env_overrides(environ if environ is not None else os.environ))
        return cls.model_validate(data)


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect configuration values present in the environment."""
    overrides: dict[str, Any] = {}

    prefix = env.get(ConfigKey.COMMAND_PREFIX.value)
    if prefix is not None:
        err = validate_command_prefix(prefix)
        if err:
            logger.warning(
                "Invalid command prefix %s: %s, using default", prefix, err
            )
        else:
            overrides["command_prefix"] = prefix

    if ConfigKey.DATABASE_PATH.value in env:
        overrides["database_path"] = env[ConfigKey.DATABASE_PATH.value]

    logging_section: dict[str, Any] = {}
    if ConfigKey.LOG_LEVEL.value in env:
        logging_section["level"] = env[ConfigKey.LOG_LEVEL.value].strip().upper()
    if ConfigKey.LOG_FILE.value in env:
        logging_section["log_file"] = env[ConfigKey.LOG_FILE.value]
    if logging_section:
        overrides["logging"] = logging_section

    if ConfigKey.MAX_RETRIES.value in env:
        overrides["retry"] = {
            "max_retries": _to_int(env[ConfigKey.MAX_RETRIES.value], 3)
        }

    services: dict[str, Any] = {}
    for var, service in SERVICE_API_KEY_ENV.items():
        value = env.get(var)
        if value:
            services[service] = {"api_key": value.strip()}
    if services:
        overrides["services"] = services

    return overrides


def _merge_dicts(d1: dict[str, Any], d2: dict[str, Any]) -> dict[str, Any]:
    for k, v in d2.items():
        if k in d1 and isinstance(d1[k], dict) and isinstance(v, dict):
            _merge_dicts(d1[k], v)
        else:
            d1[k] = v
    return d1


def load_config(
    config_path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    dotenv: bool = True,
) -> AppConfig:
    """
    Load configuration from defaults, an optional YAML file and the environment.

    Args:
        config_path: Optional path to a YAML configuration file
        environ: Environment mapping (defaults to os.environ)
        dotenv: Whether to read a .env file into os.environ first

    Returns:
        AppConfig instance

    Raises:
        ConfigurationError: If the file is unreadable or the result is invalid
    """
    if dotenv and environ is None:
        load_dotenv(find_dotenv(usecwd=True))
    env = environ if environ is not None else os.environ

    config_data: dict[str, Any] = AppConfig().model_dump()

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                details={"path": str(path)},
            )
        if path.suffix.lower() not in (".yaml", ".yml"):
            raise ConfigurationError(
                f"Unsupported configuration file format: {path.suffix}. Use YAML (.yaml/.yml).",
                details={"path": str(path)},
            )

        import yaml

        try:
            with open(path, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Invalid YAML in {path}: {exc}", details={"path": str(path)}
            ) from exc
        if not isinstance(file_config, dict):
            raise ConfigurationError(
                f"Configuration file {path} must contain a mapping",
                details={"path": str(path)},
            )
        _merge_dicts(config_data, file_config)
        logger.debug("Loaded configuration file %s", path)

    _merge_dicts(config_data, _env_overrides(env))

    try:
        return AppConfig.model_validate(config_data)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
