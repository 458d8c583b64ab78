from .app_config import (
    AppConfig,
    LoggingConfig,
    LogLevel,
    RateLimitConfig,
    RetryConfig,
    ServiceConfig,
    load_config,
)

__all__ = [
    "AppConfig",
    "LogLevel",
    "LoggingConfig",
    "RateLimitConfig",
    "RetryConfig",
    "ServiceConfig",
    "load_config",
]
