"""
Logging utilities for the application.

This module provides utilities for logging, including:
- Console/file logging setup with environment tags
- Redaction of service API keys from log records
- Structured loggers for command and request events
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
import sys
from collections.abc import Iterable
from typing import Literal

import structlog

DEFAULT_LOG_FORMAT = (
    "%(asctime)s [%(levelname)-8s] [%(env_tag)s] %(name)s:%(lineno)d %(message)s"
)

# Query-string keys used by the weather/news/space/finance services
QUERY_KEY_PATTERN = re.compile(
    r"((?:appid|apikey|api_key|apiKey)=)([^&\s'\"]+)", re.IGNORECASE
)
BEARER_TOKEN_PATTERN = re.compile(r"Bearer\s+([a-zA-Z0-9._~+/-]+=*)")


def _is_running_under_pytest() -> bool:
    return "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST") is not None


def _get_environment_tag() -> str:
    """Get the environment tag for logging.

    Returns:
        'test' if running under pytest, 'prod' otherwise
    """
    return "test" if _is_running_under_pytest() else "prod"


class EnvironmentTaggingFilter(logging.Filter):
    """Logging filter that adds environment tags to log records."""

    def __init__(self) -> None:
        super().__init__()
        self._env_tag = _get_environment_tag()

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.env_tag = self._env_tag
        return True


class EnvironmentTaggingFormatter(logging.Formatter):
    """Logging formatter that includes environment tags."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Literal["%", "{", "$"] = "%",
    ) -> None:
        super().__init__(fmt or DEFAULT_LOG_FORMAT, datefmt, style=style)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "env_tag"):
            record.env_tag = _get_environment_tag()
        return super().format(record)


def redact(value: str, mask: str = "***") -> str:
    """Redact a sensitive value, keeping two characters on each side.

    Args:
        value: The value to redact
        mask: The mask to use

    Returns:
        The redacted value
    """
    if not value:
        return value
    if len(value) > 6:
        return f"{value[0:2]}{mask}{value[-2:]}"
    return mask


class ApiKeyRedactionFilter(logging.Filter):
    """Logging filter that redacts known API keys from log records.

    Sanitizes `record.msg` and `record.args` replacing any configured key,
    query-string key parameter or bearer token with a mask.
    """

    def __init__(self, api_keys: Iterable[str] | None = None, mask: str = "***") -> None:
        super().__init__()
        self.mask = mask
        keys = {k for k in (api_keys or []) if k}
        self.patterns: list[re.Pattern] = []
        if keys:
            escaped = sorted((re.escape(k) for k in keys), key=len, reverse=True)
            self.patterns.append(re.compile("|".join(escaped)))

    def _sanitize(self, obj: object) -> object:
        if isinstance(obj, str):
            s = obj
            for pat in self.patterns:
                s = pat.sub(self.mask, s)
            s = QUERY_KEY_PATTERN.sub(rf"\g<1>{self.mask}", s)
            return BEARER_TOKEN_PATTERN.sub(f"Bearer {self.mask}", s)
        if isinstance(obj, dict):
            return {k: self._sanitize(v) for k, v in obj.items()}
        if isinstance(obj, list | tuple):
            return type(obj)(self._sanitize(v) for v in obj)
        return obj

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        try:
            if isinstance(record.msg, str):
                record.msg = self._sanitize(record.msg)  # type: ignore[assignment]
            if record.args:
                if isinstance(record.args, dict):
                    record.args = self._sanitize(record.args)  # type: ignore[assignment]
                elif isinstance(record.args, tuple):
                    record.args = tuple(self._sanitize(a) for a in record.args)
        except Exception:
            # Never let logging filtering raise
            return True
        return True


def install_api_key_redaction_filter(
    api_keys: Iterable[str] | None, mask: str = "***"
) -> ApiKeyRedactionFilter:
    """Install the API key redaction filter on the root logger and its handlers."""
    root = logging.getLogger()
    filter_instance = ApiKeyRedactionFilter(api_keys or [], mask=mask)
    root.addFilter(filter_instance)
    for handler in list(root.handlers):
        with contextlib.suppress(Exception):
            handler.addFilter(filter_instance)
    return filter_instance


def configure_logging(
    level: int | str = logging.INFO,
    log_file: str | None = None,
    api_keys: Iterable[str] | None = None,
    log_format: str | None = None,
) -> None:
    """Configure root logging with environment tagging and key redaction.

    Args:
        level: Logging level (name or number)
        log_file: Optional log file path
        api_keys: Service API keys that must never reach a log line
        log_format: Optional log format string
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = EnvironmentTaggingFormatter(fmt=log_format)
    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    tagging = EnvironmentTaggingFilter()
    for handler in handlers:
        handler.addFilter(tagging)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    install_api_key_redaction_filter(api_keys)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger.

    Args:
        name: Optional logger name

    Returns:
        A structured logger
    """
    return structlog.get_logger(name)  # type: ignore
