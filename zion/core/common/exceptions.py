"""
Common exception classes for the ZION chatbot.

This module defines custom exception classes used throughout the application
for better error handling and categorization.
"""

from __future__ import annotations


class ZionError(Exception):
    """Base exception class for all ZION errors."""

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        **kwargs,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        for key, value in (kwargs or {}).items():
            setattr(self, key, value)

    def to_dict(self) -> dict:
        error_dict = {
            "message": self.message,
            "type": self.__class__.__name__,
            "details": self.details,
        }

        # Include any additional attributes that were set via kwargs
        for attr_name in dir(self):
            if (
                not attr_name.startswith("_")
                and attr_name not in ["message", "details", "args"]
                and not callable(getattr(self, attr_name))
            ):
                error_dict[attr_name] = getattr(self, attr_name)

        return {"error": error_dict}


class ConfigurationError(ZionError):
    """Raised when there's a configuration issue."""

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict | None = None,
        **kwargs,
    ):
        super().__init__(message, details, **kwargs)


class CommandRegistrationError(ZionError):
    """Raised when a command cannot be registered."""

    def __init__(
        self,
        message: str = "Failed to register command",
        command_name: str | None = None,
        details: dict | None = None,
    ):
        det = details.copy() if details else {}
        if command_name:
            det.setdefault("command_name", command_name)
        super().__init__(message, det)
        self.command_name = command_name


class DuplicateCommandError(CommandRegistrationError):
    """Raised when a command name or alias is already bound."""

    def __init__(
        self,
        message: str = "Command already registered",
        command_name: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, command_name=command_name, details=details)


class RateLimitExceededError(ZionError):
    """Raised when a service's request window is full."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        details: dict | None = None,
        **kwargs,
    ):
        service = kwargs.pop("service", None)
        reset_at = kwargs.pop("reset_at", None)
        super().__init__(message, details, **kwargs)
        self.service: str | None = service
        # monotonic time at which the oldest request leaves the window
        self.reset_at: float | None = reset_at


class TransportError(ZionError):
    """Raised when a request produced no response at all.

    DNS failures, refused connections and timeouts all end up here. A
    response carrying an error status is never a TransportError.

    ``retryable`` is False when the request itself could not be sent as
    built (bad URL, unsupported scheme, unencodable body); sending it again
    cannot succeed.
    """

    def __init__(
        self,
        message: str = "No response received",
        details: dict | None = None,
        retryable: bool = True,
        **kwargs,
    ):
        super().__init__(message, details, **kwargs)
        self.retryable = retryable


class ServiceNotRegisteredError(ZionError):
    def __init__(
        self,
        message: str = "Service not registered",
        service: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.service = service


class MessageStoreError(ZionError):
    def __init__(
        self,
        message: str = "Message store operation failed",
        details: dict | None = None,
        **kwargs,
    ):
        super().__init__(message, details, **kwargs)


class ExternalServiceError(ZionError):
    """Raised by command handlers when an external API call failed."""

    def __init__(
        self,
        message: str = "External service request failed",
        service: str | None = None,
        status: int | None = None,
        details: dict | None = None,
    ):
        det = details.copy() if details else {}
        if service:
            det.setdefault("service", service)
        if status is not None:
            det.setdefault("status", status)
        super().__init__(message, det)
        self.service = service
        self.status = status
