"""Custom exception classes for the proxy.

This module provides domain-specific exception classes that carry
appropriate HTTP status codes and structured error information.
"""

from __future__ import annotations

from typing import Any
from typing import Optional


class AppError(Exception):
    """Base exception for proxy errors.

    All proxy-specific exceptions should inherit from this class.
    Each exception carries an HTTP status code and optional details.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code (default 500).
        detail: Optional additional context.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response body."""
        result: dict[str, Any] = {"error": self.message}
        if self.detail:
            result["detail"] = self.detail
        return result


class ConfigurationError(AppError):
    """Raised when required configuration is missing or invalid.

    Use when environment variables are absent or cannot be parsed.
    The ``hint`` tells an operator where to fix the setting.
    """

    def __init__(
        self,
        config_name: str,
        hint: Optional[str] = None,
        message: Optional[str] = None,
    ):
        super().__init__(
            message or f"Missing required configuration: {config_name}",
            status_code=500,
        )
        self.config_name = config_name
        self.hint = hint

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.hint:
            result["hint"] = self.hint
        return result


class InvalidConfigurationError(ConfigurationError):
    """Raised when a setting is present but its value cannot be used."""

    def __init__(self, config_name: str, hint: Optional[str] = None):
        super().__init__(
            config_name,
            hint=hint,
            message=f"Invalid configuration: {config_name}",
        )


class RouteBlockedError(AppError):
    """Raised when a request targets a route the proxy refuses to forward.

    Training routes are never allowed to reach the database.
    """

    def __init__(self, path: str):
        super().__init__("Training is disabled in production", status_code=405)
        self.path = path


class UpstreamError(AppError):
    """Raised when the backend cannot be reached or its response read.

    Covers DNS failures, refused connections, timeouts and truncated
    reads. HTTP error statuses returned by the backend are not upstream
    errors; they are relayed to the caller unchanged.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__("Proxy Fetch Failed", status_code=502, detail=message)
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "message": self.detail or ""}
