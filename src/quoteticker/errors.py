"""Quote ticker error types."""

from __future__ import annotations

from enum import Enum


class TickerErrorCode(Enum):
    """Error classification codes."""

    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"
    VALIDATION_FAILED = "validation_failed"
    NO_DATA = "no_data"


class TickerError(Exception):
    """Quote source exception with error code and retryable flag.

    Attributes:
        message: Human-readable error description.
        code: Structured error code for programmatic handling.
        retryable: Whether the caller may try the next source in a chain.
    """

    def __init__(
        self,
        message: str,
        code: TickerErrorCode = TickerErrorCode.PROVIDER_ERROR,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable


class ConfigError(ValueError):
    """Invalid ticker configuration. Fatal at startup."""
