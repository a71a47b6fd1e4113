"""Error taxonomy for the WhatsApp REST gateway.

Exception Hierarchy:
    GatewayError (base)
    ├── InvalidInputError - Missing or malformed request fields (400)
    │   └── InvalidFormatError - Field present but unparseable (400)
    ├── UnauthorizedError - Missing or incorrect bearer token (401)
    ├── NotFoundError - Unknown resource (404)
    │   └── SubscriptionNotFoundError
    ├── InitializationInProgressError - Overlapping initialize() calls (409)
    ├── UpstreamFailureError - Messaging client rejected a call (500)
    │   ├── InitializationFailedError
    │   ├── InitializationTimeoutError
    │   ├── AuthenticationFailedError
    │   ├── RetriesExhaustedError
    │   └── ClientNotReadyError
    └── ConfigurationError - Invalid process configuration (500)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from fastapi import HTTPException

logger = structlog.get_logger(__name__)


class GatewayError(Exception):
    """Base exception for all gateway errors.

    Attributes:
        message: Human-readable error message, surfaced as ``error``.
        detail: Optional extra detail, surfaced as ``detail``.
        status_code: HTTP status used when the error reaches the API boundary.
    """

    status_code: int = 500

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "detail": self.detail,
        }


class InvalidInputError(GatewayError):
    """Request is missing required fields or has the wrong shape."""

    status_code = 400


class InvalidFormatError(InvalidInputError):
    """A field is present but does not parse (e.g. a non-absolute URL)."""


class UnauthorizedError(GatewayError):
    """Missing or incorrect credentials."""

    status_code = 401


class NotFoundError(GatewayError):
    """Requested resource does not exist."""

    status_code = 404


class SubscriptionNotFoundError(NotFoundError):
    """No subscription is registered for the given URL."""

    def __init__(self, url: str) -> None:
        super().__init__("Subscription not found", detail=url)
        self.url = url


class InitializationInProgressError(GatewayError):
    """An initialize() call is already waiting for the client."""

    status_code = 409


class UpstreamFailureError(GatewayError):
    """The messaging client rejected or failed an operation."""

    status_code = 500


class InitializationFailedError(UpstreamFailureError):
    """The client failed to start."""


class InitializationTimeoutError(UpstreamFailureError):
    """Neither QR, ready nor failure arrived within the initialization bound."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            "Initialization timed out",
            detail=f"No QR code or ready event within {timeout_seconds:g}s",
        )
        self.timeout_seconds = timeout_seconds


class AuthenticationFailedError(UpstreamFailureError):
    """The client reported an authentication failure."""


class RetriesExhaustedError(UpstreamFailureError):
    """The initialization retry budget is spent; manual intervention required."""

    def __init__(self, max_retries: int) -> None:
        super().__init__(
            "Max initialization retries reached",
            detail=f"{max_retries} attempts made; restart the service to try again",
        )
        self.max_retries = max_retries


class ClientNotReadyError(UpstreamFailureError):
    """The client has no account information yet."""


class ConfigurationError(GatewayError):
    """Process configuration is missing or invalid."""


@contextmanager
def upstream_errors(action: str) -> Iterator[None]:
    """Translate unexpected messaging-client failures into UpstreamFailureError.

    Gateway errors and HTTP exceptions pass through unchanged.

    Args:
        action: Short description used as the error message.
    """
    try:
        yield
    except (GatewayError, HTTPException):
        raise
    except Exception as e:
        logger.error("client_call_failed", action=action, error=str(e))
        raise UpstreamFailureError(action, detail=str(e)) from e
