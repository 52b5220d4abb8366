"""
Domain exceptions.

Typed exceptions for explicit error handling.
The HTTP layer maps each family to a transport status; the core only raises.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# CATALOG EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class CatalogError(DomainError):
    """Base exception for the smartphone catalog."""

    pass


class SmartphoneNotFoundError(CatalogError):
    """
    No smartphone with the requested model identifier.

    Example:
        >>> raise SmartphoneNotFoundError("M512H")
    """

    def __init__(self, model_id: str) -> None:
        self.model_id = model_id
        super().__init__(f"Smartphone with ID '{model_id}' not found")


class RecordNormalizationError(CatalogError):
    """
    Upstream record cannot be turned into a Smartphone.

    Raised when:
    - Record has no model identifier
    """

    pass


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Raised when:
    - Invalid input format
    - Out of range values
    """

    pass


class InvalidQueryError(ValidationError):
    """
    Search query rejected.

    Example:
        >>> raise InvalidQueryError(
        ...     "Search query must be at least 2 characters long"
        ... )
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ConfigurationError(ValidationError):
    """Invalid process configuration (environment variables)."""

    pass


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    External service call failed.

    Base class for all EPREL upstream errors.
    """

    pass


class UpstreamHTTPError(ExternalServiceError):
    """
    EPREL answered with a non-success status.

    Example:
        >>> raise UpstreamHTTPError(503, "Service Unavailable")
    """

    def __init__(self, status: int, body: Optional[str] = None) -> None:
        self.status = status
        self.body = body or ""
        message = f"EPREL API error: {status}"
        if self.body:
            message = f"{message} - {self.body}"
        super().__init__(message)

    @property
    def is_server_error(self) -> bool:
        """True for 5xx upstream failures."""
        return self.status >= 500


class UpstreamTimeoutError(ExternalServiceError):
    """
    EPREL call exceeded the configured deadline.

    Example:
        >>> raise UpstreamTimeoutError("EPREL API request timeout")
    """

    pass


class UpstreamFormatError(ExternalServiceError):
    """
    EPREL response body is not the expected shape.

    Raised when:
    - Body is not JSON
    - `hits` is missing or not a list
    - Body is not an object
    """

    pass


class UpstreamConnectionError(ExternalServiceError):
    """
    EPREL could not be reached (DNS, refused connection, reset).

    Example:
        >>> raise UpstreamConnectionError(
        ...     "Failed to communicate with EPREL API"
        ... )
    """

    pass
