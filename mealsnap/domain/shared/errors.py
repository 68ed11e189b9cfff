"""
Domain exceptions.

Typed exceptions for the photo analysis pipeline and the food log store.
Every analysis error carries a human-readable message that can be shown
to the user verbatim.
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
# ANALYSIS EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class AnalysisError(DomainError):
    """
    Base exception for food photo analysis.

    Subclasses define a default user-facing message; a more specific
    message (e.g. extracted from the API error body) can be passed in.

    Example:
        >>> str(ServerError())
        'Server error. Please try again later.'
    """

    default_message = "Failed to analyze image"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentialsError(AnalysisError):
    """
    API key missing, empty or rejected.

    Raised when:
    - No API key is configured
    - The API answers 400/401/403 without a readable message
    """

    default_message = "Invalid API key. Please check your configuration."


class NetworkError(AnalysisError):
    """
    Transport-level failure (connection refused, DNS, timeout).

    Raised only after every retry attempt has failed.
    """

    default_message = "Network error. Please check your connection."


class InvalidResponseError(AnalysisError):
    """
    Response has an unexpected shape.

    Raised when:
    - `choices` is missing or empty
    - message content is not text
    - Unexpected HTTP status without a readable message
    """

    default_message = "Invalid response from API. Please try again."


class RateLimitedError(AnalysisError):
    """API answered 429 on every attempt."""

    default_message = "Rate limit exceeded. Please try again later."


class ServerError(AnalysisError):
    """API answered 5xx on every attempt."""

    default_message = "Server error. Please try again later."


class APIError(AnalysisError):
    """
    Server-supplied or parser-supplied error detail.

    Used for 4xx detail, quota/billing guidance and decode failures.

    Example:
        >>> raise APIError("Incorrect API key provided: sk-...")
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


# ═══════════════════════════════════════════════════════════
# PERSISTENCE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class RepositoryError(DomainError):
    """Food log storage operation failed."""

    pass


class FoodLogNotFoundError(RepositoryError):
    """
    Food log entry not found.

    Example:
        >>> raise FoodLogNotFoundError("Food log 3f2c... not found")
    """

    pass
