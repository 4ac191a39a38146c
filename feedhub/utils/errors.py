"""
Custom Exception Classes
========================

Application exceptions. Each class carries the HTTP status the API
responds with, so services raise them without knowing about FastAPI.
"""

from typing import Any


class FeedHubError(Exception):
    """Base exception for the feed hub."""

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthenticationError(FeedHubError):
    """Raised when the caller has no valid access token."""

    status_code = 401


class WorkspaceAccessError(FeedHubError):
    """Raised when the caller is not a member of the requested workspace."""

    status_code = 403


class ForbiddenError(FeedHubError):
    """Raised when an operation is not allowed for the addressed resource."""

    status_code = 403


class ValidationError(FeedHubError):
    """Raised when input validation fails."""

    status_code = 400


class NotFoundError(FeedHubError):
    """Raised when a resource does not exist in the caller's workspace."""

    status_code = 404


class ConflictError(FeedHubError):
    """Raised when a write conflicts with existing state."""

    status_code = 409


class IngestionInProgressError(ConflictError):
    """Raised when a supplier already has a running sync."""

    pass


class FeedFetchError(FeedHubError):
    """Raised when a supplier feed cannot be downloaded or read."""

    status_code = 400


class ParserError(FeedHubError):
    """Raised when a feed document cannot be parsed at all."""

    status_code = 400


class DatabaseError(FeedHubError):
    """Raised when database operations fail."""

    pass
