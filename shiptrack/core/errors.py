"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    field: str
    fields: dict[str, str]
    resource: str
    http_status: int
    platform: str
    operation: str
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    status_code: ClassVar[int] = 400

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when the caller cannot be identified."""

    status_code = 401


class NotFoundAppError(AppError):
    """Raised when a row does not exist or is not owned by the caller."""

    status_code = 404


class ConflictAppError(AppError):
    """Raised when a create would duplicate an existing row."""

    status_code = 409


class RateLimitAppError(AppError):
    """Raised when admission control rejects a request."""

    status_code = 429


class DatastoreAppError(AppError):
    """Raised when the datastore collaborator fails."""

    status_code = 500


class ExternalServiceAppError(AppError):
    """Raised when a commerce platform call fails."""

    status_code = 502
