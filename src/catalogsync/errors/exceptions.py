"""Exception hierarchy and HTTP error mapping for catalogsync."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class CatalogSyncError(Exception):
    """
    Base exception for catalogsync.

    Attributes:
        details: Optional structured information (e.g., HTTP status, op_id).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class StorageUnavailableError(CatalogSyncError):
    """Raised when the local storage medium cannot be used."""


class IdentifierConflictError(CatalogSyncError):
    """Raised when a generated temporary identifier is already taken."""


class LocalValidationError(CatalogSyncError):
    """Raised when a user-facing write carries invalid fields."""


class InvalidStateError(CatalogSyncError):
    """Raised when the library is used in an invalid state (e.g., open not called)."""


class AuthError(CatalogSyncError):
    """Raised on authentication failures (HTTP 401/403). Never retried here."""


class TransientError(CatalogSyncError):
    """Failure expected to resolve on retry. The operation stays queued."""


class NetworkError(TransientError):
    """Raised when the backend cannot be reached."""


class RequestTimeoutError(TransientError):
    """Raised when a remote call exceeds its time budget (or HTTP 408)."""


class RateLimitError(TransientError):
    """Raised when rate-limited (HTTP 429)."""


class ServerError(TransientError):
    """Raised for server-side failures (HTTP 5xx)."""


class PermanentError(CatalogSyncError):
    """Failure that will recur without different input. The operation is dropped."""


class InvalidArgumentError(PermanentError):
    """Raised when the backend rejects the payload (HTTP 400, 422, other 4xx)."""


class NotFoundError(PermanentError):
    """Raised when the remote entity does not exist (HTTP 404)."""


class ConflictError(PermanentError):
    """Raised when the backend reports a conflicting write (HTTP 409)."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to catalogsync exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> CatalogSyncError:
    """
    Map an HTTP error to a catalogsync exception.

    Policy:
        - 401/403 -> AuthError
        - 404 -> NotFoundError
        - 408 -> RequestTimeoutError
        - 409 -> ConflictError
        - 429 -> RateLimitError
        - 5xx -> ServerError
        - other 4xx -> InvalidArgumentError
        - otherwise -> ServerError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if info.status_code in (401, 403):
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code == 408:
        return RequestTimeoutError(message, details=details, cause=cause)
    if info.status_code == 409:
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)
    if 500 <= info.status_code <= 599:
        return ServerError(message, details=details, cause=cause)
    if 400 <= info.status_code <= 499:
        return InvalidArgumentError(message, details=details, cause=cause)

    return ServerError(message, details=details, cause=cause)
