"""Public error exports for catalogsync."""

from __future__ import annotations

from .exceptions import (
    AuthError,
    CatalogSyncError,
    ConflictError,
    HttpErrorInfo,
    IdentifierConflictError,
    InvalidArgumentError,
    InvalidStateError,
    LocalValidationError,
    NetworkError,
    NotFoundError,
    PermanentError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    StorageUnavailableError,
    TransientError,
    map_http_error,
)

__all__ = [
    "CatalogSyncError",
    "StorageUnavailableError",
    "IdentifierConflictError",
    "LocalValidationError",
    "InvalidStateError",
    "AuthError",
    "TransientError",
    "NetworkError",
    "RequestTimeoutError",
    "RateLimitError",
    "ServerError",
    "PermanentError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "HttpErrorInfo",
    "map_http_error",
]
