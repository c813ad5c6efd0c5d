"""catalogsync public API."""

from __future__ import annotations

from catalogsync.auth import AuthInfo
from catalogsync.config import SyncConfig
from catalogsync.errors import (
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
from catalogsync.local import CatalogLocal, LocalDatabase
from catalogsync.manager import CatalogSyncManager
from catalogsync.models import Entity, OperationResult, RejectedOperation, SyncResult, SyncStatus
from catalogsync.ops import Action, CreateOperation, DeleteOperation, Operation, UpdateOperation
from catalogsync.remote import RemoteSyncClient, RestSyncClient, RetryPolicy
from catalogsync.sync import ConnectivitySignal, Reconciler, SyncOrchestrator, SyncState

__all__ = [
    # High-level
    "CatalogSyncManager",
    "CatalogLocal",
    "SyncConfig",
    # Engine
    "SyncOrchestrator",
    "SyncState",
    "Reconciler",
    "ConnectivitySignal",
    "LocalDatabase",
    # Remote / Auth
    "RemoteSyncClient",
    "RestSyncClient",
    "RetryPolicy",
    "AuthInfo",
    # Ops / Models
    "Action",
    "Operation",
    "CreateOperation",
    "UpdateOperation",
    "DeleteOperation",
    "Entity",
    "SyncStatus",
    "OperationResult",
    "SyncResult",
    "RejectedOperation",
    # Errors
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
