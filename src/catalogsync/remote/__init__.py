"""Remote transport exports for catalogsync."""

from __future__ import annotations

from .base import RemoteSyncClient
from .rest_client import RestSyncClient, RetryPolicy
from .wire import DEFAULT_COLLECTION, created_id, from_wire, to_wire, wire_id

__all__ = [
    "RemoteSyncClient",
    "RestSyncClient",
    "RetryPolicy",
    "DEFAULT_COLLECTION",
    "created_id",
    "from_wire",
    "to_wire",
    "wire_id",
]
