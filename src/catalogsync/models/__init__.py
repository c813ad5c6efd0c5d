"""Public model exports for catalogsync."""

from __future__ import annotations

from .entity import EDITABLE_FIELDS, Entity, SyncStatus
from .results import (
    OperationResult,
    OperationStatus,
    RejectedOperation,
    SyncOutcome,
    SyncResult,
)

__all__ = [
    "Entity",
    "SyncStatus",
    "EDITABLE_FIELDS",
    "OperationStatus",
    "SyncOutcome",
    "OperationResult",
    "SyncResult",
    "RejectedOperation",
]
