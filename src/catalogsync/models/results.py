"""Result models for sync cycles."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal, Optional

if TYPE_CHECKING:
    from catalogsync.ops import Operation


OperationStatus = Literal["success", "deferred", "rejected", "skipped"]
SyncOutcome = Literal["success", "partial"]


@dataclass(slots=True)
class OperationResult:
    """Result for a single replayed Operation."""

    op_id: str
    seq: int
    action: str
    target_id: str
    status: OperationStatus

    error_type: Optional[str] = None
    error_message: Optional[str] = None
    error_details: Optional[dict[str, Any]] = None

    result_id: Optional[str] = None


@dataclass(slots=True)
class SyncResult:
    """Aggregate result of one sync cycle."""

    status: SyncOutcome
    results: list[OperationResult]

    id_map: dict[str, str] = field(default_factory=dict)
    summary: dict[str, int] = field(default_factory=dict)
    merged: bool = False
    interrupted: bool = False


@dataclass(slots=True, frozen=True)
class RejectedOperation:
    """An operation the backend refused permanently, kept for the user to act on."""

    operation: Operation
    error_type: str
    error_message: str
    rejected_at: datetime
