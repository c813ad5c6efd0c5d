"""Queued mutation variants (one class per action; no string switch at replay)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, ClassVar, Mapping, Optional, Union

from catalogsync.util.ids import new_op_id
from catalogsync.util.time import now_utc

from .actions import Action


@dataclass(slots=True, frozen=True)
class CreateOperation:
    """Create target_id (a temporary id) remotely with payload."""

    action: ClassVar[Action] = Action.CREATE

    target_id: str
    payload: dict[str, Any]
    op_id: str = field(default_factory=new_op_id)
    enqueued_at: datetime = field(default_factory=now_utc)
    seq: Optional[int] = None


@dataclass(slots=True, frozen=True)
class UpdateOperation:
    """Replace the remote fields of target_id with payload."""

    action: ClassVar[Action] = Action.UPDATE

    target_id: str
    payload: dict[str, Any]
    op_id: str = field(default_factory=new_op_id)
    enqueued_at: datetime = field(default_factory=now_utc)
    seq: Optional[int] = None


@dataclass(slots=True, frozen=True)
class DeleteOperation:
    """Delete target_id remotely."""

    action: ClassVar[Action] = Action.DELETE

    target_id: str
    op_id: str = field(default_factory=new_op_id)
    enqueued_at: datetime = field(default_factory=now_utc)
    seq: Optional[int] = None

    @property
    def payload(self) -> None:
        return None


Operation = Union[CreateOperation, UpdateOperation, DeleteOperation]


def with_seq(op: Operation, seq: int) -> Operation:
    """Return a copy of op carrying its log sequence number."""
    return replace(op, seq=seq)


def operation_from_record(
    *,
    action: str,
    op_id: str,
    target_id: str,
    payload: Optional[Mapping[str, Any]],
    enqueued_at: datetime,
    seq: Optional[int] = None,
) -> Operation:
    """
    Rebuild an Operation variant from its persisted fields.

    Raises:
        ValueError: if the action tag is unknown or a required payload is missing.
    """
    tag = Action(action)

    if tag is Action.CREATE:
        _require(payload, "payload")
        return CreateOperation(
            target_id=target_id,
            payload=dict(payload),  # type: ignore[arg-type]
            op_id=op_id,
            enqueued_at=enqueued_at,
            seq=seq,
        )

    if tag is Action.UPDATE:
        _require(payload, "payload")
        return UpdateOperation(
            target_id=target_id,
            payload=dict(payload),  # type: ignore[arg-type]
            op_id=op_id,
            enqueued_at=enqueued_at,
            seq=seq,
        )

    if tag is Action.DELETE:
        return DeleteOperation(
            target_id=target_id,
            op_id=op_id,
            enqueued_at=enqueued_at,
            seq=seq,
        )

    raise ValueError(f"Unsupported action: {tag}")


def _require(value: object, field_name: str) -> None:
    if value is None:
        raise ValueError(f"Missing required field: {field_name}")
