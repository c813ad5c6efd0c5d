"""Public operation exports for catalogsync."""

from __future__ import annotations

from .actions import Action
from .operation import (
    CreateOperation,
    DeleteOperation,
    Operation,
    UpdateOperation,
    operation_from_record,
    with_seq,
)

__all__ = [
    "Action",
    "Operation",
    "CreateOperation",
    "UpdateOperation",
    "DeleteOperation",
    "operation_from_record",
    "with_seq",
]
