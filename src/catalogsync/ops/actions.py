"""Operation actions for catalogsync."""

from __future__ import annotations

from enum import Enum


class Action(str, Enum):
    """Persisted tag of a queued mutation."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
