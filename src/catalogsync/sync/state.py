"""Sync orchestrator states."""

from __future__ import annotations

from enum import Enum


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    MERGING = "merging"
