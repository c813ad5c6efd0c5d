"""Sync engine exports for catalogsync."""

from __future__ import annotations

from .connectivity import ConnectivitySignal
from .orchestrator import SyncOrchestrator
from .reconciler import MergePlan, Reconciler
from .state import SyncState

__all__ = [
    "ConnectivitySignal",
    "SyncOrchestrator",
    "Reconciler",
    "MergePlan",
    "SyncState",
]
