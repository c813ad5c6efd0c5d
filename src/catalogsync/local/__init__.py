"""Local persistence and user-facing catalog writes."""

from __future__ import annotations

from .catalog_local import CatalogLocal
from .database import SCHEMA_VERSION, LocalDatabase
from .entity_store import EntityStore
from .operation_log import OperationLog
from .sync_writer import SyncWriter

__all__ = [
    "CatalogLocal",
    "LocalDatabase",
    "SCHEMA_VERSION",
    "EntityStore",
    "OperationLog",
    "SyncWriter",
]
