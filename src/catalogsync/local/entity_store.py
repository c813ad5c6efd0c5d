"""Local Entity Store: durable entity records keyed by id."""

from __future__ import annotations

import sqlite3
from typing import Optional

from catalogsync.errors import IdentifierConflictError
from catalogsync.models import Entity, SyncStatus
from catalogsync.util.time import coerce_timestamp, to_rfc3339

from .database import LocalDatabase

_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "description",
    "price",
    "stock",
    "image",
    "enabled",
    "sync_status",
    "timestamp",
)


class EntityStore:
    """
    Async key-value view over the `entities` table.

    Each call is one transaction, so no partially written Entity is ever
    observable. put() is an upsert; insert() refuses to overwrite.
    """

    def __init__(self, db: LocalDatabase) -> None:
        self._db = db

    async def get(self, entity_id: str) -> Optional[Entity]:
        return await self._db.run(lambda conn: fetch_entity(conn, entity_id))

    async def put(self, entity: Entity) -> None:
        await self._db.run(lambda conn: upsert_entity(conn, entity))

    async def insert(self, entity: Entity) -> None:
        """
        Insert a new record.

        Raises:
            IdentifierConflictError: if a record with entity.id already exists.
        """
        await self._db.run(lambda conn: insert_entity(conn, entity))

    async def delete(self, entity_id: str) -> None:
        await self._db.run(lambda conn: delete_entity(conn, entity_id))

    async def list(self) -> list[Entity]:
        return await self._db.run(list_entities)

    async def count(self) -> int:
        return await self._db.run(
            lambda conn: conn.execute("SELECT COUNT(*) FROM entities").fetchone()[0]
        )


# ----------------------------
# Row helpers (usable inside any transaction)
# ----------------------------
def fetch_entity(conn: sqlite3.Connection, entity_id: str) -> Optional[Entity]:
    row = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM entities WHERE id = ?",
        (entity_id,),
    ).fetchone()
    return _row_to_entity(row) if row is not None else None


def list_entities(conn: sqlite3.Connection) -> list[Entity]:
    rows = conn.execute(f"SELECT {', '.join(_COLUMNS)} FROM entities ORDER BY id").fetchall()
    return [_row_to_entity(row) for row in rows]


def upsert_entity(conn: sqlite3.Connection, entity: Entity) -> None:
    placeholders = ", ".join("?" for _ in _COLUMNS)
    conn.execute(
        f"INSERT OR REPLACE INTO entities ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
        _entity_to_row(entity),
    )


def insert_entity(conn: sqlite3.Connection, entity: Entity) -> None:
    placeholders = ", ".join("?" for _ in _COLUMNS)
    try:
        conn.execute(
            f"INSERT INTO entities ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            _entity_to_row(entity),
        )
    except sqlite3.IntegrityError as exc:
        raise IdentifierConflictError(
            "Entity id already exists",
            details={"id": entity.id},
            cause=exc,
        ) from exc


def delete_entity(conn: sqlite3.Connection, entity_id: str) -> None:
    conn.execute("DELETE FROM entities WHERE id = ?", (entity_id,))


def set_sync_status(conn: sqlite3.Connection, entity_id: str, status: SyncStatus) -> None:
    conn.execute(
        "UPDATE entities SET sync_status = ? WHERE id = ?",
        (status.value, entity_id),
    )


def _entity_to_row(entity: Entity) -> tuple[object, ...]:
    return (
        entity.id,
        entity.name,
        entity.description,
        float(entity.price),
        int(entity.stock),
        entity.image,
        1 if entity.enabled else 0,
        entity.sync_status.value,
        to_rfc3339(entity.timestamp),
    )


def _row_to_entity(row: sqlite3.Row) -> Entity:
    try:
        status = SyncStatus(row["sync_status"])
    except ValueError:
        status = SyncStatus.PENDING
    return Entity(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        price=float(row["price"]),
        stock=int(row["stock"]),
        image=row["image"],
        enabled=bool(row["enabled"]),
        sync_status=status,
        timestamp=coerce_timestamp(row["timestamp"]),
    )
