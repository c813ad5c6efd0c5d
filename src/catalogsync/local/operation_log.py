"""Pending Operation Log: durable FIFO of unacknowledged mutations."""

from __future__ import annotations

import json
import sqlite3
from typing import Iterable

from catalogsync.errors import CatalogSyncError
from catalogsync.models import RejectedOperation
from catalogsync.ops import Operation, operation_from_record, with_seq
from catalogsync.util.time import coerce_timestamp, now_utc, to_rfc3339

from .database import LocalDatabase


class OperationLog:
    """
    Append-only queue of Operations ordered by insertion sequence.

    Besides the queue itself the log owns two durable side collections:
        - the temp_id -> server_id map of acknowledged creates
        - operations the backend rejected permanently
    """

    def __init__(self, db: LocalDatabase) -> None:
        self._db = db

    async def enqueue(self, op: Operation) -> Operation:
        """Append op; returns it carrying its assigned seq."""
        return await self._db.run(lambda conn: append_operation(conn, op))

    async def peek_all(self) -> list[Operation]:
        return await self._db.run(fetch_operations)

    async def remove_all(self, op_ids: Iterable[str]) -> None:
        ids = list(op_ids)
        if not ids:
            return
        await self._db.run(lambda conn: delete_operations(conn, ids))

    async def is_empty(self) -> bool:
        return await self.count() == 0

    async def count(self) -> int:
        return await self._db.run(
            lambda conn: conn.execute("SELECT COUNT(*) FROM operations").fetchone()[0]
        )

    # ----------------------------
    # id map
    # ----------------------------
    async def id_map(self) -> dict[str, str]:
        return await self._db.run(fetch_id_map)

    # ----------------------------
    # rejected operations
    # ----------------------------
    async def reject(self, op: Operation, error: CatalogSyncError) -> None:
        """Move op out of the queue into the rejected collection (one transaction)."""
        await self._db.run(lambda conn: reject_operation(conn, op, error))

    async def list_rejected(self) -> list[RejectedOperation]:
        return await self._db.run(fetch_rejected)

    async def discard_rejected(self, op_id: str) -> bool:
        def work(conn: sqlite3.Connection) -> bool:
            cur = conn.execute("DELETE FROM rejected_operations WHERE op_id = ?", (op_id,))
            return cur.rowcount > 0

        return await self._db.run(work)

    async def pending_entity_ids(self) -> set[str]:
        """Entity ids referenced by queued or rejected operations, after remapping."""
        return await self._db.run(fetch_pending_entity_ids)


# ----------------------------
# Row helpers (usable inside any transaction)
# ----------------------------
def append_operation(conn: sqlite3.Connection, op: Operation) -> Operation:
    cur = conn.execute(
        "INSERT INTO operations (op_id, action, target_id, payload, enqueued_at) "
        "VALUES (?, ?, ?, ?, ?)",
        (
            op.op_id,
            op.action.value,
            op.target_id,
            _dump_payload(op.payload),
            to_rfc3339(op.enqueued_at),
        ),
    )
    return with_seq(op, int(cur.lastrowid))


def fetch_operations(conn: sqlite3.Connection) -> list[Operation]:
    rows = conn.execute(
        "SELECT seq, op_id, action, target_id, payload, enqueued_at "
        "FROM operations ORDER BY seq"
    ).fetchall()
    return [_row_to_operation(row) for row in rows]


def delete_operations(conn: sqlite3.Connection, op_ids: list[str]) -> None:
    conn.executemany("DELETE FROM operations WHERE op_id = ?", [(i,) for i in op_ids])


def fetch_id_map(conn: sqlite3.Connection) -> dict[str, str]:
    rows = conn.execute("SELECT temp_id, server_id FROM id_map").fetchall()
    return {row["temp_id"]: row["server_id"] for row in rows}


def lookup_mapping(conn: sqlite3.Connection, temp_id: str) -> str | None:
    row = conn.execute("SELECT server_id FROM id_map WHERE temp_id = ?", (temp_id,)).fetchone()
    return row["server_id"] if row is not None else None


def save_mapping(conn: sqlite3.Connection, temp_id: str, server_id: str) -> None:
    conn.execute(
        "INSERT OR REPLACE INTO id_map (temp_id, server_id, mapped_at) VALUES (?, ?, ?)",
        (temp_id, server_id, to_rfc3339(now_utc())),
    )


def queued_reference_exists(conn: sqlite3.Connection, entity_id: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM operations WHERE target_id = ? "
        "OR target_id IN (SELECT temp_id FROM id_map WHERE server_id = ?) LIMIT 1",
        (entity_id, entity_id),
    ).fetchone()
    return row is not None


def pending_reference_exists(conn: sqlite3.Connection, entity_id: str) -> bool:
    """Queued or rejected operation targets entity_id (directly or via its temp id)."""
    if queued_reference_exists(conn, entity_id):
        return True
    row = conn.execute(
        "SELECT 1 FROM rejected_operations WHERE target_id = ? "
        "OR target_id IN (SELECT temp_id FROM id_map WHERE server_id = ?) LIMIT 1",
        (entity_id, entity_id),
    ).fetchone()
    return row is not None


def fetch_pending_entity_ids(conn: sqlite3.Connection) -> set[str]:
    mapping = fetch_id_map(conn)
    rows = conn.execute(
        "SELECT target_id FROM operations UNION SELECT target_id FROM rejected_operations"
    ).fetchall()
    return {mapping.get(row["target_id"], row["target_id"]) for row in rows}


def reject_operation(conn: sqlite3.Connection, op: Operation, error: CatalogSyncError) -> None:
    conn.execute("DELETE FROM operations WHERE op_id = ?", (op.op_id,))
    conn.execute(
        "INSERT OR REPLACE INTO rejected_operations "
        "(op_id, seq, action, target_id, payload, enqueued_at, error_type, error_message, rejected_at) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            op.op_id,
            op.seq,
            op.action.value,
            op.target_id,
            _dump_payload(op.payload),
            to_rfc3339(op.enqueued_at),
            error.__class__.__name__,
            str(error),
            to_rfc3339(now_utc()),
        ),
    )


def fetch_rejected(conn: sqlite3.Connection) -> list[RejectedOperation]:
    rows = conn.execute(
        "SELECT op_id, seq, action, target_id, payload, enqueued_at, "
        "error_type, error_message, rejected_at "
        "FROM rejected_operations ORDER BY rejected_at, seq"
    ).fetchall()
    return [
        RejectedOperation(
            operation=_row_to_operation(row),
            error_type=row["error_type"],
            error_message=row["error_message"],
            rejected_at=coerce_timestamp(row["rejected_at"]),
        )
        for row in rows
    ]


def _dump_payload(payload: object) -> str | None:
    if payload is None:
        return None
    return json.dumps(payload, sort_keys=True)


def _row_to_operation(row: sqlite3.Row) -> Operation:
    raw = row["payload"]
    return operation_from_record(
        action=row["action"],
        op_id=row["op_id"],
        target_id=row["target_id"],
        payload=json.loads(raw) if raw is not None else None,
        enqueued_at=coerce_timestamp(row["enqueued_at"]),
        seq=row["seq"],
    )
