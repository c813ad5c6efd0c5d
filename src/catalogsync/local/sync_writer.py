"""Writes that span the entity table and the operation log in one transaction."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Container, Mapping, Optional

from catalogsync.models import Entity, SyncStatus
from catalogsync.ops import DeleteOperation, Operation, UpdateOperation

from .database import LocalDatabase
from .entity_store import (
    delete_entity,
    fetch_entity,
    insert_entity,
    set_sync_status,
    upsert_entity,
)
from .operation_log import (
    append_operation,
    delete_operations,
    lookup_mapping,
    pending_reference_exists,
    queued_reference_exists,
    save_mapping,
)
from .validators import validate_exists

if TYPE_CHECKING:
    from catalogsync.sync.reconciler import Reconciler


class SyncWriter:
    """Atomic multi-step writes used by the sync cycle and the catalog."""

    def __init__(self, db: LocalDatabase, reconciler: Reconciler) -> None:
        self._db = db
        self._reconciler = reconciler

    async def stage(
        self,
        op: Operation,
        *,
        entity: Optional[Entity] = None,
        insert: bool = False,
    ) -> tuple[Operation, bool]:
        """
        Write the local record and enqueue op together.

        Returns:
            (op with its seq, whether an earlier queued op already referenced
            the target).

        Raises:
            IdentifierConflictError: insert=True and entity.id is taken.
        """

        def work(conn: sqlite3.Connection) -> tuple[Operation, bool]:
            referenced = queued_reference_exists(conn, op.target_id)
            if entity is not None:
                if insert:
                    insert_entity(conn, entity)
                else:
                    upsert_entity(conn, entity)
            return append_operation(conn, op), referenced

        return await self._db.run(work)

    async def stage_update(
        self,
        entity_id: str,
        fields: Mapping[str, Any],
    ) -> tuple[Operation, Entity, bool]:
        """
        Apply fields to the current record and enqueue the update together.

        A temporary id that a cycle already promoted is redirected to its
        server id, so the write never lands on a stale record.

        Returns:
            (queued op, updated entity, whether an earlier queued op already
            referenced the target).

        Raises:
            LocalValidationError: no record exists under entity_id.
        """

        def work(conn: sqlite3.Connection) -> tuple[Operation, Entity, bool]:
            target = self._resolve(conn, entity_id)
            current = validate_exists(fetch_entity(conn, target), entity_id, "Entity")
            entity = replace(current.with_fields(fields), sync_status=SyncStatus.PENDING)
            referenced = queued_reference_exists(conn, target)
            upsert_entity(conn, entity)
            op = UpdateOperation(target_id=target, payload=entity.fields())
            return append_operation(conn, op), entity, referenced

        return await self._db.run(work)

    async def stage_delete(self, entity_id: str) -> tuple[Operation, bool]:
        """
        Remove the current record and enqueue the delete together.

        Redirects promoted temporary ids like stage_update.

        Raises:
            LocalValidationError: no record exists under entity_id.
        """

        def work(conn: sqlite3.Connection) -> tuple[Operation, bool]:
            target = self._resolve(conn, entity_id)
            validate_exists(fetch_entity(conn, target), entity_id, "Entity")
            referenced = queued_reference_exists(conn, target)
            delete_entity(conn, target)
            return append_operation(conn, DeleteOperation(target_id=target)), referenced

        return await self._db.run(work)

    async def acknowledge_create(
        self,
        temp_id: str,
        server_id: str,
        *,
        op_id: Optional[str] = None,
    ) -> Optional[Entity]:
        """
        Promote the record under temp_id to server_id.

        Order inside the transaction is insert-then-delete. The acknowledged
        op (if any) is removed and the mapping recorded in the same commit.
        Returns the promoted Entity, or None if temp_id was deleted locally
        meanwhile (only the mapping is recorded then).
        """

        def work(conn: sqlite3.Connection) -> Optional[Entity]:
            if op_id is not None:
                delete_operations(conn, [op_id])
            save_mapping(conn, temp_id, server_id)

            local = fetch_entity(conn, temp_id)
            if local is None:
                return None

            still_queued = queued_reference_exists(conn, temp_id)
            status = SyncStatus.PENDING if still_queued else SyncStatus.SYNCED
            promoted = replace(local, id=server_id, sync_status=status)
            upsert_entity(conn, promoted)
            delete_entity(conn, temp_id)
            return promoted

        return await self._db.run(work)

    async def complete(self, op: Operation, *, remove_entity: Optional[str] = None) -> None:
        """Drop an acknowledged op (and the deleted entity's record) together."""

        def work(conn: sqlite3.Connection) -> None:
            delete_operations(conn, [op.op_id])
            if remove_entity is not None:
                delete_entity(conn, remove_entity)

        await self._db.run(work)

    async def settle(self, entity_id: str) -> bool:
        """Mark entity_id synced if nothing queued or rejected references it."""

        def work(conn: sqlite3.Connection) -> bool:
            current = fetch_entity(conn, entity_id)
            if current is None or current.sync_status is not SyncStatus.PENDING:
                return False
            if pending_reference_exists(conn, entity_id):
                return False
            set_sync_status(conn, entity_id, SyncStatus.SYNCED)
            return True

        return await self._db.run(work)

    async def mark(self, entity_id: str, status: SyncStatus) -> None:
        await self._db.run(lambda conn: set_sync_status(conn, entity_id, status))

    async def merge_remote(self, entity: Entity) -> bool:
        """Overwrite the local record with the remote one unless pending work exists."""

        def work(conn: sqlite3.Connection) -> bool:
            local = fetch_entity(conn, entity.id)
            has_pending = pending_reference_exists(conn, entity.id)
            if not self._reconciler.should_overwrite_with_remote(local, has_pending):
                return False
            upsert_entity(conn, replace(entity, sync_status=SyncStatus.SYNCED))
            return True

        return await self._db.run(work)

    async def drop_if_gone(self, entity_id: str, remote_ids: Container[str]) -> bool:
        """Delete a local record the backend no longer has, unless pending work exists."""

        def work(conn: sqlite3.Connection) -> bool:
            local = fetch_entity(conn, entity_id)
            if local is None:
                return False
            has_pending = pending_reference_exists(conn, entity_id)
            if not self._reconciler.should_delete_local(local, remote_ids, has_pending):
                return False
            delete_entity(conn, entity_id)
            return True

        return await self._db.run(work)

    def _resolve(self, conn: sqlite3.Connection, entity_id: str) -> str:
        if not self._reconciler.is_temporary(entity_id):
            return entity_id
        return lookup_mapping(conn, entity_id) or entity_id
