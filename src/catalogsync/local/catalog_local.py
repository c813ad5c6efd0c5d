"""CatalogLocal: user-facing catalog writes (local first, remote when possible)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Awaitable, Mapping, Optional

from catalogsync.errors import (
    AuthError,
    IdentifierConflictError,
    NotFoundError,
    PermanentError,
    RequestTimeoutError,
    TransientError,
)
from catalogsync.models import Entity, RejectedOperation, SyncStatus
from catalogsync.ops import CreateOperation, DeleteOperation, Operation
from catalogsync.remote.base import RemoteSyncClient
from catalogsync.remote.wire import DEFAULT_COLLECTION, created_id, to_wire
from catalogsync.util.ids import new_temp_id

from .entity_store import EntityStore
from .operation_log import OperationLog
from .sync_writer import SyncWriter
from .validators import validate_fields

if TYPE_CHECKING:
    from catalogsync.sync.connectivity import ConnectivitySignal
    from catalogsync.sync.orchestrator import SyncOrchestrator
    from catalogsync.sync.reconciler import Reconciler

logger = logging.getLogger(__name__)

MAX_TEMP_ID_ATTEMPTS = 5


class CatalogLocal:
    """
    Catalog API for the application.

    Every write lands in the local store together with its queued operation,
    so the UI reflects it at once and nothing is lost on a crash. When online
    and no cycle is running, the operation is also sent right away:
        - success: the queued op is dropped and the record is marked synced
        - transient failure: the op stays queued for the next cycle
        - AuthError: the op stays queued and the error is re-raised
        - permanent failure: the op is moved to the rejected list and re-raised

    Updates and deletes wait for the next cycle when the target is still
    temporary or an earlier queued op references it.
    """

    def __init__(
        self,
        store: EntityStore,
        log: OperationLog,
        writer: SyncWriter,
        client: RemoteSyncClient,
        connectivity: ConnectivitySignal,
        orchestrator: SyncOrchestrator,
        *,
        reconciler: Reconciler,
        collection: str = DEFAULT_COLLECTION,
        request_timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._log = log
        self._writer = writer
        self._client = client
        self._connectivity = connectivity
        self._orchestrator = orchestrator
        self._reconciler = reconciler
        self._collection = collection
        self._request_timeout = request_timeout

    # ----------------------------
    # Read APIs
    # ----------------------------
    async def get(self, entity_id: str) -> Optional[Entity]:
        return await self._store.get(entity_id)

    async def list(self) -> list[Entity]:
        return await self._store.list()

    async def pending_sync(self) -> bool:
        """Aggregate indicator: True while any operation waits in the log."""
        return not await self._log.is_empty()

    async def rejected(self) -> list[RejectedOperation]:
        """Operations the backend refused; the user may re-edit or discard them."""
        return await self._log.list_rejected()

    async def discard_rejected(self, op_id: str) -> bool:
        """Forget a rejected op so the next pull may overwrite its entity."""
        return await self._log.discard_rejected(op_id)

    # ----------------------------
    # Write APIs
    # ----------------------------
    async def create(self, fields: Mapping[str, Any]) -> Entity:
        """
        Create an entity under a fresh temporary id.

        Returns:
            The entity under its server id if the backend acknowledged it
            immediately, otherwise the pending temporary record.
        """
        validate_fields(fields)

        for attempt in range(1, MAX_TEMP_ID_ATTEMPTS + 1):
            temp_id = new_temp_id(self._reconciler.temp_prefix)
            entity = replace(
                Entity.from_dict(fields, entity_id=temp_id),
                sync_status=SyncStatus.PENDING,
            )
            op = CreateOperation(target_id=temp_id, payload=entity.fields())
            try:
                op, _ = await self._writer.stage(op, entity=entity, insert=True)
                break
            except IdentifierConflictError:
                logger.warning("Temporary id collision on %s (attempt %d)", temp_id, attempt)
        else:
            raise IdentifierConflictError(
                "Could not allocate a temporary id",
                details={"attempts": MAX_TEMP_ID_ATTEMPTS},
            )

        if not self._can_send_now():
            return entity

        sent, body = await self._send(
            op,
            self._client.create(
                self._collection,
                to_wire(op.payload),
                idempotency_key=op.op_id,
            ),
        )
        if not sent:
            return entity
        try:
            server_id = created_id(body, op_id=op.op_id)
        except PermanentError as exc:
            logger.error("Create of %s acknowledged without an id", temp_id)
            await self._log.reject(op, exc)
            raise

        promoted = await self._writer.acknowledge_create(temp_id, server_id, op_id=op.op_id)
        return promoted or entity

    async def update(self, entity_id: str, fields: Mapping[str, Any]) -> Entity:
        validate_fields(fields)
        op, entity, referenced = await self._writer.stage_update(entity_id, fields)
        target = op.target_id

        if referenced or self._reconciler.is_temporary(target) or not self._can_send_now():
            return entity

        sent, _ = await self._send(
            op,
            self._client.update(self._collection, target, to_wire(op.payload)),
        )
        if not sent:
            return entity

        await self._writer.complete(op)
        if await self._writer.settle(target):
            return replace(entity, sync_status=SyncStatus.SYNCED)
        return entity

    async def delete(self, entity_id: str) -> None:
        op, referenced = await self._writer.stage_delete(entity_id)
        target = op.target_id

        if referenced or self._reconciler.is_temporary(target) or not self._can_send_now():
            return

        sent, _ = await self._send(op, self._client.delete(self._collection, target))
        if sent:
            await self._writer.complete(op)

    # ----------------------------
    # Internals
    # ----------------------------
    def _can_send_now(self) -> bool:
        return self._connectivity.is_online and not self._orchestrator.is_busy

    async def _send(self, op: Operation, call: Awaitable[Any]) -> tuple[bool, Any]:
        """
        Send op's remote call right away.

        Returns:
            (True, response) when the backend applied it, (False, None) when the
            op stays queued after a transient failure.
        """
        try:
            return True, await self._with_timeout(call)
        except TransientError as exc:
            logger.info(
                "Immediate %s of %s failed (%s); queued for sync",
                op.action.value,
                op.target_id,
                exc,
            )
            return False, None
        except AuthError:
            logger.warning(
                "Immediate %s of %s unauthorized; queued for sync",
                op.action.value,
                op.target_id,
            )
            raise
        except PermanentError as exc:
            if isinstance(exc, NotFoundError) and isinstance(op, DeleteOperation):
                logger.debug("Entity %s already deleted remotely", op.target_id)
                return True, None
            logger.error("Backend rejected %s of %s: %s", op.action.value, op.target_id, exc)
            await self._log.reject(op, exc)
            raise

    async def _with_timeout(self, call: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(call, timeout=self._request_timeout)
        except asyncio.TimeoutError as exc:
            raise RequestTimeoutError(
                "Remote call timed out",
                details={"timeout": self._request_timeout},
                cause=exc,
            ) from exc
