"""SyncOrchestrator: replays the operation log, then pulls and merges (single-flight)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from catalogsync.errors import (
    CatalogSyncError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermanentError,
    RequestTimeoutError,
    TransientError,
)
from catalogsync.local.entity_store import EntityStore
from catalogsync.local.operation_log import OperationLog
from catalogsync.local.sync_writer import SyncWriter
from catalogsync.models import Entity, OperationResult, SyncResult, SyncStatus
from catalogsync.ops import CreateOperation, DeleteOperation, Operation, UpdateOperation
from catalogsync.remote.base import RemoteSyncClient
from catalogsync.remote.wire import DEFAULT_COLLECTION, created_id, from_wire, to_wire

from .connectivity import ConnectivitySignal
from .reconciler import Reconciler
from .state import SyncState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _CycleContext:
    id_map: dict[str, str] = field(default_factory=dict)
    blocked: set[str] = field(default_factory=set)
    touched: set[str] = field(default_factory=set)
    results: list[OperationResult] = field(default_factory=list)
    interrupted: bool = False


class SyncOrchestrator:
    """
    Drives sync cycles: idle -> syncing -> merging -> idle.

    Policy:
        - Single-flight: a trigger while a cycle runs is a no-op (returns None).
        - Operations replay in enqueue order from a snapshot taken at cycle start.
        - Transient failures keep the op queued and hold back later ops on the
          same entity (temp and server ids count as one entity); permanent
          failures move the op to the rejected list.
        - AuthError and storage failures abort the cycle and propagate.
        - Pull-and-merge runs only when replay left the log empty.
    """

    def __init__(
        self,
        store: EntityStore,
        log: OperationLog,
        writer: SyncWriter,
        client: RemoteSyncClient,
        connectivity: ConnectivitySignal,
        *,
        reconciler: Optional[Reconciler] = None,
        collection: str = DEFAULT_COLLECTION,
        request_timeout: float = 10.0,
        on_state_change: Optional[Callable[[SyncState], None]] = None,
    ) -> None:
        self._store = store
        self._log = log
        self._writer = writer
        self._client = client
        self._connectivity = connectivity
        self._reconciler = reconciler or Reconciler()
        self._collection = collection
        self._request_timeout = request_timeout
        self._on_state_change = on_state_change
        self._state = SyncState.IDLE
        self.last_result: Optional[SyncResult] = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state is not SyncState.IDLE

    async def sync_now(self) -> Optional[SyncResult]:
        """
        Run one cycle if idle and online.

        Returns:
            SyncResult of the cycle, or None if skipped (busy or offline).
        """
        if self.is_busy:
            logger.debug("Sync already %s; trigger ignored", self._state.value)
            return None
        if not self._connectivity.is_online:
            logger.debug("Offline; sync trigger ignored")
            return None

        self._set_state(SyncState.SYNCING)
        try:
            ctx = _CycleContext()
            await self._replay(ctx)

            self._set_state(SyncState.MERGING)
            merged = False
            if not ctx.interrupted and self._connectivity.is_online and await self._log.is_empty():
                merged = await self._pull_and_merge()

            result = _build_result(ctx, merged)
            self.last_result = result
            logger.info(
                "Sync cycle finished: %s (merged=%s, interrupted=%s)",
                result.summary,
                merged,
                ctx.interrupted,
            )
            return result
        finally:
            self._set_state(SyncState.IDLE)

    # ----------------------------
    # syncing
    # ----------------------------
    async def _replay(self, ctx: _CycleContext) -> None:
        ops = await self._log.peek_all()
        ctx.id_map.update(await self._log.id_map())
        if ops:
            logger.info("Replaying %d queued operations", len(ops))

        for index, op in enumerate(ops):
            if not self._connectivity.is_online:
                ctx.interrupted = True
                logger.info(
                    "Connectivity lost; %d operations left for the next cycle",
                    len(ops) - index,
                )
                break

            # Ops on the same entity share a key whether they name it by temp or server id.
            key = self._reconciler.remap(op.target_id, ctx.id_map)
            if key in ctx.blocked:
                ctx.results.append(_result(op, "skipped"))
                continue

            try:
                result_id = await self._apply_one(op, ctx)
            except TransientError as exc:
                ctx.blocked.add(key)
                logger.warning(
                    "Transient failure on %s %s (%s); keeping it queued",
                    op.action.value,
                    op.target_id,
                    exc,
                )
                ctx.results.append(_result(op, "deferred", exc))
                continue
            except PermanentError as exc:
                await self._reject(op, exc, ctx)
                ctx.results.append(_result(op, "rejected", exc))
                continue

            ctx.results.append(_result(op, "success", result_id=result_id))

        for entity_id in sorted(ctx.touched):
            await self._writer.settle(entity_id)

    async def _apply_one(self, op: Operation, ctx: _CycleContext) -> Optional[str]:
        """Apply one operation remotely and record it locally. Raises on failure."""
        if isinstance(op, CreateOperation):
            return await self._apply_create(op, ctx)

        target = self._reconciler.remap(op.target_id, ctx.id_map)
        if self._reconciler.is_temporary(target):
            raise PermanentError(
                "Target was never created remotely",
                details={"op_id": op.op_id, "target_id": op.target_id},
            )

        if isinstance(op, UpdateOperation):
            await self._call(self._client.update(self._collection, target, to_wire(op.payload)))
            await self._writer.complete(op)
            ctx.touched.add(target)
            return target

        if isinstance(op, DeleteOperation):
            try:
                await self._call(self._client.delete(self._collection, target))
            except NotFoundError:
                logger.debug("Entity %s already deleted remotely", target)
            await self._writer.complete(op, remove_entity=target)
            return target

        raise InvalidStateError("Unsupported operation", details={"op_id": op.op_id})

    async def _apply_create(self, op: CreateOperation, ctx: _CycleContext) -> str:
        known = ctx.id_map.get(op.target_id)
        if known is not None:
            # Mapping already recorded: finish the promotion, never resend.
            logger.info("Create for %s already acknowledged as %s", op.target_id, known)
            await self._writer.acknowledge_create(op.target_id, known, op_id=op.op_id)
            ctx.touched.add(known)
            return known

        body = await self._call(
            self._client.create(
                self._collection,
                to_wire(op.payload),
                idempotency_key=op.op_id,
            )
        )
        server_id = created_id(body, op_id=op.op_id)

        await self._writer.acknowledge_create(op.target_id, server_id, op_id=op.op_id)
        ctx.id_map[op.target_id] = server_id
        ctx.touched.add(server_id)
        logger.info("Created %s remotely as %s", op.target_id, server_id)
        return server_id

    async def _reject(self, op: Operation, exc: PermanentError, ctx: _CycleContext) -> None:
        logger.error(
            "Backend rejected %s %s: %s",
            op.action.value,
            op.target_id,
            exc,
        )
        await self._log.reject(op, exc)
        if isinstance(exc, ConflictError):
            target = self._reconciler.remap(op.target_id, ctx.id_map)
            await self._writer.mark(target, SyncStatus.CONFLICT)

    # ----------------------------
    # merging
    # ----------------------------
    async def _pull_and_merge(self) -> bool:
        try:
            raw = await self._call(self._client.list(self._collection))
        except TransientError as exc:
            logger.warning("Pull failed (%s); keeping local state", exc)
            return False

        remote: list[Entity] = []
        for item in raw:
            try:
                remote.append(from_wire(item))
            except ValueError:
                logger.warning("Skipping remote entity without id: %r", item)

        local = await self._store.list()
        pending = await self._log.pending_entity_ids()
        plan = self._reconciler.plan_merge(local, remote, pending)

        remote_ids = {entity.id for entity in remote}
        for entity in plan.upserts:
            await self._writer.merge_remote(entity)
        for entity_id in plan.deletions:
            await self._writer.drop_if_gone(entity_id, remote_ids)

        logger.info(
            "Merged %d remote entities (%d kept local, %d removed)",
            len(plan.upserts),
            len(plan.kept),
            len(plan.deletions),
        )
        return True

    # ----------------------------
    # Internals
    # ----------------------------
    async def _call(self, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._request_timeout)
        except asyncio.TimeoutError as exc:
            raise RequestTimeoutError(
                "Remote call timed out",
                details={"timeout": self._request_timeout},
                cause=exc,
            ) from exc

    def _set_state(self, state: SyncState) -> None:
        if state is self._state:
            return
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)


def _result(
    op: Operation,
    status: str,
    exc: Optional[CatalogSyncError] = None,
    *,
    result_id: Optional[str] = None,
) -> OperationResult:
    return OperationResult(
        op_id=op.op_id,
        seq=op.seq if op.seq is not None else -1,
        action=op.action.value,
        target_id=op.target_id,
        status=status,  # type: ignore[arg-type]
        error_type=exc.__class__.__name__ if exc is not None else None,
        error_message=str(exc) if exc is not None else None,
        error_details=dict(exc.details) if exc is not None else None,
        result_id=result_id,
    )


def _build_result(ctx: _CycleContext, merged: bool) -> SyncResult:
    summary: dict[str, int] = {"success": 0, "deferred": 0, "rejected": 0, "skipped": 0}
    for r in ctx.results:
        summary[r.status] = summary.get(r.status, 0) + 1

    clean = summary["success"] == len(ctx.results) and not ctx.interrupted and merged
    return SyncResult(
        status="success" if clean else "partial",
        results=ctx.results,
        id_map=dict(ctx.id_map),
        summary=summary,
        merged=merged,
        interrupted=ctx.interrupted,
    )
