"""CatalogSyncManager: owns the engine's components and their lifecycle."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from catalogsync.auth import AuthInfo
from catalogsync.config import SyncConfig
from catalogsync.errors import AuthError, InvalidStateError
from catalogsync.local import CatalogLocal, EntityStore, LocalDatabase, OperationLog, SyncWriter
from catalogsync.models import SyncResult
from catalogsync.remote import RemoteSyncClient, RestSyncClient, RetryPolicy
from catalogsync.sync import ConnectivitySignal, Reconciler, SyncOrchestrator

logger = logging.getLogger(__name__)

AuthErrorHandler = Callable[[AuthError], None]


class CatalogSyncManager:
    """
    High-level entry point: local catalog + background sync.

    Usage:
        async with CatalogSyncManager(SyncConfig.from_env()) as manager:
            manager.connectivity.set_online(True)
            await manager.catalog.create({"name": "Mate", "price": 12.5})

    Background cycles run when connectivity comes back and on a periodic
    timer. Their failures are logged; AuthError is also forwarded to
    on_auth_error so the host can re-authenticate.
    """

    def __init__(
        self,
        config: Optional[SyncConfig] = None,
        *,
        connectivity: Optional[ConnectivitySignal] = None,
        on_auth_error: Optional[AuthErrorHandler] = None,
    ) -> None:
        config = config or SyncConfig()
        auth_info = AuthInfo.bearer(config.token) if config.token else None
        client = RestSyncClient(
            config.base_url,
            auth_info=auth_info,
            timeout=config.request_timeout,
            retry_policy=_retry_policy(config),
        )
        self._setup(config, client, True, connectivity, on_auth_error)

    @classmethod
    def from_client(
        cls,
        client: RemoteSyncClient,
        *,
        config: Optional[SyncConfig] = None,
        connectivity: Optional[ConnectivitySignal] = None,
        on_auth_error: Optional[AuthErrorHandler] = None,
    ) -> CatalogSyncManager:
        """Create manager with an injected remote client (useful for tests)."""
        obj = cls.__new__(cls)
        obj._setup(config or SyncConfig(), client, False, connectivity, on_auth_error)
        return obj

    def _setup(
        self,
        config: SyncConfig,
        client: RemoteSyncClient,
        owns_client: bool,
        connectivity: Optional[ConnectivitySignal],
        on_auth_error: Optional[AuthErrorHandler],
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = owns_client
        self._connectivity = connectivity or ConnectivitySignal()
        self._on_auth_error = on_auth_error

        reconciler = Reconciler(config.temp_id_prefix)
        # The client retries inside one call; the outer budget must cover every attempt.
        call_timeout = _retry_policy(config).call_budget(config.request_timeout)
        self._db = LocalDatabase(config.db_path)
        self._store = EntityStore(self._db)
        self._log = OperationLog(self._db)
        self._writer = SyncWriter(self._db, reconciler)
        self._orchestrator = SyncOrchestrator(
            self._store,
            self._log,
            self._writer,
            client,
            self._connectivity,
            reconciler=reconciler,
            collection=config.collection,
            request_timeout=call_timeout,
        )
        self._catalog = CatalogLocal(
            self._store,
            self._log,
            self._writer,
            client,
            self._connectivity,
            self._orchestrator,
            reconciler=reconciler,
            collection=config.collection,
            request_timeout=call_timeout,
        )

        self._tasks: set[asyncio.Task[None]] = set()
        self._timer: Optional[asyncio.Task[None]] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._opened = False

    # ----------------------------
    # Properties
    # ----------------------------
    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def catalog(self) -> CatalogLocal:
        """Return the catalog API. Requires open() first."""
        self._require_open()
        return self._catalog

    @property
    def orchestrator(self) -> SyncOrchestrator:
        return self._orchestrator

    @property
    def connectivity(self) -> ConnectivitySignal:
        return self._connectivity

    @property
    def is_open(self) -> bool:
        return self._opened

    # ----------------------------
    # Lifecycle
    # ----------------------------
    async def open(self) -> None:
        """
        Open the local database, then start listening for connectivity and the
        periodic timer. A cycle is scheduled right away when already online.
        """
        if self._opened:
            return

        await asyncio.to_thread(self._db.open)
        self._unsubscribe = self._connectivity.add_listener(self._on_connectivity_change)
        if self._config.sync_interval > 0:
            self._timer = asyncio.get_running_loop().create_task(self._run_timer())
        self._opened = True
        logger.info("Catalog sync opened (db=%s)", self._config.db_path)

        if self._connectivity.is_online:
            self._schedule_sync("startup")

    async def close(self) -> None:
        """Stop background work, then release the HTTP client (if owned) and the database."""
        if not self._opened:
            return
        self._opened = False

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        pending = list(self._tasks)
        if self._timer is not None:
            pending.append(self._timer)
            self._timer = None
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

        if self._owns_client and isinstance(self._client, RestSyncClient):
            await self._client.aclose()
        self._db.close()
        logger.info("Catalog sync closed")

    async def __aenter__(self) -> CatalogSyncManager:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ----------------------------
    # Sync
    # ----------------------------
    async def sync_now(self) -> Optional[SyncResult]:
        """
        Run one sync cycle now.

        Returns None when a cycle is already running or the client is offline.

        Raises:
            InvalidStateError: if open() was not called.
            AuthError: if the backend refuses the credentials.
        """
        self._require_open()
        return await self._orchestrator.sync_now()

    # ----------------------------
    # Internals
    # ----------------------------
    def _require_open(self) -> None:
        if not self._opened:
            raise InvalidStateError("Manager is not open. Call open() first.")

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            logger.info("Connectivity restored; scheduling sync")
            self._schedule_sync("connectivity")

    def _schedule_sync(self, reason: str) -> None:
        task = asyncio.get_running_loop().create_task(self._background_sync(reason))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self._config.sync_interval)
            await self._background_sync("timer")

    async def _background_sync(self, reason: str) -> None:
        try:
            result = await self._orchestrator.sync_now()
        except AuthError as exc:
            logger.warning("Background sync (%s) unauthorized: %s", reason, exc)
            if self._on_auth_error is not None:
                self._on_auth_error(exc)
            return
        except Exception:
            # The timer and later triggers must outlive any one failed cycle.
            logger.exception("Background sync (%s) failed", reason)
            return

        if result is not None:
            logger.debug("Background sync (%s) finished: %s", reason, result.status)


def _retry_policy(config: SyncConfig) -> RetryPolicy:
    return RetryPolicy(
        max_retries=config.max_retries,
        initial_delay_sec=config.retry_initial_delay,
    )
