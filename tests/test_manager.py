from __future__ import annotations

import asyncio
import tempfile
import unittest
from pathlib import Path
from typing import Any, Optional

import httpx

from catalogsync.config import SyncConfig
from catalogsync.errors import AuthError, InvalidStateError
from catalogsync.manager import CatalogSyncManager
from catalogsync.models import SyncStatus
from catalogsync.remote import RestSyncClient, RetryPolicy
from catalogsync.sync import ConnectivitySignal


class FakeRemote:
    def __init__(self) -> None:
        self.items: dict[str, dict[str, Any]] = {}
        self.calls: list[str] = []
        self.list_error: Optional[Exception] = None
        self._counter = 0

    async def create(
        self,
        collection: str,
        payload: dict[str, Any],
        *,
        idempotency_key: Optional[str] = None,
    ) -> dict[str, Any]:
        self.calls.append("create")
        self._counter += 1
        server_id = f"srv{self._counter}"
        self.items[server_id] = {"id": server_id, **payload}
        return dict(self.items[server_id])

    async def update(self, collection: str, entity_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append("update")
        self.items[entity_id].update(payload)
        return dict(self.items[entity_id])

    async def delete(self, collection: str, entity_id: str) -> None:
        self.calls.append("delete")
        self.items.pop(entity_id, None)

    async def list(self, collection: str) -> list[dict[str, Any]]:
        self.calls.append("list")
        if self.list_error is not None:
            raise self.list_error
        return [dict(item) for item in self.items.values()]


async def _eventually(predicate, timeout: float = 2.0) -> bool:
    deadline = asyncio.get_running_loop().time() + timeout
    while asyncio.get_running_loop().time() < deadline:
        if await predicate():
            return True
        await asyncio.sleep(0.01)
    return False


class TestCatalogSyncManager(unittest.IsolatedAsyncioTestCase):
    def _manager(self, remote: FakeRemote, **kwargs: Any) -> CatalogSyncManager:
        config = kwargs.pop("config", SyncConfig(db_path=":memory:", sync_interval=0))
        return CatalogSyncManager.from_client(remote, config=config, **kwargs)

    async def test_requires_open(self) -> None:
        manager = self._manager(FakeRemote())
        self.assertFalse(manager.is_open)
        with self.assertRaises(InvalidStateError):
            _ = manager.catalog
        with self.assertRaises(InvalidStateError):
            await manager.sync_now()

    async def test_reconnect_triggers_background_sync(self) -> None:
        remote = FakeRemote()
        async with self._manager(remote) as manager:
            entity = await manager.catalog.create({"name": "Widget", "price": 9.99})
            self.assertTrue(entity.id.startswith("tmp-"))
            self.assertEqual(remote.calls, [])

            manager.connectivity.set_online(True)

            async def drained() -> bool:
                return not await manager.catalog.pending_sync()

            self.assertTrue(await _eventually(drained))
            items = await manager.catalog.list()
            self.assertEqual([e.id for e in items], ["srv1"])
            self.assertIs(items[0].sync_status, SyncStatus.SYNCED)

    async def test_startup_sync_when_already_online(self) -> None:
        remote = FakeRemote()
        remote.items["p1"] = {"id": "p1", "nombre": "from server"}
        connectivity = ConnectivitySignal(online=True)

        async with self._manager(remote, connectivity=connectivity) as manager:

            async def pulled() -> bool:
                return await manager.catalog.get("p1") is not None

            self.assertTrue(await _eventually(pulled))
            self.assertEqual((await manager.catalog.get("p1")).name, "from server")

    async def test_sync_now_delegates(self) -> None:
        remote = FakeRemote()
        async with self._manager(remote) as manager:
            self.assertIsNone(await manager.sync_now())

            manager.connectivity.set_online(True)
            await _eventually(lambda: _idle(manager))
            result = await manager.sync_now()
            self.assertEqual(result.status, "success")

    async def test_background_auth_error_is_forwarded(self) -> None:
        remote = FakeRemote()
        remote.list_error = AuthError("expired")
        seen: list[AuthError] = []

        async with self._manager(remote, on_auth_error=seen.append) as manager:
            manager.connectivity.set_online(True)

            async def reported() -> bool:
                return bool(seen)

            self.assertTrue(await _eventually(reported))
            self.assertEqual(str(seen[0]), "expired")

    async def test_periodic_timer_runs_cycles(self) -> None:
        remote = FakeRemote()
        config = SyncConfig(db_path=":memory:", sync_interval=0.02)
        connectivity = ConnectivitySignal(online=True)

        async with self._manager(remote, config=config, connectivity=connectivity):

            async def several() -> bool:
                return remote.calls.count("list") >= 3

            self.assertTrue(await _eventually(several))

        calls_after_close = len(remote.calls)
        await asyncio.sleep(0.05)
        self.assertEqual(len(remote.calls), calls_after_close)

    async def test_unexpected_error_keeps_timer_running(self) -> None:
        remote = FakeRemote()
        remote.list_error = RuntimeError("corrupt response")
        config = SyncConfig(db_path=":memory:", sync_interval=0.02)
        connectivity = ConnectivitySignal(online=True)

        async with self._manager(remote, config=config, connectivity=connectivity) as manager:

            async def several() -> bool:
                return remote.calls.count("list") >= 3

            with self.assertLogs("catalogsync.manager", level="ERROR"):
                self.assertTrue(await _eventually(several))
            self.assertFalse(manager._timer.done())
            self.assertFalse(manager.orchestrator.is_busy)

    async def test_transport_retries_fit_inside_one_cycle(self) -> None:
        posts: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                posts.append(request)
                if len(posts) == 1:
                    return httpx.Response(503, json={"mensaje": "busy"})
                return httpx.Response(201, json={"_id": "s1", "nombre": "Widget"})
            return httpx.Response(200, json=[{"_id": "s1", "nombre": "Widget"}])

        # Backoff (0.1s) is longer than one attempt's timeout (0.05s).
        config = SyncConfig(
            db_path=":memory:",
            sync_interval=0,
            request_timeout=0.05,
            max_retries=1,
            retry_initial_delay=0.1,
        )
        client = RestSyncClient(
            "http://backend.test/api",
            timeout=config.request_timeout,
            retry_policy=RetryPolicy(max_retries=1, initial_delay_sec=0.1),
            transport=httpx.MockTransport(handler),
        )
        async with client, self._manager(client, config=config) as manager:
            await manager.catalog.create({"name": "Widget"})
            manager.connectivity.set_online(True)

            async def drained() -> bool:
                return not await manager.catalog.pending_sync()

            self.assertTrue(await _eventually(drained))
            self.assertEqual(len(posts), 2)
            self.assertEqual([e.id for e in await manager.catalog.list()], ["s1"])

    async def test_pending_work_survives_restart(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = SyncConfig(db_path=str(Path(tmp) / "catalog.db"), sync_interval=0)

            async with self._manager(FakeRemote(), config=config) as manager:
                entity = await manager.catalog.create({"name": "Widget"})

            remote = FakeRemote()
            async with self._manager(remote, config=config) as manager:
                self.assertTrue(await manager.catalog.pending_sync())
                self.assertIsNotNone(await manager.catalog.get(entity.id))

                manager.connectivity.set_online(True)

                async def drained() -> bool:
                    return not await manager.catalog.pending_sync()

                self.assertTrue(await _eventually(drained))
                self.assertIsNone(await manager.catalog.get(entity.id))

    async def test_close_releases_owned_client(self) -> None:
        manager = CatalogSyncManager(SyncConfig(db_path=":memory:", sync_interval=0, token="tok"))
        self.assertIsInstance(manager._client, RestSyncClient)

        await manager.open()
        await manager.open()
        self.assertTrue(manager.is_open)
        await manager.close()
        await manager.close()

        self.assertFalse(manager.is_open)
        self.assertTrue(manager._client._client.is_closed)


async def _idle(manager: CatalogSyncManager) -> bool:
    return not manager.orchestrator.is_busy and not manager._tasks


if __name__ == "__main__":
    unittest.main()
