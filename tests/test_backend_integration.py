import asyncio
import os
import tempfile
import unittest
from pathlib import Path

from catalogsync import CatalogSyncManager, SyncConfig, SyncStatus


def _env(name: str) -> str:
    return os.environ.get(name, "").strip()


@unittest.skipUnless(_env("CATALOGSYNC_IT_BASE_URL"), "CATALOGSYNC_IT_BASE_URL not set")
class TestBackendIntegration(unittest.IsolatedAsyncioTestCase):
    """
    Integration test with a real catalog backend.

    Required env vars:
        - CATALOGSYNC_IT_BASE_URL: API root of a sandbox backend

    Optional:
        - CATALOGSYNC_IT_TOKEN: bearer token
        - CATALOGSYNC_IT_COLLECTION: collection name (default: productos)
    """

    async def test_offline_create_then_sync_smoke(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = SyncConfig(
                db_path=str(Path(tmp) / "it.db"),
                base_url=_env("CATALOGSYNC_IT_BASE_URL"),
                collection=_env("CATALOGSYNC_IT_COLLECTION") or "productos",
                token=_env("CATALOGSYNC_IT_TOKEN") or None,
                sync_interval=0,
            )

            async with CatalogSyncManager(config) as manager:
                # 1) offline write
                entity = await manager.catalog.create(
                    {"name": "catalogsync_it_tmp", "price": 1.0, "stock": 1}
                )
                self.assertIs(entity.sync_status, SyncStatus.PENDING)

                # 2) reconnect; the manager schedules a cycle
                manager.connectivity.set_online(True)
                for _ in range(200):
                    if not manager.orchestrator.is_busy and not await manager.catalog.pending_sync():
                        break
                    await asyncio.sleep(0.05)

                self.assertFalse(await manager.catalog.pending_sync())
                self.assertIsNone(await manager.catalog.get(entity.id))
                created = [e for e in await manager.catalog.list() if e.name == "catalogsync_it_tmp"]
                self.assertTrue(created)

                # 3) cleanup
                for item in created:
                    await manager.catalog.delete(item.id)
                await manager.sync_now()


if __name__ == "__main__":
    unittest.main()
