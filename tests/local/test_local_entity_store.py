import unittest

from catalogsync.errors import IdentifierConflictError
from catalogsync.local import EntityStore, LocalDatabase
from catalogsync.models import Entity, SyncStatus


class TestEntityStore(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.db = LocalDatabase()
        self.db.open()
        self.store = EntityStore(self.db)

    async def asyncTearDown(self) -> None:
        self.db.close()

    async def test_put_get_round_trip(self) -> None:
        entity = Entity(
            id="p1",
            name="Mate",
            description="calabaza",
            price=9.5,
            stock=3,
            image="mate.png",
            enabled=False,
            sync_status=SyncStatus.SYNCED,
        )
        await self.store.put(entity)

        loaded = await self.store.get("p1")
        self.assertEqual(loaded, entity)

    async def test_get_missing_returns_none(self) -> None:
        self.assertIsNone(await self.store.get("nope"))

    async def test_put_is_upsert(self) -> None:
        await self.store.put(Entity(id="p1", name="old"))
        await self.store.put(Entity(id="p1", name="new"))
        self.assertEqual((await self.store.get("p1")).name, "new")
        self.assertEqual(await self.store.count(), 1)

    async def test_insert_refuses_existing_id(self) -> None:
        await self.store.insert(Entity(id="tmp-1", name="first"))
        with self.assertRaises(IdentifierConflictError) as ctx:
            await self.store.insert(Entity(id="tmp-1", name="second"))
        self.assertEqual(ctx.exception.details["id"], "tmp-1")
        self.assertEqual((await self.store.get("tmp-1")).name, "first")

    async def test_delete_and_list(self) -> None:
        await self.store.put(Entity(id="b"))
        await self.store.put(Entity(id="a"))
        await self.store.put(Entity(id="c"))
        await self.store.delete("b")
        await self.store.delete("missing")

        ids = [e.id for e in await self.store.list()]
        self.assertEqual(ids, ["a", "c"])


if __name__ == "__main__":
    unittest.main()
