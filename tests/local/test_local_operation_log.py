import unittest

from catalogsync.errors import ConflictError
from catalogsync.local import LocalDatabase, OperationLog
from catalogsync.local.operation_log import lookup_mapping, queued_reference_exists, save_mapping
from catalogsync.ops import CreateOperation, DeleteOperation, UpdateOperation


class TestOperationLog(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.db = LocalDatabase()
        self.db.open()
        self.log = OperationLog(self.db)

    async def asyncTearDown(self) -> None:
        self.db.close()

    async def test_enqueue_assigns_increasing_seq(self) -> None:
        a = await self.log.enqueue(CreateOperation(target_id="tmp-1", payload={"name": "a"}))
        b = await self.log.enqueue(UpdateOperation(target_id="tmp-1", payload={"name": "b"}))
        c = await self.log.enqueue(DeleteOperation(target_id="p9"))
        self.assertLess(a.seq, b.seq)
        self.assertLess(b.seq, c.seq)

        ops = await self.log.peek_all()
        self.assertEqual([op.op_id for op in ops], [a.op_id, b.op_id, c.op_id])
        self.assertIsInstance(ops[0], CreateOperation)
        self.assertEqual(ops[1].payload, {"name": "b"})
        self.assertIsNone(ops[2].payload)
        self.assertEqual(ops[0].enqueued_at, a.enqueued_at)

    async def test_peek_does_not_remove(self) -> None:
        await self.log.enqueue(DeleteOperation(target_id="p1"))
        await self.log.peek_all()
        self.assertEqual(await self.log.count(), 1)
        self.assertFalse(await self.log.is_empty())

    async def test_remove_all(self) -> None:
        a = await self.log.enqueue(DeleteOperation(target_id="p1"))
        b = await self.log.enqueue(DeleteOperation(target_id="p2"))
        await self.log.remove_all([a.op_id, "unknown"])
        await self.log.remove_all([])

        ops = await self.log.peek_all()
        self.assertEqual([op.op_id for op in ops], [b.op_id])

    async def test_seq_is_not_reused_after_removal(self) -> None:
        a = await self.log.enqueue(DeleteOperation(target_id="p1"))
        await self.log.remove_all([a.op_id])
        b = await self.log.enqueue(DeleteOperation(target_id="p2"))
        self.assertGreater(b.seq, a.seq)

    async def test_references_follow_id_map(self) -> None:
        await self.log.enqueue(UpdateOperation(target_id="tmp-1", payload={}))
        self.assertTrue(await self.db.run(lambda conn: queued_reference_exists(conn, "tmp-1")))
        self.assertFalse(await self.db.run(lambda conn: queued_reference_exists(conn, "s1")))
        self.assertIsNone(await self.db.run(lambda conn: lookup_mapping(conn, "tmp-1")))

        await self.db.run(lambda conn: save_mapping(conn, "tmp-1", "s1"))
        self.assertTrue(await self.db.run(lambda conn: queued_reference_exists(conn, "s1")))
        self.assertEqual(await self.db.run(lambda conn: lookup_mapping(conn, "tmp-1")), "s1")
        self.assertEqual(await self.log.id_map(), {"tmp-1": "s1"})

    async def test_reject_moves_op_out_of_queue(self) -> None:
        op = await self.log.enqueue(UpdateOperation(target_id="p1", payload={"price": 1.0}))
        await self.log.reject(op, ConflictError("stale version"))

        self.assertTrue(await self.log.is_empty())
        rejected = await self.log.list_rejected()
        self.assertEqual(len(rejected), 1)
        self.assertEqual(rejected[0].operation.op_id, op.op_id)
        self.assertEqual(rejected[0].operation.payload, {"price": 1.0})
        self.assertEqual(rejected[0].error_type, "ConflictError")
        self.assertEqual(rejected[0].error_message, "stale version")

        self.assertTrue(await self.log.discard_rejected(op.op_id))
        self.assertFalse(await self.log.discard_rejected(op.op_id))
        self.assertEqual(await self.log.list_rejected(), [])

    async def test_pending_entity_ids_include_rejected_and_remap(self) -> None:
        await self.log.enqueue(UpdateOperation(target_id="tmp-1", payload={}))
        await self.log.enqueue(DeleteOperation(target_id="p2"))
        rejected = await self.log.enqueue(UpdateOperation(target_id="p3", payload={}))
        await self.log.reject(rejected, ConflictError("no"))
        await self.db.run(lambda conn: save_mapping(conn, "tmp-1", "s1"))

        self.assertEqual(await self.log.pending_entity_ids(), {"s1", "p2", "p3"})


if __name__ == "__main__":
    unittest.main()
