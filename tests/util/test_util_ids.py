import unittest
import uuid

from catalogsync.util.ids import DEFAULT_TEMP_PREFIX, new_op_id, new_temp_id, new_uuid


class TestUtilIds(unittest.TestCase):
    def test_new_uuid_is_valid_uuid4(self) -> None:
        value = new_uuid()
        parsed = uuid.UUID(value)
        self.assertEqual(str(parsed), value)
        self.assertEqual(parsed.version, 4)

    def test_new_op_id_is_valid_uuid4(self) -> None:
        parsed = uuid.UUID(new_op_id())
        self.assertEqual(parsed.version, 4)

    def test_new_temp_id_carries_prefix(self) -> None:
        value = new_temp_id()
        self.assertTrue(value.startswith(DEFAULT_TEMP_PREFIX))
        self.assertEqual(uuid.UUID(value[len(DEFAULT_TEMP_PREFIX):]).version, 4)

        self.assertTrue(new_temp_id("local_").startswith("local_"))

    def test_ids_are_unique(self) -> None:
        values = {new_temp_id(), new_temp_id(), new_temp_id()}
        self.assertEqual(len(values), 3)


if __name__ == "__main__":
    unittest.main()
