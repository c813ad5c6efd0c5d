import unittest
from datetime import datetime, timezone

from catalogsync.models import EDITABLE_FIELDS, Entity, SyncStatus


class TestEntity(unittest.TestCase):
    def test_defaults(self) -> None:
        entity = Entity(id="p1")
        self.assertEqual(entity.name, "")
        self.assertEqual(entity.price, 0.0)
        self.assertEqual(entity.stock, 0)
        self.assertIsNone(entity.image)
        self.assertTrue(entity.enabled)
        self.assertIs(entity.sync_status, SyncStatus.PENDING)
        self.assertIsNotNone(entity.timestamp.tzinfo)

    def test_from_dict_accepts_legacy_field_names(self) -> None:
        entity = Entity.from_dict(
            {
                "_id": "abc",
                "nombre": "Yerba",
                "descripcion": "1kg",
                "precio": "12.5",
                "stock": 7,
                "imagen": "yerba.png",
                "activo": False,
                "timestamp": 1735689600000,
            }
        )
        self.assertEqual(entity.id, "abc")
        self.assertEqual(entity.name, "Yerba")
        self.assertEqual(entity.description, "1kg")
        self.assertEqual(entity.price, 12.5)
        self.assertEqual(entity.stock, 7)
        self.assertEqual(entity.image, "yerba.png")
        self.assertFalse(entity.enabled)
        self.assertEqual(entity.timestamp, datetime(2025, 1, 1, tzinfo=timezone.utc))

    def test_from_dict_coerces_missing_and_invalid_numbers(self) -> None:
        entity = Entity.from_dict({"id": 5, "price": None, "stock": "many"})
        self.assertEqual(entity.id, "5")
        self.assertEqual(entity.price, 0.0)
        self.assertEqual(entity.stock, 0)

        entity = Entity.from_dict({"id": "x", "price": -3, "stock": float("nan")})
        self.assertEqual(entity.price, 0.0)
        self.assertEqual(entity.stock, 0)

        entity = Entity.from_dict({"id": "x", "price": True})
        self.assertEqual(entity.price, 0.0)

    def test_from_dict_requires_id(self) -> None:
        with self.assertRaises(ValueError):
            Entity.from_dict({"name": "no id"})
        with self.assertRaises(ValueError):
            Entity.from_dict({"id": ""})

    def test_from_dict_unknown_status_falls_back_to_pending(self) -> None:
        entity = Entity.from_dict({"id": "x", "sync_status": "weird"})
        self.assertIs(entity.sync_status, SyncStatus.PENDING)
        entity = Entity.from_dict({"id": "x", "syncStatus": "synced"})
        self.assertIs(entity.sync_status, SyncStatus.SYNCED)

    def test_to_dict_and_fields(self) -> None:
        entity = Entity(id="p1", name="Mate", price=3.0, stock=2, sync_status=SyncStatus.SYNCED)
        data = entity.to_dict()
        self.assertEqual(data["id"], "p1")
        self.assertEqual(data["sync_status"], "synced")
        self.assertTrue(data["timestamp"].endswith("Z"))

        self.assertEqual(tuple(entity.fields()), EDITABLE_FIELDS)
        self.assertNotIn("id", entity.fields())

    def test_with_fields_overrides_and_bumps_timestamp(self) -> None:
        old = datetime(2020, 1, 1, tzinfo=timezone.utc)
        entity = Entity(id="p1", name="Mate", price=3.0, sync_status=SyncStatus.CONFLICT, timestamp=old)

        updated = entity.with_fields({"price": 4, "unknown": "ignored"})
        self.assertEqual(updated.id, "p1")
        self.assertEqual(updated.name, "Mate")
        self.assertEqual(updated.price, 4.0)
        self.assertIs(updated.sync_status, SyncStatus.CONFLICT)
        self.assertGreater(updated.timestamp, old)
        self.assertEqual(entity.price, 3.0)


if __name__ == "__main__":
    unittest.main()
