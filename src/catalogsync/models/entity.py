"""Data model for catalog items."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from catalogsync.util.time import coerce_timestamp, now_utc, to_rfc3339


class SyncStatus(str, Enum):
    """Local sync state of an Entity."""

    SYNCED = "synced"
    PENDING = "pending"
    CONFLICT = "conflict"


# Local field name -> legacy names accepted when reading.
_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "nombre"),
    "description": ("description", "descripcion"),
    "price": ("price", "precio"),
    "stock": ("stock",),
    "image": ("image", "imagen"),
    "enabled": ("enabled", "activo"),
}

EDITABLE_FIELDS: tuple[str, ...] = tuple(_ALIASES)


@dataclass(slots=True)
class Entity:
    """
    A catalog item tracked by the local store.

    Notes:
        - For items known remotely: id is the server identifier.
        - For items created offline: id is a temporary identifier (reserved
          prefix) until the create is acknowledged.
    """

    id: str
    name: str = ""
    description: str = ""
    price: float = 0.0
    stock: int = 0
    image: Optional[str] = None
    enabled: bool = True
    sync_status: SyncStatus = SyncStatus.PENDING
    timestamp: datetime = field(default_factory=now_utc)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, entity_id: Optional[str] = None) -> Entity:
        """Build an Entity from a loose mapping, coercing missing/invalid fields."""
        raw_id = entity_id if entity_id is not None else data.get("id", data.get("_id"))
        if raw_id is None or str(raw_id) == "":
            raise ValueError("Entity id is required")

        status = data.get("sync_status", data.get("syncStatus", SyncStatus.PENDING))
        try:
            sync_status = SyncStatus(status)
        except ValueError:
            sync_status = SyncStatus.PENDING

        image = _pick(data, "image")
        return cls(
            id=str(raw_id),
            name=_coerce_text(_pick(data, "name")),
            description=_coerce_text(_pick(data, "description")),
            price=_coerce_number(_pick(data, "price")),
            stock=int(_coerce_number(_pick(data, "stock"))),
            image=str(image) if image not in (None, "") else None,
            enabled=_coerce_enabled(_pick(data, "enabled")),
            sync_status=sync_status,
            timestamp=coerce_timestamp(data.get("timestamp")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the local (English) field layout."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "image": self.image,
            "enabled": self.enabled,
            "sync_status": self.sync_status.value,
            "timestamp": to_rfc3339(self.timestamp),
        }

    def fields(self) -> dict[str, Any]:
        """Return only the user-editable fields (the replay payload)."""
        return {
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "image": self.image,
            "enabled": self.enabled,
        }

    def with_fields(self, changes: Mapping[str, Any]) -> Entity:
        """Return a copy with editable fields overridden and timestamp bumped."""
        merged = self.fields()
        merged.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS})
        updated = Entity.from_dict(merged, entity_id=self.id)
        return replace(updated, sync_status=self.sync_status, timestamp=now_utc())


def _pick(data: Mapping[str, Any], key: str) -> Any:
    for alias in _ALIASES[key]:
        if alias in data and data[alias] is not None:
            return data[alias]
    return None


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _coerce_number(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return max(number, 0.0)


def _coerce_enabled(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "0", "no", "")
    return bool(value)
