"""Field mapping between local Entities and the backend's JSON bodies."""

from __future__ import annotations

from typing import Any, Mapping

from catalogsync.errors import PermanentError
from catalogsync.models import Entity, SyncStatus

DEFAULT_COLLECTION: str = "productos"

# Local field -> backend field.
WIRE_FIELDS: dict[str, str] = {
    "name": "nombre",
    "description": "descripcion",
    "price": "precio",
    "stock": "stock",
    "image": "imagen",
    "enabled": "activo",
}

ID_KEYS: tuple[str, ...] = ("id", "_id")


def to_wire(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Translate editable local fields into a request body."""
    body: dict[str, Any] = {}
    for local_key, wire_key in WIRE_FIELDS.items():
        if local_key in fields:
            body[wire_key] = fields[local_key]
    return body


def wire_id(data: Mapping[str, Any]) -> str | None:
    for key in ID_KEYS:
        value = data.get(key)
        if value is not None and str(value) != "":
            return str(value)
    return None


def created_id(body: object, *, op_id: str) -> str:
    """
    Server id from a create response.

    Raises:
        PermanentError: the backend accepted the create but returned no id.
            Resending could duplicate the entity, so this is not retryable.
    """
    server_id = wire_id(body) if isinstance(body, Mapping) else None
    if server_id is None:
        raise PermanentError(
            "Backend did not return an id for created entity",
            details={"op_id": op_id},
        )
    return server_id


def from_wire(data: Mapping[str, Any]) -> Entity:
    """
    Build a synced Entity from a backend entity.

    Raises:
        ValueError: if the body carries no identifier.
    """
    entity_id = wire_id(data)
    if entity_id is None:
        raise ValueError("Remote entity has no id")

    values = {
        local_key: data.get(wire_key, data.get(local_key))
        for local_key, wire_key in WIRE_FIELDS.items()
    }
    entity = Entity.from_dict(values, entity_id=entity_id)
    entity.sync_status = SyncStatus.SYNCED
    return entity
