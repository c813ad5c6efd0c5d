"""Strict validation helpers for CatalogLocal writes."""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional

from catalogsync.errors import LocalValidationError
from catalogsync.models import EDITABLE_FIELDS, Entity


def validate_exists(entity: Optional[Entity], entity_id: str, what: str) -> Entity:
    if entity is None:
        raise LocalValidationError(f"{what} does not exist: {entity_id}")
    return entity


def validate_known_fields(fields: Mapping[str, Any]) -> None:
    unknown = sorted(set(fields) - set(EDITABLE_FIELDS))
    if unknown:
        raise LocalValidationError(
            f"Unknown fields: {', '.join(unknown)}",
            details={"fields": unknown},
        )


def validate_text(fields: Mapping[str, Any], key: str) -> None:
    value = fields.get(key)
    if value is not None and not isinstance(value, str):
        raise LocalValidationError(f"{key} must be a string")


def validate_non_negative(fields: Mapping[str, Any], key: str) -> None:
    """
    Reject negative numbers on user writes.

    Missing and non-numeric values are allowed here; Entity coerces them to 0.
    """
    value = fields.get(key)
    if value is None or isinstance(value, bool):
        return
    try:
        number = float(value)
    except (TypeError, ValueError):
        return
    if not math.isnan(number) and number < 0:
        raise LocalValidationError(f"{key} must be non-negative: {value}")


def validate_enabled(fields: Mapping[str, Any]) -> None:
    value = fields.get("enabled")
    if value is not None and not isinstance(value, bool):
        raise LocalValidationError("enabled must be a boolean")


def validate_fields(fields: Mapping[str, Any]) -> None:
    if not isinstance(fields, Mapping):
        raise LocalValidationError("fields must be a mapping")
    validate_known_fields(fields)
    validate_text(fields, "name")
    validate_text(fields, "description")
    validate_text(fields, "image")
    validate_non_negative(fields, "price")
    validate_non_negative(fields, "stock")
    validate_enabled(fields)
