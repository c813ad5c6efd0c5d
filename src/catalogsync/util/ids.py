from __future__ import annotations

import uuid

DEFAULT_TEMP_PREFIX = "tmp-"


def new_uuid() -> str:
    """Generate a UUID4 string."""
    return str(uuid.uuid4())


def new_op_id() -> str:
    """Generate a new Operation ID."""
    return new_uuid()


def new_temp_id(prefix: str = DEFAULT_TEMP_PREFIX) -> str:
    """Generate a temporary entity id for records not yet created remotely."""
    return f"{prefix}{uuid.uuid4().hex}"
