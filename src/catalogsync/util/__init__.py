from .ids import DEFAULT_TEMP_PREFIX, new_op_id, new_temp_id, new_uuid
from .time import coerce_timestamp, normalize_dt, now_utc, parse_rfc3339, to_rfc3339

__all__ = [
    "DEFAULT_TEMP_PREFIX",
    "new_uuid",
    "new_op_id",
    "new_temp_id",
    "now_utc",
    "parse_rfc3339",
    "to_rfc3339",
    "normalize_dt",
    "coerce_timestamp",
]
