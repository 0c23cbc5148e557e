import uuid
from typing import Any, Optional


def parse_uuid(value: Any) -> Optional[str]:
    """Canonical string form of a uuid, or None if the value is not one.

    Every id column is a Postgres uuid; a malformed value would be rejected
    by PostgREST (22P02) before any row is looked at.
    """
    if isinstance(value, uuid.UUID):
        return str(value)
    if not isinstance(value, str):
        return None
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError:
        return None
