# core/utils.py

from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive timestamps coming back from the store are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Accept a datetime or an ISO-8601 string (Supabase returns 'Z' suffixes).
    Returns None for empty values; raises ValueError for garbage.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        return ensure_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
    raise ValueError(f"Unsupported timestamp value: {value!r}")


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return ensure_utc(value).isoformat() if value else None


def serialize_fields(data: dict) -> dict:
    """
    Prepare a field dict for a PostgREST write:
    - datetimes → ISO strings
    - enums → their value
    """
    clean = {}
    for k, v in data.items():
        if isinstance(v, datetime):
            clean[k] = to_iso(v)
        elif hasattr(v, "value") and isinstance(getattr(v, "value"), str):
            clean[k] = v.value
        else:
            clean[k] = v
    return clean
