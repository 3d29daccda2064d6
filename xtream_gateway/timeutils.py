"""
UTC time helpers shared by the store and the projectors.

Timestamps are persisted as fixed-width UTC text so that SQL string
comparison matches chronological order.
"""
from datetime import datetime, timezone
from typing import Optional, Union

DB_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"
XMLTV_TIME_FORMAT = "%Y%m%d%H%M%S +0000"
XTREAM_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Union[datetime, str]) -> datetime:
    """Coerce an ISO string or datetime (naive means UTC) to aware UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db_time(value: Optional[Union[datetime, str]]) -> Optional[str]:
    """Format a timestamp for storage."""
    if value is None:
        return None
    return as_utc(value).strftime(DB_TIME_FORMAT)


def unix_seconds(value: Optional[datetime]) -> int:
    """Unix timestamp in whole seconds (0 when unknown)."""
    if value is None:
        return 0
    return int(as_utc(value).timestamp())


def xmltv_time(value: datetime) -> str:
    """XMLTV timestamp, e.g. 20251212040000 +0000."""
    return as_utc(value).strftime(XMLTV_TIME_FORMAT)


def xtream_time(value: datetime) -> str:
    """Wall-clock format Xtream clients expect in EPG listings."""
    return as_utc(value).strftime(XTREAM_TIME_FORMAT)
