"""UTC timestamp helpers. All stored timestamps are ISO-8601 with a trailing Z."""
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Millisecond-precision ISO string, e.g. 2026-01-15T10:00:00.000Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def utc_now_iso() -> str:
    return to_iso(utc_now())


def iso_ago(now: datetime = None, **delta) -> str:
    """ISO timestamp for `now` minus a timedelta, e.g. iso_ago(minutes=60)."""
    now = now or utc_now()
    return to_iso(now - timedelta(**delta))
