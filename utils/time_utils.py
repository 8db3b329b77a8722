from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

DAY = timedelta(days=1)


def utcnow() -> datetime:
    """Returns the current time in UTC, timezone aware."""
    return datetime.now(timezone.utc)


def localnow(tz_name: Optional[str] = None) -> datetime:
    """
    Current wall-clock time. Aware in `tz_name` when given, otherwise naive
    host local time. Never a fixed offset, so replace() lands on the zone's
    offset for the new wall time.
    """
    if tz_name:
        return datetime.now(ZoneInfo(tz_name))
    return datetime.now()


def local_aware(dt: datetime) -> datetime:
    """Naive datetimes are taken to be host local time."""
    if dt.tzinfo is None:
        return dt.astimezone()
    return dt


def ensure_aware(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_db(dt: datetime) -> str:
    """Fixed-width UTC ISO string, so lexical order equals time order."""
    return ensure_aware(dt).astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db(value: str) -> datetime:
    return ensure_aware(datetime.fromisoformat(value))


def compute_next_run(now: datetime, hour: int, minute: int, second: int) -> datetime:
    """
    Next occurrence of hour:minute:second, today or tomorrow, in now's zone.
    Only rolls forward when `now` is strictly past today's slot.
    """
    next_run = now.replace(hour=hour, minute=minute, second=second, microsecond=0)
    if now > next_run:
        next_run += DAY
    return next_run


def seconds_until(target: datetime, now: datetime) -> float:
    """Real seconds between two wall-clock times, across DST changes."""
    return (local_aware(target).astimezone(timezone.utc) - local_aware(now).astimezone(timezone.utc)).total_seconds()
