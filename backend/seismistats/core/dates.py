"""UTC date helpers.

Date-only inputs are inclusive day ranges: a start date means the first
millisecond of that day and an end date the last millisecond, so a query
for "Jan 6 to Jan 6" covers the whole of Jan 6 UTC.
"""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    return value


def start_of_day_utc(value: date | datetime) -> datetime:
    """Return 00:00:00.000 UTC of the given day."""
    return datetime.combine(_as_date(value), time.min, tzinfo=timezone.utc)


def end_of_day_utc(value: date | datetime) -> datetime:
    """Return 23:59:59.999 UTC of the given day."""
    return datetime.combine(
        _as_date(value), time(23, 59, 59, 999000), tzinfo=timezone.utc
    )


def day_key(value: date | datetime) -> str:
    """YYYY-MM-DD key of the UTC day."""
    return _as_date(value).isoformat()


def parse_day_key(key: str) -> date:
    return date.fromisoformat(key)


def iter_days(start: date, end: date):
    """Yield each date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def isoformat_z(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a trailing Z."""
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def from_epoch_ms(ms: int | float) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    return int(ensure_utc(value).timestamp() * 1000)
