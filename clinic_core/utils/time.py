"""Time and datetime utilities."""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC.

    Args:
        dt: Datetime that may lack tzinfo

    Returns:
        Timezone-aware datetime
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def at_hour(day: date, hour: int, tz: timezone = timezone.utc) -> datetime:
    """Build the instant at ``hour``:00 on ``day``."""
    return datetime.combine(day, time(hour=hour), tzinfo=tz)


def day_bounds(day: date, tz: timezone = timezone.utc) -> tuple[datetime, datetime]:
    """Return the half-open [start, end) range covering ``day``."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, start + timedelta(days=1)
