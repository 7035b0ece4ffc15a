"""Date, time zone and cutoff helpers"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "Asia/Dushanbe"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes (SQLite drops tzinfo on read)

    Args:
        value: Datetime from the database

    Returns:
        Timezone-aware datetime or None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def get_zone(tz_name: str | None) -> ZoneInfo | timezone:
    """Resolve an IANA time zone, falling back to UTC"""
    try:
        return ZoneInfo(tz_name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def local_now(tz_name: str | None = None) -> datetime:
    return datetime.now(get_zone(tz_name))


def local_today(tz_name: str | None = None) -> date:
    return local_now(tz_name).date()


def is_today(value: date, tz_name: str | None = None) -> bool:
    return value == local_today(tz_name)


def is_past_date(value: date, tz_name: str | None = None) -> bool:
    return value < local_today(tz_name)


def is_cutoff_passed(cutoff: time | None, tz_name: str | None = None, now: datetime | None = None) -> bool:
    """
    Check whether today's ordering deadline has passed in the given time zone

    Args:
        cutoff: Local cutoff time (None means no deadline)
        tz_name: IANA time zone name
        now: Current moment (defaults to the real clock)

    Returns:
        True when local time is at or after the cutoff
    """
    if cutoff is None:
        return False
    current = (now or utcnow()).astimezone(get_zone(tz_name))
    return current.time().replace(tzinfo=None) >= cutoff


def format_time(value: time | None) -> str | None:
    return value.strftime("%H:%M") if value else None


def parse_time(value: str | None) -> time | None:
    """Parse "HH:mm" (or "HH:mm:ss"), returning None for invalid input"""
    if not value:
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    return None


def week_bounds(value: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing the date"""
    monday = value - timedelta(days=value.weekday())
    return monday, monday + timedelta(days=6)


def iso_week(value: date) -> tuple[int, int]:
    year, week, _ = value.isocalendar()
    return year, week


def inclusive_days(start: date, end: date) -> int:
    return (end - start).days + 1


def local_date(tz_name: str | None = None, now: datetime | None = None) -> date:
    """Calendar date in the time zone at the given moment (default: now)"""
    return (now or utcnow()).astimezone(get_zone(tz_name)).date()


def parse_date(value: str | None) -> date | None:
    """Parse "YYYY-MM-DD" (a datetime prefix is accepted), None for invalid input"""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None
