"""Employee working-day calendar

Weekdays are numbered 0 = Sunday, 1 = Monday, ..., 6 = Saturday.
"""

from datetime import date, timedelta

from yalla_admin.models.enums import ScheduleType

DEFAULT_WORKING_DAYS = [1, 2, 3, 4, 5]


def day_index(value: date) -> int:
    """Weekday number with 0 = Sunday"""
    return value.isoweekday() % 7


def normalize_working_days(working_days: list[int] | None) -> list[int]:
    if not working_days:
        return list(DEFAULT_WORKING_DAYS)
    return sorted({int(day) for day in working_days if 0 <= int(day) <= 6})


def is_working_day(value: date, working_days: list[int] | None = None) -> bool:
    return day_index(value) in normalize_working_days(working_days)


def iter_dates(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def get_working_dates(start: date, end: date, working_days: list[int] | None = None) -> list[date]:
    """
    Working dates in the range [start, end]

    Args:
        start: First date
        end: Last date (inclusive)
        working_days: Employee working days

    Returns:
        Working dates in ascending order
    """
    days = normalize_working_days(working_days)
    return [d for d in iter_dates(start, end) if day_index(d) in days]


def count_working_days(start: date, end: date, working_days: list[int] | None = None) -> int:
    return len(get_working_dates(start, end, working_days))


def get_every_other_day_dates(start: date, end: date, working_days: list[int] | None = None) -> list[date]:
    """Every other working day, starting with the first one"""
    return get_working_dates(start, end, working_days)[::2]


def get_schedule_dates(
    schedule_type: str | None,
    start: date,
    end: date,
    working_days: list[int] | None = None,
    custom_days: list[str] | None = None,
) -> list[date]:
    """
    Delivery dates for a subscription schedule type

    Args:
        schedule_type: EVERY_DAY, EVERY_OTHER_DAY or CUSTOM
        start: Period start
        end: Period end (inclusive)
        working_days: Employee working days
        custom_days: Explicit ISO dates for CUSTOM

    Returns:
        Sorted list of dates
    """
    schedule = ScheduleType.normalize(schedule_type)
    if schedule == ScheduleType.EVERY_OTHER_DAY:
        return get_every_other_day_dates(start, end, working_days)
    if schedule == ScheduleType.CUSTOM and custom_days:
        dates = set()
        for raw in custom_days:
            try:
                value = date.fromisoformat(str(raw)[:10])
            except ValueError:
                continue
            if start <= value <= end:
                dates.add(value)
        return sorted(dates)
    return get_working_dates(start, end, working_days)


def next_working_day(after: date, working_days: list[int] | None = None) -> date:
    """Next working day strictly after the given date"""
    days = normalize_working_days(working_days)
    current = after + timedelta(days=1)
    for _ in range(14):
        if day_index(current) in days:
            return current
        current += timedelta(days=1)
    return after + timedelta(days=1)
