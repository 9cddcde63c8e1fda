"""ISO-8601 week calculations (UTC). Week ids look like ``2026-07``."""

from datetime import date, datetime, time, timedelta, timezone

SLOT_DAYS = {"mon": 0, "tue": 1, "wed": 2, "thu": 3, "fri": 4, "sat": 5, "sun": 6}


def iso_weeks_in_year(year: int) -> int:
    """52 or 53. Dec 28 always falls in the last ISO week."""
    return date(year, 12, 28).isocalendar()[1]


def parse_week_id(week_id: str) -> tuple[int, int]:
    """Split ``YYYY-WW`` into (year, week_number)."""
    try:
        year_str, week_str = week_id.split("-")
        year, week = int(year_str), int(week_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid week id {week_id!r}") from None

    if not 1 <= week <= iso_weeks_in_year(year):
        raise ValueError(f"Week {week} out of range for {year}")
    return year, week


def iso_week_id(value: datetime) -> str:
    """Week id of the ISO week containing ``value`` (in UTC)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    year, week, _ = value.isocalendar()
    return f"{year}-{week:02d}"


def monday_of_week(year: int, week: int) -> datetime:
    """Monday 00:00 UTC of the given ISO week."""
    return datetime.combine(date.fromisocalendar(year, week, 1), time(0), tzinfo=timezone.utc)


def compute_expires_at(week_id: str) -> datetime:
    """Proposal deadline: Sunday 23:59:59.999 UTC of the week."""
    monday = monday_of_week(*parse_week_id(week_id))
    return monday + timedelta(days=6, hours=23, minutes=59, seconds=59, milliseconds=999)


def compute_scheduled_date(week_id: str, slot_id: str) -> str:
    """ISO date of a slot, e.g. ``("2026-05", "wed_2000")`` -> ``"2026-01-28"``."""
    day = slot_id.split("_")[0]
    if day not in SLOT_DAYS:
        raise ValueError(f"Invalid slot id {slot_id!r}")
    monday = monday_of_week(*parse_week_id(week_id))
    return (monday + timedelta(days=SLOT_DAYS[day])).date().isoformat()
