"""
Calendar-date helpers.

All week math is Monday-start.  "Today" is always resolved in an explicit
IANA timezone so results are reproducible across clients.
"""

from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import DAY_ORDER, DEFAULT_TIMEZONE, ISO_DATE_FORMAT
from .engine.config_loader import load_default_timezone


def parse_date(date_str: str) -> date:
    """
    Parse an ISO date string.

    Args:
        date_str: Date in YYYY-MM-DD format

    Returns:
        Calendar date

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    return datetime.strptime(date_str, ISO_DATE_FORMAT).date()


def try_parse_date(date_str: str | None) -> date | None:
    """Parse an ISO date string, returning None for missing or invalid input."""
    if not isinstance(date_str, str):
        return None
    try:
        return parse_date(date_str.strip()[:10])
    except ValueError:
        return None


def to_iso(d: date) -> str:
    return d.strftime(ISO_DATE_FORMAT)


def add_days(date_str: str, days: int) -> str:
    """Return the ISO date ``days`` after ``date_str`` (negative moves back)."""
    return to_iso(parse_date(date_str) + timedelta(days=days))


def days_between(start: str, end: str) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative if end < start)."""
    return (parse_date(end) - parse_date(start)).days


def monday_of(date_str: str) -> str:
    """Return the Monday of the week containing ``date_str``."""
    d = parse_date(date_str)
    return to_iso(d - timedelta(days=d.weekday()))


def day_name_of(date_str: str) -> str:
    """Weekday abbreviation (Mon..Sun) using the Monday=0 convention."""
    return DAY_ORDER[parse_date(date_str).weekday()]


def week_bounds(date_str: str) -> tuple[str, str]:
    """Monday and Sunday of the week containing ``date_str``."""
    monday = monday_of(date_str)
    return monday, add_days(monday, 6)


def get_zone(tz_name: str | None) -> ZoneInfo:
    """
    Return the ZoneInfo for ``tz_name``, falling back to the default zone.

    Unknown or empty names resolve to the configured default zone
    (engine.yaml, user override included), then to DEFAULT_TIMEZONE.
    """
    if tz_name:
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    try:
        return ZoneInfo(load_default_timezone())
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)


def today_in_timezone(tz_name: str | None = None, now: datetime | None = None) -> str:
    """
    Return today's ISO date in the given timezone.

    Args:
        tz_name: IANA timezone (default: the configured default zone)
        now: Aware instant to evaluate (default: current UTC time)

    Returns:
        ISO date string
    """
    if now is None:
        now = datetime.now(dt_timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=dt_timezone.utc)
    return to_iso(now.astimezone(get_zone(tz_name)).date())


def timestamp_to_local_date(timestamp: str | None, tz_name: str | None = None) -> str | None:
    """
    Convert an ISO timestamp to the calendar date in ``tz_name``.

    Naive timestamps are taken as UTC.  Returns None for unparseable input.
    """
    if not isinstance(timestamp, str) or not timestamp.strip():
        return None
    raw = timestamp.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        instant = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=dt_timezone.utc)
    return to_iso(instant.astimezone(get_zone(tz_name)).date())


def local_noon_timestamp(date_str: str, tz_name: str | None = None) -> str:
    """ISO timestamp for noon of ``date_str`` in ``tz_name``, with its UTC offset."""
    noon = datetime.combine(parse_date(date_str), time(12), tzinfo=get_zone(tz_name))
    return noon.isoformat(timespec="seconds")
