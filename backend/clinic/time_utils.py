import re
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo
from clinic.config import get_settings

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def clinic_now() -> datetime:
    """Return a timezone-aware datetime in the clinic's local timezone."""
    return datetime.now(ZoneInfo(get_settings().clinic_timezone))


def clinic_today() -> date:
    """Today's calendar date as seen at the clinic, not UTC."""
    return clinic_now().date()


def parse_date(value) -> Optional[date]:
    """Accept a date or a strict YYYY-MM-DD string. Returns None when invalid."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_time(value) -> Optional[tuple[int, int]]:
    """Parse "H:MM" / "HH:MM" with 0-23 hours into (hours, minutes)."""
    if not isinstance(value, str):
        return None
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours, minutes


def format_time(hours: int, minutes: int) -> str:
    return f"{hours:02d}:{minutes:02d}"
