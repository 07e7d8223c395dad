# File: utils/dt_utils.py
"""Date and time utilities for ToDoFlow.

Pure Python calendar-day helpers. The engine works in local calendar days
only; the local zone is a process-wide default that the host application
sets once at startup.

Functions:
    - dt_today_local: Get today's date in local timezone
    - dt_now_local: Get current datetime in local timezone
    - as_local: Convert an aware datetime to the local timezone
    - dt_parse_date: Parse date strings (and datetimes) to calendar days
    - dt_parse_time: Parse HH:MM time-of-day strings
    - dt_weekday: Sunday-first weekday number (0=Sunday..6=Saturday)
    - dt_iso_week_key: ISO week bucket key (YYYY-Www)
    - dt_date_range: Inclusive day iterator
    - dt_start_of_week / dt_month_bounds: Window helpers
    - dt_add_months: Calendar month stepping (relativedelta)
"""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time, timedelta
import logging
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

if TYPE_CHECKING:
    from collections.abc import Iterator

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

# Default timezone - overridden by the host via set_default_timezone()
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

# ISO week key format (matches const.PERIOD_FORMAT_WEEKLY)
PERIOD_FORMAT_WEEKLY = "%G-W%V"


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo | str) -> None:
    """Set the default timezone for all dt_utils functions.

    Args:
        tz: ZoneInfo object or IANA zone name (e.g. "Europe/Madrid")
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = ZoneInfo(tz) if isinstance(tz, str) else tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_today_local(tz: ZoneInfo | None = None) -> date:
    """Return today's date in local timezone as a `datetime.date`.

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Today's date in the specified timezone.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info).date()


def dt_now_local(tz: ZoneInfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware).

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Current datetime in the specified timezone.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone.

    Naive datetimes are taken to already be local wall-clock time and are
    returned with the local zone attached.

    Args:
        dt_obj: Datetime object
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Datetime in local timezone
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        return dt_obj.replace(tzinfo=tz_info)
    return dt_obj.astimezone(tz_info)


# ==============================================================================
# Date/Time Parsing
# ==============================================================================


def dt_parse_date(value: str | date | datetime | None) -> date | None:
    """Safely parse a value into a calendar day.

    Accepts:
    - `datetime.date` → returned as-is
    - `datetime.datetime` → converted to local time, then `.date()`
    - "2025-04-07" (ISO date)
    - "2025-04-07T09:30:00+02:00" (ISO datetime, converted to local day)
    - "04/07/2025" (US format) and "07/04/2025" (European fallback)

    Args:
        value: Value to parse, or None

    Returns:
        datetime.date or None if parsing fails.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_local(value).date() if value.tzinfo else value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()

    # Try ISO date first (most common)
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    # Full ISO datetime (backend rows carry "Z" or an offset)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is not None:
        return as_local(parsed).date() if parsed.tzinfo else parsed.date()

    for fmt in ("%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    _LOGGER.debug("Unparseable date value: %s", value)
    return None


def dt_parse_time(value: str | time | None) -> time | None:
    """Parse a time-of-day string in HH:MM (or HH:MM:SS) format.

    Args:
        value: Time string such as "08:30", a `datetime.time`, or None

    Returns:
        datetime.time, or None when missing or malformed.
    """
    if value is None:
        return None
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        _LOGGER.warning("Invalid time format: %s (expected HH:MM)", value)
        return None

    try:
        hour = int(parts[0])
        minute = int(parts[1])
    except ValueError:
        _LOGGER.warning("Invalid time format: %s (expected HH:MM)", value)
        return None

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        _LOGGER.warning("Invalid time value: %s (out of range)", value)
        return None

    return time(hour, minute)


# ==============================================================================
# Calendar Helpers
# ==============================================================================


def dt_weekday(day: date) -> int:
    """Return the Sunday-first weekday number (0=Sunday .. 6=Saturday).

    Python's `date.weekday()` is Monday-first (0=Monday); the data model
    numbers weekdays from Sunday.
    """
    return (day.weekday() + 1) % 7


def dt_iso_week_key(day: date) -> str:
    """Return the ISO week key for a day, e.g. "2024-W01"."""
    return day.strftime(PERIOD_FORMAT_WEEKLY)


def dt_date_range(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end (both inclusive)."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def dt_start_of_week(day: date, week_starts_on: int = 0) -> date:
    """Return the first day of the week containing `day`.

    Args:
        day: Any day in the week
        week_starts_on: Sunday-first weekday number the week begins on
    """
    offset = (dt_weekday(day) - week_starts_on) % 7
    return day - timedelta(days=offset)


def dt_month_bounds(day: date) -> tuple[date, date]:
    """Return (first_day, last_day) of the month containing `day`."""
    last = monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def dt_add_months(day: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month."""
    return day + relativedelta(months=months)
