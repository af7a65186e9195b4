"""
Date/time helpers shared by the scheduler and analytics

Alarm and bedtime times are stored as "HH:MM" strings in the user's local
time. Weekday indexes follow the alarm model: Sunday=0 .. Saturday=6.
"""

import logging
from datetime import datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

from dreamwell import config

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def parse_hhmm(value: str) -> time:
    """
    Parse a 24-hour "HH:MM" string

    Raises:
        ValueError: If the string is not a valid time
    """
    hour, minute = map(int, value.split(":"))
    return time(hour=hour, minute=minute)


def format_hhmm(moment: datetime) -> str:
    """Format a datetime as a zero-padded "HH:MM" string"""
    return f"{moment.hour:02d}:{moment.minute:02d}"


def at_time_of_day(moment: datetime, hhmm: str) -> datetime:
    """Return `moment` with its clock set to `hhmm` (seconds cleared)"""
    parsed = parse_hhmm(hhmm)
    return moment.replace(hour=parsed.hour, minute=parsed.minute, second=0, microsecond=0)


def sunday_based_weekday(moment: datetime) -> int:
    """Weekday index with Sunday=0, as used by Alarm.days"""
    return (moment.weekday() + 1) % 7


def decimal_hour(moment: datetime) -> float:
    """Clock time as decimal hours (22:30 -> 22.5)"""
    return moment.hour + moment.minute / 60


def now_local(timezone_name: Optional[str] = None) -> datetime:
    """
    Current wall-clock time

    Uses the configured TIMEZONE when set, otherwise the host's local time.
    The result is naive so it compares directly with stored session times.
    """
    tz_name = timezone_name if timezone_name is not None else config.TIMEZONE
    if not tz_name:
        return datetime.now()

    try:
        return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)
    except Exception as e:
        logger.error(f"Invalid timezone '{tz_name}': {e}")
        return datetime.now()
