"""
Natural-language date and time resolution.

Pure functions: every "now" is passed in explicitly and converted to the
calendar's timezone, so no result depends on the server's local zone.

Recognized date phrases:
    2026-10-23, today, tomorrow, this weekend, next week,
    friday / this friday, next friday, october 23 / oct 23rd / 23 october
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil import parser as dtparser

from booking_orchestrator.schemas.availability_schema import DateFilter, TimePreference

WEEKDAYS = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tue": 1, "tues": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thu": 3, "thur": 3, "thurs": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
}

MONTHS = {
    "january": 1, "jan": 1, "february": 2, "feb": 2, "march": 3, "mar": 3,
    "april": 4, "apr": 4, "may": 5, "june": 6, "jun": 6, "july": 7, "jul": 7,
    "august": 8, "aug": 8, "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10, "november": 11, "nov": 11, "december": 12, "dec": 12,
}

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_FILLER = re.compile(r"^(?:(?:on|for|the)\s+)+")
_MONTH_DAY = re.compile(r"^([a-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?(?:,?\s+(\d{4}))?$")
_DAY_MONTH = re.compile(r"^(\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?([a-z]+)(?:,?\s+(\d{4}))?$")
_TIME_12H = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([ap])\.?\s*m\.?$")
_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_BARE_HOUR = re.compile(r"^(\d{1,2})$")

NOON_MINUTE = 12 * 60
AFTERNOON_START_MINUTE = 12 * 60 + 15


def local_now(reference_now: datetime, timezone: str) -> datetime:
    """Express an aware instant in the calendar's timezone."""
    if reference_now.tzinfo is None:
        raise ValueError("reference_now must be timezone-aware")
    return reference_now.astimezone(ZoneInfo(timezone))


def start_of_day(day: date, timezone: str) -> datetime:
    return datetime.combine(day, time.min, tzinfo=ZoneInfo(timezone))


def _clean(text: str) -> str:
    cleaned = re.sub(r"[!?]+$", "", text.strip().lower()).strip(" .,")
    return _FILLER.sub("", cleaned)


def _days_until(today: date, weekday: int, include_today: bool) -> int:
    delta = (weekday - today.weekday()) % 7
    if delta == 0 and not include_today:
        return 7
    return delta


def _month_day(month_name: str, day_text: str, year_text: Optional[str], today: date) -> Optional[date]:
    month = MONTHS.get(month_name)
    if month is None:
        return None
    day_number = int(day_text)
    year = int(year_text) if year_text else today.year
    try:
        candidate = date(year, month, day_number)
    except ValueError:
        return None
    if year_text is None and candidate < today:
        try:
            candidate = date(year + 1, month, day_number)
        except ValueError:
            return None
    return candidate


def resolve_date_filter(
    text: Optional[str], reference_now: datetime, timezone: str
) -> Optional[DateFilter]:
    """Resolve a spoken date phrase into an inclusive date range.

    Returns None for empty or unrecognized input; callers treat that as
    "no date constraint", never as an error.
    """
    if not text or not text.strip():
        return None
    phrase = _clean(text)
    today = local_now(reference_now, timezone).date()

    if _ISO_DATE.match(phrase):
        try:
            day = dtparser.isoparse(phrase).date()
        except ValueError:
            return None
        return DateFilter(start=day, end=day, label=day.isoformat())

    if phrase == "today":
        return DateFilter(start=today, end=today, label="today")
    if phrase == "tomorrow":
        day = today + timedelta(days=1)
        return DateFilter(start=day, end=day, label="tomorrow")
    if phrase in ("this weekend", "weekend", "the weekend"):
        if today.weekday() == 6:
            return DateFilter(start=today, end=today, label="this weekend")
        saturday = today + timedelta(days=_days_until(today, 5, include_today=True))
        return DateFilter(start=saturday, end=saturday + timedelta(days=1), label="this weekend")
    if phrase == "next week":
        monday = today + timedelta(days=_days_until(today, 0, include_today=False))
        return DateFilter(start=monday, end=None, label="next week")

    words = phrase.split()
    if len(words) == 2 and words[0] in ("next", "this") and words[1] in WEEKDAYS:
        weekday = WEEKDAYS[words[1]]
        if words[0] == "this":
            day = today + timedelta(days=_days_until(today, weekday, include_today=True))
        else:
            # "next friday" skips the nearest friday.
            day = today + timedelta(days=_days_until(today, weekday, include_today=False) + 7)
        return DateFilter(start=day, end=day, label=phrase)
    if len(words) == 1 and words[0] in WEEKDAYS:
        day = today + timedelta(days=_days_until(today, WEEKDAYS[words[0]], include_today=False))
        return DateFilter(start=day, end=day, label=words[0])

    match = _MONTH_DAY.match(phrase)
    if match:
        day = _month_day(match.group(1), match.group(2), match.group(3), today)
    else:
        match = _DAY_MONTH.match(phrase)
        day = _month_day(match.group(2), match.group(1), match.group(3), today) if match else None
    if day is not None:
        return DateFilter(start=day, end=day, label=day.isoformat())
    return None


def resolve_date(text: Optional[str], reference_now: datetime, timezone: str) -> Optional[date]:
    """First day matched by a spoken date phrase, or None."""
    date_filter = resolve_date_filter(text, reference_now, timezone)
    return date_filter.start if date_filter else None


def resolve_time_of_day(text: Optional[str]) -> Optional[int]:
    """Parse a clock time into minutes since midnight.

    Accepts ``2:00 PM``, ``2pm``, ``2 p.m.``, ``14:00``, ``noon`` and
    ``midnight``. A bare hour without a meridiem is read as 24-hour only
    when it is 13 or later; ``"2"`` is ambiguous and returns None.
    """
    if not text or not text.strip():
        return None
    phrase = text.strip().lower().replace("o'clock", "").strip()
    if phrase == "noon":
        return NOON_MINUTE
    if phrase == "midnight":
        return 0

    match = _TIME_12H.match(phrase)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if not 1 <= hour <= 12 or minute > 59:
            return None
        hour = hour % 12 + (12 if match.group(3) == "p" else 0)
        return hour * 60 + minute

    match = _TIME_24H.match(phrase)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            return None
        return hour * 60 + minute

    match = _BARE_HOUR.match(phrase)
    if match:
        hour = int(match.group(1))
        if 13 <= hour <= 23:
            return hour * 60
    return None


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def matches_time_preference(moment: datetime, preference: TimePreference) -> bool:
    """Morning is before noon; afternoon starts at 12:15, so 12:00-12:14 is in neither."""
    if preference == TimePreference.MORNING:
        return minute_of_day(moment) < NOON_MINUTE
    if preference == TimePreference.AFTERNOON:
        return minute_of_day(moment) >= AFTERNOON_START_MINUTE
    return True


def next_reference_week(reference_now: datetime, timezone: str) -> tuple[datetime, datetime]:
    """The next full Monday-through-Sunday window after today, in the calendar's zone."""
    today = local_now(reference_now, timezone).date()
    monday = today + timedelta(days=_days_until(today, 0, include_today=False))
    start = start_of_day(monday, timezone)
    return start, start + timedelta(days=7) - timedelta(seconds=1)
