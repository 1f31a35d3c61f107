"""Directory records: locations, calendars, staff, and service packages.

Rows arrive from the directory store (or the remote platform's sync
payloads) in several spellings. ``normalize_calendar`` and
``normalize_team_member`` resolve them once, at the boundary, into the
typed records below.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from booking_orchestrator.utils import casefold_equal

# Field-priority lists: the first key present with a truthy value wins.
TEAM_MEMBER_ID_KEYS = ("userId", "user_id", "id")
TEAM_MEMBER_LIST_KEYS = (
    "teamMembers", "team", "users", "assignedUsers", "members", "staff", "selectedTeam",
)
CALENDAR_ID_KEYS = ("id", "calendar_id", "calendarId")
SLOT_DURATION_KEYS = ("slot_duration_minutes", "slotDuration", "slot_duration")
BUFFER_KEYS = ("buffer_minutes", "slotBuffer", "slot_buffer")


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


_GENDER_ALIASES = {
    "male": Gender.MALE, "m": Gender.MALE, "man": Gender.MALE, "men": Gender.MALE,
    "female": Gender.FEMALE, "f": Gender.FEMALE, "woman": Gender.FEMALE, "women": Gender.FEMALE,
}


def parse_gender(value: Any) -> Optional[Gender]:
    """Map free-form gender input to a Gender; "no preference" and unknowns map to None."""
    if value is None or isinstance(value, Gender):
        return value
    return _GENDER_ALIASES.get(str(value).strip().lower())


class Location(BaseModel):
    """One installed location (sub-account) on the calendar platform."""

    location_id: str
    default_calendar_id: Optional[str] = None
    timezone: Optional[str] = None


class CalendarResource(BaseModel):
    """A remote bookable calendar: one staff member or one service line."""

    id: str
    name: str = ""
    slot_duration_minutes: int = 60
    buffer_minutes: int = 0
    timezone: Optional[str] = None
    service_names: list[str] = Field(default_factory=list)

    def offers_service(self, service_name: str) -> bool:
        """A calendar offers a service if it is listed, or if its name contains it."""
        if any(casefold_equal(s, service_name) for s in self.service_names):
            return True
        needle = service_name.strip().casefold()
        return bool(needle) and needle in self.name.casefold()


class TeamMember(BaseModel):
    """A staff member and the calendars they are assigned to."""

    user_id: str
    name: str
    email: Optional[str] = None
    gender: Optional[Gender] = None
    calendar_ids: list[str] = Field(default_factory=list)

    @property
    def first_name(self) -> str:
        return self.name.split()[0] if self.name.strip() else ""

    def matches_name(self, query: str) -> bool:
        """Callers usually say only a first name, so either form matches."""
        return casefold_equal(self.name, query) or casefold_equal(self.first_name, query)


class ServicePackage(BaseModel):
    """An ordered list of services booked back-to-back on one day."""

    name: str
    services: list[str]
    price: Optional[float] = None
    total_duration_minutes: Optional[int] = None


def _first_present(raw: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize_team_member(
    raw: dict[str, Any], calendar_id: Optional[str] = None
) -> Optional[TeamMember]:
    """Build a TeamMember from a raw row, or None when it has no usable id.

    Id priority: ``userId``, ``user_id``, ``id``. Name priority: ``name``,
    then ``firstName lastName``, then whichever of the two is present;
    members without any name fall back to their id.
    """
    user_id = _first_present(raw, TEAM_MEMBER_ID_KEYS)
    if not user_id:
        return None
    first, last = raw.get("firstName") or "", raw.get("lastName") or ""
    name = raw.get("name") or " ".join(p for p in (first, last) if p) or str(user_id)
    calendar_ids = list(raw.get("calendar_ids") or raw.get("calendarIds") or [])
    if calendar_id and calendar_id not in calendar_ids:
        calendar_ids.append(calendar_id)
    return TeamMember(
        user_id=str(user_id),
        name=name,
        email=raw.get("email") or None,
        gender=parse_gender(raw.get("gender")),
        calendar_ids=calendar_ids,
    )


def normalize_calendar(raw: dict[str, Any], timezone: Optional[str] = None) -> CalendarResource:
    """Build a CalendarResource from a raw calendar row or API payload."""
    calendar_id = _first_present(raw, CALENDAR_ID_KEYS)
    if not calendar_id:
        raise ValueError(f"Calendar row has no id: {sorted(raw)}")
    duration = _first_present(raw, SLOT_DURATION_KEYS)
    buffer = _first_present(raw, BUFFER_KEYS)
    return CalendarResource(
        id=str(calendar_id),
        name=raw.get("name") or "",
        slot_duration_minutes=int(duration) if duration else 60,
        buffer_minutes=int(buffer) if buffer else 0,
        timezone=raw.get("timezone") or timezone,
        service_names=list(raw.get("service_names") or []),
    )


def extract_team_members(raw_calendar: dict[str, Any]) -> list[TeamMember]:
    """Pull the team-member list out of a calendar payload, whatever it is called."""
    calendar_id = _first_present(raw_calendar, CALENDAR_ID_KEYS)
    rows = _first_present(raw_calendar, TEAM_MEMBER_LIST_KEYS) or []
    members = []
    for row in rows:
        member = normalize_team_member(row, calendar_id=calendar_id)
        if member is not None:
            members.append(member)
    return members


class CalendarTarget(BaseModel):
    """One unit of slot fetching: a calendar, optionally narrowed to one staff member."""

    calendar: CalendarResource
    staff: Optional[TeamMember] = None

    @property
    def key(self) -> tuple[str, Optional[str]]:
        return self.calendar.id, self.staff.user_id if self.staff else None

    @property
    def label(self) -> str:
        if self.staff:
            return f"{self.calendar.name or self.calendar.id} ({self.staff.name})"
        return self.calendar.name or self.calendar.id
