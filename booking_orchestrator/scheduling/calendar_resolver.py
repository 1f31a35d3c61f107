"""
Which calendars to search for a request.

Precedence:
    staff + service -> the staff member's calendars that offer the service
    staff only      -> every calendar the staff member is assigned to
    service only    -> synced calendars for the service, else manual mappings
    neither         -> every synced calendar
    still nothing   -> the location's default calendar

A gender preference then re-expands the list into one target per matching
staff member, so each person's slots are fetched and attributed separately.
"""

from typing import Optional

from booking_orchestrator.clients.directory import DirectoryStore
from booking_orchestrator.config import settings
from booking_orchestrator.errors import ConfigurationError, NoMatchingStaffError, NotFoundError
from booking_orchestrator.logging_context import get_call_logger
from booking_orchestrator.schemas.calendar_schema import (
    CalendarResource,
    CalendarTarget,
    Gender,
    TeamMember,
)
from booking_orchestrator.utils import suggest_name

logger = get_call_logger(__name__)


async def location_timezone(directory: DirectoryStore, location_id: str) -> str:
    location = await directory.get_location(location_id)
    if location is None:
        raise ConfigurationError(f"Unknown location: {location_id}")
    return location.timezone or settings.search.default_timezone


async def default_calendar(directory: DirectoryStore, location_id: str) -> CalendarResource:
    location = await directory.get_location(location_id)
    if location is None or not location.default_calendar_id:
        raise ConfigurationError(f"No calendar configured for location {location_id}")
    for calendar in await directory.get_synced_calendars(location_id):
        if calendar.id == location.default_calendar_id:
            return calendar
    return CalendarResource(
        id=location.default_calendar_id,
        name="Default",
        slot_duration_minutes=settings.search.default_slot_duration_minutes,
        timezone=location.timezone,
    )


async def find_staff_member(
    directory: DirectoryStore, location_id: str, staff_name: str
) -> TeamMember:
    members = await directory.get_team_members(location_id)
    for member in members:
        if member.matches_name(staff_name):
            return member
    suggestion = suggest_name(staff_name, [m.name for m in members])
    raise NotFoundError("team member", staff_name, suggestion)


async def calendars_for_service(
    directory: DirectoryStore, location_id: str, service_name: str
) -> list[CalendarResource]:
    """Synced calendars offering the service, falling back to manual mappings."""
    calendars = await directory.get_synced_calendars_for_service(location_id, service_name)
    if calendars:
        return calendars
    mapped = await directory.get_service_calendar_mappings(location_id, service_name)
    if mapped:
        logger.debug("Using manual calendar mapping for service %r", service_name)
    return mapped


async def _staff_calendars(
    directory: DirectoryStore, location_id: str, member: TeamMember
) -> list[CalendarResource]:
    synced = {c.id: c for c in await directory.get_synced_calendars(location_id)}
    return [synced[cid] for cid in member.calendar_ids if cid in synced]


async def resolve_calendars(
    directory: DirectoryStore,
    location_id: str,
    service_name: Optional[str] = None,
    staff_member: Optional[TeamMember] = None,
) -> list[CalendarResource]:
    """Apply the calendar precedence rules, ending at the location default."""
    if staff_member and service_name:
        offering = {c.id for c in await calendars_for_service(directory, location_id, service_name)}
        calendars = [
            c for c in await _staff_calendars(directory, location_id, staff_member) if c.id in offering
        ]
        if not calendars:
            raise NotFoundError(
                "service",
                service_name,
                voice_message=(
                    f"{staff_member.first_name} doesn't offer {service_name}. "
                    "Would you like me to check with another therapist?"
                ),
            )
        return calendars
    if staff_member:
        calendars = await _staff_calendars(directory, location_id, staff_member)
    elif service_name:
        calendars = await calendars_for_service(directory, location_id, service_name)
    else:
        calendars = await directory.get_synced_calendars(location_id)
    if not calendars:
        calendars = [await default_calendar(directory, location_id)]
    return calendars


async def resolve_targets(
    directory: DirectoryStore,
    location_id: str,
    *,
    service_name: Optional[str] = None,
    staff_name: Optional[str] = None,
    gender: Optional[Gender] = None,
) -> list[CalendarTarget]:
    """Resolve a request's constraints into the calendar targets to fetch.

    A named staff member takes precedence over a gender preference.
    Raises NoMatchingStaffError when nobody of the requested gender works
    the resolved calendars.
    """
    staff_member = (
        await find_staff_member(directory, location_id, staff_name) if staff_name else None
    )
    calendars = await resolve_calendars(directory, location_id, service_name, staff_member)
    if staff_member:
        return [CalendarTarget(calendar=c, staff=staff_member) for c in calendars]
    if gender is None:
        return [CalendarTarget(calendar=c) for c in calendars]

    members = await directory.get_team_members_by_gender(
        location_id, gender, [c.id for c in calendars]
    )
    targets: list[CalendarTarget] = []
    seen: set[str] = set()
    for member in members:
        calendar = next((c for c in calendars if c.id in member.calendar_ids), None)
        if calendar is None or member.user_id in seen:
            continue
        targets.append(CalendarTarget(calendar=calendar, staff=member))
        seen.add(member.user_id)
    if not targets:
        raise NoMatchingStaffError(gender.value, service_name)
    logger.debug("Gender filter %s expanded to %d staff targets", gender.value, len(targets))
    return targets
