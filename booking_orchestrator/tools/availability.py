"""
Availability tools exposed to the voice agent.

Each tool returns a TypedDict with ``success`` and a ``message`` the agent
can read to the caller. ``BookingError`` never escapes; it is converted to
its voice message here.
"""

from typing import Optional, TypedDict

from booking_orchestrator.config import WEEKDAY_NAMES
from booking_orchestrator.container import Orchestrator
from booking_orchestrator.errors import BookingError
from booking_orchestrator.logging_context import get_call_logger
from booking_orchestrator.prompts.responses import (
    build_package_plans_message,
    describe_open_days,
    format_clock,
    format_day,
)
from booking_orchestrator.scheduling.calendar_resolver import location_timezone, resolve_calendars
from booking_orchestrator.schemas.availability_schema import (
    AvailabilityRequest,
    PackagePlan,
    Slot,
)

logger = get_call_logger(__name__)


class SlotInfo(TypedDict):
    """One offered slot, in the form the agent passes back to book_appointment."""

    start_time: str
    day: str
    time: str
    calendar_id: str
    staff_name: Optional[str]


class SlotSearchResult(TypedDict, total=False):
    success: bool
    available: bool
    status: str
    message: str
    slots: list[SlotInfo]


class PlanStepInfo(TypedDict):
    service_name: str
    start_time: str
    end_time: str
    calendar_id: str


class PlanInfo(TypedDict):
    date: str
    steps: list[PlanStepInfo]


class PackageAvailabilityResult(TypedDict, total=False):
    success: bool
    available: bool
    message: str
    services: list[str]
    plans: list[PlanInfo]


class OpenDaysResult(TypedDict, total=False):
    success: bool
    message: str
    open_days: list[str]


def _slot_info(slot: Slot) -> SlotInfo:
    return {
        "start_time": slot.start_time.isoformat(),
        "day": format_day(slot.start_time),
        "time": format_clock(slot.start_time),
        "calendar_id": slot.calendar_id,
        "staff_name": slot.staff_name,
    }


def _plan_info(plan: PackagePlan) -> PlanInfo:
    return {
        "date": plan.date.isoformat(),
        "steps": [
            {
                "service_name": step.service_name,
                "start_time": step.start_time.isoformat(),
                "end_time": step.end_time.isoformat(),
                "calendar_id": step.calendar_id,
            }
            for step in plan.steps
        ],
    }


async def check_availability(
    orchestrator: Orchestrator,
    service_name: Optional[str] = None,
    date: Optional[str] = None,
    time: Optional[str] = None,
    time_preference: Optional[str] = None,
    staff_name: Optional[str] = None,
    gender_preference: Optional[str] = None,
) -> SlotSearchResult:
    """Find the next openings for a service, staff member, or the whole location."""
    request = AvailabilityRequest(
        location_id=orchestrator.location_id,
        service_name=service_name,
        requested_date=date,
        requested_time=time,
        time_preference=time_preference,
        staff_name=staff_name,
        gender_preference=gender_preference,
    )
    try:
        result = await orchestrator.availability.check_availability(request)
    except BookingError as exc:
        logger.warning("Availability check failed: %s", exc)
        return {"success": False, "available": False, "message": exc.voice_message}
    return {
        "success": True,
        "available": result.available,
        "status": result.status.value,
        "message": result.message,
        "slots": [_slot_info(s) for s in result.slots],
    }


async def check_package_availability(
    orchestrator: Orchestrator,
    package_name: str,
    date: Optional[str] = None,
    time_preference: Optional[str] = None,
    max_results: Optional[int] = None,
) -> PackageAvailabilityResult:
    """Preview up to three days on which a whole package fits."""
    preference = AvailabilityRequest(
        location_id=orchestrator.location_id, time_preference=time_preference
    ).time_preference
    try:
        package = await orchestrator.planner.resolve_package(orchestrator.location_id, package_name)
        plans = await orchestrator.planner.find_package_plan(
            orchestrator.location_id,
            package.services,
            preference,
            date,
            max_results or orchestrator.search.package_preview_results,
            package_name=package.name,
        )
    except BookingError as exc:
        logger.warning("Package availability check failed: %s", exc)
        return {"success": False, "available": False, "message": exc.voice_message}
    return {
        "success": True,
        "available": bool(plans),
        "message": build_package_plans_message(package.name, plans),
        "services": package.services,
        "plans": [_plan_info(p) for p in plans],
    }


async def get_open_days(
    orchestrator: Orchestrator, service_name: Optional[str] = None
) -> OpenDaysResult:
    """Describe which weekdays the location (or a service) is usually open."""
    try:
        timezone = await location_timezone(orchestrator.directory, orchestrator.location_id)
        calendars = await resolve_calendars(
            orchestrator.directory, orchestrator.location_id, service_name
        )
    except BookingError as exc:
        return {"success": False, "message": exc.voice_message}
    open_days: set[int] = set()
    for calendar in calendars:
        schedule = await orchestrator.schedule_cache.get_schedule_or_default(
            calendar.id, calendar.timezone or timezone
        )
        open_days |= schedule.open_weekdays
    subject = f"for {service_name} " if service_name else ""
    if not open_days:
        return {
            "success": True,
            "message": f"I don't see any openings {subject}in the coming week.",
            "open_days": [],
        }
    return {
        "success": True,
        "message": f"We're usually open {subject}{describe_open_days(open_days)}.",
        "open_days": [WEEKDAY_NAMES[d] for d in sorted(open_days)],
    }
