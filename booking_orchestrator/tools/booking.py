"""
Booking tools exposed to the voice agent.

``book_appointment`` books one service at a time the caller picked from
``check_availability``; ``book_package`` plans the first day the whole
package fits and books it step by step. Cancel and reschedule pass straight
through to the calendar platform.
"""

from datetime import datetime, timedelta
from typing import Optional, TypedDict, Union
from zoneinfo import ZoneInfo

from dateutil import parser as dtparser

from booking_orchestrator.container import Orchestrator
from booking_orchestrator.errors import BookingError, NotFoundError
from booking_orchestrator.logging_context import get_call_logger
from booking_orchestrator.prompts.responses import format_moment
from booking_orchestrator.scheduling.calendar_resolver import (
    find_staff_member,
    location_timezone,
    resolve_calendars,
)
from booking_orchestrator.schemas.availability_schema import AvailabilityRequest, PlannedStep
from booking_orchestrator.schemas.booking_schema import BookingOutcome, Customer
from booking_orchestrator.schemas.calendar_schema import CalendarResource, TeamMember
from booking_orchestrator.utils import title_case

logger = get_call_logger(__name__)


class AppointmentInfo(TypedDict):
    service_name: str
    start_time: str
    status: str
    appointment_id: Optional[str]
    error: Optional[str]


class BookingToolResult(TypedDict, total=False):
    """Result from book_appointment, book_package, cancel, or reschedule."""

    success: bool
    message: str
    status: str
    contact_id: Optional[str]
    appointments: list[AppointmentInfo]


def _missing_fields(**fields: Optional[str]) -> list[str]:
    return [name for name, value in fields.items() if not value or not value.strip()]


def _parse_start(value: Union[str, datetime], timezone: str) -> datetime:
    """ISO string or datetime; naive values are read in the location's timezone."""
    moment = dtparser.isoparse(value) if isinstance(value, str) else value
    zone = ZoneInfo(timezone)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=zone)
    return moment.astimezone(zone)


def _outcome_result(outcome: BookingOutcome) -> BookingToolResult:
    return {
        "success": outcome.all_successful,
        "status": outcome.status.value,
        "message": outcome.message,
        "contact_id": outcome.contact_id,
        "appointments": [
            {
                "service_name": a.service_name,
                "start_time": a.start_time.isoformat(),
                "status": a.status.value,
                "appointment_id": a.appointment_id,
                "error": a.error,
            }
            for a in outcome.appointments
        ],
    }


async def _booking_calendar(
    orchestrator: Orchestrator, service_name: str, calendar_id: Optional[str]
) -> CalendarResource:
    """The offered slot's calendar, else the service's first calendar, else the default."""
    calendars = await resolve_calendars(
        orchestrator.directory, orchestrator.location_id, service_name
    )
    if calendar_id:
        for calendar in calendars + await orchestrator.directory.get_synced_calendars(
            orchestrator.location_id
        ):
            if calendar.id == calendar_id:
                return calendar
        return CalendarResource(id=calendar_id, name=service_name)
    return calendars[0]


async def _check_staff_on_calendar(
    orchestrator: Orchestrator, staff: TeamMember, calendar: CalendarResource
) -> None:
    """Reject a staff member who is not assigned to a calendar that has assignments."""
    members = await orchestrator.directory.get_team_members_for_calendar(
        orchestrator.location_id, calendar.id
    )
    if members and all(m.user_id != staff.user_id for m in members):
        raise NotFoundError(
            "team member",
            staff.name,
            voice_message=(
                f"{staff.first_name} isn't available for that appointment. "
                "Would you like me to book it with another therapist?"
            ),
        )


async def book_appointment(
    orchestrator: Orchestrator,
    service_name: str,
    start_time: Union[str, datetime],
    name: str,
    email: str,
    phone: Optional[str] = None,
    calendar_id: Optional[str] = None,
    staff_name: Optional[str] = None,
    therapist_preference: Optional[str] = None,
    occasion: Optional[str] = None,
    notes: Optional[str] = None,
) -> BookingToolResult:
    """Book a single service at a time previously offered to the caller."""
    start_text = start_time if isinstance(start_time, str) else start_time.isoformat()
    missing = _missing_fields(service=service_name, start_time=start_text, name=name, email=email)
    if missing:
        return {
            "success": False,
            "message": f"I still need the {', '.join(missing)} before I can book that.",
        }
    customer = Customer(
        name=name,
        email=email,
        phone=phone,
        therapist_preference=therapist_preference or staff_name,
        occasion=occasion,
        notes=notes,
    )
    service = title_case(service_name.strip())
    try:
        timezone = await location_timezone(orchestrator.directory, orchestrator.location_id)
        start = _parse_start(start_time, timezone)
        calendar = await _booking_calendar(orchestrator, service, calendar_id)
        staff = (
            await find_staff_member(orchestrator.directory, orchestrator.location_id, staff_name)
            if staff_name
            else None
        )
        if staff is not None:
            await _check_staff_on_calendar(orchestrator, staff, calendar)
    except BookingError as exc:
        return {"success": False, "message": exc.voice_message}
    except ValueError:
        return {"success": False, "message": "I didn't catch that time. Could you say it again?"}

    step = PlannedStep(
        service_name=service,
        start_time=start,
        end_time=start + timedelta(minutes=calendar.slot_duration_minutes),
        calendar_id=calendar.id,
        buffer_minutes=calendar.buffer_minutes,
        staff_id=staff.user_id if staff else None,
        staff_name=staff.name if staff else None,
    )
    outcome = await orchestrator.booking.execute_plan([step], customer)
    return _outcome_result(outcome)


async def book_package(
    orchestrator: Orchestrator,
    package_name: str,
    name: str,
    email: str,
    phone: Optional[str] = None,
    date: Optional[str] = None,
    time_preference: Optional[str] = None,
    occasion: Optional[str] = None,
    notes: Optional[str] = None,
) -> BookingToolResult:
    """Book every service of a package on the first day it fits."""
    missing = _missing_fields(package=package_name, name=name, email=email)
    if missing:
        return {
            "success": False,
            "message": f"I still need the {', '.join(missing)} before I can book that.",
        }
    preference = AvailabilityRequest(
        location_id=orchestrator.location_id, time_preference=time_preference
    ).time_preference
    customer = Customer(name=name, email=email, phone=phone, occasion=occasion, notes=notes)
    try:
        package = await orchestrator.planner.resolve_package(orchestrator.location_id, package_name)
        plans = await orchestrator.planner.find_package_plan(
            orchestrator.location_id,
            package.services,
            preference,
            date,
            max_results=1,
            package_name=package.name,
        )
    except BookingError as exc:
        return {"success": False, "message": exc.voice_message}
    if not plans:
        return {
            "success": False,
            "message": (
                f"I couldn't find a day where the whole {package.name} fits. "
                "Would you like to try a different date?"
            ),
        }
    logger.info("Booking package %s on %s", package.name, plans[0].date.isoformat())
    outcome = await orchestrator.booking.execute_plan(plans[0].steps, customer)
    return _outcome_result(outcome)


async def cancel_appointment(orchestrator: Orchestrator, appointment_id: str) -> BookingToolResult:
    if not appointment_id or not appointment_id.strip():
        return {"success": False, "message": "Which appointment would you like to cancel?"}
    try:
        await orchestrator.api.cancel_appointment(appointment_id.strip())
    except BookingError as exc:
        return {"success": False, "message": exc.voice_message}
    logger.info("Appointment cancelled: %s", appointment_id)
    return {"success": True, "message": "Your appointment has been cancelled."}


async def reschedule_appointment(
    orchestrator: Orchestrator,
    appointment_id: str,
    new_start_time: Union[str, datetime],
    duration_minutes: Optional[int] = None,
) -> BookingToolResult:
    if not appointment_id or not appointment_id.strip():
        return {"success": False, "message": "Which appointment would you like to move?"}
    try:
        timezone = await location_timezone(orchestrator.directory, orchestrator.location_id)
        start = _parse_start(new_start_time, timezone)
        end = start + timedelta(
            minutes=duration_minutes or orchestrator.search.default_slot_duration_minutes
        )
        await orchestrator.api.reschedule_appointment(appointment_id.strip(), start, end)
    except BookingError as exc:
        return {"success": False, "message": exc.voice_message}
    except ValueError:
        return {"success": False, "message": "I didn't catch that time. Could you say it again?"}
    logger.info("Appointment rescheduled: %s to %s", appointment_id, start.isoformat())
    return {
        "success": True,
        "message": f"Done! Your appointment is now on {format_moment(start)}.",
    }
