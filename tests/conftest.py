"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

import pytest

from booking_orchestrator.clients.directory import InMemoryDirectoryStore
from booking_orchestrator.config import SearchConfig
from booking_orchestrator.container import Orchestrator
from booking_orchestrator.errors import UpstreamTransientError
from booking_orchestrator.scheduling.availability import AvailabilityService
from booking_orchestrator.scheduling.booking import BookingOrchestrator
from booking_orchestrator.scheduling.cache import TTLCache
from booking_orchestrator.scheduling.package_planner import PackagePlanner
from booking_orchestrator.scheduling.schedule_cache import ScheduleCache
from booking_orchestrator.scheduling.slot_fetcher import SlotFetcher
from booking_orchestrator.schemas.calendar_schema import (
    CalendarResource,
    Gender,
    Location,
    ServicePackage,
    TeamMember,
)

TZ = "America/New_York"
LOCATION_ID = "loc_1"
# Wednesday 2026-10-14, 08:00 in New York (EDT, UTC-4).
FIXED_NOW = datetime(2026, 10, 14, 12, 0, tzinfo=dt_timezone.utc)
TODAY = date(2026, 10, 14)


def local(day: date, hour: int, minute: int = 0) -> datetime:
    """An aware datetime on ``day`` at ``hour:minute`` New York time."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=ZoneInfo(TZ))


def days_ahead(n: int) -> date:
    return TODAY + timedelta(days=n)


class FakeCalendarApi:
    """In-memory stand-in for CalendarApiClient.

    ``slots`` maps calendar id to slot start times; ``get_free_slots``
    returns them in the platform's date-keyed shape. Failures are injected
    per calendar (``slot_errors``) or per appointment title
    (``create_errors``).
    """

    def __init__(self) -> None:
        self.location_id = LOCATION_ID
        self.slots: dict[str, list[datetime]] = {}
        self.slot_errors: dict[str, Exception] = {}
        self.create_errors: dict[str, Exception] = {}
        self.note_error: Optional[Exception] = None
        self.contact_error: Optional[Exception] = None
        self.free_slot_calls: list[tuple[str, datetime, datetime, Optional[str]]] = []
        self.contacts: list[dict[str, Any]] = []
        self.appointments: list[dict[str, Any]] = []
        self.notes: list[tuple[str, str]] = []
        self.cancelled: list[str] = []
        self.rescheduled: list[tuple[str, datetime, datetime]] = []
        self.closed = False

    def add_slots(self, calendar_id: str, *starts: datetime) -> None:
        self.slots.setdefault(calendar_id, []).extend(starts)

    async def get_free_slots(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
        timezone: str,
        user_id: Optional[str] = None,
    ) -> dict[str, Any]:
        self.free_slot_calls.append((calendar_id, start, end, user_id))
        if calendar_id in self.slot_errors:
            raise self.slot_errors[calendar_id]
        payload: dict[str, Any] = {"traceId": "trace-1"}
        for moment in sorted(self.slots.get(calendar_id, [])):
            if start <= moment < end:
                key = moment.astimezone(ZoneInfo(timezone)).date().isoformat()
                payload.setdefault(key, {"slots": []})["slots"].append(moment.isoformat())
        return payload

    async def upsert_contact(
        self,
        email: str,
        first_name: str,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> str:
        if self.contact_error is not None:
            raise self.contact_error
        self.contacts.append(
            {"email": email, "first_name": first_name, "last_name": last_name, "phone": phone}
        )
        return "contact_1"

    async def create_appointment(
        self,
        calendar_id: str,
        contact_id: str,
        start_time: datetime,
        end_time: datetime,
        *,
        title: str,
        notes: Optional[str] = None,
        assigned_user_id: Optional[str] = None,
    ) -> str:
        if title in self.create_errors:
            raise self.create_errors[title]
        appointment_id = f"appt_{len(self.appointments) + 1}"
        self.appointments.append(
            {
                "id": appointment_id,
                "calendar_id": calendar_id,
                "contact_id": contact_id,
                "start_time": start_time,
                "end_time": end_time,
                "title": title,
                "notes": notes,
                "assigned_user_id": assigned_user_id,
            }
        )
        return appointment_id

    async def add_appointment_note(self, appointment_id: str, body: str) -> None:
        if self.note_error is not None:
            raise self.note_error
        self.notes.append((appointment_id, body))

    async def cancel_appointment(self, event_id: str) -> dict[str, Any]:
        self.cancelled.append(event_id)
        return {"succeeded": True}

    async def reschedule_appointment(
        self, event_id: str, start_time: datetime, end_time: datetime
    ) -> dict[str, Any]:
        self.rescheduled.append((event_id, start_time, end_time))
        return {"id": event_id}

    async def aclose(self) -> None:
        self.closed = True


def server_error(message: str = "HTTP 500 from calendar platform") -> UpstreamTransientError:
    return UpstreamTransientError(message, status_code=500)


SWEDISH = CalendarResource(
    id="cal_swedish",
    name="Swedish Massage",
    slot_duration_minutes=60,
    buffer_minutes=15,
    timezone=TZ,
    service_names=["Swedish Massage"],
)
FACIAL = CalendarResource(
    id="cal_facial",
    name="Facial Room",
    slot_duration_minutes=60,
    buffer_minutes=0,
    timezone=TZ,
    service_names=["Facial"],
)
ANNA = TeamMember(
    user_id="user_anna",
    name="Anna Lee",
    gender=Gender.FEMALE,
    calendar_ids=["cal_swedish", "cal_facial"],
)
BEN = TeamMember(
    user_id="user_ben", name="Ben Ortiz", gender=Gender.MALE, calendar_ids=["cal_swedish"]
)
DELUXE = ServicePackage(
    name="Deluxe Spa Day", services=["Swedish Massage", "Facial"], price=240.0,
    total_duration_minutes=135,
)


def build_directory() -> InMemoryDirectoryStore:
    store = InMemoryDirectoryStore()
    store.add_location(
        Location(location_id=LOCATION_ID, default_calendar_id="cal_default", timezone=TZ),
        calendars=[SWEDISH, FACIAL],
        team_members=[ANNA, BEN],
        packages=[DELUXE],
        service_mappings={"Hot Stone": ["cal_swedish"]},
    )
    return store


@pytest.fixture
def search_config():
    return SearchConfig()


@pytest.fixture
def fake_api():
    return FakeCalendarApi()


@pytest.fixture
def directory():
    return build_directory()


@pytest.fixture
def fetcher(fake_api):
    return SlotFetcher(fake_api, now_fn=lambda: FIXED_NOW, lead_minutes=15)


@pytest.fixture
def schedule_cache(fetcher):
    return ScheduleCache(fetcher, cache=TTLCache(3600), now_fn=lambda: FIXED_NOW)


@pytest.fixture
def availability_service(directory, fetcher, schedule_cache, search_config):
    return AvailabilityService(directory, fetcher, schedule_cache, search_config)


@pytest.fixture
def planner(directory, fetcher, search_config):
    return PackagePlanner(directory, fetcher, search_config)


@pytest.fixture
def booking_orchestrator(fake_api):
    return BookingOrchestrator(fake_api, default_region="US")


@pytest.fixture
def orchestrator(
    fake_api, directory, fetcher, schedule_cache, availability_service, planner,
    booking_orchestrator, search_config,
):
    return Orchestrator(
        location_id=LOCATION_ID,
        directory=directory,
        api=fake_api,
        fetcher=fetcher,
        schedule_cache=schedule_cache,
        availability=availability_service,
        planner=planner,
        booking=booking_orchestrator,
        search=search_config,
    )
