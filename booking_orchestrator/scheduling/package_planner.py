"""
Package day-fit planner.

Places every service of a package back-to-back on a single day. For each
candidate date the services are folded in package order, threading a
"not before" instant forward: each service takes the earliest qualifying
slot at or after it, and the next service may not start before
``slot end + that calendar's buffer``.

The fit is greedy and never backtracks. If service 2 has nothing after
service 1's earliest placement, the day is rejected even when a later
placement of service 1 would have worked.
"""

import asyncio
from datetime import date, datetime, timedelta
from typing import Optional

from booking_orchestrator.clients.directory import DirectoryStore
from booking_orchestrator.config import SearchConfig, settings
from booking_orchestrator.errors import ConfigurationError, NotFoundError, UpstreamError
from booking_orchestrator.logging_context import get_call_logger
from booking_orchestrator.scheduling.calendar_resolver import location_timezone, resolve_calendars
from booking_orchestrator.scheduling.slot_fetcher import SlotFetcher, SlotsByDate
from booking_orchestrator.scheduling.time_resolver import (
    local_now,
    matches_time_preference,
    resolve_date,
    start_of_day,
)
from booking_orchestrator.schemas.availability_schema import (
    PackagePlan,
    PlannedStep,
    TimePreference,
)
from booking_orchestrator.schemas.calendar_schema import CalendarResource, ServicePackage
from booking_orchestrator.utils import suggest_name

logger = get_call_logger(__name__)

# One service's candidate calendars with their prefetched slots.
ServiceCandidates = list[tuple[CalendarResource, SlotsByDate]]


def place_service(
    service_name: str,
    candidates: ServiceCandidates,
    day: date,
    not_before: datetime,
    time_preference: TimePreference = TimePreference.ANY,
) -> Optional[PlannedStep]:
    """Earliest slot on ``day`` at or after ``not_before`` across the service's calendars."""
    best: Optional[PlannedStep] = None
    for calendar, by_date in candidates:
        for slot in by_date.get(day, []):
            if slot.start_time < not_before:
                continue
            if not matches_time_preference(slot.start_time, time_preference):
                continue
            if best is None or slot.start_time < best.start_time:
                best = PlannedStep(
                    service_name=service_name,
                    start_time=slot.start_time,
                    end_time=slot.start_time + timedelta(minutes=calendar.slot_duration_minutes),
                    calendar_id=calendar.id,
                    buffer_minutes=calendar.buffer_minutes,
                    staff_id=slot.staff_id,
                    staff_name=slot.staff_name,
                )
            break
    return best


def fit_day(
    services: list[tuple[str, ServiceCandidates]],
    day: date,
    not_before: datetime,
    time_preference: TimePreference = TimePreference.ANY,
) -> Optional[list[PlannedStep]]:
    """Place every service on ``day`` in order, or return None if any cannot fit."""
    steps: list[PlannedStep] = []
    for service_name, candidates in services:
        step = place_service(service_name, candidates, day, not_before, time_preference)
        if step is None:
            return None
        steps.append(step)
        not_before = step.ready_at
    return steps


class PackagePlanner:
    """Finds days on which a whole package fits, for preview or booking."""

    def __init__(
        self,
        directory: DirectoryStore,
        fetcher: SlotFetcher,
        search: Optional[SearchConfig] = None,
    ) -> None:
        self._directory = directory
        self._fetcher = fetcher
        self._search = search or settings.search

    async def resolve_package(self, location_id: str, package_name: str) -> ServicePackage:
        package = await self._directory.get_package_by_name(location_id, package_name)
        if package is not None:
            return package
        known = [p.name for p in await self._directory.list_packages(location_id)]
        raise NotFoundError("package", package_name, suggest_name(package_name, known))

    async def _service_calendars(
        self, location_id: str, services: list[str]
    ) -> dict[str, list[CalendarResource]]:
        by_service: dict[str, list[CalendarResource]] = {}
        for service in services:
            if service in by_service:
                continue
            calendars = await resolve_calendars(self._directory, location_id, service)
            if not calendars:
                raise ConfigurationError(f"No calendar configured for service {service!r}")
            by_service[service] = calendars
        return by_service

    async def _prefetch(
        self,
        calendars: list[CalendarResource],
        start: datetime,
        end: datetime,
        timezone: str,
    ) -> dict[str, SlotsByDate]:
        """Fetch each distinct calendar once, concurrently.

        A failing calendar among several contributes no slots; when it is the
        only calendar its error propagates.
        """
        results = await asyncio.gather(
            *(
                self._fetcher.fetch_slots(
                    c.id,
                    start,
                    end,
                    c.timezone or timezone,
                    duration_minutes=c.slot_duration_minutes,
                )
                for c in calendars
            ),
            return_exceptions=True,
        )
        slots_by_calendar: dict[str, SlotsByDate] = {}
        for calendar, result in zip(calendars, results):
            if isinstance(result, UpstreamError):
                if len(calendars) == 1:
                    raise result
                logger.warning("Dropping slots from calendar %s: %s", calendar.id, result)
                slots_by_calendar[calendar.id] = {}
            elif isinstance(result, BaseException):
                raise result
            else:
                slots_by_calendar[calendar.id] = result
        return slots_by_calendar

    async def find_package_plan(
        self,
        location_id: str,
        services: list[str],
        time_preference: TimePreference = TimePreference.ANY,
        requested_date: Optional[str] = None,
        max_results: int = 1,
        start_after: Optional[datetime] = None,
        package_name: Optional[str] = None,
    ) -> list[PackagePlan]:
        """Up to ``max_results`` days, ascending, on which every service fits in order.

        Raises ConfigurationError when any service has no calendar at all.
        """
        if not services:
            raise ConfigurationError(f"Package {package_name or ''!r} has no services")
        timezone = await location_timezone(self._directory, location_id)
        by_service = await self._service_calendars(location_id, services)

        now = self._fetcher.now()
        today = local_now(now, timezone).date()
        first_day = resolve_date(requested_date, now, timezone) or today
        first_day = max(first_day, today)
        window_end = start_of_day(
            first_day + timedelta(days=self._search.package_search_days + 1), timezone
        )
        earliest = now + timedelta(minutes=self._fetcher.lead_minutes)

        distinct = list({c.id: c for cals in by_service.values() for c in cals}.values())
        fetch_start = max(now, start_of_day(first_day, timezone))
        slots_by_calendar = await self._prefetch(distinct, fetch_start, window_end, timezone)

        plan_inputs = [
            (service, [(c, slots_by_calendar[c.id]) for c in by_service[service]])
            for service in services
        ]

        plans: list[PackagePlan] = []
        for offset in range(self._search.package_search_days + 1):
            day = first_day + timedelta(days=offset)
            not_before = max(earliest, start_of_day(day, timezone))
            if start_after is not None:
                not_before = max(not_before, start_after)
            steps = fit_day(plan_inputs, day, not_before, time_preference)
            if steps is None:
                continue
            plans.append(PackagePlan(date=day, steps=steps, package_name=package_name))
            if len(plans) >= max_results:
                break
        logger.info(
            "Package %s: %d of %d requested plans found",
            package_name or "+".join(services), len(plans), max_results,
        )
        return plans
