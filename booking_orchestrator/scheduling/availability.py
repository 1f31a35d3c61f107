"""
Availability merger: fan out slot fetches, merge, filter, rank.

Pipeline per search window:
    fetch every target concurrently -> merge and de-duplicate ->
    drop near-past slots -> date filter -> start_after -> time of day ->
    rank and cap

The window starts at 7 days and widens (14, then 30) only when nothing
survives the filters.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from booking_orchestrator.clients.directory import DirectoryStore
from booking_orchestrator.config import SearchConfig, settings
from booking_orchestrator.errors import NoMatchingStaffError
from booking_orchestrator.logging_context import get_call_logger
from booking_orchestrator.prompts.responses import (
    build_no_availability_message,
    build_slots_message,
)
from booking_orchestrator.scheduling.calendar_resolver import location_timezone, resolve_targets
from booking_orchestrator.scheduling.schedule_cache import ScheduleCache
from booking_orchestrator.scheduling.slot_fetcher import SlotFetcher, filter_future_slots
from booking_orchestrator.scheduling.time_resolver import (
    local_now,
    matches_time_preference,
    minute_of_day,
    resolve_date_filter,
    resolve_time_of_day,
    start_of_day,
)
from booking_orchestrator.schemas.availability_schema import (
    AvailabilityRequest,
    AvailabilityResult,
    AvailabilityStatus,
    DateFilter,
    Slot,
    TimePreference,
)
from booking_orchestrator.schemas.calendar_schema import CalendarTarget

logger = get_call_logger(__name__)


def merge_slots(slot_lists: Iterable[list[Slot]]) -> list[Slot]:
    """Flatten, sort by start, and drop duplicates of the same start for the same staff."""
    merged: list[Slot] = []
    seen: set[tuple[datetime, Optional[str]]] = set()
    for slot in sorted((s for slots in slot_lists for s in slots), key=lambda s: s.start_time):
        key = (slot.start_time, slot.staff_id)
        if key in seen:
            continue
        seen.add(key)
        merged.append(slot)
    return merged


def spread_by_day(slots: list[Slot], limit: int) -> list[Slot]:
    """Pick up to ``limit`` slots, preferring one per day.

    The first pass takes the earliest slot of each day; if that leaves room,
    the remaining slots fill in chronologically. Output is chronological.
    """
    chosen: list[Slot] = []
    days_taken: set = set()
    for slot in slots:
        if len(chosen) >= limit:
            break
        if slot.local_date not in days_taken:
            chosen.append(slot)
            days_taken.add(slot.local_date)
    for slot in slots:
        if len(chosen) >= limit:
            break
        if slot not in chosen:
            chosen.append(slot)
    return sorted(chosen, key=lambda s: s.start_time)


def rank_by_time_proximity(slots: list[Slot], requested_minute: int, limit: int) -> list[Slot]:
    """Closest to the requested clock time first, across all days; earlier breaks ties."""
    ranked = sorted(
        slots,
        key=lambda s: (abs(minute_of_day(s.start_time) - requested_minute), s.start_time),
    )
    return ranked[:limit]


def select_slots(
    slots: list[Slot],
    *,
    now: datetime,
    lead_minutes: int,
    time_preference: TimePreference = TimePreference.ANY,
    date_filter: Optional[DateFilter] = None,
    start_after: Optional[datetime] = None,
    requested_minute: Optional[int] = None,
    max_results: int = 3,
    max_results_with_time: int = 5,
) -> list[Slot]:
    """Filter a merged slot list and rank it for the caller."""
    candidates = filter_future_slots(slots, now, lead_minutes)
    if date_filter is not None:
        candidates = [s for s in candidates if date_filter.contains(s.local_date)]
    if start_after is not None:
        candidates = [s for s in candidates if s.start_time >= start_after]
    candidates = [s for s in candidates if matches_time_preference(s.start_time, time_preference)]
    if requested_minute is not None:
        return rank_by_time_proximity(candidates, requested_minute, max_results_with_time)
    return spread_by_day(candidates, max_results)


class AvailabilityService:
    """Answers "when can I come in?" for a single service, staff member, or the whole location."""

    def __init__(
        self,
        directory: DirectoryStore,
        fetcher: SlotFetcher,
        schedule_cache: ScheduleCache,
        search: Optional[SearchConfig] = None,
    ) -> None:
        self._directory = directory
        self._fetcher = fetcher
        self._schedule_cache = schedule_cache
        self._search = search or settings.search

    async def check_availability(self, request: AvailabilityRequest) -> AvailabilityResult:
        """Resolve calendars for the request, then search them."""
        timezone = await location_timezone(self._directory, request.location_id)
        try:
            targets = await resolve_targets(
                self._directory,
                request.location_id,
                service_name=request.service_name,
                staff_name=request.staff_name,
                gender=request.gender_preference,
            )
        except NoMatchingStaffError as exc:
            logger.info("No staff matches gender preference %s", exc.gender)
            return AvailabilityResult(
                status=AvailabilityStatus.NO_MATCHING_STAFF, message=exc.voice_message
            )
        return await self.find_slots(request, targets, timezone)

    async def find_slots(
        self, request: AvailabilityRequest, targets: list[CalendarTarget], timezone: str
    ) -> AvailabilityResult:
        now = self._fetcher.now()
        today = local_now(now, timezone).date()
        date_filter = resolve_date_filter(request.requested_date, now, timezone)
        requested_minute = resolve_time_of_day(request.requested_time)
        if request.requested_date and date_filter is None:
            logger.info("Ignoring unrecognized date phrase %r", request.requested_date)

        first_day = max(today, date_filter.start) if date_filter else today
        fetch_start = max(now, start_of_day(first_day, timezone))
        if request.start_after is not None:
            fetch_start = max(fetch_start, request.start_after)
        filter_end = (
            start_of_day(date_filter.end + timedelta(days=1), timezone)
            if date_filter and date_filter.end
            else None
        )

        searched_days = 0
        for days in self._search.search_windows_days:
            fetch_end = start_of_day(first_day + timedelta(days=days), timezone)
            if filter_end is not None:
                fetch_end = min(fetch_end, filter_end)
            searched_days = days
            if fetch_end <= fetch_start:
                break
            fetched = await self._fetcher.fetch_many(targets, fetch_start, fetch_end, timezone)
            merged = merge_slots(
                slots for _, by_date in fetched for slots in by_date.values()
            )
            selected = select_slots(
                merged,
                now=now,
                lead_minutes=self._fetcher.lead_minutes,
                time_preference=request.time_preference,
                date_filter=date_filter,
                start_after=request.start_after,
                requested_minute=requested_minute,
                max_results=self._search.max_results,
                max_results_with_time=self._search.max_results_with_time,
            )
            if selected:
                logger.info(
                    "Found %d slots across %d calendars within %d days",
                    len(selected), len(targets), days,
                )
                return AvailabilityResult(
                    status=AvailabilityStatus.AVAILABLE,
                    slots=selected,
                    message=build_slots_message(selected, request.service_name),
                    searched_days=days,
                    date_filter=date_filter,
                )
            if filter_end is not None and fetch_end >= filter_end:
                break
            logger.info("No slots within %d days, widening search", days)

        open_weekdays = await self._open_weekdays(targets, timezone)
        return AvailabilityResult(
            status=AvailabilityStatus.NO_AVAILABILITY,
            message=build_no_availability_message(
                request.service_name,
                request.time_preference,
                searched_days,
                date_filter,
                open_weekdays,
            ),
            searched_days=searched_days,
            date_filter=date_filter,
            open_weekdays=open_weekdays,
        )

    async def _open_weekdays(self, targets: list[CalendarTarget], timezone: str) -> list[int]:
        """Union of inferred open weekdays across the searched calendars."""
        open_days: set[int] = set()
        for calendar_id in dict.fromkeys(t.calendar.id for t in targets):
            schedule = await self._schedule_cache.get_schedule_or_default(calendar_id, timezone)
            open_days |= schedule.open_weekdays
        return sorted(open_days)
