"""
Open-weekday inference from one reference week of free slots.

The calendar platform exposes free slots but not business hours, so the
hours are read off a sample: any weekday with at least one free slot in
the next Monday-Sunday window counts as open. Results are cached per
calendar for an hour.
"""

from datetime import datetime, timezone as dt_timezone
from typing import Callable, Optional

from booking_orchestrator.config import settings
from booking_orchestrator.errors import UpstreamError
from booking_orchestrator.logging_context import get_call_logger
from booking_orchestrator.scheduling.cache import TTLCache
from booking_orchestrator.scheduling.slot_fetcher import SlotFetcher, SlotsByDate
from booking_orchestrator.scheduling.time_resolver import next_reference_week
from booking_orchestrator.schemas.availability_schema import DayHours, ScheduleInfo

logger = get_call_logger(__name__)


def build_schedule_info(slots_by_date: SlotsByDate) -> ScheduleInfo:
    """Fold a window of slots into open weekdays and first/last slot times.

    If a weekday appears more than once in the window, its first occurrence
    (by date) decides the recorded hours.
    """
    info = ScheduleInfo()
    for day in sorted(slots_by_date):
        slots = slots_by_date[day]
        if not slots:
            continue
        weekday = day.weekday()
        if weekday in info.open_weekdays:
            continue
        starts = sorted(slot.start_time for slot in slots)
        info.open_weekdays.add(weekday)
        info.hours[weekday] = DayHours(
            earliest=starts[0].time().replace(tzinfo=None),
            latest=starts[-1].time().replace(tzinfo=None),
        )
    return info


def default_schedule() -> ScheduleInfo:
    return ScheduleInfo(open_weekdays=set(settings.search.default_open_weekdays), is_default=True)


class ScheduleCache:
    """Per-calendar ScheduleInfo, built on demand and cached with a TTL."""

    def __init__(
        self,
        fetcher: SlotFetcher,
        cache: Optional[TTLCache[ScheduleInfo]] = None,
        now_fn: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache: TTLCache[ScheduleInfo] = cache if cache is not None else TTLCache(
            settings.search.schedule_cache_ttl_seconds
        )
        self._now = now_fn or (lambda: datetime.now(dt_timezone.utc))

    async def get_schedule(self, calendar_id: str, timezone: str) -> ScheduleInfo:
        """Return the cached schedule, fetching the reference week on a miss.

        Fetch errors propagate; use ``get_schedule_or_default`` where the
        schedule is only advisory.
        """
        cached, found = self._cache.get(calendar_id)
        if found and cached is not None:
            return cached

        week_start, week_end = next_reference_week(self._now(), timezone)
        slots_by_date = await self._fetcher.fetch_slots(calendar_id, week_start, week_end, timezone)
        info = build_schedule_info(slots_by_date)
        self._cache.put(calendar_id, info)
        logger.info(
            "Schedule cached for calendar %s: open weekdays %s",
            calendar_id, sorted(info.open_weekdays),
        )
        return info

    async def get_schedule_or_default(self, calendar_id: str, timezone: str) -> ScheduleInfo:
        """Like ``get_schedule`` but degrades to the configured default week on failure."""
        try:
            return await self.get_schedule(calendar_id, timezone)
        except UpstreamError as exc:
            logger.warning(
                "Schedule inference failed for calendar %s, using default weekdays: %s",
                calendar_id, exc,
            )
            return default_schedule()
