"""
Free-slot fetching and normalization for one calendar.

The remote platform returns free slots keyed by date, where each value is
either a bare list of ISO timestamps or an object with a ``slots`` list.
Both shapes are resolved here into ``Slot`` records grouped by local date;
nothing past this module sees the raw payload.
"""

import asyncio
from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Any, Callable, Iterable, Optional, Protocol
from zoneinfo import ZoneInfo

from dateutil import parser as dtparser

from booking_orchestrator.config import settings
from booking_orchestrator.errors import UpstreamError
from booking_orchestrator.logging_context import get_call_logger
from booking_orchestrator.schemas.availability_schema import Slot
from booking_orchestrator.schemas.calendar_schema import CalendarTarget

logger = get_call_logger(__name__)

SlotsByDate = dict[date, list[Slot]]


class FreeSlotSource(Protocol):
    async def get_free_slots(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
        timezone: str,
        user_id: Optional[str] = None,
    ) -> dict[str, Any]:
        ...


def _is_date_key(key: str) -> bool:
    try:
        date.fromisoformat(key)
    except ValueError:
        return False
    return True


def _day_entry_timestamps(day_key: str, entry: Any) -> list[Any]:
    """Resolve one date's entry: ``[...]`` or ``{"slots": [...]}``."""
    if isinstance(entry, list):
        return entry
    if isinstance(entry, dict) and isinstance(entry.get("slots"), list):
        return entry["slots"]
    logger.warning("Unrecognized free-slot entry for %s: %s", day_key, type(entry).__name__)
    return []


def _parse_timestamp(raw: Any, zone: ZoneInfo) -> Optional[datetime]:
    if isinstance(raw, dict):
        raw = raw.get("startTime") or raw.get("start")
    if not isinstance(raw, str):
        return None
    try:
        parsed = dtparser.isoparse(raw)
    except ValueError:
        logger.debug("Skipping unparseable slot timestamp %r", raw)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed.astimezone(zone)


def normalize_free_slots(
    payload: dict[str, Any],
    calendar_id: str,
    timezone: str,
    duration_minutes: int = 60,
    staff_id: Optional[str] = None,
    staff_name: Optional[str] = None,
) -> SlotsByDate:
    """Convert a raw free-slots payload into slots grouped by local date.

    Non-date keys (``traceId`` and the like) are ignored, and a top-level
    ``{"slots": {...}}`` wrapper is unwrapped first.
    """
    if isinstance(payload.get("slots"), dict):
        payload = payload["slots"]
    zone = ZoneInfo(timezone)
    by_date: SlotsByDate = {}
    seen: set[datetime] = set()
    for key in sorted(payload):
        if not _is_date_key(key):
            continue
        for raw in _day_entry_timestamps(key, payload[key]):
            start = _parse_timestamp(raw, zone)
            if start is None or start in seen:
                continue
            seen.add(start)
            slot = Slot(
                start_time=start,
                calendar_id=calendar_id,
                duration_minutes=duration_minutes,
                staff_id=staff_id,
                staff_name=staff_name,
            )
            by_date.setdefault(slot.local_date, []).append(slot)
    for slots in by_date.values():
        slots.sort(key=lambda s: s.start_time)
    return by_date


def filter_future_slots(slots: Iterable[Slot], now: datetime, lead_minutes: int) -> list[Slot]:
    """Drop slots starting before ``now + lead_minutes``. Idempotent for a fixed ``now``."""
    cutoff = now + timedelta(minutes=lead_minutes)
    return [slot for slot in slots if slot.start_time >= cutoff]


class SlotFetcher:
    """Fetches and normalizes free slots for one calendar at a time."""

    def __init__(
        self,
        source: FreeSlotSource,
        now_fn: Optional[Callable[[], datetime]] = None,
        lead_minutes: Optional[int] = None,
    ) -> None:
        self._source = source
        self._now = now_fn or (lambda: datetime.now(dt_timezone.utc))
        self.lead_minutes = settings.search.lead_minutes if lead_minutes is None else lead_minutes

    def now(self) -> datetime:
        return self._now()

    async def fetch_slots(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
        timezone: str,
        staff_id: Optional[str] = None,
        *,
        duration_minutes: int = 60,
        staff_name: Optional[str] = None,
    ) -> SlotsByDate:
        """Free slots for ``calendar_id`` in ``[start, end]``, minus anything too soon to reach.

        Authentication retries happen in the API client; any remaining
        failure propagates as an ``UpstreamError``.
        """
        payload = await self._source.get_free_slots(
            calendar_id, start, end, timezone, user_id=staff_id
        )
        by_date = normalize_free_slots(
            payload, calendar_id, timezone, duration_minutes, staff_id, staff_name
        )
        now = self._now().astimezone(ZoneInfo(timezone))
        filtered: SlotsByDate = {}
        for day, slots in by_date.items():
            upcoming = filter_future_slots(slots, now, self.lead_minutes)
            if upcoming:
                filtered[day] = upcoming
        logger.debug(
            "Calendar %s: %d slots on %d days after filtering",
            calendar_id, sum(len(s) for s in filtered.values()), len(filtered),
        )
        return filtered

    async def fetch_target(
        self, target: CalendarTarget, start: datetime, end: datetime, timezone: str
    ) -> SlotsByDate:
        staff = target.staff
        return await self.fetch_slots(
            target.calendar.id,
            start,
            end,
            target.calendar.timezone or timezone,
            staff.user_id if staff else None,
            duration_minutes=target.calendar.slot_duration_minutes,
            staff_name=staff.name if staff else None,
        )

    async def fetch_many(
        self, targets: list[CalendarTarget], start: datetime, end: datetime, timezone: str
    ) -> list[tuple[CalendarTarget, SlotsByDate]]:
        """Fetch every target concurrently.

        A failing target among several contributes no slots; when it is the
        only target its error propagates.
        """
        results = await asyncio.gather(
            *(self.fetch_target(target, start, end, timezone) for target in targets),
            return_exceptions=True,
        )
        merged: list[tuple[CalendarTarget, SlotsByDate]] = []
        for target, result in zip(targets, results):
            if isinstance(result, UpstreamError):
                if len(targets) == 1:
                    raise result
                logger.warning("Dropping slots from %s: %s", target.label, result)
                merged.append((target, {}))
            elif isinstance(result, BaseException):
                raise result
            else:
                merged.append((target, result))
        return merged
