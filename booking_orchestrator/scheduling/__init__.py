from booking_orchestrator.scheduling.availability import AvailabilityService, select_slots
from booking_orchestrator.scheduling.booking import BookingOrchestrator
from booking_orchestrator.scheduling.cache import TTLCache
from booking_orchestrator.scheduling.calendar_resolver import resolve_calendars, resolve_targets
from booking_orchestrator.scheduling.package_planner import PackagePlanner, fit_day
from booking_orchestrator.scheduling.schedule_cache import ScheduleCache
from booking_orchestrator.scheduling.slot_fetcher import SlotFetcher
from booking_orchestrator.scheduling.time_resolver import resolve_date_filter, resolve_time_of_day

__all__ = [
    "AvailabilityService",
    "BookingOrchestrator",
    "PackagePlanner",
    "ScheduleCache",
    "SlotFetcher",
    "TTLCache",
    "fit_day",
    "resolve_calendars",
    "resolve_date_filter",
    "resolve_targets",
    "resolve_time_of_day",
    "select_slots",
]
