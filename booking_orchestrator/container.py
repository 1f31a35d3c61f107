"""
Wires the directory, API client, fetcher, cache, and services for one location.

    orchestrator = create_orchestrator("loc_1", directory, StaticTokenProvider(token))
    async with orchestrator:
        result = await orchestrator.availability.check_availability(request)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

import httpx

from booking_orchestrator.clients.calendar_api import CalendarApiClient
from booking_orchestrator.clients.directory import DirectoryStore, InMemoryDirectoryStore
from booking_orchestrator.clients.supabase_directory import create_supabase_directory
from booking_orchestrator.clients.tokens import TokenProvider
from booking_orchestrator.config import AppConfig, SearchConfig, settings
from booking_orchestrator.errors import ConfigurationError
from booking_orchestrator.scheduling.availability import AvailabilityService
from booking_orchestrator.scheduling.booking import BookingOrchestrator
from booking_orchestrator.scheduling.cache import TTLCache
from booking_orchestrator.scheduling.package_planner import PackagePlanner
from booking_orchestrator.scheduling.schedule_cache import ScheduleCache
from booking_orchestrator.scheduling.slot_fetcher import SlotFetcher


@dataclass
class Orchestrator:
    """Everything a voice-agent tool needs to answer one location's callers."""

    location_id: str
    directory: DirectoryStore
    api: CalendarApiClient
    fetcher: SlotFetcher
    schedule_cache: ScheduleCache
    availability: AvailabilityService
    planner: PackagePlanner
    booking: BookingOrchestrator
    search: SearchConfig

    async def __aenter__(self) -> "Orchestrator":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.api.aclose()


def create_directory(config: Optional[AppConfig] = None) -> DirectoryStore:
    """Build the directory store selected by ``DIRECTORY_BACKEND``."""
    config = config or settings
    if config.directory.backend == "supabase":
        return create_supabase_directory()
    if not config.directory.directory_file:
        raise ConfigurationError("DIRECTORY_FILE must be set for the in-memory directory")
    return InMemoryDirectoryStore.from_file(config.directory.directory_file)


def create_orchestrator(
    location_id: str,
    directory: DirectoryStore,
    tokens: TokenProvider,
    *,
    config: Optional[AppConfig] = None,
    schedule_cache_store: Optional[TTLCache] = None,
    now_fn: Optional[Callable[[], datetime]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Orchestrator:
    """Assemble an Orchestrator.

    ``schedule_cache_store`` may be shared between orchestrators so that
    inferred schedules outlive a single call.
    """
    config = config or settings
    api = CalendarApiClient(
        location_id,
        tokens,
        base_url=config.api.base_url,
        api_version=config.api.api_version,
        timeout_seconds=config.api.timeout_seconds,
        transport=transport,
    )
    fetcher = SlotFetcher(api, now_fn=now_fn, lead_minutes=config.search.lead_minutes)
    if schedule_cache_store is None:
        schedule_cache_store = TTLCache(config.search.schedule_cache_ttl_seconds)
    schedule_cache = ScheduleCache(
        fetcher,
        cache=schedule_cache_store,
        now_fn=now_fn,
    )
    return Orchestrator(
        location_id=location_id,
        directory=directory,
        api=api,
        fetcher=fetcher,
        schedule_cache=schedule_cache,
        availability=AvailabilityService(directory, fetcher, schedule_cache, config.search),
        planner=PackagePlanner(directory, fetcher, config.search),
        booking=BookingOrchestrator(api, config.default_phone_region),
        search=config.search,
    )
