"""
Supabase-backed directory store.

Reads the tables maintained by the calendar sync poller. The supabase
client is synchronous, so each query runs in a worker thread.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from supabase import Client, create_client

from booking_orchestrator.config import settings
from booking_orchestrator.errors import ConfigurationError
from booking_orchestrator.schemas.calendar_schema import (
    CalendarResource,
    Gender,
    Location,
    ServicePackage,
    TeamMember,
    normalize_calendar,
    normalize_team_member,
)
from booking_orchestrator.utils import casefold_equal

logger = logging.getLogger(__name__)

INSTALLATIONS_TABLE = "ghl_installations"
CALENDARS_TABLE = "synced_calendars"
TEAM_MEMBERS_TABLE = "synced_team_members"
SERVICE_MAPPINGS_TABLE = "service_calendar_mappings"
PACKAGES_TABLE = "packages"


def create_supabase_directory() -> "SupabaseDirectoryStore":
    """Build a store from SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY."""
    if not settings.directory.supabase_url or not settings.directory.supabase_key:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
    return SupabaseDirectoryStore(
        create_client(settings.directory.supabase_url, settings.directory.supabase_key)
    )


class SupabaseDirectoryStore:
    def __init__(self, client: Client) -> None:
        self.supabase = client

    async def _rows(self, build: Callable[[], Any]) -> list[dict[str, Any]]:
        resp = await asyncio.to_thread(lambda: build().execute())
        return list(resp.data or [])

    async def get_location(self, location_id: str) -> Optional[Location]:
        rows = await self._rows(
            lambda: self.supabase.table(INSTALLATIONS_TABLE)
            .select("location_id, calendar_id, timezone")
            .eq("location_id", location_id)
            .limit(1)
        )
        if not rows:
            return None
        row = rows[0]
        return Location(
            location_id=row["location_id"],
            default_calendar_id=row.get("calendar_id"),
            timezone=row.get("timezone"),
        )

    async def _location_timezone(self, location_id: str) -> Optional[str]:
        location = await self.get_location(location_id)
        return location.timezone if location else None

    async def get_synced_calendars(self, location_id: str) -> list[CalendarResource]:
        rows = await self._rows(
            lambda: self.supabase.table(CALENDARS_TABLE)
            .select("*")
            .eq("location_id", location_id)
            .eq("is_active", True)
        )
        timezone = await self._location_timezone(location_id)
        return [normalize_calendar(row, timezone) for row in rows]

    async def get_synced_calendars_for_service(
        self, location_id: str, service_name: str
    ) -> list[CalendarResource]:
        calendars = await self.get_synced_calendars(location_id)
        return [c for c in calendars if c.offers_service(service_name)]

    async def get_service_calendar_mappings(
        self, location_id: str, service_name: str
    ) -> list[CalendarResource]:
        rows = await self._rows(
            lambda: self.supabase.table(SERVICE_MAPPINGS_TABLE)
            .select("service_name, calendar_id")
            .eq("location_id", location_id)
            .ilike("service_name", service_name.strip())
        )
        timezone = await self._location_timezone(location_id)
        return [CalendarResource(id=row["calendar_id"], timezone=timezone) for row in rows]

    async def get_team_members(self, location_id: str) -> list[TeamMember]:
        rows = await self._rows(
            lambda: self.supabase.table(TEAM_MEMBERS_TABLE)
            .select("user_id, name, email, gender, calendar_id")
            .eq("location_id", location_id)
        )
        # One row per (member, calendar); fold into one record per member.
        members: dict[str, TeamMember] = {}
        for row in rows:
            member = normalize_team_member(row, calendar_id=row.get("calendar_id"))
            if member is None:
                continue
            existing = members.get(member.user_id)
            if existing is None:
                members[member.user_id] = member
            else:
                for calendar_id in member.calendar_ids:
                    if calendar_id not in existing.calendar_ids:
                        existing.calendar_ids.append(calendar_id)
        return list(members.values())

    async def get_team_members_for_calendar(
        self, location_id: str, calendar_id: str
    ) -> list[TeamMember]:
        members = await self.get_team_members(location_id)
        return [m for m in members if calendar_id in m.calendar_ids]

    async def get_team_members_by_gender(
        self, location_id: str, gender: Gender, calendar_ids: Optional[list[str]] = None
    ) -> list[TeamMember]:
        members = [m for m in await self.get_team_members(location_id) if m.gender == gender]
        if calendar_ids is not None:
            wanted = set(calendar_ids)
            members = [m for m in members if wanted.intersection(m.calendar_ids)]
        return members

    async def list_packages(self, location_id: str) -> list[ServicePackage]:
        rows = await self._rows(
            lambda: self.supabase.table(PACKAGES_TABLE)
            .select("name, services, price, total_duration_minutes")
            .eq("location_id", location_id)
        )
        return [
            ServicePackage(
                name=row["name"],
                services=list(row.get("services") or []),
                price=row.get("price"),
                total_duration_minutes=row.get("total_duration_minutes"),
            )
            for row in rows
        ]

    async def get_package_by_name(self, location_id: str, name: str) -> Optional[ServicePackage]:
        for package in await self.list_packages(location_id):
            if casefold_equal(package.name, name):
                return package
        return None
