"""
Directory store: the read-only source of locations, calendars, staff, and packages.

The store is kept fresh by a separate sync poller. This package reads it
on every call and never writes to it.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from booking_orchestrator.schemas.calendar_schema import (
    CalendarResource,
    Gender,
    Location,
    ServicePackage,
    TeamMember,
    extract_team_members,
    normalize_calendar,
    normalize_team_member,
)
from booking_orchestrator.utils import casefold_equal

logger = logging.getLogger(__name__)


class DirectoryStore(Protocol):
    async def get_location(self, location_id: str) -> Optional[Location]:
        ...

    async def get_synced_calendars(self, location_id: str) -> list[CalendarResource]:
        ...

    async def get_synced_calendars_for_service(
        self, location_id: str, service_name: str
    ) -> list[CalendarResource]:
        ...

    async def get_service_calendar_mappings(
        self, location_id: str, service_name: str
    ) -> list[CalendarResource]:
        ...

    async def get_team_members(self, location_id: str) -> list[TeamMember]:
        ...

    async def get_team_members_for_calendar(
        self, location_id: str, calendar_id: str
    ) -> list[TeamMember]:
        ...

    async def get_team_members_by_gender(
        self, location_id: str, gender: Gender, calendar_ids: Optional[list[str]] = None
    ) -> list[TeamMember]:
        ...

    async def get_package_by_name(self, location_id: str, name: str) -> Optional[ServicePackage]:
        ...

    async def list_packages(self, location_id: str) -> list[ServicePackage]:
        ...


class InMemoryDirectoryStore:
    """Dict-backed directory, used by tests and the command-line tool.

    ``service_mappings`` holds manually configured service -> calendar ids,
    consulted only when no synced calendar offers the service.
    """

    def __init__(self) -> None:
        self.locations: dict[str, Location] = {}
        self.calendars: dict[str, list[CalendarResource]] = {}
        self.team_members: dict[str, list[TeamMember]] = {}
        self.service_mappings: dict[str, dict[str, list[str]]] = {}
        self.packages: dict[str, list[ServicePackage]] = {}

    def add_location(
        self,
        location: Location,
        calendars: Optional[list[CalendarResource]] = None,
        team_members: Optional[list[TeamMember]] = None,
        packages: Optional[list[ServicePackage]] = None,
        service_mappings: Optional[dict[str, list[str]]] = None,
    ) -> None:
        location_id = location.location_id
        self.locations[location_id] = location
        self.calendars[location_id] = list(calendars or [])
        self.team_members[location_id] = list(team_members or [])
        self.packages[location_id] = list(packages or [])
        self.service_mappings[location_id] = {
            service.casefold(): ids for service, ids in (service_mappings or {}).items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InMemoryDirectoryStore":
        """Build a store from ``{"locations": [{"location_id": ..., "calendars": [...], ...}]}``."""
        store = cls()
        for entry in data.get("locations", []):
            location = Location(
                location_id=entry["location_id"],
                default_calendar_id=entry.get("default_calendar_id"),
                timezone=entry.get("timezone"),
            )
            calendars = [normalize_calendar(raw, location.timezone) for raw in entry.get("calendars", [])]
            members: dict[str, TeamMember] = {}
            listed = [normalize_team_member(raw) for raw in entry.get("team_members", [])]
            nested = [m for raw in entry.get("calendars", []) for m in extract_team_members(raw)]
            # Calendars in platform payload shape carry their own team lists.
            for member in listed + nested:
                if member is None:
                    continue
                existing = members.setdefault(member.user_id, member)
                if existing is not member:
                    for calendar_id in member.calendar_ids:
                        if calendar_id not in existing.calendar_ids:
                            existing.calendar_ids.append(calendar_id)
            packages = [ServicePackage(**raw) for raw in entry.get("packages", [])]
            store.add_location(
                location,
                calendars,
                list(members.values()),
                packages,
                entry.get("service_mappings") or {},
            )
        logger.info("Loaded directory with %d locations", len(store.locations))
        return store

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "InMemoryDirectoryStore":
        with open(path, encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))

    async def get_location(self, location_id: str) -> Optional[Location]:
        return self.locations.get(location_id)

    async def get_synced_calendars(self, location_id: str) -> list[CalendarResource]:
        return list(self.calendars.get(location_id, []))

    async def get_synced_calendars_for_service(
        self, location_id: str, service_name: str
    ) -> list[CalendarResource]:
        return [c for c in self.calendars.get(location_id, []) if c.offers_service(service_name)]

    async def get_service_calendar_mappings(
        self, location_id: str, service_name: str
    ) -> list[CalendarResource]:
        ids = self.service_mappings.get(location_id, {}).get(service_name.strip().casefold(), [])
        location = self.locations.get(location_id)
        by_id = {c.id: c for c in self.calendars.get(location_id, [])}
        return [
            by_id.get(cid) or CalendarResource(id=cid, timezone=location.timezone if location else None)
            for cid in ids
        ]

    async def get_team_members(self, location_id: str) -> list[TeamMember]:
        return list(self.team_members.get(location_id, []))

    async def get_team_members_for_calendar(
        self, location_id: str, calendar_id: str
    ) -> list[TeamMember]:
        return [m for m in self.team_members.get(location_id, []) if calendar_id in m.calendar_ids]

    async def get_team_members_by_gender(
        self, location_id: str, gender: Gender, calendar_ids: Optional[list[str]] = None
    ) -> list[TeamMember]:
        members = [m for m in self.team_members.get(location_id, []) if m.gender == gender]
        if calendar_ids is not None:
            wanted = set(calendar_ids)
            members = [m for m in members if wanted.intersection(m.calendar_ids)]
        return members

    async def get_package_by_name(self, location_id: str, name: str) -> Optional[ServicePackage]:
        for package in self.packages.get(location_id, []):
            if casefold_equal(package.name, name):
                return package
        return None

    async def list_packages(self, location_id: str) -> list[ServicePackage]:
        return list(self.packages.get(location_id, []))
