"""Availability search request, slot, schedule, and package-plan models."""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from booking_orchestrator.schemas.calendar_schema import Gender, parse_gender


class TimePreference(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    ANY = "any"


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    NO_AVAILABILITY = "no_availability"
    NO_MATCHING_STAFF = "no_matching_staff"


class Slot(BaseModel):
    """A single bookable start time on one calendar."""

    model_config = ConfigDict(frozen=True)

    start_time: datetime
    calendar_id: str
    duration_minutes: int = 60
    staff_id: Optional[str] = None
    staff_name: Optional[str] = None

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration_minutes)

    @property
    def local_date(self) -> date:
        """Date in the calendar's timezone (start_time is stored in that zone)."""
        return self.start_time.date()


class DayHours(BaseModel):
    """First and last slot start seen for one weekday."""

    earliest: time
    latest: time


class ScheduleInfo(BaseModel):
    """Open weekdays (Monday=0) and typical hours, inferred from one sample week."""

    open_weekdays: set[int] = Field(default_factory=set)
    hours: dict[int, DayHours] = Field(default_factory=dict)
    is_default: bool = False

    def is_open(self, weekday: int) -> bool:
        return weekday in self.open_weekdays


class DateFilter(BaseModel):
    """An inclusive date range; ``end=None`` means open-ended."""

    start: date
    end: Optional[date] = None
    label: str = ""

    def contains(self, day: date) -> bool:
        if day < self.start:
            return False
        return self.end is None or day <= self.end

    @property
    def is_single_day(self) -> bool:
        return self.end == self.start


class AvailabilityRequest(BaseModel):
    """A caller's availability question, as collected by the voice agent."""

    location_id: str
    service_name: Optional[str] = None
    package_name: Optional[str] = None
    time_preference: TimePreference = TimePreference.ANY
    requested_date: Optional[str] = None
    requested_time: Optional[str] = None
    staff_name: Optional[str] = None
    gender_preference: Optional[Gender] = None
    start_after: Optional[datetime] = None

    @field_validator("time_preference", mode="before")
    @classmethod
    def _coerce_time_preference(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return TimePreference.ANY
        if isinstance(value, str):
            folded = value.strip().lower()
            return folded if folded in {p.value for p in TimePreference} else TimePreference.ANY
        return value

    @field_validator("gender_preference", mode="before")
    @classmethod
    def _coerce_gender(cls, value: Any) -> Optional[Gender]:
        return parse_gender(value)

    @field_validator("service_name", "package_name", "requested_date", "requested_time", "staff_name")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class AvailabilityResult(BaseModel):
    """Outcome of a slot search, ready to be read back to the caller."""

    status: AvailabilityStatus
    slots: list[Slot] = Field(default_factory=list)
    message: str = ""
    searched_days: int = 0
    date_filter: Optional[DateFilter] = None
    open_weekdays: list[int] = Field(default_factory=list)

    @property
    def available(self) -> bool:
        return self.status == AvailabilityStatus.AVAILABLE


class PlannedStep(BaseModel):
    """One service placed on a concrete calendar and time."""

    model_config = ConfigDict(frozen=True)

    service_name: str
    start_time: datetime
    end_time: datetime
    calendar_id: str
    buffer_minutes: int = 0
    staff_id: Optional[str] = None
    staff_name: Optional[str] = None

    @property
    def ready_at(self) -> datetime:
        """Earliest moment the next service may start after this one."""
        return self.end_time + timedelta(minutes=self.buffer_minutes)


class PackagePlan(BaseModel):
    """A day on which every service of a package fits back-to-back."""

    date: date
    steps: list[PlannedStep]
    package_name: Optional[str] = None

    @property
    def start_time(self) -> datetime:
        return self.steps[0].start_time

    @property
    def end_time(self) -> datetime:
        return self.steps[-1].end_time
