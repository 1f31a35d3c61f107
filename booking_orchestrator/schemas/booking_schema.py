"""Booking customer and outcome models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from booking_orchestrator.errors import BookingFailedError, PartialBookingError
from booking_orchestrator.utils import split_name


class Customer(BaseModel):
    """The caller being booked, as collected by the voice agent."""

    name: str
    email: str
    phone: Optional[str] = None
    therapist_preference: Optional[str] = None
    occasion: Optional[str] = None
    notes: Optional[str] = None

    @property
    def first_name(self) -> str:
        return split_name(self.name)[0]

    @property
    def last_name(self) -> str:
        return split_name(self.name)[1]


class StepStatus(str, Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    CONFIRMED = "confirmed"
    PARTIAL = "partial"
    FAILED = "failed"


class AppointmentOutcome(BaseModel):
    """Result of booking one step of a plan."""

    service_name: str
    start_time: datetime
    end_time: datetime
    calendar_id: str
    status: StepStatus
    staff_name: Optional[str] = None
    appointment_id: Optional[str] = None
    error: Optional[str] = None


class BookingOutcome(BaseModel):
    """Aggregate result of executing a single-service or package plan."""

    status: OutcomeStatus
    appointments: list[AppointmentOutcome] = Field(default_factory=list)
    message: str = ""
    contact_id: Optional[str] = None

    @property
    def confirmed_steps(self) -> list[AppointmentOutcome]:
        return [a for a in self.appointments if a.status == StepStatus.CONFIRMED]

    @property
    def failed_steps(self) -> list[AppointmentOutcome]:
        return [a for a in self.appointments if a.status == StepStatus.FAILED]

    @property
    def all_successful(self) -> bool:
        return self.status == OutcomeStatus.CONFIRMED

    def raise_for_status(self) -> None:
        """Raise PartialBookingError or BookingFailedError unless fully confirmed."""
        if self.status == OutcomeStatus.PARTIAL:
            raise PartialBookingError(self)
        if self.status == OutcomeStatus.FAILED:
            raise BookingFailedError(self)
