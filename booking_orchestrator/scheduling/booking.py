"""
Booking orchestrator: execute a planned list of steps against the remote calendar.

Steps run strictly one after another. A failing step is recorded and the
remaining steps are still attempted; nothing already booked is rolled
back. The aggregate is classified as confirmed, partial, or failed, and
carries a sentence the voice agent can read back.
"""

import asyncio
from typing import Optional

from booking_orchestrator.clients.calendar_api import CalendarApiClient
from booking_orchestrator.config import settings
from booking_orchestrator.errors import BookingError
from booking_orchestrator.logging_context import get_call_logger
from booking_orchestrator.prompts.responses import build_booking_message
from booking_orchestrator.schemas.availability_schema import PlannedStep
from booking_orchestrator.schemas.booking_schema import (
    AppointmentOutcome,
    BookingOutcome,
    Customer,
    OutcomeStatus,
    StepStatus,
)
from booking_orchestrator.utils import normalize_phone, title_case

logger = get_call_logger(__name__)


def build_appointment_notes(service_name: str, customer: Customer) -> str:
    """``"Swedish Massage. Therapist preference: Anna. Occasion: Birthday. Quiet room"``."""
    parts = [title_case(service_name)]
    if customer.therapist_preference:
        parts.append(f"Therapist preference: {customer.therapist_preference}")
    if customer.occasion:
        parts.append(f"Occasion: {customer.occasion}")
    if customer.notes:
        parts.append(customer.notes.strip().rstrip("."))
    return ". ".join(parts)


def classify_outcome(appointments: list[AppointmentOutcome]) -> OutcomeStatus:
    confirmed = sum(1 for a in appointments if a.status == StepStatus.CONFIRMED)
    if appointments and confirmed == len(appointments):
        return OutcomeStatus.CONFIRMED
    if confirmed:
        return OutcomeStatus.PARTIAL
    return OutcomeStatus.FAILED


def _log_detached_create(step: PlannedStep, task: "asyncio.Future[str]") -> None:
    """Collect the result of a create whose caller went away."""
    if task.cancelled():
        logger.warning("Detached create for %s was cancelled", step.service_name)
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Detached create for %s failed: %s", step.service_name, exc)
    else:
        logger.info(
            "Detached create for %s finished: appointment %s", step.service_name, task.result()
        )


class BookingOrchestrator:
    """Books each step of a plan for one customer and reports per-step status."""

    def __init__(self, api: CalendarApiClient, default_region: Optional[str] = None) -> None:
        self._api = api
        self._default_region = default_region or settings.default_phone_region

    async def _ensure_contact(self, customer: Customer) -> str:
        phone = normalize_phone(customer.phone, self._default_region) if customer.phone else None
        return await self._api.upsert_contact(
            email=customer.email,
            first_name=customer.first_name,
            last_name=customer.last_name or None,
            phone=phone,
        )

    async def _create(self, step: PlannedStep, contact_id: str, notes: str) -> str:
        """Create the appointment; once sent, cancellation of the caller does not abort it."""
        task = asyncio.ensure_future(
            self._api.create_appointment(
                step.calendar_id,
                contact_id,
                step.start_time,
                step.end_time,
                title=title_case(step.service_name),
                notes=notes,
                assigned_user_id=step.staff_id,
            )
        )
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            logger.warning(
                "Caller cancelled while creating %s; the remote request continues",
                step.service_name,
            )
            task.add_done_callback(lambda done: _log_detached_create(step, done))
            raise

    async def _attach_note(self, appointment_id: str, notes: str) -> None:
        try:
            await self._api.add_appointment_note(appointment_id, notes)
        except BookingError as exc:
            logger.warning("Could not attach notes to appointment %s: %s", appointment_id, exc)

    async def execute_plan(self, steps: list[PlannedStep], customer: Customer) -> BookingOutcome:
        """Book every step in order; step failures are captured, never raised."""
        appointments: list[AppointmentOutcome] = []
        contact_id: Optional[str] = None

        for index, step in enumerate(steps, start=1):
            notes = build_appointment_notes(step.service_name, customer)
            try:
                if contact_id is None:
                    contact_id = await self._ensure_contact(customer)
                appointment_id = await self._create(step, contact_id, notes)
            except Exception as exc:
                logger.warning(
                    "Step %d/%d (%s) failed: %s", index, len(steps), step.service_name, exc
                )
                error = exc.voice_message if isinstance(exc, BookingError) else str(exc)
                appointments.append(
                    AppointmentOutcome(
                        service_name=step.service_name,
                        start_time=step.start_time,
                        end_time=step.end_time,
                        calendar_id=step.calendar_id,
                        staff_name=step.staff_name,
                        status=StepStatus.FAILED,
                        error=error or type(exc).__name__,
                    )
                )
                continue

            await self._attach_note(appointment_id, notes)
            logger.info(
                "Step %d/%d booked: %s at %s (appointment %s)",
                index, len(steps), step.service_name, step.start_time.isoformat(), appointment_id,
            )
            appointments.append(
                AppointmentOutcome(
                    service_name=step.service_name,
                    start_time=step.start_time,
                    end_time=step.end_time,
                    calendar_id=step.calendar_id,
                    staff_name=step.staff_name,
                    status=StepStatus.CONFIRMED,
                    appointment_id=appointment_id,
                )
            )

        outcome = BookingOutcome(
            status=classify_outcome(appointments),
            appointments=appointments,
            contact_id=contact_id,
        )
        outcome.message = build_booking_message(outcome, customer.first_name)
        logger.info(
            "Booking %s: %d confirmed, %d failed",
            outcome.status.value, len(outcome.confirmed_steps), len(outcome.failed_steps),
        )
        return outcome
