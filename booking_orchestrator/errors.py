"""
Error taxonomy for availability search and booking.

Every exception carries a ``voice_message``: a sentence the voice agent can
read to the caller as-is. Raw upstream bodies and stack traces never reach
that attribute.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from booking_orchestrator.schemas.booking_schema import BookingOutcome

GENERIC_RETRY_MESSAGE = (
    "I'm having trouble reaching the calendar right now. Could you give me a moment and try again?"
)


class BookingError(Exception):
    """Base class for every failure this package reports to its caller."""

    default_voice_message = "Something went wrong on our side. Let me try that again."

    def __init__(self, message: str, voice_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.voice_message = voice_message or self.default_voice_message


class ConfigurationError(BookingError):
    """No calendar is configured for the location or service. Not retryable."""

    default_voice_message = (
        "I'm not able to book that online right now. Let me have someone from the team call you back."
    )


class NotFoundError(BookingError):
    """An unknown package, staff member, or service name."""

    def __init__(
        self,
        kind: str,
        name: str,
        suggestion: Optional[str] = None,
        voice_message: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.name = name
        self.suggestion = suggestion
        if voice_message is None:
            voice_message = f"I couldn't find a {kind} called '{name}'."
            if suggestion:
                voice_message += f" Did you mean '{suggestion}'?"
        super().__init__(f"Unknown {kind}: {name!r}", voice_message)


class NoMatchingStaffError(NotFoundError):
    """A gender preference was given but no staff member matches it."""

    def __init__(self, gender: str, service_name: Optional[str] = None) -> None:
        self.gender = gender
        scope = f" for {service_name}" if service_name else ""
        super().__init__(
            "therapist",
            gender,
            voice_message=(
                f"I'm sorry, we don't have a {gender} therapist{scope}. "
                "Would you like me to check with any of our other therapists?"
            ),
        )


class UpstreamError(BookingError):
    """The remote calendar platform returned an error."""

    default_voice_message = GENERIC_RETRY_MESSAGE

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamTransientError(UpstreamError):
    """Timeouts, 5xx responses, and network failures."""


class UpstreamTimeoutError(UpstreamTransientError):
    """A remote call exceeded its timeout."""


class AuthExpiredError(UpstreamTransientError):
    """The bearer credential was rejected (HTTP 401)."""


class UpstreamRequestError(UpstreamError):
    """The remote platform rejected the request itself (non-auth 4xx)."""

    default_voice_message = (
        "The calendar didn't accept that request. Could we try a different time?"
    )


class PartialBookingError(BookingError):
    """Some package steps were booked and others failed."""

    def __init__(self, outcome: "BookingOutcome") -> None:
        failed = ", ".join(step.service_name for step in outcome.failed_steps)
        super().__init__(f"Partial booking: failed steps: {failed}", outcome.message)
        self.outcome = outcome


class BookingFailedError(BookingError):
    """No step of the booking could be completed."""

    def __init__(self, outcome: "BookingOutcome") -> None:
        super().__init__("Booking failed for every step", outcome.message)
        self.outcome = outcome
