"""Voice-ready sentences for availability, package plans, and booking outcomes.

Everything here returns plain text the voice agent can speak verbatim:
no ISO timestamps, no ids, no upstream error bodies.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Optional

from booking_orchestrator.config import WEEKDAY_NAMES
from booking_orchestrator.schemas.availability_schema import (
    DateFilter,
    PackagePlan,
    Slot,
    TimePreference,
)

if TYPE_CHECKING:
    from booking_orchestrator.schemas.booking_schema import BookingOutcome


def format_clock(moment: datetime) -> str:
    """``9:00`` -> ``"9 AM"``, ``14:30`` -> ``"2:30 PM"``."""
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    if moment.minute:
        return f"{hour}:{moment.minute:02d} {meridiem}"
    return f"{hour} {meridiem}"


def format_day(moment: datetime) -> str:
    return f"{moment:%A}, {moment:%B} {moment.day}"


def format_moment(moment: datetime) -> str:
    return f"{format_day(moment)} at {format_clock(moment)}"


def join_words(items: list[str]) -> str:
    """``["a", "b", "c"]`` -> ``"a, b and c"``."""
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    return ", ".join(items[:-1]) + " and " + items[-1]


def describe_open_days(weekdays: Iterable[int]) -> str:
    """``{0,1,2,3,4}`` -> ``"Monday through Friday"``; gaps are listed individually."""
    days = sorted(set(weekdays))
    if not days:
        return ""
    if len(days) >= 3 and days == list(range(days[0], days[-1] + 1)):
        return f"{WEEKDAY_NAMES[days[0]]} through {WEEKDAY_NAMES[days[-1]]}"
    return join_words([WEEKDAY_NAMES[d] for d in days])


def describe_slot(slot: Slot) -> str:
    text = format_moment(slot.start_time)
    if slot.staff_name:
        text += f" with {slot.staff_name}"
    return text


def build_slots_message(slots: list[Slot], service_name: Optional[str] = None) -> str:
    subject = f" for {service_name}" if service_name else ""
    options = join_words([describe_slot(s) for s in slots])
    if len(slots) == 1:
        return f"The next opening{subject} is {options}. Would that work for you?"
    return f"I have {options} available{subject}. Which works best for you?"


def build_no_availability_message(
    service_name: Optional[str],
    time_preference: TimePreference,
    searched_days: int,
    date_filter: Optional[DateFilter] = None,
    open_weekdays: Iterable[int] = (),
) -> str:
    """An empty search, phrased as an offer to relax one of the caller's constraints."""
    part = "" if time_preference == TimePreference.ANY else f"{time_preference.value} "
    subject = f" for {service_name}" if service_name else ""
    if date_filter is None:
        when = f" in the next {searched_days} days"
    elif date_filter.label in ("today", "tomorrow", "this weekend", "next week"):
        when = f" {date_filter.label}"
    else:
        when = f" on {date_filter.start:%A}, {date_filter.start:%B} {date_filter.start.day}"
    message = f"I don't see any {part}openings{subject}{when}."
    open_days = describe_open_days(open_weekdays)
    if date_filter and date_filter.is_single_day and open_weekdays:
        if date_filter.start.weekday() not in set(open_weekdays):
            message += f" We're usually open {open_days}."
    if time_preference == TimePreference.MORNING:
        return message + " Would an afternoon time work instead?"
    if time_preference == TimePreference.AFTERNOON:
        return message + " Would a morning time work instead?"
    if date_filter:
        return message + " Would another day work for you?"
    return message + " Would you like me to have someone call you when something opens up?"


def build_package_plans_message(package_name: str, plans: list[PackagePlan]) -> str:
    if not plans:
        return (
            f"I couldn't fit the whole {package_name} on a single day in the next two weeks. "
            "Would you like to book the services on separate days?"
        )
    options = []
    for plan in plans:
        options.append(f"{format_day(plan.start_time)} starting at {format_clock(plan.start_time)}")
    if len(plans) == 1:
        return f"I can fit the {package_name} on {options[0]}. Shall I book it?"
    return f"I can fit the {package_name} on {join_words(options)}. Which day works best?"


def build_booking_message(outcome: "BookingOutcome", customer_first_name: str = "") -> str:
    """Confirmation, partial-success guidance, or an apology, by outcome status."""
    confirmed = outcome.confirmed_steps
    failed = outcome.failed_steps
    greeting = f"{customer_first_name}, " if customer_first_name else ""
    booked = join_words(
        [f"your {a.service_name} on {format_moment(a.start_time)}" for a in confirmed]
    )
    if confirmed and not failed:
        return f"{greeting}you're all set! I've booked {booked}."
    if confirmed:
        missing = join_words([a.service_name for a in failed])
        return (
            f"{greeting}I've booked {booked}, but I wasn't able to book the {missing}. "
            f"Would you like me to try booking just the {missing} again?"
        )
    return (
        "I'm sorry, I wasn't able to complete the booking just now. "
        "Would you like me to try again, or look at a different time?"
    )
