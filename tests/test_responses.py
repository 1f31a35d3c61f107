"""Tests for the spoken response builders."""

from datetime import date

from booking_orchestrator.prompts.responses import (
    build_booking_message,
    build_no_availability_message,
    build_package_plans_message,
    build_slots_message,
    describe_open_days,
    format_clock,
    format_moment,
    join_words,
)
from booking_orchestrator.schemas.availability_schema import (
    DateFilter,
    PackagePlan,
    PlannedStep,
    Slot,
    TimePreference,
)
from booking_orchestrator.schemas.booking_schema import (
    AppointmentOutcome,
    BookingOutcome,
    OutcomeStatus,
    StepStatus,
)
from tests.conftest import days_ahead, local

DAY = days_ahead(1)


class TestFormatting:
    def test_format_clock(self):
        assert format_clock(local(DAY, 9)) == "9 AM"
        assert format_clock(local(DAY, 14, 30)) == "2:30 PM"
        assert format_clock(local(DAY, 0, 5)) == "12:05 AM"
        assert format_clock(local(DAY, 12)) == "12 PM"

    def test_format_moment(self):
        assert format_moment(local(DAY, 10, 15)) == "Thursday, October 15 at 10:15 AM"

    def test_join_words(self):
        assert join_words([]) == ""
        assert join_words(["a"]) == "a"
        assert join_words(["a", "b", "c"]) == "a, b and c"

    def test_describe_open_days(self):
        assert describe_open_days({0, 1, 2, 3, 4}) == "Monday through Friday"
        assert describe_open_days([5, 1]) == "Tuesday and Saturday"
        assert describe_open_days([0, 2, 4]) == "Monday, Wednesday and Friday"
        assert describe_open_days([]) == ""


class TestSlotsMessage:
    def test_single_slot(self):
        slots = [Slot(start_time=local(DAY, 9), calendar_id="c", staff_name="Ben Ortiz")]
        assert build_slots_message(slots, "Swedish Massage") == (
            "The next opening for Swedish Massage is Thursday, October 15 at 9 AM with Ben Ortiz. "
            "Would that work for you?"
        )

    def test_several_slots(self):
        slots = [
            Slot(start_time=local(DAY, 9), calendar_id="c"),
            Slot(start_time=local(days_ahead(2), 13, 30), calendar_id="c"),
        ]
        assert build_slots_message(slots) == (
            "I have Thursday, October 15 at 9 AM and Friday, October 16 at 1:30 PM available. "
            "Which works best for you?"
        )


class TestNoAvailabilityMessage:
    def test_open_search_with_morning_preference(self):
        message = build_no_availability_message("Facial", TimePreference.MORNING, 30)
        assert message == (
            "I don't see any morning openings for Facial in the next 30 days. "
            "Would an afternoon time work instead?"
        )

    def test_labelled_filter(self):
        message = build_no_availability_message(
            None, TimePreference.ANY, 7, DateFilter(start=DAY, end=DAY, label="tomorrow")
        )
        assert message == "I don't see any openings tomorrow. Would another day work for you?"

    def test_closed_day_mentions_open_days(self):
        saturday = date(2026, 10, 17)
        message = build_no_availability_message(
            "Facial", TimePreference.ANY, 7,
            DateFilter(start=saturday, end=saturday, label="saturday"), [0, 1, 2, 3, 4],
        )
        assert "on Saturday, October 17." in message
        assert "We're usually open Monday through Friday." in message

    def test_open_day_does_not_mention_schedule(self):
        message = build_no_availability_message(
            None, TimePreference.AFTERNOON, 7,
            DateFilter(start=DAY, end=DAY, label="thursday"), [0, 1, 2, 3, 4],
        )
        assert "usually open" not in message
        assert message.endswith("Would a morning time work instead?")

    def test_no_filter_offers_callback(self):
        message = build_no_availability_message(None, TimePreference.ANY, 14)
        assert message.endswith("have someone call you when something opens up?")


class TestPackagePlansMessage:
    def _plan(self, day):
        return PackagePlan(
            date=day,
            steps=[
                PlannedStep(
                    service_name="Swedish Massage",
                    start_time=local(day, 9),
                    end_time=local(day, 10),
                    calendar_id="cal_swedish",
                )
            ],
        )

    def test_single_plan(self):
        assert build_package_plans_message("Deluxe Spa Day", [self._plan(DAY)]) == (
            "I can fit the Deluxe Spa Day on Thursday, October 15 starting at 9 AM. Shall I book it?"
        )

    def test_no_plans(self):
        message = build_package_plans_message("Deluxe Spa Day", [])
        assert message.startswith("I couldn't fit the whole Deluxe Spa Day on a single day")


class TestBookingMessage:
    def _appointment(self, service, hour, status):
        return AppointmentOutcome(
            service_name=service,
            start_time=local(DAY, hour),
            end_time=local(DAY, hour + 1),
            calendar_id="c",
            status=status,
        )

    def test_confirmed(self):
        outcome = BookingOutcome(
            status=OutcomeStatus.CONFIRMED,
            appointments=[self._appointment("Facial", 9, StepStatus.CONFIRMED)],
        )
        assert build_booking_message(outcome, "Jamie") == (
            "Jamie, you're all set! I've booked your Facial on Thursday, October 15 at 9 AM."
        )

    def test_partial_names_only_booked_service(self):
        outcome = BookingOutcome(
            status=OutcomeStatus.PARTIAL,
            appointments=[
                self._appointment("Swedish Massage", 9, StepStatus.CONFIRMED),
                self._appointment("Facial", 11, StepStatus.FAILED),
            ],
        )
        message = build_booking_message(outcome)
        assert message.startswith("I've booked your Swedish Massage on Thursday, October 15 at 9 AM")
        assert "11 AM" not in message
        assert message.endswith("try booking just the Facial again?")

    def test_failed(self):
        outcome = BookingOutcome(
            status=OutcomeStatus.FAILED,
            appointments=[self._appointment("Facial", 9, StepStatus.FAILED)],
        )
        assert build_booking_message(outcome, "Jamie").startswith("I'm sorry")
