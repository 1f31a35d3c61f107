"""Tests for the TTL cache and open-weekday inference."""

from datetime import date, time

import pytest

from booking_orchestrator.errors import UpstreamTransientError
from booking_orchestrator.scheduling.cache import TTLCache
from booking_orchestrator.scheduling.schedule_cache import (
    ScheduleCache,
    build_schedule_info,
    default_schedule,
)
from booking_orchestrator.schemas.availability_schema import Slot
from tests.conftest import FIXED_NOW, local, server_error


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def slot(day: date, hour: int, minute: int = 0) -> Slot:
    return Slot(start_time=local(day, hour, minute), calendar_id="cal_swedish")


class TestTTLCache:
    def test_miss_then_hit(self):
        cache = TTLCache(60)
        assert cache.get("a") == (None, False)
        cache.put("a", 1)
        assert cache.get("a") == (1, True)

    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)
        cache.put("a", 1)
        clock.now = 59.9
        assert cache.get("a") == (1, True)
        clock.now = 60.0
        assert cache.get("a") == (None, False)
        assert len(cache) == 0

    def test_put_replaces_and_restarts_ttl(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)
        cache.put("a", 1)
        clock.now = 50
        cache.put("a", 2)
        clock.now = 100
        assert cache.get("a") == (2, True)

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            TTLCache(0)


class TestBuildScheduleInfo:
    def test_open_weekdays_have_hours(self):
        monday, tuesday = date(2026, 10, 19), date(2026, 10, 20)
        info = build_schedule_info(
            {
                monday: [slot(monday, 9), slot(monday, 16, 30)],
                tuesday: [slot(tuesday, 10)],
            }
        )
        assert info.open_weekdays == {0, 1}
        assert set(info.hours) == info.open_weekdays
        assert info.hours[0].earliest == time(9, 0)
        assert info.hours[0].latest == time(16, 30)
        assert info.hours[1].earliest == info.hours[1].latest == time(10, 0)

    def test_first_occurrence_of_weekday_wins(self):
        first, second = date(2026, 10, 19), date(2026, 10, 26)
        info = build_schedule_info({second: [slot(second, 8)], first: [slot(first, 11)]})
        assert info.hours[0].earliest == time(11, 0)

    def test_empty_days_are_closed(self):
        monday = date(2026, 10, 19)
        info = build_schedule_info({monday: []})
        assert info.open_weekdays == set()
        assert not info.is_open(0)

    def test_default_schedule_is_weekdays(self):
        info = default_schedule()
        assert info.is_default
        assert info.open_weekdays == {0, 1, 2, 3, 4}


class TestScheduleCache:
    @pytest.mark.asyncio
    async def test_infers_from_next_reference_week(self, fake_api, schedule_cache):
        fake_api.add_slots(
            "cal_swedish",
            local(date(2026, 10, 15), 9),  # this week: outside the sample
            local(date(2026, 10, 20), 9),
            local(date(2026, 10, 24), 10),
        )
        info = await schedule_cache.get_schedule("cal_swedish", "America/New_York")
        assert info.open_weekdays == {1, 5}
        assert not info.is_default
        _, start, end, _ = fake_api.free_slot_calls[0]
        assert start == local(date(2026, 10, 19), 0)
        assert end.date() == date(2026, 10, 25)

    @pytest.mark.asyncio
    async def test_second_lookup_is_served_from_cache(self, fake_api, schedule_cache):
        fake_api.add_slots("cal_swedish", local(date(2026, 10, 20), 9))
        await schedule_cache.get_schedule("cal_swedish", "America/New_York")
        await schedule_cache.get_schedule("cal_swedish", "America/New_York")
        assert len(fake_api.free_slot_calls) == 1

    @pytest.mark.asyncio
    async def test_cache_is_per_calendar(self, fake_api, schedule_cache):
        await schedule_cache.get_schedule("cal_swedish", "America/New_York")
        await schedule_cache.get_schedule("cal_facial", "America/New_York")
        assert len(fake_api.free_slot_calls) == 2

    @pytest.mark.asyncio
    async def test_failure_propagates_from_get_schedule(self, fake_api, schedule_cache):
        fake_api.slot_errors["cal_swedish"] = server_error()
        with pytest.raises(UpstreamTransientError):
            await schedule_cache.get_schedule("cal_swedish", "America/New_York")

    @pytest.mark.asyncio
    async def test_failure_degrades_to_default(self, fake_api, schedule_cache):
        fake_api.slot_errors["cal_swedish"] = server_error()
        info = await schedule_cache.get_schedule_or_default("cal_swedish", "America/New_York")
        assert info.is_default
        assert info.open_weekdays == {0, 1, 2, 3, 4}

    @pytest.mark.asyncio
    async def test_injected_cache_is_shared(self, fake_api, fetcher):
        shared = TTLCache(3600)
        first = ScheduleCache(fetcher, cache=shared, now_fn=lambda: FIXED_NOW)
        second = ScheduleCache(fetcher, cache=shared, now_fn=lambda: FIXED_NOW)
        await first.get_schedule("cal_swedish", "America/New_York")
        await second.get_schedule("cal_swedish", "America/New_York")
        assert len(fake_api.free_slot_calls) == 1
