"""
Unit tests for the business-hours calendar.
"""
import pytest
from datetime import date, datetime, time
from unittest.mock import MagicMock

from chatflow.services.business_hours import (
    BusinessHoursService, DaySchedule, Holiday, HolidayType,
    clock_time, default_schedule, is_open_at, next_open_time,
    format_next_open, weekday_index
)


# 2025-10-20 is a Monday
MONDAY = datetime(2025, 10, 20)


def at(day: datetime, hour: int, minute: int = 0) -> datetime:
    return day.replace(hour=hour, minute=minute)


@pytest.fixture
def schedule():
    """Weekdays 08:00-18:00 with lunch break, Saturday morning"""
    days = [DaySchedule(d, "08:00", "18:00", break_start="12:00", break_end="13:00") for d in range(1, 6)]
    days.append(DaySchedule(6, "09:00", "12:00"))
    days.append(DaySchedule(0, "09:00", "12:00", is_active=False))
    return days


class TestIsOpenAt:
    """Tests for is_open_at."""

    def test_weekday_index_starts_on_sunday(self):
        assert weekday_index(MONDAY) == 1
        assert weekday_index(datetime(2025, 10, 19)) == 0

    def test_open_during_hours(self, schedule):
        assert is_open_at(schedule, [], at(MONDAY, 9, 30))

    def test_closed_before_opening(self, schedule):
        assert not is_open_at(schedule, [], at(MONDAY, 7, 59))

    def test_closed_during_break(self, schedule):
        assert not is_open_at(schedule, [], at(MONDAY, 12, 30))

    def test_closed_on_inactive_day(self, schedule):
        assert not is_open_at(schedule, [], datetime(2025, 10, 19, 10, 0))

    def test_holiday_closes_day(self, schedule):
        holidays = [Holiday(date(2025, 10, 20), HolidayType.HOLIDAY, "Feriado")]
        assert not is_open_at(schedule, holidays, at(MONDAY, 10))

    def test_special_hours(self, schedule):
        holidays = [Holiday(date(2025, 10, 20), HolidayType.SPECIAL_HOURS, start_time="14:00", end_time="16:00")]
        assert not is_open_at(schedule, holidays, at(MONDAY, 10))
        assert is_open_at(schedule, holidays, at(MONDAY, 15))

    def test_default_schedule(self):
        assert is_open_at(default_schedule(), [], at(MONDAY, 10))
        assert not is_open_at(default_schedule(), [], datetime(2025, 10, 25, 10, 0))


class TestNextOpenTime:
    """Tests for next_open_time."""

    def test_later_today(self, schedule):
        assert next_open_time(schedule, [], at(MONDAY, 6)) == at(MONDAY, 8)

    def test_tomorrow_after_closing(self, schedule):
        assert next_open_time(schedule, [], at(MONDAY, 19)) == datetime(2025, 10, 21, 8, 0)

    def test_skips_holiday(self, schedule):
        holidays = [Holiday(date(2025, 10, 21), HolidayType.CLOSED)]
        assert next_open_time(schedule, holidays, at(MONDAY, 19)) == datetime(2025, 10, 22, 8, 0)

    def test_saturday_evening_skips_sunday(self, schedule):
        assert next_open_time(schedule, [], datetime(2025, 10, 25, 20, 0)) == at(MONDAY.replace(day=27), 8)

    def test_never_open(self):
        closed = [DaySchedule(d, "08:00", "17:00", is_active=False) for d in range(7)]
        assert next_open_time(closed, [], at(MONDAY, 10)) is None


class TestFormatting:
    """Tests for human-readable schedules."""

    def test_clock_time(self):
        assert clock_time("08:00:00") == "08:00"
        assert clock_time("8:5") == "08:05"
        assert clock_time(time(13, 30)) == "13:30"
        assert clock_time(None) is None

    def test_format_next_open(self):
        assert format_next_open(at(MONDAY, 8)) == "Segunda-feira, 20/10/2025 às 08:00"


class TestBusinessHoursService:
    """Tests for the Supabase-backed oracle."""

    @pytest.fixture
    def client(self):
        """Supabase client whose queries return no rows"""
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(data=[])
        query.gte.return_value.lte.return_value.execute.return_value = MagicMock(data=[])
        return client

    async def test_open_with_default_schedule(self, client):
        service = BusinessHoursService(client=client, clock=lambda: at(MONDAY, 10))
        assert await service.is_open_now("company-1")

    async def test_closed_on_weekend(self, client):
        service = BusinessHoursService(client=client, clock=lambda: datetime(2025, 10, 25, 10, 0))
        assert not await service.is_open_now("company-1")
        next_open = await service.next_open_time("company-1")
        assert (next_open.day, next_open.hour) == (27, 8)

    async def test_schedule_rows(self, client):
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(data=[
            {"day_of_week": 1, "start_time": "10:00", "end_time": "11:00", "is_active": True},
        ])
        service = BusinessHoursService(client=client, clock=lambda: at(MONDAY, 10, 30))
        assert await service.is_open_now("company-1")

    async def test_postgres_time_columns(self, client):
        """Opening and closing minutes count as open when rows carry seconds"""
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(data=[
            {"day_of_week": 1, "start_time": "08:00:00", "end_time": "17:00:00", "is_active": True,
             "break_start": "12:00:00", "break_end": "13:00:00"},
        ])

        assert await BusinessHoursService(client=client, clock=lambda: at(MONDAY, 8)).is_open_now("company-1")
        assert await BusinessHoursService(client=client, clock=lambda: at(MONDAY, 17)).is_open_now("company-1")
        assert not await BusinessHoursService(client=client, clock=lambda: at(MONDAY, 12, 30)).is_open_now("company-1")

    def test_holiday_row_times(self):
        holiday = Holiday.from_row({
            "date": "2025-10-20T00:00:00", "type": "SPECIAL_HOURS",
            "start_time": "14:00:00", "end_time": "16:00:00",
        })
        assert holiday.date == date(2025, 10, 20)
        assert (holiday.start_time, holiday.end_time) == ("14:00", "16:00")
        assert is_open_at([], [holiday], at(MONDAY, 14))
