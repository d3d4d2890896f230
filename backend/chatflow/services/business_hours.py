"""
Business hours - Tenant opening hours and holidays

Pure calendar functions work on a weekly schedule plus a holiday list.
BusinessHoursService loads both from Supabase and answers the
interpreter's "open now?" / "next opening?" questions.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from ..core.config import settings
from ..core.supabase_client import supabase

logger = logging.getLogger(__name__)

LOOKAHEAD_DAYS = 7

DAY_NAMES = [
    "Domingo",
    "Segunda-feira",
    "Terça-feira",
    "Quarta-feira",
    "Quinta-feira",
    "Sexta-feira",
    "Sábado",
]


class HolidayType:
    HOLIDAY = "HOLIDAY"
    CLOSED = "CLOSED"
    SPECIAL_HOURS = "SPECIAL_HOURS"


def clock_time(value: Any) -> Optional[str]:
    """'HH:MM' from 'HH:MM', Postgres 'HH:MM:SS' or a time object"""
    if value is None or value == "":
        return None
    if isinstance(value, (time, datetime)):
        return value.strftime("%H:%M")
    hour, minute = str(value).split(":")[:2]
    return f"{int(hour):02d}:{int(minute):02d}"


@dataclass
class DaySchedule:
    """Opening hours of one weekday (0 = Sunday)"""
    day_of_week: int
    start_time: str  # HH:MM
    end_time: str
    is_active: bool = True
    break_start: Optional[str] = None
    break_end: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DaySchedule":
        return cls(
            day_of_week=int(row["day_of_week"]),
            start_time=clock_time(row["start_time"]),
            end_time=clock_time(row["end_time"]),
            is_active=bool(row.get("is_active", True)),
            break_start=clock_time(row.get("break_start")),
            break_end=clock_time(row.get("break_end")),
        )


@dataclass
class Holiday:
    """A holiday, closed day or day with special hours"""
    date: date
    type: str = HolidayType.HOLIDAY
    name: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @property
    def closes_day(self) -> bool:
        return self.type in (HolidayType.HOLIDAY, HolidayType.CLOSED)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Holiday":
        raw_date = row["date"]
        if isinstance(raw_date, str):
            raw_date = date.fromisoformat(raw_date[:10])
        return cls(
            date=raw_date,
            type=row.get("type") or HolidayType.HOLIDAY,
            name=row.get("name"),
            start_time=clock_time(row.get("start_time")),
            end_time=clock_time(row.get("end_time")),
        )


def default_schedule() -> List[DaySchedule]:
    """Monday to Friday 08:00-17:00; weekend closed"""
    schedule = [DaySchedule(day, "08:00", "17:00") for day in range(1, 6)]
    schedule.append(DaySchedule(6, "08:00", "12:00", is_active=False))
    schedule.append(DaySchedule(0, "08:00", "12:00", is_active=False))
    return schedule


def weekday_index(moment: datetime) -> int:
    """Python's Monday=0 to the calendar's Sunday=0"""
    return (moment.weekday() + 1) % 7


def _hhmm(moment: datetime) -> str:
    return moment.strftime("%H:%M")


def _holiday_on(holidays: List[Holiday], day: date) -> Optional[Holiday]:
    for holiday in holidays:
        if holiday.date == day:
            return holiday
    return None


def _day_schedule(schedule: List[DaySchedule], day_of_week: int) -> Optional[DaySchedule]:
    for day in schedule:
        if day.day_of_week == day_of_week:
            return day
    return None


def is_open_at(schedule: List[DaySchedule], holidays: List[Holiday], moment: datetime) -> bool:
    """Whether the business is open at ``moment`` (local time)"""
    current = _hhmm(moment)

    holiday = _holiday_on(holidays, moment.date())
    if holiday:
        if holiday.closes_day:
            return False
        if holiday.type == HolidayType.SPECIAL_HOURS:
            return bool(
                holiday.start_time and holiday.end_time
                and holiday.start_time <= current <= holiday.end_time
            )

    day = _day_schedule(schedule, weekday_index(moment))
    if day is None or not day.is_active:
        return False

    within_hours = day.start_time <= current <= day.end_time
    in_break = bool(
        day.break_start and day.break_end
        and day.break_start <= current <= day.break_end
    )
    return within_hours and not in_break


def _at(day: datetime, hhmm: str) -> datetime:
    hour, minute = hhmm.split(":")[:2]
    return day.replace(hour=int(hour), minute=int(minute), second=0, microsecond=0)


def next_open_time(
    schedule: List[DaySchedule],
    holidays: List[Holiday],
    now: datetime
) -> Optional[datetime]:
    """
    Next opening within the coming week.

    Today counts only while its opening time is still ahead.
    """
    for offset in range(LOOKAHEAD_DAYS):
        check = now + timedelta(days=offset)

        start_time = None
        holiday = _holiday_on(holidays, check.date())
        if holiday and holiday.closes_day:
            continue
        if holiday and holiday.type == HolidayType.SPECIAL_HOURS:
            start_time = holiday.start_time
        else:
            day = _day_schedule(schedule, weekday_index(check))
            if day and day.is_active:
                start_time = day.start_time

        if not start_time:
            continue

        opening = _at(check, start_time)
        if offset > 0 or opening > now:
            return opening

    return None


def format_next_open(moment: datetime) -> str:
    """'Segunda-feira, 20/10/2025 às 08:00'"""
    return f"{DAY_NAMES[weekday_index(moment)]}, {moment.strftime('%d/%m/%Y')} às {moment.strftime('%H:%M')}"


class BusinessHoursService:
    """
    Business-hours oracle backed by the tenant's schedule tables.

    Tenants without a configured schedule get the default week.
    """

    def __init__(
        self,
        client: Any = None,
        timezone: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.client = client or supabase
        self.tz = ZoneInfo(timezone or settings.BUSINESS_TIMEZONE)
        self._clock = clock

    def now(self) -> datetime:
        if self._clock:
            moment = self._clock()
            return moment if moment.tzinfo else moment.replace(tzinfo=self.tz)
        return datetime.now(self.tz)

    async def get_schedule(self, tenant_id: str) -> List[DaySchedule]:
        """Weekly schedule of a tenant"""
        response = self.client.table(settings.BUSINESS_HOURS_TABLE).select("*").eq(
            "company_id", tenant_id
        ).order("day_of_week").execute()
        if not response.data:
            return default_schedule()
        return [DaySchedule.from_row(row) for row in response.data]

    async def get_holidays(self, tenant_id: str, start: date, end: date) -> List[Holiday]:
        """Holidays of a tenant between two dates (inclusive)"""
        response = self.client.table(settings.HOLIDAYS_TABLE).select("*").eq(
            "company_id", tenant_id
        ).gte("date", start.isoformat()).lte("date", end.isoformat()).execute()
        return [Holiday.from_row(row) for row in response.data] if response.data else []

    async def _calendar(self, tenant_id: str, now: datetime) -> Tuple[List[DaySchedule], List[Holiday]]:
        schedule = await self.get_schedule(tenant_id)
        holidays = await self.get_holidays(
            tenant_id,
            now.date(),
            now.date() + timedelta(days=LOOKAHEAD_DAYS)
        )
        return schedule, holidays

    async def is_open_now(self, tenant_id: str) -> bool:
        now = self.now()
        schedule, holidays = await self._calendar(tenant_id, now)
        is_open = is_open_at(schedule, holidays, now)
        logger.debug(f"Tenant {tenant_id} open at {now.isoformat()}: {is_open}")
        return is_open

    async def next_open_time(self, tenant_id: str) -> Optional[datetime]:
        now = self.now()
        schedule, holidays = await self._calendar(tenant_id, now)
        return next_open_time(schedule, holidays, now)
