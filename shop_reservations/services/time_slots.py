"""
Time-grid helpers.

Wall-clock values ("HH:MM") are shop-local. Absolute values are naive UTC
datetimes; ``combine_date_and_time`` is the only bridge between the two.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, List, NamedTuple, Optional
from zoneinfo import ZoneInfo

from shop_reservations.config import settings


class SlotWindow(NamedTuple):
    start: str
    end: str


def utcnow() -> datetime:
    """Current time as naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Normalise a datetime to naive UTC. Naive input is taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def time_to_minutes(value: str) -> int:
    """Parse HH:MM (or HH:MM:SS) to minutes from midnight"""
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    """Minutes from midnight to HH:MM"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def get_day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def generate_time_slots(
    start_time: str,
    end_time: str,
    step_minutes: int,
    duration_minutes: Optional[int] = None,
) -> Iterator[SlotWindow]:
    """Yield slots of ``duration_minutes`` starting at ``start_time`` every ``step_minutes``.

    Stops before any slot would end after ``end_time``. A missing or zero
    duration falls back to the step.
    """
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    duration = duration_minutes or step_minutes
    current = time_to_minutes(start_time)
    end = time_to_minutes(end_time)

    while current + duration <= end:
        yield SlotWindow(minutes_to_time(current), minutes_to_time(current + duration))
        # Step by the grid, not by the service duration
        current += step_minutes


def get_date_range(start: date, end: date) -> List[date]:
    """Calendar dates from start to end, inclusive"""
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def do_times_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Strict open-interval overlap; touching windows do not overlap"""
    return start1 < end2 and start2 < end1


def shop_zone(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.shop_timezone)


def combine_date_and_time(day: date, wall_time: str, tz_name: Optional[str] = None) -> datetime:
    """Shop-local date + HH:MM to naive UTC"""
    minutes = time_to_minutes(wall_time)
    local = datetime.combine(day, time(0, 0), tzinfo=shop_zone(tz_name)) + timedelta(minutes=minutes)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def local_today(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> date:
    """Shop-local calendar date for a naive UTC instant"""
    now = now or utcnow()
    return now.replace(tzinfo=timezone.utc).astimezone(shop_zone(tz_name)).date()


def local_day_bounds(day: date, tz_name: Optional[str] = None):
    """Naive UTC [start, end) covering one shop-local calendar day"""
    return (
        combine_date_and_time(day, "00:00", tz_name),
        combine_date_and_time(day + timedelta(days=1), "00:00", tz_name),
    )


def add_hours(value: datetime, hours: float) -> datetime:
    return value + timedelta(hours=hours)


def add_minutes(value: datetime, minutes: float) -> datetime:
    return value + timedelta(minutes=minutes)


def is_quiet_hours(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> bool:
    """True between quiet_hours_start and quiet_hours_end shop-local"""
    now = now or utcnow()
    hour = now.replace(tzinfo=timezone.utc).astimezone(shop_zone(tz_name)).hour
    return hour >= settings.quiet_hours_start or hour < settings.quiet_hours_end
