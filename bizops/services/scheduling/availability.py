"""
Slot Availability
Pure interval arithmetic used by the booking service
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from bizops.core.exceptions import ValidationError

Interval = Tuple[datetime, datetime]


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap test: back-to-back intervals do not overlap"""
    return a_start < b_end and b_start < a_end


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def generate_slots(
    day: date,
    open_at: str,
    close_at: str,
    duration_minutes: int,
    buffer_minutes: int,
    busy: Iterable[Interval],
) -> List[str]:
    """
    Walk the business day in strides of duration plus buffer.

    A slot is emitted when it ends no later than closing time and does not
    overlap any busy interval.

    Args:
        day: Calendar day being scheduled
        open_at: Opening time as HH:MM
        close_at: Closing time as HH:MM
        duration_minutes: Length of each slot
        buffer_minutes: Gap between consecutive slot starts beyond the duration
        busy: Existing reservations as (start, end) pairs

    Returns:
        Slot start times formatted as HH:MM
    """
    if duration_minutes <= 0:
        return []

    busy = list(busy)
    start = datetime.combine(day, parse_hhmm(open_at))
    close = datetime.combine(day, parse_hhmm(close_at))
    duration = timedelta(minutes=duration_minutes)
    stride = duration + timedelta(minutes=max(buffer_minutes, 0))

    slots = []
    current = start
    while current + duration <= close:
        slot_end = current + duration
        if not any(intervals_overlap(current, slot_end, b_start, b_end) for b_start, b_end in busy):
            slots.append(current.strftime("%H:%M"))
        current += stride
    return slots


def day_window(day: date) -> Interval:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def is_zero_time(value: Optional[datetime]) -> bool:
    """True for the zero timestamp 0001-01-01T00:00:00, naive or with an offset"""
    return value is not None and value.replace(tzinfo=None) == datetime.min


def to_wall_clock(value: datetime, timezone_name: Optional[str]) -> datetime:
    """
    Convert a timestamp to naive wall-clock time in the organization's zone.

    Naive inputs are taken to be wall-clock already.

    Raises:
        ValidationError: the converted time falls outside the datetime range
    """
    if value.tzinfo is None:
        return value
    try:
        zone = ZoneInfo(timezone_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        zone = timezone.utc
    try:
        return value.astimezone(zone).replace(tzinfo=None)
    except OverflowError:
        raise ValidationError(f"Timestamp {value.isoformat()} is out of range")
