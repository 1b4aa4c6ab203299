"""Availability calculation engine.

Pure functions: merge busy intervals from several calendars, resolve each
day's working window, carve free intervals out of it and quantize them into
fixed-length bookable slots. All datetimes are timezone-aware; days are
Asia/Tokyo calendar days.
"""

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.utils.timeutils import (
    ONE_DAY, at_local_time, ensure_aware, local_date, parse_hhmm, to_iso, utcnow
)

DEFAULT_MIN_NOTICE_MINUTES = 60


class Weekday(enum.IntEnum):
    """Weekday index used by availability settings (Sunday = 0)"""
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, day: date) -> 'Weekday':
        # date.weekday() is Monday = 0
        return cls((day.weekday() + 1) % 7)


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime

    def overlaps(self, other: 'TimeSlot') -> bool:
        return self.start < other.end and self.end > other.start

    def to_dict(self) -> Dict[str, str]:
        return {'start': to_iso(self.start), 'end': to_iso(self.end)}


# Busy intervals share the TimeSlot shape
BusySlot = TimeSlot


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class DayAvailability:
    enabled: bool
    start_time: str = '09:00'
    end_time: str = '18:00'
    all_day: bool = False

    @classmethod
    def from_dict(cls, data: Dict) -> 'DayAvailability':
        return cls(
            enabled=bool(data.get('enabled', False)),
            start_time=data.get('startTime', '09:00'),
            end_time=data.get('endTime', '18:00'),
            all_day=bool(data.get('allDay', False)),
        )

    def to_dict(self) -> Dict:
        result = {
            'enabled': self.enabled,
            'startTime': self.start_time,
            'endTime': self.end_time,
        }
        if self.all_day:
            result['allDay'] = True
        return result


def _default_days() -> Tuple[DayAvailability, ...]:
    weekend = (Weekday.SUNDAY, Weekday.SATURDAY)
    return tuple(DayAvailability(enabled=day not in weekend) for day in Weekday)


@dataclass(frozen=True)
class WeeklyAvailability:
    """Seven DayAvailability entries indexed by Weekday"""
    days: Tuple[DayAvailability, ...] = field(default_factory=_default_days)

    def __post_init__(self):
        if len(self.days) != len(Weekday):
            raise ValueError("Weekly availability needs exactly 7 days")

    def for_day(self, weekday: Weekday) -> DayAvailability:
        return self.days[weekday]

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'WeeklyAvailability':
        """Build from the stored "0".."6" mapping; missing days use defaults"""
        defaults = _default_days()
        if not data:
            return cls(defaults)
        days = []
        for weekday in Weekday:
            raw = data.get(str(int(weekday)))
            days.append(DayAvailability.from_dict(raw) if isinstance(raw, dict) else defaults[weekday])
        return cls(tuple(days))

    def to_dict(self) -> Dict[str, Dict]:
        return {str(int(weekday)): self.days[weekday].to_dict() for weekday in Weekday}


DEFAULT_AVAILABILITY = WeeklyAvailability()


@dataclass(frozen=True)
class TimeRestriction:
    """Extra weekday/time-of-day window an event type can impose"""
    days: Tuple[int, ...]
    start_time: str
    end_time: str


@dataclass(frozen=True)
class WorkingHours:
    start: datetime
    end: datetime
    enabled: bool


def merge_busy_slots(busy_slots_arrays: Iterable[Iterable[BusySlot]]) -> List[BusySlot]:
    """Merge overlapping or touching busy intervals from several calendars"""
    all_slots = sorted(
        (slot for slots in busy_slots_arrays for slot in slots),
        key=lambda slot: slot.start,
    )
    if not all_slots:
        return []

    merged = []
    current_start, current_end = all_slots[0].start, all_slots[0].end

    for slot in all_slots[1:]:
        if slot.start <= current_end:
            current_end = max(current_end, slot.end)
        else:
            merged.append(BusySlot(current_start, current_end))
            current_start, current_end = slot.start, slot.end

    merged.append(BusySlot(current_start, current_end))
    return merged


def get_working_hours(day: date, weekly_availability: WeeklyAvailability,
                      restriction: Optional[TimeRestriction] = None) -> WorkingHours:
    """Bookable window for a JST calendar day

    Inverted start/end settings are not rejected; they simply produce an
    empty window.
    """
    day_start = at_local_time(day, 0, 0)
    weekday = Weekday.of(day)
    settings = weekly_availability.for_day(weekday)

    if not settings.enabled:
        return WorkingHours(day_start, day_start, False)

    if settings.all_day:
        start, end = day_start, day_start + ONE_DAY
    else:
        start = at_local_time(day, *parse_hhmm(settings.start_time))
        end = at_local_time(day, *parse_hhmm(settings.end_time))

    if restriction is not None:
        if int(weekday) not in restriction.days:
            return WorkingHours(day_start, day_start, False)
        start = max(start, at_local_time(day, *parse_hhmm(restriction.start_time)))
        end = min(end, at_local_time(day, *parse_hhmm(restriction.end_time)))

    return WorkingHours(start, end, True)


def get_free_slots(busy_slots: Sequence[BusySlot], range_start: datetime,
                   range_end: datetime) -> List[TimeSlot]:
    """Free intervals of [range_start, range_end) around sorted, merged busy slots"""
    free_slots = []
    current_start = range_start

    for busy in busy_slots:
        if busy.start > current_start:
            free_end = min(busy.start, range_end)
            if free_end > current_start:
                free_slots.append(TimeSlot(current_start, free_end))

        current_start = max(current_start, busy.end)

        if current_start >= range_end:
            break

    if current_start < range_end:
        free_slots.append(TimeSlot(current_start, range_end))

    return free_slots


def split_into_slots(free_slot: TimeSlot, duration_minutes: int) -> List[TimeSlot]:
    """Back-to-back slots of exactly ``duration_minutes`` from the interval start"""
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")

    duration = timedelta(minutes=duration_minutes)
    slots = []
    current = free_slot.start

    while current + duration <= free_slot.end:
        slots.append(TimeSlot(current, current + duration))
        current += duration

    return slots


def calculate_availability(busy_slots_arrays: Iterable[Iterable[BusySlot]],
                           date_range: DateRange,
                           duration_minutes: int,
                           weekly_availability: WeeklyAvailability = DEFAULT_AVAILABILITY,
                           min_notice_minutes: int = DEFAULT_MIN_NOTICE_MINUTES,
                           restriction: Optional[TimeRestriction] = None,
                           now: Optional[datetime] = None) -> List[TimeSlot]:
    """Bookable slots across every JST day of ``date_range`` (inclusive)

    Slots are returned in chronological order. No slot starts before
    ``now + min_notice_minutes``.
    """
    merged_busy = merge_busy_slots(busy_slots_arrays)
    now = ensure_aware(now) if now else utcnow()
    min_booking_time = now + timedelta(minutes=min_notice_minutes)

    available_slots = []
    current_day = local_date(date_range.start)
    last_day = local_date(date_range.end)

    while current_day <= last_day:
        working_hours = get_working_hours(current_day, weekly_availability, restriction)
        current_day += ONE_DAY

        if not working_hours.enabled:
            continue

        effective_start = max(working_hours.start, min_booking_time)
        if effective_start >= working_hours.end:
            continue

        day_busy = [
            slot for slot in merged_busy
            if slot.start < working_hours.end and slot.end > effective_start
        ]

        for free_slot in get_free_slots(day_busy, effective_start, working_hours.end):
            available_slots.extend(split_into_slots(free_slot, duration_minutes))

    return available_slots


def is_slot_available(slot: TimeSlot, busy_slots_arrays: Iterable[Iterable[BusySlot]]) -> bool:
    """False if ``slot`` overlaps any busy interval"""
    return not any(slot.overlaps(busy) for busy in merge_busy_slots(busy_slots_arrays))
