"""
Recurrence Tool
Derives recurring dose slots from a medication frequency and expands
them into concrete dose instants over a rolling horizon
"""

import logging
from typing import Iterable, List, Optional
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from config import scheduling_config
from errors import ValidationFailure
from models import Frequency, Weekday
from tools.time_utils import add_hours_with_rollover, combine, parse_time, weekday_tag


logger = logging.getLogger(__name__)


@dataclass
class DerivedSlot:
    """A time of day bound to a set of weekdays"""
    time: str
    days_of_week: List[Weekday] = field(default_factory=list)
    # Whole days the time wrapped past midnight relative to the first dose
    day_offset: int = 0
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "days_of_week": [d.value for d in self.days_of_week],
            "day_offset": self.day_offset,
        }


def coerce_frequency(frequency) -> Frequency:
    """Validate a frequency tag"""
    if isinstance(frequency, Frequency):
        return frequency
    try:
        return Frequency(frequency)
    except ValueError:
        raise ValidationFailure(f"Unknown frequency '{frequency}'") from None


def normalize_weekdays(days: Optional[Iterable]) -> List[Weekday]:
    """Validate a weekday set, keeping the first occurrence of each tag"""
    result: List[Weekday] = []
    for day in days or []:
        try:
            tag = day if isinstance(day, Weekday) else Weekday(str(day).upper())
        except ValueError:
            raise ValidationFailure(f"Unknown weekday '{day}'") from None
        if tag not in result:
            result.append(tag)

    if not result:
        raise ValidationFailure("A schedule needs at least one weekday")
    return result


def _weekdays(names: List[str]) -> List[Weekday]:
    return [Weekday(name) for name in names]


def _evenly_spaced(start: str, interval: float, count: int) -> List[DerivedSlot]:
    slots = []
    for index in range(count):
        slot_time, days = add_hours_with_rollover(start, interval * index)
        slots.append(DerivedSlot(
            time=slot_time,
            days_of_week=_weekdays(scheduling_config.ALL_DAYS),
            day_offset=days,
        ))
    return slots


def derive_slots(
    frequency,
    start_time: Optional[str] = None,
    interval_hours: Optional[float] = None
) -> List[DerivedSlot]:
    """
    Derive the recurring slots for a medication.

    Args:
        frequency: Frequency tag
        start_time: First dose of the day as HH:MM (defaults to 08:00)
        interval_hours: Spacing between doses for multi-dose frequencies

    Returns:
        Slots in dose order; empty for AS_NEEDED and CUSTOM
    """
    frequency = coerce_frequency(frequency)
    start = start_time or scheduling_config.DEFAULT_START_TIME
    parse_time(start)

    if interval_hours is not None and interval_hours <= 0:
        raise ValidationFailure(f"interval_hours must be positive, got {interval_hours}")

    def interval(default_key: str) -> float:
        return interval_hours or scheduling_config.DEFAULT_INTERVAL_HOURS[default_key]

    match frequency:
        case Frequency.ONE_TIME | Frequency.DAILY:
            slots = _evenly_spaced(start, 0, 1)
        case Frequency.TWICE_A_DAY:
            slots = _evenly_spaced(start, interval("TWICE_A_DAY"), 2)
        case Frequency.THREE_TIMES_A_DAY:
            slots = _evenly_spaced(start, interval("THREE_TIMES_A_DAY"), 3)
        case Frequency.FOUR_TIMES_A_DAY:
            slots = _evenly_spaced(start, interval("FOUR_TIMES_A_DAY"), 4)
        case Frequency.EVERY_OTHER_DAY:
            slots = [DerivedSlot(time=start, days_of_week=_weekdays(scheduling_config.ALTERNATE_DAYS))]
        case Frequency.WEEKLY | Frequency.MONTHLY:
            # No day-of-week or day-of-month input exists yet; both land on Monday
            slots = [DerivedSlot(time=start, days_of_week=_weekdays(scheduling_config.WEEKLY_DAYS))]
        case Frequency.AS_NEEDED | Frequency.CUSTOM:
            slots = []

    logger.debug(f"Derived {len(slots)} slots for {frequency.value} starting {start}")
    return slots


def expand_slot(
    slot,
    horizon_days: int,
    now: datetime,
    max_instants: int = 10
) -> List[datetime]:
    """
    Expand one slot into future dose instants.

    Walks `horizon_days` calendar days starting at `now`'s date. A day counts
    when its weekday is in the slot's set; the instant is that day at the slot
    time, advanced by the slot's day offset, and is kept only if strictly
    after `now`.
    """
    if not getattr(slot, "is_active", True):
        return []

    days = normalize_weekdays(slot.days_of_week)
    day_offset = getattr(slot, "day_offset", 0) or 0
    instants: List[datetime] = []

    for offset in range(horizon_days):
        candidate_date = now.date() + timedelta(days=offset)
        if weekday_tag(candidate_date) not in days:
            continue

        instant = combine(candidate_date, slot.time) + timedelta(days=day_offset)
        if instant <= now:
            continue

        instants.append(instant)
        if len(instants) >= max_instants:
            break

    return instants


def materialize(
    slots: Iterable,
    horizon_days: int,
    now: datetime,
    max_per_slot: int = 10
) -> List[datetime]:
    """Expand every active slot and return all dose instants in time order"""
    instants: List[datetime] = []
    for slot in slots:
        instants.extend(expand_slot(slot, horizon_days, now, max_per_slot))
    return sorted(instants)
