"""Pure recurrence rules: which triggers an alarm implies and when they fire."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional, Sequence, Tuple, Union

from .storage import Alarm

WEEKDAY_LABELS: Tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(frozen=True)
class DailyTrigger:
    hour: int
    minute: int


@dataclass(frozen=True)
class WeeklyTrigger:
    weekday: int  # 0 = Sunday
    hour: int
    minute: int


@dataclass(frozen=True)
class OneShotTrigger:
    fire_at: datetime


TriggerDescriptor = Union[DailyTrigger, WeeklyTrigger, OneShotTrigger]
Schedule = Tuple[TriggerDescriptor, ...]


def sunday_index(dt: datetime) -> int:
    """Weekday of ``dt`` with Sunday as 0."""
    return (dt.weekday() + 1) % 7


def next_occurrence_of_time(at: time, reference: datetime) -> datetime:
    candidate = reference.replace(hour=at.hour, minute=at.minute, second=0, microsecond=0)
    if candidate <= reference:
        candidate += timedelta(days=1)
    return candidate


def next_fire_instants(alarm: Alarm, reference_time: datetime, weekly: bool = True) -> Schedule:
    """Resolve the trigger descriptors an alarm needs.

    With ``weekly=False`` a non-daily selection of days is not expanded into
    weekly triggers; the alarm fires once at the next occurrence of its time.
    """
    hour, minute = alarm.time.hour, alarm.time.minute
    if alarm.repeat_daily:
        return (DailyTrigger(hour, minute),)
    if weekly and any(alarm.selected_days):
        return tuple(
            WeeklyTrigger(day, hour, minute) for day, selected in enumerate(alarm.selected_days) if selected
        )
    return (OneShotTrigger(next_occurrence_of_time(alarm.time, reference_time)),)


def next_occurrence(descriptor: TriggerDescriptor, after: datetime) -> Optional[datetime]:
    if isinstance(descriptor, OneShotTrigger):
        return descriptor.fire_at if descriptor.fire_at > after else None
    candidate = next_occurrence_of_time(time(descriptor.hour, descriptor.minute), after)
    if isinstance(descriptor, WeeklyTrigger):
        candidate += timedelta(days=(descriptor.weekday - sunday_index(candidate)) % 7)
    return candidate


def next_fire_time(schedule: Sequence[TriggerDescriptor], after: datetime) -> Optional[datetime]:
    instants = [t for t in (next_occurrence(d, after) for d in schedule) if t is not None]
    return min(instants) if instants else None


def is_recurring(schedule: Sequence[TriggerDescriptor]) -> bool:
    return any(not isinstance(d, OneShotTrigger) for d in schedule)


def repeat_summary(alarm: Alarm) -> str:
    if alarm.repeat_daily:
        return "Repeats Daily"
    days = [label for label, selected in zip(WEEKDAY_LABELS, alarm.selected_days) if selected]
    if not days:
        return "One-time alarm"
    return "Repeats on: " + ", ".join(days)
