"""
"Next alarm" time-distance computation.

Given the current wall-clock time, find the ENABLED alarm that will fire
soonest within the coming week and describe it for humans.

Algorithm (per alarm, day offsets 0..6 from today):
- offset 0 is skipped if the alarm's time is not strictly in the future today
- offsets > 0 are skipped for ONCE alarms
- the first offset whose weekday is active decides the alarm's distance
  ``offset * 1440 + alarm_minutes - current_minutes``

The smallest distance wins. Ties keep the first alarm in stored order.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from alarmclock.domain.models import (
    MINUTES_PER_DAY,
    Alarm,
    AlarmStatus,
    RepeatMode,
    format_time,
    is_weekday_active,
    minute_of_day,
    weekday_index,
)

NO_ACTIVE_ALARMS = "No active alarms"


@dataclass(frozen=True)
class NextAlarm:
    """
    Winner of the next-alarm search.

    Parameters
    ----------
    alarm
        Snapshot of the alarm that fires next.
    minutes_until
        Minutes from "now" until it fires (always > 0).
    """

    alarm: Alarm
    minutes_until: int


def minutes_until_next(alarm: Alarm, current_minutes: int, current_weekday: int) -> Optional[int]:
    """
    Distance in minutes until ``alarm`` next fires, or None within a week.

    Parameters
    ----------
    alarm
        Alarm to evaluate (status is not checked here).
    current_minutes
        Current minute of day (0..1439).
    current_weekday
        Current weekday, 0=Sunday.
    """
    alarm_minutes = alarm.minute_of_day
    for day_offset in range(7):
        if day_offset == 0 and alarm_minutes <= current_minutes:
            continue
        if day_offset > 0 and alarm.repeat_mode is RepeatMode.ONCE:
            continue
        if is_weekday_active(alarm, (current_weekday + day_offset) % 7):
            return day_offset * MINUTES_PER_DAY + alarm_minutes - current_minutes
    return None


def find_next_alarm(alarms: Iterable[Alarm], now: datetime) -> Optional[NextAlarm]:
    """
    Pick the ENABLED alarm with the smallest positive distance from ``now``.

    Parameters
    ----------
    alarms
        Alarms in stored order.
    now
        Current local wall-clock time.

    Returns
    -------
    NextAlarm or None
        None if no enabled alarm fires within the next seven days.
    """
    current_minutes = minute_of_day(now.hour, now.minute)
    current_weekday = weekday_index(now)

    best: Optional[NextAlarm] = None
    for alarm in alarms:
        if alarm.status is not AlarmStatus.ENABLED:
            continue
        distance = minutes_until_next(alarm, current_minutes, current_weekday)
        if distance is None:
            continue
        if best is None or distance < best.minutes_until:
            best = NextAlarm(alarm=alarm, minutes_until=distance)
    return best


def describe_next_alarm(next_alarm: Optional[NextAlarm]) -> str:
    """
    Human-readable description, e.g. ``"Next alarm: 07:30 (in 1 h 30 min) - Gym"``.

    Returns the :data:`NO_ACTIVE_ALARMS` sentinel when ``next_alarm`` is None.
    """
    if next_alarm is None:
        return NO_ACTIVE_ALARMS

    alarm = next_alarm.alarm
    distance = next_alarm.minutes_until
    text = f"Next alarm: {format_time(alarm.hour, alarm.minute)}"

    if distance < MINUTES_PER_DAY:
        hours, minutes = divmod(distance, 60)
        if hours > 0:
            text += f" (in {hours} h {minutes} min)"
        else:
            text += f" (in {minutes} min)"
    else:
        days = distance // MINUTES_PER_DAY
        text += f" (in {days} day{'s' if days != 1 else ''})"

    if alarm.label:
        text += f" - {alarm.label}"
    return text
