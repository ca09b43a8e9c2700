"""
Alarm scheduler (periodic evaluation tick).

This module contains the time-driven half of the alarm state machine:

- SNOOZED -> TRIGGERED when the snooze deadline has passed
- ENABLED -> TRIGGERED when the wall clock reaches the alarm's minute on an
  active weekday

The scheduler holds no alarm state of its own. It computes transitions and
lets `AlarmStore.apply_tick` apply them under the store lock and dispatch the
resulting events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional, Tuple

from alarmclock.core.ports import Clock, SystemClock
from alarmclock.core.state.alarm_store import AlarmStore
from alarmclock.domain.events import AlarmEvent, AlarmTransition
from alarmclock.domain.models import (
    Alarm,
    AlarmStatus,
    format_time,
    is_weekday_active,
    minute_of_day,
    weekday_index,
)

logger = logging.getLogger(__name__)

REFIRE_GUARD_SECONDS = 60

StepResult = Optional[Tuple[Alarm, AlarmTransition, str]]


def evaluate_alarm(alarm: Alarm, current_minutes: int, current_weekday: int, monotonic_now: int) -> StepResult:
    """
    Compute the tick transition for one alarm.

    Parameters
    ----------
    alarm
        Alarm snapshot.
    current_minutes
        Current wall-clock minute of day.
    current_weekday
        Current weekday, 0=Sunday.
    monotonic_now
        Current monotonic seconds.

    Returns
    -------
    tuple or None
        ``(updated_alarm, transition, message)`` if the alarm changes state,
        otherwise None.
    """
    if alarm.status is AlarmStatus.SNOOZED:
        if monotonic_now >= alarm.next_snooze_epoch_seconds:
            updated = replace(alarm, status=AlarmStatus.TRIGGERED, next_snooze_epoch_seconds=0)
            return updated, AlarmTransition.TRIGGERED, "Snooze ended"
        return None

    if alarm.status is not AlarmStatus.ENABLED:
        return None

    # Exact minute match: no catch-up for a fully skipped minute.
    if alarm.minute_of_day != current_minutes:
        return None

    if not is_weekday_active(alarm, current_weekday):
        return None

    if alarm.last_triggered_epoch_seconds > 0 and (
        monotonic_now - alarm.last_triggered_epoch_seconds < REFIRE_GUARD_SECONDS
    ):
        return None

    updated = replace(
        alarm,
        status=AlarmStatus.TRIGGERED,
        last_triggered_epoch_seconds=monotonic_now,
        snooze_count=0,
    )
    return updated, AlarmTransition.TRIGGERED, f"Alarm {format_time(alarm.hour, alarm.minute)}"


@dataclass
class AlarmScheduler:
    """
    Periodic evaluator driving time-based alarm transitions.

    Must be invoked at least once per minute. Calling it more often is
    harmless: the 60-second re-fire guard makes repeated ticks inside the
    trigger minute idempotent.

    Parameters
    ----------
    store
        Alarm store to evaluate.
    clock
        Time source used when ``evaluate`` is called without explicit times.
    """

    store: AlarmStore
    clock: Clock = field(default_factory=SystemClock)

    def evaluate(self, now: Optional[datetime] = None, monotonic_now: Optional[int] = None) -> List[AlarmEvent]:
        """
        Run one tick over all alarms.

        Parameters
        ----------
        now
            Wall-clock time for this tick. If None, uses ``clock.now()``.
        monotonic_now
            Monotonic seconds for this tick. If None, uses
            ``clock.monotonic_seconds()``.

        Returns
        -------
        list of AlarmEvent
            TRIGGERED events produced by this tick (callbacks already invoked).
        """
        ts = now or self.clock.now()
        mono = self.clock.monotonic_seconds() if monotonic_now is None else monotonic_now
        current_minutes = minute_of_day(ts.hour, ts.minute)
        current_weekday = weekday_index(ts)

        events = self.store.apply_tick(
            lambda alarm: evaluate_alarm(alarm, current_minutes, current_weekday, mono)
        )
        for ev in events:
            logger.info(
                "Triggering alarm %s: %s - %s (%s)",
                ev.alarm.id,
                format_time(ev.alarm.hour, ev.alarm.minute),
                ev.alarm.label,
                ev.message,
            )
        return events
