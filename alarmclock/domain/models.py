"""
Domain models and enums.

This module defines the core domain-level types used across the scheduler:
- Repeat modes and life-cycle statuses
- The `Alarm` value type (one wall-clock alarm)
- Weekday-mask helpers and human-readable time formatting

Weekdays follow the device convention 0=Sunday .. 6=Saturday, which is NOT
Python's ``datetime.weekday()`` numbering. Use :func:`weekday_index` to convert.

`Alarm` is a frozen dataclass. The store never mutates an alarm in place; every
transition builds a new value with ``dataclasses.replace`` so any instance
handed to a caller is already a stable snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class InvalidAlarmTimeError(ValueError):
    """Raised when an hour/minute pair is outside 0-23 / 0-59."""


class RepeatMode(str, Enum):
    """
    Recurrence classification of an alarm.

    Members
    -------
    ONCE : str
        Fires once, then disables itself when stopped.
    DAILY : str
        Every day of the week.
    WEEKDAYS : str
        Monday to Friday.
    WEEKENDS : str
        Saturday and Sunday.
    CUSTOM : str
        Caller-supplied weekday mask.
    """

    ONCE = "ONCE"
    DAILY = "DAILY"
    WEEKDAYS = "WEEKDAYS"
    WEEKENDS = "WEEKENDS"
    CUSTOM = "CUSTOM"


class AlarmStatus(str, Enum):
    """
    Life-cycle state of an alarm.

    ENABLED/DISABLED are the administrative states; TRIGGERED/SNOOZED are the
    ringing states. They share one field because the transition table relies
    on them being mutually exclusive.

    Members
    -------
    ENABLED : str
        Armed, waiting for its next occurrence.
    DISABLED : str
        Not armed.
    TRIGGERED : str
        Ringing, waiting for snooze or stop.
    SNOOZED : str
        Ringing was postponed until the snooze deadline.
    """

    ENABLED = "ENABLED"
    DISABLED = "DISABLED"
    TRIGGERED = "TRIGGERED"
    SNOOZED = "SNOOZED"


SUNDAY, MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY = range(7)

ALL_DAYS_MASK = 0b1111111
WEEKDAYS_MASK = 0b0111110
WEEKENDS_MASK = 0b1000001

MINUTES_PER_DAY = 24 * 60

DEFAULT_SNOOZE_MINUTES = 5
DEFAULT_MAX_SNOOZE_COUNT = 3

RINGING_STATUSES = (AlarmStatus.TRIGGERED, AlarmStatus.SNOOZED)

_REPEAT_LABELS = {
    RepeatMode.ONCE: "once",
    RepeatMode.DAILY: "daily",
    RepeatMode.WEEKDAYS: "weekdays",
    RepeatMode.WEEKENDS: "weekends",
    RepeatMode.CUSTOM: "custom",
}


@dataclass(frozen=True)
class Alarm:
    """
    A single wall-clock alarm.

    Parameters
    ----------
    id
        Process-unique identifier, never reused.
    hour, minute
        Local fire time (0-23 / 0-59).
    repeat_mode
        Recurrence classification.
    weekdays_mask
        7-bit set, bit ``d`` active on weekday ``d`` (0=Sunday). Ignored for ONCE.
    label
        Free-form user text.
    music_name
        Sound requested on trigger; empty means the default sound.
    status
        Current life-cycle state.
    snooze_count
        Snoozes used since the last full stop.
    max_snooze_count
        Snooze ceiling for this alarm.
    snooze_minutes
        Snooze duration in minutes.
    last_triggered_epoch_seconds
        Monotonic second of the last normal fire (0 = never). Runtime only.
    next_snooze_epoch_seconds
        Monotonic snooze deadline (0 = none). Runtime only.
    """

    id: int
    hour: int
    minute: int
    repeat_mode: RepeatMode = RepeatMode.ONCE
    weekdays_mask: int = 0
    label: str = ""
    music_name: str = ""
    status: AlarmStatus = AlarmStatus.ENABLED
    snooze_count: int = 0
    max_snooze_count: int = DEFAULT_MAX_SNOOZE_COUNT
    snooze_minutes: int = DEFAULT_SNOOZE_MINUTES
    last_triggered_epoch_seconds: int = 0
    next_snooze_epoch_seconds: int = 0

    @property
    def minute_of_day(self) -> int:
        return minute_of_day(self.hour, self.minute)

    @property
    def is_ringing(self) -> bool:
        return self.status in RINGING_STATUSES


def validate_time(hour: int, minute: int) -> None:
    """
    Check that hour/minute denote a valid wall-clock time.

    Raises
    ------
    InvalidAlarmTimeError
        If ``hour`` is outside 0-23 or ``minute`` outside 0-59.
    """
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidAlarmTimeError(f"Invalid alarm time: {hour:02d}:{minute:02d}")


def weekdays_mask_for(repeat_mode: RepeatMode, custom_mask: int = 0) -> int:
    """
    Derive the weekday mask for a repeat mode.

    DAILY, WEEKDAYS and WEEKENDS have fixed masks. CUSTOM keeps the caller's
    mask (clipped to 7 bits). ONCE does not use a mask and yields ``custom_mask``
    unchanged so callers can decide what to keep.
    """
    if repeat_mode is RepeatMode.DAILY:
        return ALL_DAYS_MASK
    if repeat_mode is RepeatMode.WEEKDAYS:
        return WEEKDAYS_MASK
    if repeat_mode is RepeatMode.WEEKENDS:
        return WEEKENDS_MASK
    return custom_mask & ALL_DAYS_MASK


def is_weekday_active(alarm: Alarm, weekday: int) -> bool:
    """
    Return True if the alarm may fire on ``weekday`` (0=Sunday).

    One-off alarms are weekday-agnostic.
    """
    if alarm.repeat_mode is RepeatMode.ONCE:
        return True
    return bool(alarm.weekdays_mask & (1 << weekday))


def weekday_index(ts: datetime) -> int:
    """Convert a datetime to the 0=Sunday .. 6=Saturday convention."""
    return ts.isoweekday() % 7


def minute_of_day(hour: int, minute: int) -> int:
    return hour * 60 + minute


def format_time(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def format_alarm_time(alarm: Alarm) -> str:
    """Format an alarm as ``"HH:MM (mode)"``, e.g. ``"07:30 (daily)"``."""
    return f"{format_time(alarm.hour, alarm.minute)} ({_REPEAT_LABELS[alarm.repeat_mode]})"
