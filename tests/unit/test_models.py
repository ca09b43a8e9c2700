"""
Unit tests for alarmclock.domain.models.

These tests validate:
- enum stability (values are persisted and sent to companion apps)
- weekday mask derivation per repeat mode
- the weekday-active predicate and the Sunday=0 conversion
- time validation and formatting helpers
- immutability of Alarm
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError, replace
from datetime import datetime

import pytest

from alarmclock.domain.models import (
    ALL_DAYS_MASK,
    FRIDAY,
    MONDAY,
    SATURDAY,
    SUNDAY,
    WEEKDAYS_MASK,
    WEEKENDS_MASK,
    Alarm,
    AlarmStatus,
    InvalidAlarmTimeError,
    RepeatMode,
    format_alarm_time,
    format_time,
    is_weekday_active,
    validate_time,
    weekday_index,
    weekdays_mask_for,
)


def test_enum_values_are_stable() -> None:
    """Enum values are persisted, so they must not change."""
    assert [m.value for m in RepeatMode] == ["ONCE", "DAILY", "WEEKDAYS", "WEEKENDS", "CUSTOM"]
    assert [s.value for s in AlarmStatus] == ["ENABLED", "DISABLED", "TRIGGERED", "SNOOZED"]


def test_daily_mask_has_all_seven_bits() -> None:
    assert weekdays_mask_for(RepeatMode.DAILY) == 0b1111111


def test_weekdays_mask_is_monday_to_friday_only() -> None:
    mask = weekdays_mask_for(RepeatMode.WEEKDAYS)
    assert mask == WEEKDAYS_MASK
    assert [d for d in range(7) if mask & (1 << d)] == [1, 2, 3, 4, 5]


def test_weekends_mask_is_saturday_and_sunday_only() -> None:
    mask = weekdays_mask_for(RepeatMode.WEEKENDS)
    assert mask == WEEKENDS_MASK
    assert [d for d in range(7) if mask & (1 << d)] == [SUNDAY, SATURDAY]


def test_custom_mask_keeps_caller_input_and_derived_modes_ignore_it() -> None:
    custom = (1 << MONDAY) | (1 << FRIDAY)
    assert weekdays_mask_for(RepeatMode.CUSTOM, custom) == custom
    assert weekdays_mask_for(RepeatMode.DAILY, custom) == ALL_DAYS_MASK
    # Bits above Saturday are dropped.
    assert weekdays_mask_for(RepeatMode.CUSTOM, 0b11111111) == ALL_DAYS_MASK


def test_once_alarm_is_active_every_weekday() -> None:
    alarm = Alarm(id=1, hour=7, minute=0, repeat_mode=RepeatMode.ONCE, weekdays_mask=0)
    assert all(is_weekday_active(alarm, d) for d in range(7))


def test_repeating_alarm_uses_mask() -> None:
    alarm = Alarm(id=1, hour=7, minute=0, repeat_mode=RepeatMode.WEEKDAYS, weekdays_mask=WEEKDAYS_MASK)
    assert is_weekday_active(alarm, MONDAY)
    assert not is_weekday_active(alarm, SATURDAY)
    assert not is_weekday_active(alarm, SUNDAY)


def test_weekday_index_uses_sunday_zero() -> None:
    assert weekday_index(datetime(2026, 1, 4, 12, 0)) == SUNDAY
    assert weekday_index(datetime(2026, 1, 5, 12, 0)) == MONDAY
    assert weekday_index(datetime(2026, 1, 3, 12, 0)) == SATURDAY


@pytest.mark.parametrize("hour,minute", [(0, 0), (23, 59), (12, 30)])
def test_validate_time_accepts_valid_range(hour: int, minute: int) -> None:
    validate_time(hour, minute)


@pytest.mark.parametrize("hour,minute", [(-1, 0), (24, 0), (0, -1), (0, 60)])
def test_validate_time_rejects_out_of_range(hour: int, minute: int) -> None:
    with pytest.raises(InvalidAlarmTimeError):
        validate_time(hour, minute)


def test_invalid_time_error_is_a_value_error() -> None:
    assert issubclass(InvalidAlarmTimeError, ValueError)


def test_formatting_helpers() -> None:
    alarm = Alarm(id=3, hour=7, minute=5, repeat_mode=RepeatMode.DAILY, weekdays_mask=ALL_DAYS_MASK)
    assert format_time(7, 5) == "07:05"
    assert format_alarm_time(alarm) == "07:05 (daily)"
    assert format_alarm_time(replace(alarm, repeat_mode=RepeatMode.ONCE)) == "07:05 (once)"


def test_alarm_is_frozen_and_has_expected_defaults() -> None:
    alarm = Alarm(id=1, hour=6, minute=45)
    assert alarm.status is AlarmStatus.ENABLED
    assert alarm.max_snooze_count == 3
    assert alarm.snooze_minutes == 5
    assert alarm.minute_of_day == 6 * 60 + 45
    assert not alarm.is_ringing
    with pytest.raises(FrozenInstanceError):
        alarm.hour = 7  # type: ignore[misc]
