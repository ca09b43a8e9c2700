"""
Unit tests for the evaluation tick and the snooze/stop life-cycle.

Validates:
- exact-minute triggering on active weekdays only
- the 60-second re-fire guard
- snooze expiry re-triggers the alarm
- snooze ceiling converts a snooze into a stop
- stop semantics for ONCE vs repeating alarms
"""

from __future__ import annotations

from datetime import datetime

import pytest

from alarmclock.core.alarm.scheduler import REFIRE_GUARD_SECONDS, AlarmScheduler, evaluate_alarm
from alarmclock.core.state.alarm_store import AlarmStore, SnoozeResult
from alarmclock.domain.events import AlarmTransition
from alarmclock.domain.models import MONDAY, Alarm, AlarmStatus, RepeatMode

MONDAY_0730 = datetime(2026, 1, 5, 7, 30, 0)
SATURDAY_0730 = datetime(2026, 1, 3, 7, 30, 0)
SUNDAY_0730 = datetime(2026, 1, 4, 7, 30, 0)


@pytest.fixture
def scheduler(store: AlarmStore, clock) -> AlarmScheduler:
    return AlarmScheduler(store=store, clock=clock)


# --- pure step ---
def test_evaluate_alarm_ignores_disabled_and_triggered() -> None:
    for status in (AlarmStatus.DISABLED, AlarmStatus.TRIGGERED):
        alarm = Alarm(id=1, hour=7, minute=30, status=status)
        assert evaluate_alarm(alarm, 7 * 60 + 30, MONDAY, 5_000) is None


def test_evaluate_alarm_trigger_resets_snooze_count() -> None:
    alarm = Alarm(id=1, hour=7, minute=30, snooze_count=2)
    result = evaluate_alarm(alarm, 7 * 60 + 30, MONDAY, 5_000)

    assert result is not None
    updated, transition, message = result
    assert transition is AlarmTransition.TRIGGERED
    assert updated.status is AlarmStatus.TRIGGERED
    assert updated.snooze_count == 0
    assert updated.last_triggered_epoch_seconds == 5_000
    assert message == "Alarm 07:30"


# --- triggering ---
def test_daily_alarm_triggers_once_within_its_minute(store: AlarmStore, scheduler, clock, recorder) -> None:
    aid = store.add(7, 30, RepeatMode.DAILY)
    clock.set(MONDAY_0730)

    events = scheduler.evaluate()
    assert [ev.alarm.id for ev in events] == [aid]
    assert events[0].transition is AlarmTransition.TRIGGERED

    clock.advance(30)
    assert scheduler.evaluate() == []

    assert store.get(aid).status is AlarmStatus.TRIGGERED
    assert [a.id for a in recorder.triggered] == [aid]


@pytest.mark.parametrize("ts", [MONDAY_0730, SATURDAY_0730, SUNDAY_0730])
def test_daily_and_once_alarms_fire_on_any_weekday(store: AlarmStore, scheduler, clock, ts: datetime) -> None:
    daily = store.add(7, 30, RepeatMode.DAILY)
    once = store.add(7, 30, RepeatMode.ONCE)
    clock.set(ts)

    fired = {ev.alarm.id for ev in scheduler.evaluate()}
    assert fired == {daily, once}


def test_weekdays_alarm_skips_weekend(store: AlarmStore, scheduler, clock) -> None:
    aid = store.add(7, 30, RepeatMode.WEEKDAYS)

    clock.set(SATURDAY_0730)
    assert scheduler.evaluate() == []
    assert store.get(aid).status is AlarmStatus.ENABLED

    clock.set(MONDAY_0730)
    assert len(scheduler.evaluate()) == 1


def test_custom_mask_selects_days(store: AlarmStore, scheduler, clock) -> None:
    aid = store.add(7, 30, RepeatMode.CUSTOM, weekdays_mask=1 << MONDAY)

    clock.set(SUNDAY_0730)
    assert scheduler.evaluate() == []
    clock.set(MONDAY_0730)
    assert [ev.alarm.id for ev in scheduler.evaluate()] == [aid]


def test_other_minutes_and_disabled_alarms_do_not_fire(store: AlarmStore, scheduler, clock) -> None:
    store.add(7, 29, RepeatMode.DAILY)
    store.add(7, 31, RepeatMode.DAILY)
    disabled = store.add(7, 30, RepeatMode.DAILY)
    store.enable(disabled, False)

    clock.set(MONDAY_0730)
    assert scheduler.evaluate() == []


@pytest.mark.parametrize("second", [45, 59])
def test_first_tick_late_in_the_minute_still_fires(
    store: AlarmStore, scheduler, clock, recorder, second: int
) -> None:
    aid = store.add(7, 30, RepeatMode.DAILY)
    clock.set(datetime(2026, 1, 5, 7, 30, second))

    assert [ev.alarm.id for ev in scheduler.evaluate()] == [aid]
    assert store.get(aid).status is AlarmStatus.TRIGGERED
    assert [a.id for a in recorder.triggered] == [aid]


def test_evaluate_accepts_explicit_times(store: AlarmStore, scheduler) -> None:
    aid = store.add(7, 30, RepeatMode.DAILY)
    events = scheduler.evaluate(now=MONDAY_0730, monotonic_now=42)
    assert store.get(aid).last_triggered_epoch_seconds == 42
    assert len(events) == 1


def test_refire_guard_blocks_retrigger_after_quick_stop(store: AlarmStore, scheduler, clock, recorder) -> None:
    aid = store.add(7, 30, RepeatMode.DAILY)
    clock.set(MONDAY_0730)
    scheduler.evaluate()

    clock.advance(10)
    assert store.stop(aid)
    assert store.get(aid).status is AlarmStatus.ENABLED

    clock.advance(20)
    assert scheduler.evaluate() == []
    assert len(recorder.triggered) == 1


def test_repeating_alarm_fires_again_next_day(store: AlarmStore, scheduler, clock) -> None:
    aid = store.add(7, 30, RepeatMode.DAILY)
    clock.set(MONDAY_0730)
    scheduler.evaluate()
    store.stop(aid)

    clock.advance(24 * 3600)
    assert clock.mono - 1_000 >= REFIRE_GUARD_SECONDS
    assert [ev.alarm.id for ev in scheduler.evaluate()] == [aid]


# --- snooze ---
def test_snooze_then_expiry_retriggers(store: AlarmStore, scheduler, clock, recorder) -> None:
    aid = store.add(7, 30, RepeatMode.DAILY)
    clock.set(MONDAY_0730)
    scheduler.evaluate()

    assert store.snooze(aid)
    alarm = store.get(aid)
    assert alarm.status is AlarmStatus.SNOOZED
    assert alarm.snooze_count == 1
    assert alarm.next_snooze_epoch_seconds == clock.mono + 5 * 60

    clock.advance(5 * 60 - 1)
    assert scheduler.evaluate() == []

    clock.advance(1)
    events = scheduler.evaluate()
    assert [ev.message for ev in events] == ["Snooze ended"]
    alarm = store.get(aid)
    assert alarm.status is AlarmStatus.TRIGGERED
    assert alarm.snooze_count == 1
    assert alarm.next_snooze_epoch_seconds == 0
    assert len(recorder.triggered) == 2
    assert len(recorder.snoozed) == 1


def test_snooze_requires_triggered_status(store: AlarmStore, scheduler, clock) -> None:
    aid = store.add(7, 30, RepeatMode.DAILY)
    assert not store.snooze(aid)
    assert not store.snooze(99)

    clock.set(MONDAY_0730)
    scheduler.evaluate()
    assert store.snooze(aid)
    # Already snoozed: a second snooze is refused and state is unchanged.
    assert not store.snooze(aid)
    assert store.get(aid).snooze_count == 1


def test_try_snooze_reports_outcome(store: AlarmStore, scheduler, clock, recorder) -> None:
    store.set_default_max_snooze_count(1)
    aid = store.add(7, 30, RepeatMode.DAILY)

    assert store.try_snooze(aid) is SnoozeResult.NOT_RINGING
    assert store.try_snooze(99) is SnoozeResult.NOT_FOUND

    clock.set(MONDAY_0730)
    scheduler.evaluate()
    assert store.try_snooze(aid) is SnoozeResult.SNOOZED
    assert store.try_snooze(aid) is SnoozeResult.NOT_RINGING

    clock.advance(5 * 60)
    scheduler.evaluate()
    assert store.try_snooze(aid) is SnoozeResult.LIMIT_REACHED
    assert store.get(aid).status is AlarmStatus.ENABLED
    assert len(recorder.snoozed) == 1
    assert len(recorder.stopped) == 1


def test_snooze_ceiling_stops_repeating_alarm(store: AlarmStore, scheduler, clock, recorder) -> None:
    aid = store.add(7, 30, RepeatMode.DAILY)
    clock.set(MONDAY_0730)
    scheduler.evaluate()

    for _ in range(3):
        assert store.snooze(aid)
        clock.advance(5 * 60)
        scheduler.evaluate()

    assert store.get(aid).snooze_count == 3
    assert not store.snooze(aid)

    alarm = store.get(aid)
    assert alarm.status is AlarmStatus.ENABLED
    assert alarm.snooze_count == 0
    assert len(recorder.snoozed) == 3
    assert len(recorder.stopped) == 1


def test_once_alarm_with_single_snooze(store: AlarmStore, scheduler, clock, recorder) -> None:
    store.set_default_max_snooze_count(1)
    aid = store.add(7, 30, RepeatMode.ONCE)

    clock.set(MONDAY_0730)
    scheduler.evaluate()
    assert store.get(aid).status is AlarmStatus.TRIGGERED

    assert store.snooze(aid)
    assert store.get(aid).status is AlarmStatus.SNOOZED

    clock.advance(5 * 60)
    scheduler.evaluate()
    assert store.get(aid).status is AlarmStatus.TRIGGERED

    assert not store.snooze(aid)
    alarm = store.get(aid)
    assert alarm.status is AlarmStatus.DISABLED
    assert alarm.snooze_count == 0
    assert [a.id for a in recorder.stopped] == [aid]


def test_zero_snooze_ceiling_stops_immediately(store: AlarmStore, scheduler, clock) -> None:
    store.set_default_max_snooze_count(0)
    aid = store.add(7, 30, RepeatMode.ONCE)
    clock.set(MONDAY_0730)
    scheduler.evaluate()

    assert not store.snooze(aid)
    assert store.get(aid).status is AlarmStatus.DISABLED


# --- stop ---
def test_stop_once_disables_and_repeating_rearms(store: AlarmStore, scheduler, clock) -> None:
    once = store.add(7, 30, RepeatMode.ONCE)
    daily = store.add(7, 30, RepeatMode.DAILY)
    clock.set(MONDAY_0730)
    scheduler.evaluate()

    assert store.stop(once)
    assert store.stop(daily)
    assert store.get(once).status is AlarmStatus.DISABLED
    assert store.get(daily).status is AlarmStatus.ENABLED


def test_stop_requires_ringing_alarm(store: AlarmStore) -> None:
    aid = store.add(7, 30, RepeatMode.DAILY)
    assert not store.stop(aid)
    assert not store.stop(99)
    assert store.get(aid).status is AlarmStatus.ENABLED


def test_stop_works_on_snoozed_alarm(store: AlarmStore, scheduler, clock) -> None:
    aid = store.add(7, 30, RepeatMode.WEEKDAYS)
    clock.set(MONDAY_0730)
    scheduler.evaluate()
    store.snooze(aid)

    assert store.stop(aid)
    alarm = store.get(aid)
    assert alarm.status is AlarmStatus.ENABLED
    assert alarm.snooze_count == 0
    assert alarm.next_snooze_epoch_seconds == 0


def test_stop_all_stops_every_ringing_alarm(store: AlarmStore, scheduler, clock, recorder) -> None:
    first = store.add(7, 30, RepeatMode.DAILY)
    second = store.add(7, 30, RepeatMode.ONCE)
    idle = store.add(9, 0, RepeatMode.DAILY)
    clock.set(MONDAY_0730)
    scheduler.evaluate()
    store.snooze(first)

    assert store.stop_all() == 2
    assert store.get_active() == []
    assert sorted(a.id for a in recorder.stopped) == [first, second]
    assert store.get(idle).status is AlarmStatus.ENABLED
    assert store.stop_all() == 0


def test_get_active_lists_ringing_and_snoozed(store: AlarmStore, scheduler, clock) -> None:
    first = store.add(7, 30, RepeatMode.DAILY)
    second = store.add(7, 30, RepeatMode.DAILY)
    store.add(8, 0, RepeatMode.DAILY)
    clock.set(MONDAY_0730)
    scheduler.evaluate()
    store.snooze(second)

    assert [a.id for a in store.get_active()] == [first, second]
