"""
Thread-safe, persistent store for alarms.

`AlarmStore` owns the authoritative list of alarms and the id counter. It
validates input, applies the snooze/stop transitions, mirrors every change to
a `KeyValueStore` and notifies the triggered/snoozed/stopped callbacks.

Concurrency Model
-----------------
All reads and writes are guarded by a single re-entrant lock. Mutations hold
it for the change plus the synchronous storage write; queries hold it only to
copy the list.

Every transition appends its `AlarmEvent` to a store-owned FIFO while the lock
is held, so the queue order is the transition order. Callbacks run *after* the
lock is released, from one dispatcher at a time: the first thread to find
events pending drains the queue, and any thread (or callback) that emits while
a drain is in progress only enqueues. A callback may therefore call back into
the store; the events it causes are delivered after the current one, never
interleaved with it. An event may be delivered on a different thread than
the one that caused it.

Storage Layout
--------------
``next_id`` and ``count`` hold integers as text; ``alarm_<index>`` holds one
JSON record per alarm for indices ``0..count-1``. Slots are positional: a
removal re-serializes the remaining set, so an alarm's slot may change.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import replace
from enum import Enum
from typing import Callable, Deque, List, Optional, Tuple, Union

from alarmclock.core.alarm.next_alarm import NextAlarm, describe_next_alarm, find_next_alarm
from alarmclock.core.ports import Clock, KeyValueStore, SystemClock
from alarmclock.core.state.codec import (
    COUNT_KEY,
    NEXT_ID_KEY,
    AlarmRecordError,
    alarm_key,
    decode_alarm,
    encode_alarm,
)
from alarmclock.domain.events import AlarmEvent, AlarmTransition
from alarmclock.domain.models import (
    DEFAULT_MAX_SNOOZE_COUNT,
    DEFAULT_SNOOZE_MINUTES,
    Alarm,
    AlarmStatus,
    RepeatMode,
    format_time,
    validate_time,
    weekdays_mask_for,
)

logger = logging.getLogger(__name__)

AlarmCallback = Callable[[Alarm], None]
EventSink = Callable[[AlarmEvent], None]
TickStep = Callable[[Alarm], Optional[Tuple[Alarm, AlarmTransition, str]]]

NOT_INITIALIZED = "Alarm store not initialized"


class SnoozeResult(str, Enum):
    """
    Outcome of :meth:`AlarmStore.try_snooze`.

    Members
    -------
    SNOOZED : str
        The alarm is now SNOOZED.
    LIMIT_REACHED : str
        The snooze ceiling was reached; the alarm was stopped instead.
    NOT_RINGING : str
        The alarm exists but is not TRIGGERED.
    NOT_FOUND : str
        Unknown id.
    NOT_INITIALIZED : str
        The store is not initialized.
    """

    SNOOZED = "SNOOZED"
    LIMIT_REACHED = "LIMIT_REACHED"
    NOT_RINGING = "NOT_RINGING"
    NOT_FOUND = "NOT_FOUND"
    NOT_INITIALIZED = "NOT_INITIALIZED"


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class AlarmStore:
    """
    Authoritative alarm collection with durable mirroring.

    Parameters
    ----------
    storage
        Durable key/value space used to persist alarms and the id counter.
    clock
        Time source. Defaults to `SystemClock`.
    event_sink
        Optional consumer receiving every emitted `AlarmEvent` after the
        matching callback (e.g. ``EventBus.publish_alarm``).

    Notes
    -----
    The store must be initialized with :meth:`initialize` before use. Calls
    made before that (or after :meth:`cleanup`) return neutral results
    (``None`` / ``False`` / empty list) instead of raising.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        clock: Optional[Clock] = None,
        event_sink: Optional[EventSink] = None,
    ):
        self._storage = storage
        self._clock = clock or SystemClock()
        self._event_sink = event_sink

        self._alarms: List[Alarm] = []
        self._next_id = 1
        self._persisted_count = 0
        self._initialized = False

        self._default_snooze_minutes = DEFAULT_SNOOZE_MINUTES
        self._default_max_snooze_count = DEFAULT_MAX_SNOOZE_COUNT

        self._on_triggered: Optional[AlarmCallback] = None
        self._on_snoozed: Optional[AlarmCallback] = None
        self._on_stopped: Optional[AlarmCallback] = None

        # Both guarded by _lock.
        self._pending: Deque[AlarmEvent] = deque()
        self._dispatching = False

        self._lock = threading.RLock()

    # --- Lifecycle ---
    @property
    def is_initialized(self) -> bool:
        with self._lock:
            return self._initialized

    def initialize(self) -> None:
        """
        Load alarms and the id counter from storage.

        Calling it again on an initialized store does nothing.
        """
        with self._lock:
            if self._initialized:
                return
            self._load()
            self._initialized = True
            logger.info("Alarm store initialized with %s alarms", len(self._alarms))

    def cleanup(self) -> None:
        """
        Stop every ringing alarm, persist the set and release it.

        After cleanup the store behaves as uninitialized until
        :meth:`initialize` is called again.

        Stopping, saving and releasing happen in one critical section, so no
        tick or API call can ring an alarm in between. The STOPPED callbacks
        run afterwards, once the store is already uninitialized.
        """
        with self._lock:
            if not self._initialized:
                return
            stopped = 0
            for index, alarm in enumerate(self._alarms):
                if alarm.is_ringing:
                    self._stop_at(index, "Stopped (shutdown)")
                    stopped += 1
            self._save_all()
            self._alarms = []
            self._initialized = False
        logger.info("Alarm store cleaned up (%s ringing alarms stopped)", stopped)
        self._drain_events()

    # --- Callback ports ---
    def set_triggered_callback(self, callback: Optional[AlarmCallback]) -> None:
        """Register the single triggered callback, replacing any previous one."""
        self._on_triggered = callback

    def set_snoozed_callback(self, callback: Optional[AlarmCallback]) -> None:
        """Register the single snoozed callback, replacing any previous one."""
        self._on_snoozed = callback

    def set_stopped_callback(self, callback: Optional[AlarmCallback]) -> None:
        """Register the single stopped callback, replacing any previous one."""
        self._on_stopped = callback

    # --- Process-wide defaults ---
    def set_default_snooze_minutes(self, minutes: int) -> None:
        """Set the snooze duration for alarms created afterwards, clamped to [1, 60]."""
        with self._lock:
            self._default_snooze_minutes = _clamp(int(minutes), 1, 60)

    def set_default_max_snooze_count(self, count: int) -> None:
        """Set the snooze ceiling for alarms created afterwards, clamped to [0, 10]."""
        with self._lock:
            self._default_max_snooze_count = _clamp(int(count), 0, 10)

    @property
    def default_snooze_minutes(self) -> int:
        return self._default_snooze_minutes

    @property
    def default_max_snooze_count(self) -> int:
        return self._default_max_snooze_count

    # --- CRUD ---
    def add(
        self,
        hour: int,
        minute: int,
        repeat_mode: Union[RepeatMode, str] = RepeatMode.ONCE,
        label: str = "",
        music_name: str = "",
        weekdays_mask: int = 0,
    ) -> Optional[int]:
        """
        Create a new enabled alarm.

        Parameters
        ----------
        hour, minute
            Local fire time.
        repeat_mode
            Recurrence; DAILY/WEEKDAYS/WEEKENDS derive their weekday mask.
        label
            Free-form text.
        music_name
            Sound to request on trigger; empty for the default.
        weekdays_mask
            Weekday bits (0=Sunday), used only for CUSTOM.

        Returns
        -------
        int or None
            The new alarm id, or None if the store is not initialized.

        Raises
        ------
        InvalidAlarmTimeError
            If the time is out of range. Nothing is mutated in that case.
        """
        mode = RepeatMode(repeat_mode)
        with self._lock:
            if not self._require_initialized("add"):
                return None
            validate_time(hour, minute)

            alarm = Alarm(
                id=self._next_id,
                hour=hour,
                minute=minute,
                repeat_mode=mode,
                weekdays_mask=0 if mode is RepeatMode.ONCE else weekdays_mask_for(mode, weekdays_mask),
                label=label,
                music_name=music_name,
                status=AlarmStatus.ENABLED,
                snooze_minutes=self._default_snooze_minutes,
                max_snooze_count=self._default_max_snooze_count,
            )
            self._next_id += 1
            self._alarms.append(alarm)

            index = len(self._alarms) - 1
            self._save_alarm(index)
            self._save_count()
            self._storage.set(NEXT_ID_KEY, str(self._next_id))

        logger.info(
            "Added alarm %s: %s, repeat=%s, label=%r, music=%r",
            alarm.id,
            format_time(hour, minute),
            mode.value,
            label,
            music_name,
        )
        return alarm.id

    def remove(self, alarm_id: int) -> bool:
        """Delete an alarm in any state. Returns False if the id is unknown."""
        with self._lock:
            if not self._require_initialized("remove"):
                return False
            index = self._index_of(alarm_id)
            if index is None:
                logger.warning("Alarm %s not found for removal", alarm_id)
                return False
            del self._alarms[index]
            self._save_all()
        logger.info("Removed alarm %s", alarm_id)
        return True

    def enable(self, alarm_id: int, enabled: bool = True) -> bool:
        """
        Switch an alarm between ENABLED and DISABLED.

        A ringing (TRIGGERED/SNOOZED) alarm is left as is; use :meth:`stop`
        for it. Returns False only if the id is unknown.
        """
        with self._lock:
            if not self._require_initialized("enable"):
                return False
            index = self._index_of(alarm_id)
            if index is None:
                logger.warning("Alarm %s not found for enable", alarm_id)
                return False
            alarm = self._alarms[index]
            if alarm.is_ringing:
                logger.info("Alarm %s is %s, enable(%s) ignored", alarm_id, alarm.status.value, enabled)
                return True
            status = AlarmStatus.ENABLED if enabled else AlarmStatus.DISABLED
            self._alarms[index] = replace(alarm, status=status)
            self._save_alarm(index)
        logger.info("Alarm %s %s", alarm_id, "enabled" if enabled else "disabled")
        return True

    def modify(
        self,
        alarm_id: int,
        hour: int,
        minute: int,
        repeat_mode: Union[RepeatMode, str] = RepeatMode.ONCE,
        label: str = "",
        music_name: str = "",
        weekdays_mask: Optional[int] = None,
    ) -> bool:
        """
        Change an alarm's time, recurrence, label and sound.

        Status and snooze counters are preserved. For CUSTOM the existing mask
        is kept when ``weekdays_mask`` is None; for ONCE the mask is untouched.

        Raises
        ------
        InvalidAlarmTimeError
            If the time is out of range. Nothing is mutated in that case.
        """
        mode = RepeatMode(repeat_mode)
        with self._lock:
            if not self._require_initialized("modify"):
                return False
            validate_time(hour, minute)
            index = self._index_of(alarm_id)
            if index is None:
                logger.warning("Alarm %s not found for modify", alarm_id)
                return False

            alarm = self._alarms[index]
            if mode is RepeatMode.ONCE:
                mask = alarm.weekdays_mask
            elif mode is RepeatMode.CUSTOM:
                mask = weekdays_mask_for(mode, alarm.weekdays_mask if weekdays_mask is None else weekdays_mask)
            else:
                mask = weekdays_mask_for(mode)

            self._alarms[index] = replace(
                alarm,
                hour=hour,
                minute=minute,
                repeat_mode=mode,
                weekdays_mask=mask,
                label=label,
                music_name=music_name,
            )
            self._save_alarm(index)
        logger.info("Modified alarm %s: %s", alarm_id, format_time(hour, minute))
        return True

    # --- Queries ---
    def get_all(self) -> List[Alarm]:
        with self._lock:
            if not self._require_initialized("get_all"):
                return []
            return list(self._alarms)

    def get_active(self) -> List[Alarm]:
        """Return alarms currently ringing or snoozed, in stored order."""
        with self._lock:
            if not self._require_initialized("get_active"):
                return []
            return [a for a in self._alarms if a.is_ringing]

    def get(self, alarm_id: int) -> Optional[Alarm]:
        with self._lock:
            if not self._require_initialized("get"):
                return None
            index = self._index_of(alarm_id)
            return None if index is None else self._alarms[index]

    def next_alarm(self) -> Optional[NextAlarm]:
        """Return the enabled alarm that fires soonest within a week, if any."""
        with self._lock:
            if not self._require_initialized("next_alarm"):
                return None
            alarms = list(self._alarms)
        return find_next_alarm(alarms, self._clock.now())

    def next_alarm_description(self) -> str:
        """
        Describe the next alarm, e.g. ``"Next alarm: 07:30 (in 45 min) - Gym"``.

        Returns ``"No active alarms"`` when nothing is scheduled.
        """
        if not self.is_initialized:
            logger.error("AlarmStore not initialized (next_alarm_description ignored)")
            return NOT_INITIALIZED
        return describe_next_alarm(self.next_alarm())

    # --- Snooze / stop ---
    def snooze(self, alarm_id: int) -> bool:
        """
        Postpone a TRIGGERED alarm by its snooze duration.

        Returns
        -------
        bool
            True if the alarm is now SNOOZED. False if the id is unknown, the
            alarm is not TRIGGERED, or the snooze ceiling was reached (in
            which case the alarm is stopped instead).
        """
        return self.try_snooze(alarm_id) is SnoozeResult.SNOOZED

    def try_snooze(self, alarm_id: int) -> SnoozeResult:
        """
        Snooze like :meth:`snooze`, reporting why a snooze did not happen.

        The check and the transition happen in one critical section, so the
        result describes exactly what this call did.
        """
        with self._lock:
            if not self._require_initialized("snooze"):
                return SnoozeResult.NOT_INITIALIZED
            index = self._index_of(alarm_id)
            if index is None:
                logger.warning("Alarm %s not found for snooze", alarm_id)
                return SnoozeResult.NOT_FOUND
            alarm = self._alarms[index]
            if alarm.status is not AlarmStatus.TRIGGERED:
                return SnoozeResult.NOT_RINGING

            if alarm.snooze_count < alarm.max_snooze_count:
                updated = replace(
                    alarm,
                    status=AlarmStatus.SNOOZED,
                    snooze_count=alarm.snooze_count + 1,
                    next_snooze_epoch_seconds=self._clock.monotonic_seconds() + alarm.snooze_minutes * 60,
                )
                self._alarms[index] = updated
                self._save_alarm(index)
                message = (
                    f"Snoozed for {updated.snooze_minutes} min "
                    f"({updated.snooze_count}/{updated.max_snooze_count})"
                )
                logger.info("Alarm %s: %s", alarm_id, message)
                self._emit(updated, AlarmTransition.SNOOZED, message)
                result = SnoozeResult.SNOOZED
            else:
                logger.info("Alarm %s exceeded max snooze count, stopping", alarm_id)
                self._stop_at(index, "Snooze limit reached")
                self._save_alarm(index)
                result = SnoozeResult.LIMIT_REACHED

        self._drain_events()
        return result

    def stop(self, alarm_id: int) -> bool:
        """
        Stop a TRIGGERED or SNOOZED alarm.

        ONCE alarms become DISABLED; repeating alarms re-arm (ENABLED).
        Returns False if the id is unknown or the alarm is not ringing.
        """
        with self._lock:
            if not self._require_initialized("stop"):
                return False
            index = self._index_of(alarm_id)
            if index is None or not self._alarms[index].is_ringing:
                return False
            self._stop_at(index, "Stopped")
            self._save_alarm(index)

        self._drain_events()
        return True

    def stop_all(self) -> int:
        """Stop every ringing or snoozed alarm. Returns how many were stopped."""
        stopped = 0
        with self._lock:
            if not self._require_initialized("stop_all"):
                return 0
            for index, alarm in enumerate(self._alarms):
                if alarm.is_ringing:
                    self._stop_at(index, "Stopped (stop all)")
                    stopped += 1
            if stopped:
                self._save_all()

        if stopped:
            logger.info("Stopped %s active alarms", stopped)
        self._drain_events()
        return stopped

    # --- Scheduler hook ---
    def apply_tick(self, step: TickStep) -> List[AlarmEvent]:
        """
        Run one scheduler step over every alarm under the store lock.

        Parameters
        ----------
        step
            Called with each alarm in stored order. Returns None to leave the
            alarm unchanged, or ``(updated_alarm, transition, message)``.

        Returns
        -------
        list of AlarmEvent
            Transitions applied during this tick. They are delivered to the
            callbacks before this call returns, unless another thread is
            already dispatching; that thread then delivers them in order.

        Notes
        -----
        Tick transitions only touch runtime state (TRIGGERED/SNOOZED, counters),
        which is never restored on load, so nothing is written to storage.
        """
        events: List[AlarmEvent] = []
        with self._lock:
            if not self._initialized:
                return []
            for index, alarm in enumerate(self._alarms):
                result = step(alarm)
                if result is None:
                    continue
                updated, transition, message = result
                self._alarms[index] = updated
                events.append(self._emit(updated, transition, message))

        self._drain_events()
        return events

    # --- Internals ---
    def _require_initialized(self, op: str) -> bool:
        if not self._initialized:
            logger.error("AlarmStore not initialized (%s ignored)", op)
            return False
        return True

    def _index_of(self, alarm_id: int) -> Optional[int]:
        for index, alarm in enumerate(self._alarms):
            if alarm.id == alarm_id:
                return index
        return None

    def _stop_at(self, index: int, message: str) -> AlarmEvent:
        alarm = self._alarms[index]
        status = AlarmStatus.DISABLED if alarm.repeat_mode is RepeatMode.ONCE else AlarmStatus.ENABLED
        updated = replace(alarm, status=status, snooze_count=0, next_snooze_epoch_seconds=0)
        self._alarms[index] = updated
        logger.info("Stopped alarm %s (now %s)", alarm.id, status.value)
        return self._emit(updated, AlarmTransition.STOPPED, message)

    def _emit(self, alarm: Alarm, transition: AlarmTransition, message: str) -> AlarmEvent:
        # Caller holds the lock, so queue order is transition order.
        ev = AlarmEvent(alarm=alarm, transition=transition, timestamp=self._clock.now(), message=message)
        self._pending.append(ev)
        return ev

    def _drain_events(self) -> None:
        """Deliver queued events unless a drain is already running."""
        with self._lock:
            if self._dispatching or not self._pending:
                return
            self._dispatching = True
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._dispatching = False
                        return
                    ev = self._pending.popleft()
                self._deliver(ev)
        except BaseException:
            with self._lock:
                self._dispatching = False
            raise

    def _deliver(self, ev: AlarmEvent) -> None:
        callback = {
            AlarmTransition.TRIGGERED: self._on_triggered,
            AlarmTransition.SNOOZED: self._on_snoozed,
            AlarmTransition.STOPPED: self._on_stopped,
        }[ev.transition]
        if callback is not None:
            try:
                callback(ev.alarm)
            except Exception:
                logger.error(
                    "%s callback failed for alarm %s", ev.transition.value.lower(), ev.alarm.id, exc_info=True
                )
        if self._event_sink is not None:
            try:
                self._event_sink(ev)
            except Exception:
                logger.error("Event sink failed for alarm %s", ev.alarm.id, exc_info=True)

    # --- Persistence (caller holds the lock) ---
    def _load(self) -> None:
        count = self._get_int(COUNT_KEY, 0)
        logger.info("Loading %s alarms from storage", count)

        alarms: List[Alarm] = []
        seen_ids = set()
        for index in range(count):
            key = alarm_key(index)
            raw = self._storage.get(key)
            if not raw:
                continue
            try:
                alarm = decode_alarm(raw)
            except AlarmRecordError as exc:
                logger.warning("Skipping alarm record %s: %s", key, exc)
                continue
            if alarm.id in seen_ids:
                logger.warning("Skipping alarm record %s: duplicate id %s", key, alarm.id)
                continue
            seen_ids.add(alarm.id)
            alarms.append(alarm)

        self._alarms = alarms
        self._persisted_count = count
        highest_id = max(seen_ids, default=0)
        self._next_id = max(self._get_int(NEXT_ID_KEY, 1), highest_id + 1)

    def _get_int(self, key: str, default: int) -> int:
        raw = self._storage.get(key)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning("Stored %s=%r is not an integer, using %s", key, raw, default)
            return default

    def _save_alarm(self, index: int) -> None:
        self._storage.set(alarm_key(index), encode_alarm(self._alarms[index]))

    def _save_count(self) -> None:
        self._storage.set(COUNT_KEY, str(len(self._alarms)))
        self._persisted_count = max(self._persisted_count, len(self._alarms))

    def _save_all(self) -> None:
        count = len(self._alarms)
        self._storage.set(COUNT_KEY, str(count))
        for index in range(count):
            self._save_alarm(index)
        # Blank slots left over from a larger set.
        for index in range(count, self._persisted_count):
            self._storage.set(alarm_key(index), "")
        self._persisted_count = count
