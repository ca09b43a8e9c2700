from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from alarmclock.core.state.alarm_store import AlarmStore, SnoozeResult
from alarmclock.domain.models import (
    Alarm,
    AlarmStatus,
    InvalidAlarmTimeError,
    RepeatMode,
    format_alarm_time,
)

logger = logging.getLogger(__name__)

_STATUS_LABELS = {
    AlarmStatus.ENABLED: "enabled",
    AlarmStatus.DISABLED: "disabled",
    AlarmStatus.TRIGGERED: "ringing",
    AlarmStatus.SNOOZED: "snoozed",
}


def describe_alarm(alarm: Alarm) -> str:
    """One-line listing entry, e.g. ``"ID 2: 07:30 (daily) - Gym [enabled]"``."""
    text = f"ID {alarm.id}: {format_alarm_time(alarm)}"
    if alarm.label:
        text += f" - {alarm.label}"
    text += f" [{_STATUS_LABELS[alarm.status]}]"
    if alarm.music_name:
        text += f" (music: {alarm.music_name})"
    return text


@dataclass
class AlarmController:
    """
    Voice-assistant tool surface over the alarm store.

    Each method maps to one assistant tool (``alarm.add``, ``alarm.list``,
    ``alarm.remove``, ``alarm.toggle``, ``alarm.snooze``, ``alarm.stop``) and
    returns the reply text to speak or display. Failures are reported in the
    reply, never raised.

    Parameters
    ----------
    store
        Alarm store shared with the scheduler.
    """

    store: AlarmStore

    def add_alarm(
        self,
        hour: int,
        minute: int,
        repeat_mode: Union[RepeatMode, str] = RepeatMode.ONCE,
        label: str = "",
        music_name: str = "",
        weekdays_mask: int = 0,
    ) -> str:
        try:
            alarm_id = self.store.add(hour, minute, repeat_mode, label, music_name, weekdays_mask)
        except InvalidAlarmTimeError as exc:
            return f"Failed to set alarm: {exc}"
        except ValueError:
            return f"Failed to set alarm: unknown repeat mode {repeat_mode!r}"
        if alarm_id is None:
            return "Failed to set alarm: alarm service is not ready"

        alarm = self.store.get(alarm_id)
        reply = f"Alarm set: {format_alarm_time(alarm)}" if alarm else f"Alarm {alarm_id} set"
        if label:
            reply += f" - {label}"
        if music_name:
            reply += f", music: {music_name}"
        return f"{reply} (ID {alarm_id})"

    def list_alarms(self) -> str:
        alarms = self.store.get_all()
        if not alarms:
            return "No alarms set"
        lines = [describe_alarm(a) for a in alarms]
        lines.append(self.store.next_alarm_description())
        return "\n".join(lines)

    def remove_alarm(self, alarm_id: int) -> str:
        if self.store.remove(alarm_id):
            return f"Removed alarm ID {alarm_id}"
        return f"Alarm ID {alarm_id} not found"

    def toggle_alarm(self, alarm_id: int, enabled: bool = True) -> str:
        if self.store.enable(alarm_id, enabled):
            return f"Alarm ID {alarm_id} {'enabled' if enabled else 'disabled'}"
        return f"Alarm ID {alarm_id} not found"

    def snooze_alarm(self, alarm_id: Optional[int] = None) -> str:
        """Snooze ``alarm_id``, or the first ringing alarm when omitted."""
        target = self._resolve_active(alarm_id)
        if target is None:
            return "No ringing alarm to snooze"
        result = self.store.try_snooze(target)
        if result is SnoozeResult.SNOOZED:
            alarm = self.store.get(target)
            minutes = alarm.snooze_minutes if alarm is not None else self.store.default_snooze_minutes
            return f"Alarm ID {target} snoozed for {minutes} minutes"
        if result is SnoozeResult.LIMIT_REACHED:
            return f"Alarm ID {target} reached its snooze limit and was stopped"
        if result is SnoozeResult.NOT_RINGING:
            return f"Alarm ID {target} is not ringing"
        if result is SnoozeResult.NOT_INITIALIZED:
            return "Failed to snooze: alarm service is not ready"
        return f"Alarm ID {target} not found"

    def stop_alarm(self, alarm_id: Optional[int] = None) -> str:
        """Stop ``alarm_id``, or the first ringing or snoozed alarm when omitted."""
        target = self._resolve_active(alarm_id)
        if target is None:
            return "No ringing alarm to stop"
        if self.store.stop(target):
            return f"Alarm ID {target} stopped"
        if self.store.get(target) is None:
            return f"Alarm ID {target} not found"
        return f"Alarm ID {target} is not ringing"

    def _resolve_active(self, alarm_id: Optional[int]) -> Optional[int]:
        if alarm_id is not None and alarm_id >= 0:
            return alarm_id
        active = self.store.get_active()
        if not active:
            logger.info("No active alarm to act on")
            return None
        return active[0].id
