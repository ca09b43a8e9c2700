"""
Serialization of alarms to durable key/value records.

Each alarm is stored as one compact JSON object under ``alarm_<index>``.
Only the configuration fields are written; runtime-only fields
(``snooze_count``, ``last_triggered_epoch_seconds``,
``next_snooze_epoch_seconds``) never reach storage.

Record layout::

    {"id": 3, "hour": 7, "minute": 30, "repeat": "DAILY", "weekdays": 127,
     "status": "ENABLED", "label": "Gym", "music": "", "snooze_minutes": 5,
     "max_snooze": 3}
"""

from __future__ import annotations

import json
from typing import Any, Dict, Type, TypeVar

from alarmclock.domain.models import (
    ALL_DAYS_MASK,
    DEFAULT_MAX_SNOOZE_COUNT,
    DEFAULT_SNOOZE_MINUTES,
    Alarm,
    AlarmStatus,
    InvalidAlarmTimeError,
    RepeatMode,
    validate_time,
)

E = TypeVar("E", RepeatMode, AlarmStatus)

NEXT_ID_KEY = "next_id"
COUNT_KEY = "count"


class AlarmRecordError(ValueError):
    """Raised when a stored alarm record cannot be decoded."""


def alarm_key(index: int) -> str:
    return f"alarm_{index}"


def encode_alarm(alarm: Alarm) -> str:
    """
    Serialize the persistent fields of an alarm to a JSON string.

    Parameters
    ----------
    alarm
        Alarm to serialize.

    Returns
    -------
    str
        Compact JSON record.
    """
    record = {
        "id": alarm.id,
        "hour": alarm.hour,
        "minute": alarm.minute,
        "repeat": alarm.repeat_mode.value,
        "weekdays": alarm.weekdays_mask,
        "status": alarm.status.value,
        "label": alarm.label,
        "music": alarm.music_name,
        "snooze_minutes": alarm.snooze_minutes,
        "max_snooze": alarm.max_snooze_count,
    }
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"))


def decode_alarm(raw: str) -> Alarm:
    """
    Parse a stored record back into an `Alarm`.

    A ringing status (TRIGGERED/SNOOZED) is downgraded to ENABLED and all
    runtime-only fields start at zero, so a restart never resumes a phantom
    ringing alarm.

    Parameters
    ----------
    raw
        JSON record produced by :func:`encode_alarm`.

    Returns
    -------
    Alarm
        Decoded alarm.

    Raises
    ------
    AlarmRecordError
        If the record is not valid JSON, misses required fields, or carries
        out-of-range values.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise AlarmRecordError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise AlarmRecordError("Alarm record must be a JSON object")

    try:
        alarm_id = int(data["id"])
        hour = int(data["hour"])
        minute = int(data["minute"])
    except (KeyError, TypeError, ValueError) as exc:
        raise AlarmRecordError(f"Alarm record missing id/hour/minute: {exc!r}") from exc

    try:
        validate_time(hour, minute)
    except InvalidAlarmTimeError as exc:
        raise AlarmRecordError(str(exc)) from exc

    status = _parse_enum(AlarmStatus, data.get("status", AlarmStatus.ENABLED.value))
    if status in (AlarmStatus.TRIGGERED, AlarmStatus.SNOOZED):
        status = AlarmStatus.ENABLED

    return Alarm(
        id=alarm_id,
        hour=hour,
        minute=minute,
        repeat_mode=_parse_enum(RepeatMode, data.get("repeat", RepeatMode.ONCE.value)),
        weekdays_mask=_int_field(data, "weekdays", 0) & ALL_DAYS_MASK,
        status=status,
        label=str(data.get("label") or ""),
        music_name=str(data.get("music") or ""),
        snooze_minutes=_int_field(data, "snooze_minutes", DEFAULT_SNOOZE_MINUTES),
        max_snooze_count=_int_field(data, "max_snooze", DEFAULT_MAX_SNOOZE_COUNT),
    )


def _int_field(data: Dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise AlarmRecordError(f"Field {key!r} must be an integer, got {value!r}") from exc


def _parse_enum(enum_cls: Type[E], value: Any) -> E:
    # Numeric values are the positional encoding used by older firmware records.
    members = list(enum_cls)
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value < len(members):
            return members[value]
        raise AlarmRecordError(f"Unknown {enum_cls.__name__} index {value}")
    try:
        return enum_cls(str(value))
    except ValueError as exc:
        raise AlarmRecordError(f"Unknown {enum_cls.__name__} value {value!r}") from exc
