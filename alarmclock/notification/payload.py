from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Dict, Sequence

from alarmclock.domain.events import AlarmEvent
from alarmclock.domain.models import Alarm, format_time


def _iso(ts: datetime) -> str:
    return ts.isoformat(timespec="seconds")


def build_alarm_webhook_payload(alarms: Sequence[Alarm], ev: AlarmEvent) -> Dict[str, Any]:
    """
    Build a webhook payload for an alarm event plus current alarm totals.

    The payload includes:
    - "event": the transition and the alarm snapshot it applies to
    - "totals": counters computed from the current alarm set

    Parameters
    ----------
    alarms
        Snapshot of all alarms (``AlarmStore.get_all()``).
    ev
        Alarm event that triggered the webhook.

    Returns
    -------
    dict
        Webhook payload dictionary with keys: "type", "event", and "totals".
    """
    alarm = ev.alarm
    event_payload = {
        "alarm_id": alarm.id,
        "time": format_time(alarm.hour, alarm.minute),
        "hour": alarm.hour,
        "minute": alarm.minute,
        "repeat_mode": alarm.repeat_mode.value,
        "label": alarm.label,
        "music_name": alarm.music_name,
        "transition": ev.transition.value,
        "status": alarm.status.value,
        "snooze_count": alarm.snooze_count,
        "timestamp": _iso(ev.timestamp),
        "message": ev.message,
    }

    by_status = Counter(a.status.value for a in alarms)
    totals_payload = {
        "alarms_total": len(alarms),
        "alarms_active": sum(1 for a in alarms if a.is_ringing),
        "counts_by_status": {k: int(v) for k, v in by_status.items()},
    }

    return {
        "type": "alarm_event",
        "event": event_payload,
        "totals": totals_payload,
    }
