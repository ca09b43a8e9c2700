"""
Alarm event domain models.

An `AlarmEvent` represents *what happened* to an alarm at a specific time,
while the `Alarm` snapshot it carries represents *what is true* right after
the transition.

Events are typically used for:
- dispatching the triggered/snoozed/stopped callbacks
- logging and audit trails
- remote notification streams
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from alarmclock.domain.models import Alarm


class AlarmTransition(str, Enum):
    """
    Alarm life-cycle transition that produces a callback.

    Members
    -------
    TRIGGERED : str
        Alarm started ringing (normal fire or snooze expiry).
    SNOOZED : str
        Ringing alarm was postponed.
    STOPPED : str
        Ringing or snoozed alarm was stopped.
    """

    TRIGGERED = "TRIGGERED"
    SNOOZED = "SNOOZED"
    STOPPED = "STOPPED"


@dataclass(frozen=True)
class AlarmEvent:
    """
    Alarm event emitted when an alarm transitions.

    Parameters
    ----------
    alarm
        Snapshot of the alarm after the transition.
    transition
        Life-cycle transition (TRIGGERED, SNOOZED, STOPPED).
    timestamp
        Wall-clock time when the transition occurred.
    message
        Human-readable description (used in logs and notifications).
    """

    alarm: Alarm
    transition: AlarmTransition
    timestamp: datetime
    message: str = ""
