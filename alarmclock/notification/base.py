from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol


@dataclass(frozen=True)
class NotificationEvent:
    """
    Outbound notification message.

    A 'NotificationEvent' represents *what should be communicated* about an
    alarm, not *how* it is delivered.

    Parameters
    ----------
    type
        Event type identifier (e.g., "alarm_event").
    payload
        JSON-serializable body handed to the notifier.
    transition
        Optional alarm transition name ("TRIGGERED", "SNOOZED", "STOPPED").
    alarm_id
        Optional id of the alarm concerned.
    ts
        Optional ISO-8601 timestamp of the transition.
    """

    type: str
    payload: Dict[str, Any]
    transition: Optional[str] = None
    alarm_id: Optional[int] = None
    ts: Optional[str] = None


class Notifier(Protocol):
    """
    Protocol interface for notification delivery.

    Any object with a matching 'notify(event)' method can be used; delivery
    errors are raised to the caller (the worker thread handles retries).
    """

    def notify(self, event: NotificationEvent) -> None:
        ...
