from __future__ import annotations

import logging
from dataclasses import dataclass, field
from queue import Full, Queue

from alarmclock.domain.events import AlarmEvent

logger = logging.getLogger(__name__)


@dataclass
class EventBus:
    """
    In-process event bus for alarm events using a thread-safe queue.

    - Producers publish `AlarmEvent` via :meth:`publish_alarm` (the store's
      event sink).
    - Consumers (e.g. the notification adapter thread) read from
      :attr:`alarm_events_q`.

    Backpressure Policy
    -------------------
    If the queue is full, events are dropped (best-effort) so a stalled
    consumer never blocks the alarm tick or an API call.
    """

    alarm_events_q: "Queue[AlarmEvent]" = field(default_factory=lambda: Queue(maxsize=1000))

    def publish_alarm(self, ev: AlarmEvent) -> None:
        try:
            self.alarm_events_q.put_nowait(ev)
        except Full:
            logger.warning("Event bus full, dropping %s for alarm %s", ev.transition.value, ev.alarm.id)
