from __future__ import annotations

import logging
import threading
from queue import Empty

from alarmclock.core.state.alarm_store import AlarmStore
from alarmclock.domain.events import AlarmEvent
from alarmclock.notification.base import NotificationEvent
from alarmclock.notification.notification_thread import NotificationWorkerThread
from alarmclock.notification.payload import build_alarm_webhook_payload
from alarmclock.runtime.event_bus import EventBus

logger = logging.getLogger(__name__)


class NotificationAdapterThread:
    """
    Adapter thread that bridges domain AlarmEvent -> NotificationWorkerThread.

    Responsibilities
    ----------------
    - Consume `EventBus.alarm_events_q`.
    - Build a webhook payload from the event and a store snapshot.
    - Emit `NotificationEvent` objects into the notification worker.

    Parameters
    ----------
    bus
        Event bus providing the AlarmEvent queue.
    store
        Alarm store used to compute totals for the payload.
    notifier
        Notification worker responsible for actual sending.
    stop_event
        Stop signal for the thread.
    """

    def __init__(
        self,
        bus: EventBus,
        store: AlarmStore,
        notifier: NotificationWorkerThread,
        stop_event: threading.Event,
    ):
        self._bus = bus
        self._store = store
        self._notifier = notifier
        self._stop = stop_event
        self._thread = threading.Thread(target=self._run, name="notification-adapter", daemon=True)

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = 2.0) -> None:
        if self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def forward(self, ev: AlarmEvent) -> None:
        """Convert one alarm event and hand it to the notification worker."""
        # Events drained after store cleanup carry empty totals.
        alarms = self._store.get_all() if self._store.is_initialized else []
        payload = build_alarm_webhook_payload(alarms, ev)
        self._notifier.emit(
            NotificationEvent(
                type="alarm_event",
                payload=payload,
                transition=ev.transition.value,
                alarm_id=ev.alarm.id,
                ts=ev.timestamp.isoformat(timespec="seconds"),
            )
        )

    def drain(self) -> int:
        """Forward whatever is still queued on the bus from the calling thread."""
        forwarded = 0
        while True:
            try:
                ev = self._bus.alarm_events_q.get_nowait()
            except Empty:
                return forwarded
            self.forward(ev)
            forwarded += 1

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                ev = self._bus.alarm_events_q.get(timeout=0.5)
            except Empty:
                continue

            try:
                self.forward(ev)
            except Exception:
                logger.error("Failed to forward alarm event for alarm %s", ev.alarm.id, exc_info=True)
