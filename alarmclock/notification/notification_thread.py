from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import List, Optional

from alarmclock.notification.base import NotificationEvent, Notifier

logger = logging.getLogger(__name__)

_STOP_TYPE = "__stop__"


@dataclass(frozen=True)
class NotificationThreadConfig:
    max_queue: int = 500
    retry_count: int = 3
    retry_backoff_s: float = 0.5
    poll_timeout_s: float = 0.5


class NotificationWorkerThread:
    """
    Background sender for notification events.

    Events are queued by :meth:`emit` and delivered to every notifier in
    order. Failed deliveries are retried with exponential backoff
    (``retry_backoff_s * 2**attempt``); after the last attempt the event is
    dropped for that notifier and the failure is logged. A full queue drops
    the newest event so the alarm tick is never blocked by slow delivery.
    """

    def __init__(self, notifiers: List[Notifier], cfg: Optional[NotificationThreadConfig] = None):
        self._notifiers = notifiers
        self._cfg = cfg or NotificationThreadConfig()
        self._q: "queue.Queue[NotificationEvent]" = queue.Queue(maxsize=self._cfg.max_queue)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="notification-worker", daemon=True)

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        # The sentinel queues behind pending events so they are still delivered.
        try:
            self._q.put(NotificationEvent(type=_STOP_TYPE, payload={}), timeout=self._cfg.poll_timeout_s)
        except queue.Full:
            self._stop.set()
        if self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._stop.set()

    def emit(self, event: NotificationEvent) -> None:
        try:
            self._q.put_nowait(event)
        except queue.Full:
            logger.warning("Notification queue full, dropping %s for alarm %s", event.type, event.alarm_id)

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                event = self._q.get(timeout=self._cfg.poll_timeout_s)
            except queue.Empty:
                continue

            if event.type == _STOP_TYPE:
                break

            for notifier in self._notifiers:
                self._send_with_retries(notifier, event)

    def _send_with_retries(self, notifier: Notifier, event: NotificationEvent) -> None:
        for attempt in range(self._cfg.retry_count + 1):
            try:
                notifier.notify(event)
                return
            except Exception as exc:
                if attempt >= self._cfg.retry_count:
                    logger.error(
                        "Giving up on %s for alarm %s after %s attempts: %r",
                        event.type,
                        event.alarm_id,
                        attempt + 1,
                        exc,
                    )
                    return
                time.sleep(self._cfg.retry_backoff_s * (2 ** attempt))
