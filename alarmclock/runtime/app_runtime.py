from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from alarmclock.core.alarm.scheduler import AlarmScheduler
from alarmclock.core.state.alarm_store import AlarmStore
from alarmclock.notification.notification_thread import NotificationWorkerThread
from alarmclock.runtime.event_bus import EventBus
from alarmclock.runtime.notification_adapter_thread import NotificationAdapterThread
from alarmclock.runtime.tick_thread import AlarmTickThread

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppRuntimeConfig:
    """
    Runtime configuration for thread orchestration.

    Parameters
    ----------
    tick_interval_s
        Seconds between scheduler ticks (at most 60).
    join_timeout_s
        How long ``stop()`` waits for each thread.
    """

    tick_interval_s: float = 1.0
    join_timeout_s: float = 2.0


class AppRuntime:
    """
    Thread supervisor and composition root for the alarm runtime.

    Thread Topology
    ---------------
    1) AlarmTickThread
       - calls AlarmScheduler.evaluate() periodically
       - the store dispatches callbacks and publishes AlarmEvents to the bus

    2) NotificationAdapterThread (only when a notifier is configured)
       - consumes AlarmEvents from the bus
       - emits NotificationEvents into NotificationWorkerThread

    Lifecycle
    ---------
    ``start()`` initializes the store (loads persisted alarms) before any
    thread runs. ``stop()`` halts the tick first, then tears the store down
    (stop-all + persist) so no alarm is left ringing across a restart, then
    flushes pending notifications and stops the remaining threads.
    """

    def __init__(
        self,
        cfg: AppRuntimeConfig,
        store: AlarmStore,
        scheduler: AlarmScheduler,
        bus: EventBus,
        notifier: Optional[NotificationWorkerThread] = None,
    ):
        self._cfg = cfg
        self._store = store
        self._bus = bus
        self._notifier = notifier
        self._stop = threading.Event()
        self._started = False

        self._tick = AlarmTickThread(scheduler=scheduler, stop_event=self._stop, interval_s=cfg.tick_interval_s)

        self._notify_adapter: Optional[NotificationAdapterThread] = None
        if notifier is not None:
            self._notify_adapter = NotificationAdapterThread(
                bus=bus,
                store=store,
                notifier=notifier,
                stop_event=self._stop,
            )

    @property
    def running(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        self._store.initialize()
        if self._notifier is not None:
            self._notifier.start()
        if self._notify_adapter is not None:
            self._notify_adapter.start()
        self._tick.start()
        self._started = True
        logger.info("Alarm runtime started (tick every %ss)", self._cfg.tick_interval_s)

    def stop(self) -> None:
        if not self._started:
            return
        self._tick.stop()
        self._tick.join(timeout=self._cfg.join_timeout_s)

        self._store.cleanup()

        if self._notify_adapter is not None:
            self._notify_adapter.stop()
            self._notify_adapter.join(timeout=self._cfg.join_timeout_s)
            self._notify_adapter.drain()
        if self._notifier is not None:
            self._notifier.stop()

        self._started = False
        logger.info("Alarm runtime stopped")
