from __future__ import annotations

import logging
import threading

from alarmclock.core.alarm.scheduler import AlarmScheduler

logger = logging.getLogger(__name__)


class AlarmTickThread:
    """
    Worker thread driving the alarm scheduler.

    Responsibilities
    ----------------
    - Call `AlarmScheduler.evaluate()` every ``interval_s`` seconds.
    - Keep running if one evaluation fails (the error is logged).

    Concurrency Model
    -----------------
    The thread waits on the stop event between ticks so ``stop()`` takes
    effect within one interval. Evaluation itself takes the store lock, which
    orders ticks strictly against API calls such as ``stop``.

    Parameters
    ----------
    scheduler
        Scheduler to evaluate.
    stop_event
        Thread stop signal. When set, the loop exits.
    interval_s
        Seconds between ticks. Must not exceed 60 so every minute is seen.
    """

    def __init__(self, scheduler: AlarmScheduler, stop_event: threading.Event, interval_s: float = 1.0):
        if not 0 < interval_s <= 60:
            raise ValueError("interval_s must be in (0, 60]")
        self._scheduler = scheduler
        self._stop = stop_event
        self._interval_s = interval_s
        self._thread = threading.Thread(target=self._run, name="alarm-tick", daemon=True)

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = 2.0) -> None:
        if self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self._scheduler.evaluate()
            except Exception:
                logger.error("Alarm evaluation failed", exc_info=True)
            self._stop.wait(self._interval_s)
