from __future__ import annotations

import logging
import signal
import sys
import threading

from alarmclock.bootstrap import build_app_system
from alarmclock.core.config.logging_config import setup_logging
from alarmclock.domain.models import Alarm, format_alarm_time

logger = logging.getLogger(__name__)


def _log_callback(kind: str):
    def _cb(alarm: Alarm) -> None:
        logger.info("[%s] alarm %s %s %s", kind, alarm.id, format_alarm_time(alarm), alarm.label)

    return _cb


def main() -> None:
    """
    Run the alarm scheduler headless until interrupted.

    Notes
    -----
    - Loads configuration from `config.yaml` by default.
    - Optional CLI usage:
        python -m alarmclock.dev.run_app --config path/to/config.yaml
    - Playback and display hosts register their own callbacks on
      ``wiring.store``; this runner only logs them.
    """
    config_path = None
    if "--config" in sys.argv:
        i = sys.argv.index("--config")
        if i + 1 < len(sys.argv):
            config_path = sys.argv[i + 1]

    wiring = build_app_system(config_path=config_path)
    setup_logging(wiring.config.logging.level, wiring.config.logging.file)

    wiring.store.set_triggered_callback(_log_callback("triggered"))
    wiring.store.set_snoozed_callback(_log_callback("snoozed"))
    wiring.store.set_stopped_callback(_log_callback("stopped"))

    wiring.runtime.start()
    logger.info(wiring.controller.list_alarms())

    done = threading.Event()

    def _on_signal(signum, frame) -> None:
        done.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    while not done.wait(1.0):
        pass

    wiring.runtime.stop()


if __name__ == "__main__":
    main()
