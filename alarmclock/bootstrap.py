from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from alarmclock.core.alarm.scheduler import AlarmScheduler
from alarmclock.core.config.yaml_config import AppConfig, load_app_config
from alarmclock.core.ports import Clock, KeyValueStore, SystemClock
from alarmclock.core.state.alarm_store import AlarmStore
from alarmclock.core.state.kv_store import JsonFileKeyValueStore
from alarmclock.notification.notification_thread import NotificationWorkerThread
from alarmclock.notification.webhook_notifier import WebhookConfig, WebhookNotifier
from alarmclock.runtime.app_runtime import AppRuntime, AppRuntimeConfig
from alarmclock.runtime.event_bus import EventBus
from alarmclock.services.controller import AlarmController


@dataclass(frozen=True)
class AppWiring:
    """Everything the host application needs to run the alarm system."""
    config: AppConfig
    store: AlarmStore
    scheduler: AlarmScheduler
    controller: AlarmController
    runtime: AppRuntime
    notifier: Optional[NotificationWorkerThread] = None


def build_notifier(cfg: AppConfig) -> Optional[NotificationWorkerThread]:
    if cfg.webhook is None:
        return None

    auth_header = cfg.webhook.auth_header
    if auth_header and not auth_header.startswith("Bearer "):
        auth_header = f"Bearer {auth_header}"

    return NotificationWorkerThread(
        notifiers=[
            WebhookNotifier(
                WebhookConfig(
                    url=cfg.webhook.url,
                    auth_header=auth_header,
                    timeout_s=cfg.webhook.timeout_s,
                    verify_tls=cfg.webhook.verify_tls,
                )
            )
        ]
    )


def build_alarm_system(
    cfg: AppConfig,
    storage: Optional[KeyValueStore] = None,
    clock: Optional[Clock] = None,
) -> AppWiring:
    """
    Wire store, scheduler, controller and runtime from a config.

    ``storage`` and ``clock`` default to the configured JSON file and the
    system clock; tests pass fakes.
    """
    if clock is None:
        clock = SystemClock()
    if storage is None:
        storage = JsonFileKeyValueStore(cfg.storage.path, namespace=cfg.storage.namespace)

    # --- NOTIFICATIONS ---
    notifier = build_notifier(cfg)

    # --- EVENTS ---
    # Only feed the bus when something consumes it.
    bus = EventBus()
    event_sink = bus.publish_alarm if notifier is not None else None

    # --- STATE ---
    store = AlarmStore(storage=storage, clock=clock, event_sink=event_sink)
    store.set_default_snooze_minutes(cfg.scheduler.default_snooze_minutes)
    store.set_default_max_snooze_count(cfg.scheduler.default_max_snooze_count)

    # --- SCHEDULER ---
    scheduler = AlarmScheduler(store=store, clock=clock)

    # --- RUNTIME ---
    runtime = AppRuntime(
        cfg=AppRuntimeConfig(tick_interval_s=cfg.scheduler.tick_interval_s),
        store=store,
        scheduler=scheduler,
        bus=bus,
        notifier=notifier,
    )

    return AppWiring(
        config=cfg,
        store=store,
        scheduler=scheduler,
        controller=AlarmController(store=store),
        runtime=runtime,
        notifier=notifier,
    )


def build_app_system(config_path: Optional[str] = None) -> AppWiring:
    return build_alarm_system(load_app_config(config_path))
