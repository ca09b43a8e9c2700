from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV_VAR = "ALARMCLOCK_CONFIG"


@dataclass(frozen=True)
class StorageConfig:
    """Durable key/value file location and namespace."""
    path: Path = Path("data/alarms.json")
    namespace: str = "alarms"


@dataclass(frozen=True)
class SchedulerConfig:
    """Tick cadence and process-wide snooze defaults."""
    tick_interval_s: float = 1.0
    default_snooze_minutes: int = 5
    default_max_snooze_count: int = 3


@dataclass(frozen=True)
class LoggingConfig:
    """Log level and optional rotating log file."""
    level: str = "INFO"
    file: Optional[Path] = Path("logs/alarmclock.log")


@dataclass(frozen=True)
class WebhookConfigData:
    """Webhook notifier configuration (URL + auth)."""
    url: str
    auth_header: Optional[str] = None
    timeout_s: float = 3.0
    verify_tls: bool = True


@dataclass(frozen=True)
class AppConfig:
    """
    Root application configuration loaded from YAML.

    ``webhook`` is None when remote notifications are not configured.
    """
    storage: StorageConfig
    scheduler: SchedulerConfig
    logging: LoggingConfig
    webhook: Optional[WebhookConfigData] = None


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("config.yaml must contain a YAML mapping at the root")
    return data


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"config section '{name}' must be a mapping")
    return value


def _resolve_default_config_path() -> Path:
    """
    Resolve config.yaml location.

    Priority:
    1) ALARMCLOCK_CONFIG env var if provided
    2) config.yaml next to the executable
    3) ./config.yaml in current working directory
    """
    env = os.getenv(CONFIG_ENV_VAR)
    if env:
        return Path(env).expanduser().resolve()

    exe_dir = Path(sys.executable).resolve().parent
    candidate = exe_dir / "config.yaml"
    if candidate.exists():
        return candidate

    return Path("config.yaml").resolve()


def parse_app_config(raw: Dict[str, Any]) -> AppConfig:
    """
    Convert a raw YAML mapping into typed config objects.

    Parameters
    ----------
    raw
        Mapping as returned by ``yaml.safe_load``.

    Returns
    -------
    AppConfig
        Parsed and validated configuration.

    Raises
    ------
    ValueError
        If a section has the wrong shape or a value is out of range.
    """
    # ---- storage ----
    s = _section(raw, "storage")
    storage = StorageConfig(
        path=Path(str(s.get("path", "data/alarms.json"))),
        namespace=str(s.get("namespace", "alarms")),
    )

    # ---- scheduler ----
    sc = _section(raw, "scheduler")
    scheduler = SchedulerConfig(
        tick_interval_s=float(sc.get("tick_interval_s", 1.0)),
        default_snooze_minutes=int(sc.get("default_snooze_minutes", 5)),
        default_max_snooze_count=int(sc.get("default_max_snooze_count", 3)),
    )
    # Evaluation must run at least once per minute.
    if not 0 < scheduler.tick_interval_s <= 60:
        raise ValueError("scheduler.tick_interval_s must be in (0, 60]")

    # ---- logging ----
    lg = _section(raw, "logging")
    log_file = lg.get("file", "logs/alarmclock.log")
    logging_cfg = LoggingConfig(
        level=str(lg.get("level", "INFO")).upper(),
        file=Path(str(log_file)) if log_file else None,
    )

    # ---- webhook (optional) ----
    webhook = None
    w = _section(raw, "webhook")
    if w.get("url"):
        webhook = WebhookConfigData(
            url=str(w["url"]),
            auth_header=w.get("auth_header"),
            timeout_s=float(w.get("timeout_s", 3.0)),
            verify_tls=bool(w.get("verify_tls", True)),
        )

    return AppConfig(storage=storage, scheduler=scheduler, logging=logging_cfg, webhook=webhook)


def load_app_config(path: Optional[str] = None) -> AppConfig:
    """
    Load application configuration from YAML.

    Parameters
    ----------
    path
        Explicit path to config.yaml. If None, uses default resolution.

    Returns
    -------
    AppConfig
        Parsed and validated configuration.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If fields are missing or invalid.
    """
    cfg_path = Path(path).expanduser().resolve() if path else _resolve_default_config_path()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found: {cfg_path}")

    return parse_app_config(_read_yaml(cfg_path))
