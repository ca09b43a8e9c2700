"""
Collaborator contracts for the alarm core.

The core never touches the filesystem or the system clock directly. It talks
to two small ports:

- `KeyValueStore`: durable string key/value space used to mirror alarms
- `Clock`: local wall-clock time and a monotonic seconds counter

Any object implementing the methods can be used; inheritance is not required.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Optional, Protocol


class KeyValueStore(Protocol):
    """
    Protocol interface for durable key/value storage.

    Methods
    -------
    get(key)
        Return the stored string or None if the key is absent.
    set(key, value)
        Store a string value under ``key``.
    """

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class Clock(Protocol):
    """
    Protocol interface for the time source.

    Methods
    -------
    now()
        Current local wall-clock time (naive or aware; only hour, minute and
        weekday are used).
    monotonic_seconds()
        Whole seconds from a monotonic counter. Used for snooze deadlines and
        the re-fire guard, so it must not jump with wall-clock corrections.
    """

    def now(self) -> datetime:
        ...

    def monotonic_seconds(self) -> int:
        ...


class SystemClock:
    """`Clock` backed by ``datetime.now()`` and ``time.monotonic()``."""

    def now(self) -> datetime:
        return datetime.now()

    def monotonic_seconds(self) -> int:
        return int(time.monotonic())
