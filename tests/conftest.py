"""
Shared fixtures for alarm tests.

Time is fully controlled: `FakeClock` returns a settable wall-clock datetime
and a settable monotonic counter, so no test sleeps or depends on the host
clock. Reference dates: 2026-01-05 is a Monday, 2026-01-03 a Saturday.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List

import pytest

from alarmclock.core.state.alarm_store import AlarmStore
from alarmclock.core.state.kv_store import InMemoryKeyValueStore
from alarmclock.domain.models import Alarm

MONDAY_0700 = datetime(2026, 1, 5, 7, 0, 0)


@dataclass
class FakeClock:
    """Deterministic Clock: wall time and monotonic seconds are set by the test."""

    current: datetime = MONDAY_0700
    mono: int = 1_000

    def now(self) -> datetime:
        return self.current

    def monotonic_seconds(self) -> int:
        return self.mono

    def set(self, ts: datetime) -> None:
        self.current = ts

    def advance(self, seconds: int) -> None:
        """Move wall clock and monotonic counter forward together."""
        self.current = self.current + timedelta(seconds=seconds)
        self.mono += seconds


@dataclass
class Recorder:
    """Records alarms passed to the triggered/snoozed/stopped callbacks."""

    triggered: List[Alarm] = field(default_factory=list)
    snoozed: List[Alarm] = field(default_factory=list)
    stopped: List[Alarm] = field(default_factory=list)

    def attach(self, store: AlarmStore) -> "Recorder":
        store.set_triggered_callback(self.triggered.append)
        store.set_snoozed_callback(self.snoozed.append)
        store.set_stopped_callback(self.stopped.append)
        return self


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv: InMemoryKeyValueStore, clock: FakeClock) -> AlarmStore:
    s = AlarmStore(storage=kv, clock=clock)
    s.initialize()
    return s


@pytest.fixture
def recorder(store: AlarmStore) -> Recorder:
    return Recorder().attach(store)
