"""Durable actor: per-key serialized handlers plus a single persistent alarm."""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable

from andee.infrastructure.alarm_repo import AlarmRepository


def now_ms() -> int:
    return int(time.time() * 1000)


Clock = Callable[[], int]


class DurableActor(ABC):
    """One instance per (namespace, key).

    Every public handler and the alarm handler run under ``lock``, so all
    storage mutations for one key are serialized. Different keys never share
    a lock and proceed concurrently.
    """

    namespace: str = ""

    def __init__(self, key: str, alarms: AlarmRepository, clock: Clock = now_ms) -> None:
        self.key = key
        self.lock = asyncio.Lock()
        self._alarms = alarms
        self._clock = clock
        # Set whenever the handler writes or confirms the alarm; the registry reads it after a wake
        self.alarm_touched = False

    @property
    def actor_id(self) -> str:
        return f"{self.namespace}-{self.key}"

    def now(self) -> int:
        return self._clock()

    # --- Alarm ---

    def get_alarm(self) -> int | None:
        return self._alarms.get_alarm(self.namespace, self.key)

    def set_alarm(self, wake_at: int) -> None:
        self.alarm_touched = True
        self._alarms.set_alarm(self.namespace, self.key, wake_at)

    def delete_alarm(self) -> None:
        self.alarm_touched = True
        self._alarms.delete_alarm(self.namespace, self.key)

    def arm(self, next_wake: int | None) -> int | None:
        """Point the alarm at the earliest outstanding obligation, or clear it."""
        self.alarm_touched = True
        if next_wake is None:
            if self.get_alarm() is not None:
                self.delete_alarm()
            return None
        if self.get_alarm() != next_wake:
            self.set_alarm(next_wake)
        return next_wake

    @abstractmethod
    async def alarm(self) -> None:
        """Called by the registry once the armed instant has passed.

        The alarm row stays in place while this runs. If the handler leaves it
        untouched the registry deletes it afterwards; anything the handler
        arms is kept.

        Implementations must not raise: a raise is treated as "never ran" and
        the whole wake is replayed.
        """
