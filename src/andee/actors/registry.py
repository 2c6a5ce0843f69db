"""Actor registry: get-or-create actors by key and dispatch their due alarms."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable

from andee.actors.base import Clock, DurableActor, now_ms
from andee.infrastructure.alarm_repo import AlarmRepository
from andee.infrastructure.config import ACTOR_IDLE_TTL_S, ALARM_MAX_RETRIES, ALARM_POLL_INTERVAL, DeliveryConfig
from andee.infrastructure.logger import actor_log_context, logger
from andee.infrastructure.poll_loop import PollLoop, start_poll_loop

ActorFactory = Callable[[str], DurableActor]
ActorKey = tuple[str, str]


@dataclass
class ActorState:
    actor: DurableActor
    last_used: int = 0
    retry_count: int = 0


class ActorRegistry:
    """Holds one live actor per (namespace, key) and fires alarms that are due.

    Alarms are rows in SQLite, so an actor evicted by a restart is rebuilt
    from its factory the first time its alarm comes due. Each due actor runs
    as its own task: a slow wake for one key never holds up another.
    """

    def __init__(
        self,
        alarms: AlarmRepository,
        config: DeliveryConfig | None = None,
        clock: Clock = now_ms,
        poll_interval_s: float = ALARM_POLL_INTERVAL,
        idle_ttl_s: float = ACTOR_IDLE_TTL_S,
    ) -> None:
        self._alarms = alarms
        self._config = config or DeliveryConfig()
        self._clock = clock
        self._poll_interval = poll_interval_s
        self._idle_ttl_ms = int(idle_ttl_s * 1000)
        self._factories: dict[str, ActorFactory] = {}
        self._actors: dict[ActorKey, ActorState] = {}
        self._in_flight: dict[ActorKey, asyncio.Task[bool]] = {}
        self._poll: PollLoop | None = None

    def register(self, namespace: str, factory: ActorFactory) -> None:
        self._factories[namespace] = factory

    def get(self, namespace: str, key: str) -> DurableActor:
        return self._get_state(namespace, key).actor

    def _get_state(self, namespace: str, key: str) -> ActorState:
        state = self._actors.get((namespace, key))
        if not state:
            factory = self._factories.get(namespace)
            if factory is None:
                raise KeyError(f"No actor factory registered for namespace: {namespace}")
            state = ActorState(actor=factory(key))
            self._actors[(namespace, key)] = state
        state.last_used = self._clock()
        return state

    @property
    def live_count(self) -> int:
        return len(self._actors)

    # --- Alarm dispatch ---

    def dispatch_due_alarms(self) -> list[asyncio.Task[bool]]:
        """Start a wake task for every due actor not already running one."""
        started: list[asyncio.Task[bool]] = []
        for namespace, key, _wake_at in self._alarms.get_due_alarms(self._clock()):
            if namespace not in self._factories:
                logger.warning("Dropping alarm for unknown namespace", namespace=namespace, key=key)
                self._alarms.delete_alarm(namespace, key)
                continue
            actor_key = (namespace, key)
            if actor_key in self._in_flight:
                continue
            task = asyncio.create_task(self._run_alarm(namespace, key))
            self._in_flight[actor_key] = task
            task.add_done_callback(lambda t, k=actor_key: self._forget(k, t))
            started.append(task)
        return started

    def _forget(self, actor_key: ActorKey, task: asyncio.Task[bool]) -> None:
        if self._in_flight.get(actor_key) is task:
            del self._in_flight[actor_key]

    async def fire_due_alarms(self) -> int:
        """Run the alarm handler of every due actor and wait for them. Returns how many ran."""
        runs = self.dispatch_due_alarms()
        if not runs:
            return 0
        results = await asyncio.gather(*runs)
        return sum(1 for ran in results if ran)

    async def _run_alarm(self, namespace: str, key: str) -> bool:
        state = self._get_state(namespace, key)
        actor = state.actor

        with actor_log_context(actor.actor_id):
            async with actor.lock:
                # A request handler may have re-armed while we waited for the lock
                wake_at = actor.get_alarm()
                if wake_at is None or wake_at > self._clock():
                    return False

                # The row is only consumed once the handler returns; a crash mid-wake replays it
                actor.alarm_touched = False
                try:
                    await actor.alarm()
                    state.retry_count = 0
                    self._consume(actor, wake_at)
                except Exception:
                    logger.exception("Alarm handler raised", namespace=namespace, key=key)
                    self._schedule_retry(actor, state, wake_at)
                state.last_used = self._clock()
                return True

    def _consume(self, actor: DurableActor, wake_at: int) -> None:
        if not actor.alarm_touched and actor.get_alarm() == wake_at:
            actor.delete_alarm()

    def _schedule_retry(self, actor: DurableActor, state: ActorState, wake_at: int) -> None:
        state.retry_count += 1
        if state.retry_count > ALARM_MAX_RETRIES:
            logger.error("Max alarm retries exceeded, dropping wake", actor_id=actor.actor_id)
            state.retry_count = 0
            self._consume(actor, wake_at)
            return

        delay_s = self._config.alarm_retry_delay_s(state.retry_count)
        retry_at = self._clock() + int(delay_s * 1000)
        current = actor.get_alarm() if actor.alarm_touched else None
        actor.set_alarm(min(current, retry_at) if current is not None else retry_at)
        logger.info("Alarm replay scheduled", actor_id=actor.actor_id, retry_count=state.retry_count, delay_s=delay_s)

    # --- Eviction ---

    def evict_idle(self) -> int:
        """Drop live actors with no alarm, no wake in flight, and no recent use."""
        cutoff = self._clock() - self._idle_ttl_ms
        idle = [
            actor_key
            for actor_key, state in self._actors.items()
            if actor_key not in self._in_flight
            and not state.actor.lock.locked()
            and state.last_used <= cutoff
            and state.actor.get_alarm() is None
        ]
        for actor_key in idle:
            del self._actors[actor_key]
        return len(idle)

    # --- Lifecycle ---

    @property
    def running(self) -> bool:
        return self._poll is not None and self._poll.running

    def start(self) -> None:
        async def poll() -> None:
            started = self.dispatch_due_alarms()
            if started:
                logger.debug("Alarm wakes dispatched", count=len(started))
            evicted = self.evict_idle()
            if evicted:
                logger.debug("Evicted idle actors", count=evicted)

        self._poll = start_poll_loop("Alarm", self._poll_interval, poll)

    async def stop(self) -> None:
        if self._poll:
            await self._poll.stop()
            self._poll = None

        tasks = list(self._in_flight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
