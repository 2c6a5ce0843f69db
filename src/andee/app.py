"""Service class: composes storage, gateways, actors, and the HTTP app."""

from __future__ import annotations

from fastapi import FastAPI

from andee.actors.base import Clock, now_ms
from andee.actors.registry import ActorRegistry
from andee.api.app import create_app
from andee.delivery.agent_task import AgentTaskGateway
from andee.delivery.gateway import DeliveryGateway
from andee.delivery.telegram import TelegramGateway
from andee.infrastructure.alarm_repo import AlarmRepository
from andee.infrastructure.config import ANDEE_API_KEY, SCHEDULED_TASK_URL, DeliveryConfig
from andee.infrastructure.database import AppDatabase, database
from andee.infrastructure.logger import logger
from andee.recurring.scheduler import NAMESPACE as RECURRING_NAMESPACE
from andee.recurring.scheduler import RecurringScheduleScheduler
from andee.reminders.scheduler import NAMESPACE as REMINDER_NAMESPACE
from andee.reminders.scheduler import ReminderScheduler


class Service:
    """Wires every component together and owns their lifecycle."""

    def __init__(
        self,
        db: AppDatabase = database,
        reminder_gateway: DeliveryGateway | None = None,
        recurring_gateway: DeliveryGateway | None = None,
        config: DeliveryConfig | None = None,
        api_key: str = ANDEE_API_KEY,
        clock: Clock = now_ms,
    ) -> None:
        self._db = db
        self._clock = clock
        self._config = config or DeliveryConfig()
        self._api_key = api_key
        self._reminder_gateway = reminder_gateway
        self._recurring_gateway = recurring_gateway
        self._registry: ActorRegistry | None = None
        self._app: FastAPI | None = None

    @property
    def registry(self) -> ActorRegistry:
        if self._registry is None:
            raise RuntimeError("Service not initialized")
        return self._registry

    @property
    def app(self) -> FastAPI:
        if self._app is None:
            raise RuntimeError("Service not initialized")
        return self._app

    def init(self) -> None:
        """Open storage and build the actor registry and HTTP app. Idempotent."""
        if self._app is not None:
            return

        if not self._db.is_open:
            self._db.init()

        timeout_s = self._config.delivery_timeout_s
        if self._reminder_gateway is None:
            self._reminder_gateway = TelegramGateway(timeout_s=timeout_s)
        if self._recurring_gateway is None:
            if SCHEDULED_TASK_URL:
                self._recurring_gateway = AgentTaskGateway(SCHEDULED_TASK_URL, timeout_s=timeout_s)
            else:
                # Without an agent endpoint the prompt text goes to the chat verbatim
                self._recurring_gateway = self._reminder_gateway
        logger.info(
            "Delivery gateways ready",
            reminders=self._reminder_gateway.name,
            recurring=self._recurring_gateway.name,
        )

        alarms: AlarmRepository = self._db.alarm_repo
        registry = ActorRegistry(alarms, self._config, clock=self._clock)
        registry.register(
            REMINDER_NAMESPACE,
            lambda sender_id: ReminderScheduler(
                sender_id, self._db.reminder_repo, alarms, self._reminder_gateway, self._config, self._clock
            ),
        )
        registry.register(
            RECURRING_NAMESPACE,
            lambda chat_id: RecurringScheduleScheduler(
                chat_id, self._db.schedule_repo, alarms, self._recurring_gateway, self._config, self._clock
            ),
        )
        self._registry = registry
        self._app = create_app(registry, self._api_key)

    async def start(self) -> None:
        logger.info("Starting Andee scheduler...")
        self.init()
        pending = self._db.alarm_repo.get_next_wake()
        if pending is not None:
            logger.info("Restored pending alarms", next_wake=pending)
        self.registry.start()
        logger.info("Andee scheduler started")

    async def shutdown(self) -> None:
        logger.info("Shutting down Andee scheduler...")
        if self._registry:
            await self._registry.stop()

        closed: set[int] = set()
        for gateway in (self._reminder_gateway, self._recurring_gateway):
            if gateway is not None and id(gateway) not in closed:
                closed.add(id(gateway))
                await gateway.aclose()

        self._db.close()
        logger.info("Andee scheduler shut down complete")
