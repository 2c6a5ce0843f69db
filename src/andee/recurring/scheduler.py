"""Recurring schedule actor: one per chat, alarm on the soonest enabled schedule."""

from __future__ import annotations

import time
from typing import Any

import yaml

from andee.actors.base import Clock, DurableActor, now_ms
from andee.delivery.gateway import DeliveryGateway, deliver_with_timeout
from andee.errors import DeliveryFailedError, InvalidConfigError
from andee.infrastructure.alarm_repo import AlarmRepository
from andee.infrastructure.config import CONFIG_VERSION, DEFAULT_TIMEZONE, EXECUTION_LIST_LIMIT, DeliveryConfig
from andee.infrastructure.logger import logger
from andee.recurring.repository import ScheduleRepository
from andee.recurring.store import RecurringScheduleStore, parse_config
from andee.recurring.types import (
    RecurringSchedule,
    ScheduleConfig,
    ScheduleExecution,
    default_config_yaml,
    format_scheduled_prompt,
)

NAMESPACE = "recurring"


class RecurringScheduleScheduler(DurableActor):
    namespace = NAMESPACE

    def __init__(
        self,
        chat_id: str,
        repo: ScheduleRepository,
        alarms: AlarmRepository,
        gateway: DeliveryGateway,
        config: DeliveryConfig | None = None,
        clock: Clock = now_ms,
    ) -> None:
        super().__init__(chat_id, alarms, clock)
        self._store = RecurringScheduleStore(chat_id, repo)
        self._gateway = gateway
        self._config = config or DeliveryConfig()

    # --- Config ---

    async def save_config(
        self, config: ScheduleConfig | dict[str, Any], bot_token: str, yaml_text: str | None = None
    ) -> list[RecurringSchedule]:
        if not isinstance(config, ScheduleConfig):
            config = parse_config(config)
        async with self.lock:
            schedules = self._store.save_config(config, bot_token, self.now(), yaml_text)
            self._rearm()
        logger.info("Schedule config saved", chat_id=self.key, schedules=len(schedules))
        return schedules

    async def save_config_yaml(self, yaml_text: str, bot_token: str) -> list[RecurringSchedule]:
        try:
            data = yaml.safe_load(yaml_text)
        except yaml.YAMLError as err:
            raise InvalidConfigError(f"Invalid YAML: {err}") from err
        return await self.save_config(parse_config(data), bot_token, yaml_text)

    async def get_config(self) -> tuple[ScheduleConfig | None, list[RecurringSchedule]]:
        async with self.lock:
            return self._store.get_config(), self._store.list_schedules()

    async def get_config_yaml(self) -> str:
        async with self.lock:
            yaml_text = self._store.get_config_yaml()
        if yaml_text is None:
            return default_config_yaml(CONFIG_VERSION, DEFAULT_TIMEZONE)
        return yaml_text

    async def toggle(self, schedule_id: str, enabled: bool) -> RecurringSchedule:
        async with self.lock:
            schedule = self._store.set_enabled(schedule_id, enabled, self.now())
            self._rearm()
        logger.info("Schedule toggled", chat_id=self.key, schedule_id=schedule_id, enabled=enabled)
        return schedule

    # --- Runs ---

    async def execute_now(self, schedule_id: str, bot_token: str | None = None) -> ScheduleExecution:
        """Run a schedule immediately; its regular next run is left as it was."""
        async with self.lock:
            schedule = self._store.require_schedule(schedule_id)
            credential = bot_token or self._store.bot_token() or ""
            execution = await self._run(schedule, credential, self.now())
        if execution.status == "failed":
            raise DeliveryFailedError(
                f"Schedule {schedule_id} delivery failed: {execution.error}",
                {"scheduleId": schedule_id, "executionId": execution.id},
            )
        return execution

    async def list_executions(
        self, schedule_id: str | None = None, limit: int = EXECUTION_LIST_LIMIT
    ) -> list[ScheduleExecution]:
        async with self.lock:
            return self._store.list_executions(schedule_id, limit)

    # --- Alarm ---

    def _rearm(self) -> int | None:
        return self.arm(self._store.next_run())

    async def alarm(self) -> None:
        now = self.now()
        try:
            bot_token = self._store.bot_token()
            if bot_token is None:
                logger.warning("Recurring alarm fired without stored config", chat_id=self.key)
                return

            due = self._store.get_due(now)
            logger.info("Processing due schedules", chat_id=self.key, count=len(due))
            for schedule in due:
                try:
                    await self._run(schedule, bot_token, now)
                except Exception:
                    logger.exception("Unexpected error running schedule", schedule_id=schedule.id)
                finally:
                    # Advance even after a failure; missed slots are skipped, never replayed
                    try:
                        self._store.advance(schedule, now)
                    except Exception:
                        logger.exception("Failed to advance schedule", schedule_id=schedule.id)

            pruned = self._store.prune(now - self._config.retention_ms())
            if pruned:
                logger.debug("Pruned old executions", chat_id=self.key, count=pruned)
        except Exception:
            logger.exception("Unexpected error in recurring alarm", chat_id=self.key)
        finally:
            try:
                self._rearm()
            except Exception:
                logger.exception("Failed to re-arm recurring alarm", chat_id=self.key)

    async def _run(self, schedule: RecurringSchedule, credential: str, now: int) -> ScheduleExecution:
        started = time.monotonic()
        try:
            await deliver_with_timeout(
                self._gateway,
                self.key,
                format_scheduled_prompt(schedule.id, schedule.prompt),
                credential,
                self._config.delivery_timeout_s,
            )
        except Exception as err:
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.error("Scheduled task failed", chat_id=self.key, schedule_id=schedule.id, error=str(err))
            return self._store.record_execution(schedule.id, now, "failed", str(err), duration_ms)

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info("Scheduled task sent", chat_id=self.key, schedule_id=schedule.id, duration_ms=duration_ms)
        return self._store.record_execution(schedule.id, now, "completed", None, duration_ms)
