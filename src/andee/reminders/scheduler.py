"""Reminder scheduler: one actor per user, alarm always on the soonest pending reminder."""

from __future__ import annotations

from andee.actors.base import Clock, DurableActor, now_ms
from andee.delivery.gateway import DeliveryGateway, deliver_with_timeout
from andee.infrastructure.alarm_repo import AlarmRepository
from andee.infrastructure.config import DeliveryConfig
from andee.infrastructure.logger import logger
from andee.reminders.repository import ReminderRepository
from andee.reminders.store import ReminderStore
from andee.reminders.types import Reminder, ReminderStatus, format_reminder_text

NAMESPACE = "scheduler"


class ReminderScheduler(DurableActor):
    """Owns one user's reminders.

    Request handlers and the alarm handler share ``self.lock``: a cancel can
    land strictly before or strictly after a wake's due query, never during.
    """

    namespace = NAMESPACE

    def __init__(
        self,
        sender_id: str,
        repo: ReminderRepository,
        alarms: AlarmRepository,
        gateway: DeliveryGateway,
        config: DeliveryConfig | None = None,
        clock: Clock = now_ms,
    ) -> None:
        super().__init__(sender_id, alarms, clock)
        self._store = ReminderStore(sender_id, repo)
        self._gateway = gateway
        self._config = config or DeliveryConfig()

    # --- Requests ---

    async def schedule(
        self,
        reminder_id: str,
        chat_id: str,
        is_group: bool,
        trigger_at: int,
        message: str,
        bot_token: str,
    ) -> Reminder:
        async with self.lock:
            reminder = self._store.create(
                reminder_id=reminder_id,
                chat_id=chat_id,
                is_group=is_group,
                trigger_at=trigger_at,
                message=message,
                bot_token=bot_token,
                created_at=self.now(),
            )
            self._rearm()
        logger.info("Reminder scheduled", reminder_id=reminder_id, sender_id=self.key, trigger_at=trigger_at)
        return reminder

    async def cancel(self, reminder_id: str) -> Reminder:
        async with self.lock:
            reminder = self._store.cancel(reminder_id)
            self._rearm()
        logger.info("Reminder cancelled", reminder_id=reminder_id, sender_id=self.key)
        return reminder

    async def complete(self, reminder_id: str) -> Reminder:
        async with self.lock:
            reminder = self._store.complete(reminder_id)
            self._rearm()
        logger.info("Reminder completed", reminder_id=reminder_id, sender_id=self.key)
        return reminder

    async def list(self, status: ReminderStatus | None = None) -> list[Reminder]:
        async with self.lock:
            return self._store.list(status)

    # --- Alarm ---

    def _rearm(self) -> int | None:
        return self.arm(self._store.next_trigger())

    async def alarm(self) -> None:
        now = self.now()
        try:
            due = self._store.get_due(now)
            logger.info("Processing due reminders", sender_id=self.key, count=len(due))
            for reminder in due:
                try:
                    await self._deliver(reminder)
                except Exception:
                    logger.exception("Unexpected error processing reminder", reminder_id=reminder.id)
        except Exception:
            logger.exception("Unexpected error in reminder alarm", sender_id=self.key)
        finally:
            try:
                self._rearm()
            except Exception:
                logger.exception("Failed to re-arm reminder alarm", sender_id=self.key)

    async def _deliver(self, reminder: Reminder) -> None:
        try:
            await deliver_with_timeout(
                self._gateway,
                reminder.chat_id,
                format_reminder_text(reminder.message),
                reminder.bot_token,
                self._config.delivery_timeout_s,
            )
        except Exception as err:
            # Terminal: the trigger time has passed, a late retry is not useful to the user
            self._store.mark(reminder.id, "failed")
            logger.error("Reminder delivery failed", reminder_id=reminder.id, chat_id=reminder.chat_id, error=str(err))
            return

        self._store.mark(reminder.id, "completed")
        logger.info("Reminder sent", reminder_id=reminder.id, chat_id=reminder.chat_id)
