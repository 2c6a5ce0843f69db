"""Reminder store: lifecycle rules for one user's reminders."""

from __future__ import annotations

from andee.errors import DuplicateReminderError, ReminderAlreadyTerminalError, ReminderNotFoundError
from andee.reminders.repository import ReminderRepository
from andee.reminders.types import Reminder, ReminderStatus


class ReminderStore:
    """Create, cancel, complete, and list reminders owned by ``sender_id``.

    Reminders are never deleted; terminal ones stay listable.
    """

    def __init__(self, sender_id: str, repo: ReminderRepository) -> None:
        self._sender_id = sender_id
        self._repo = repo

    # --- CRUD ---

    def create(
        self,
        reminder_id: str,
        chat_id: str,
        is_group: bool,
        trigger_at: int,
        message: str,
        bot_token: str,
        created_at: int,
    ) -> Reminder:
        if self._repo.get_reminder(self._sender_id, reminder_id) is not None:
            raise DuplicateReminderError(
                f"Reminder {reminder_id} already exists", {"reminderId": reminder_id}
            )

        reminder = Reminder(
            id=reminder_id,
            sender_id=self._sender_id,
            chat_id=chat_id,
            is_group=is_group,
            trigger_at=trigger_at,
            message=message,
            status="pending",
            created_at=created_at,
            bot_token=bot_token,
        )
        self._repo.create_reminder(reminder)
        return reminder

    def get(self, reminder_id: str) -> Reminder | None:
        return self._repo.get_reminder(self._sender_id, reminder_id)

    def list(self, status: ReminderStatus | None = None) -> list[Reminder]:
        return self._repo.list_reminders(self._sender_id, status)

    # --- Lifecycle ---

    def cancel(self, reminder_id: str) -> Reminder:
        return self._finish(reminder_id, "cancelled")

    def complete(self, reminder_id: str) -> Reminder:
        return self._finish(reminder_id, "completed")

    def _finish(self, reminder_id: str, status: ReminderStatus) -> Reminder:
        reminder = self._repo.get_reminder(self._sender_id, reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(f"Reminder {reminder_id} not found", {"reminderId": reminder_id})
        if reminder.is_terminal or not self._repo.transition_pending(self._sender_id, reminder_id, status):
            raise ReminderAlreadyTerminalError(
                f"Reminder {reminder_id} is already {reminder.status}",
                {"reminderId": reminder_id, "status": reminder.status},
            )
        return reminder.model_copy(update={"status": status})

    # --- Scheduling ---

    def get_due(self, now: int) -> list[Reminder]:
        return self._repo.get_due_reminders(self._sender_id, now)

    def next_trigger(self) -> int | None:
        return self._repo.get_next_trigger(self._sender_id)

    def mark(self, reminder_id: str, status: ReminderStatus) -> bool:
        """Record a delivery outcome. False if the reminder had already left pending."""
        return self._repo.transition_pending(self._sender_id, reminder_id, status)
