"""Reminder domain types."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ReminderStatus = Literal["pending", "completed", "cancelled", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "cancelled", "failed"})


class Reminder(BaseModel):
    id: str
    sender_id: str
    chat_id: str
    is_group: bool
    trigger_at: int  # ms since epoch
    message: str
    status: ReminderStatus = "pending"
    created_at: int  # ms since epoch
    bot_token: str

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def format_reminder_text(message: str) -> str:
    return f"⏰ Reminder\n\n{message}"
