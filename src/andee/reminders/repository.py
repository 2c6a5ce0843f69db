"""Reminder rows, scoped by owning sender."""

from __future__ import annotations

import sqlite3

from andee.reminders.types import Reminder


class ReminderRepository:
    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def create_reminder(self, reminder: Reminder) -> None:
        self._db.execute(
            """INSERT INTO reminders
               (sender_id, id, chat_id, is_group, trigger_at, message, status, created_at, bot_token)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                reminder.sender_id, reminder.id, reminder.chat_id, int(reminder.is_group),
                reminder.trigger_at, reminder.message, reminder.status, reminder.created_at,
                reminder.bot_token,
            ),
        )
        self._db.commit()

    def get_reminder(self, sender_id: str, id: str) -> Reminder | None:
        row = self._db.execute(
            "SELECT * FROM reminders WHERE sender_id = ? AND id = ?", (sender_id, id)
        ).fetchone()
        if not row:
            return None
        return self._row_to_reminder(row)

    def list_reminders(self, sender_id: str, status: str | None = None) -> list[Reminder]:
        if status:
            rows = self._db.execute(
                "SELECT * FROM reminders WHERE sender_id = ? AND status = ? ORDER BY trigger_at, id",
                (sender_id, status),
            ).fetchall()
        else:
            rows = self._db.execute(
                "SELECT * FROM reminders WHERE sender_id = ? ORDER BY trigger_at, id", (sender_id,)
            ).fetchall()
        return [self._row_to_reminder(row) for row in rows]

    def get_due_reminders(self, sender_id: str, now: int) -> list[Reminder]:
        rows = self._db.execute(
            """SELECT * FROM reminders
               WHERE sender_id = ? AND status = 'pending' AND trigger_at <= ?
               ORDER BY trigger_at, id""",
            (sender_id, now),
        ).fetchall()
        return [self._row_to_reminder(row) for row in rows]

    def get_next_trigger(self, sender_id: str) -> int | None:
        row = self._db.execute(
            "SELECT MIN(trigger_at) FROM reminders WHERE sender_id = ? AND status = 'pending'",
            (sender_id,),
        ).fetchone()
        return row[0] if row else None

    def transition_pending(self, sender_id: str, id: str, status: str) -> bool:
        """Move a pending reminder to a terminal status. False if it was not pending."""
        result = self._db.execute(
            "UPDATE reminders SET status = ? WHERE sender_id = ? AND id = ? AND status = 'pending'",
            (status, sender_id, id),
        )
        self._db.commit()
        return result.rowcount > 0

    def _row_to_reminder(self, row: sqlite3.Row) -> Reminder:
        return Reminder(
            id=row["id"],
            sender_id=row["sender_id"],
            chat_id=row["chat_id"],
            is_group=bool(row["is_group"]),
            trigger_at=row["trigger_at"],
            message=row["message"],
            status=row["status"],
            created_at=row["created_at"],
            bot_token=row["bot_token"],
        )
