"""Schedule rows, execution history, and the raw config document, scoped by chat."""

from __future__ import annotations

import sqlite3

from andee.recurring.types import RecurringSchedule, ScheduleExecution


class ScheduleRepository:
    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    # --- Config document ---

    def replace_config(
        self,
        chat_id: str,
        schedules: list[RecurringSchedule],
        yaml_text: str,
        bot_token: str,
        timezone: str,
        now: int,
    ) -> None:
        """Swap the chat's whole schedule set in a single transaction."""
        keep_ids = [s.id for s in schedules]
        with self._db:
            for s in schedules:
                self._db.execute(
                    """INSERT INTO schedules
                       (chat_id, id, description, cron, timezone, prompt, enabled, next_run_at, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                       ON CONFLICT (chat_id, id) DO UPDATE SET
                           description = excluded.description,
                           cron = excluded.cron,
                           timezone = excluded.timezone,
                           prompt = excluded.prompt,
                           enabled = excluded.enabled,
                           next_run_at = excluded.next_run_at,
                           updated_at = excluded.updated_at""",
                    (
                        chat_id, s.id, s.description, s.cron, s.timezone, s.prompt,
                        int(s.enabled), s.next_run_at, now, now,
                    ),
                )

            placeholders = ", ".join("?" for _ in keep_ids)
            stale_filter = f"AND id NOT IN ({placeholders})" if keep_ids else ""
            stale = [
                row["id"]
                for row in self._db.execute(
                    f"SELECT id FROM schedules WHERE chat_id = ? {stale_filter}", (chat_id, *keep_ids)
                ).fetchall()
            ]
            for schedule_id in stale:
                self._db.execute(
                    "DELETE FROM schedule_executions WHERE chat_id = ? AND schedule_id = ?", (chat_id, schedule_id)
                )
                self._db.execute("DELETE FROM schedules WHERE chat_id = ? AND id = ?", (chat_id, schedule_id))

            self._db.execute(
                """INSERT OR REPLACE INTO schedule_configs (chat_id, yaml_text, bot_token, timezone, updated_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (chat_id, yaml_text, bot_token, timezone, now),
            )

    def get_config_row(self, chat_id: str) -> sqlite3.Row | None:
        return self._db.execute("SELECT * FROM schedule_configs WHERE chat_id = ?", (chat_id,)).fetchone()

    def update_config_yaml(self, chat_id: str, yaml_text: str, now: int) -> None:
        self._db.execute(
            "UPDATE schedule_configs SET yaml_text = ?, updated_at = ? WHERE chat_id = ?",
            (yaml_text, now, chat_id),
        )
        self._db.commit()

    # --- Schedules ---

    def get_schedules(self, chat_id: str) -> list[RecurringSchedule]:
        rows = self._db.execute(
            "SELECT * FROM schedules WHERE chat_id = ? ORDER BY next_run_at IS NULL, next_run_at, id",
            (chat_id,),
        ).fetchall()
        return [self._row_to_schedule(row) for row in rows]

    def get_schedule(self, chat_id: str, id: str) -> RecurringSchedule | None:
        row = self._db.execute("SELECT * FROM schedules WHERE chat_id = ? AND id = ?", (chat_id, id)).fetchone()
        if not row:
            return None
        return self._row_to_schedule(row)

    def get_due_schedules(self, chat_id: str, now: int) -> list[RecurringSchedule]:
        rows = self._db.execute(
            """SELECT * FROM schedules
               WHERE chat_id = ? AND enabled = 1 AND next_run_at IS NOT NULL AND next_run_at <= ?
               ORDER BY next_run_at, id""",
            (chat_id, now),
        ).fetchall()
        return [self._row_to_schedule(row) for row in rows]

    def get_next_run(self, chat_id: str) -> int | None:
        row = self._db.execute(
            "SELECT MIN(next_run_at) FROM schedules WHERE chat_id = ? AND enabled = 1 AND next_run_at IS NOT NULL",
            (chat_id,),
        ).fetchone()
        return row[0] if row else None

    def set_enabled(self, chat_id: str, id: str, enabled: bool, next_run_at: int | None, now: int) -> None:
        self._db.execute(
            "UPDATE schedules SET enabled = ?, next_run_at = ?, updated_at = ? WHERE chat_id = ? AND id = ?",
            (int(enabled), next_run_at, now, chat_id, id),
        )
        self._db.commit()

    def update_schedule_after_run(self, chat_id: str, id: str, next_run_at: int | None, last_run_at: int) -> None:
        self._db.execute(
            "UPDATE schedules SET next_run_at = ?, last_run_at = ? WHERE chat_id = ? AND id = ?",
            (next_run_at, last_run_at, chat_id, id),
        )
        self._db.commit()

    # --- Executions ---

    def log_execution(self, chat_id: str, execution: ScheduleExecution) -> None:
        self._db.execute(
            """INSERT INTO schedule_executions (id, chat_id, schedule_id, executed_at, status, error, duration_ms)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                execution.id, chat_id, execution.schedule_id, execution.executed_at,
                execution.status, execution.error, execution.duration_ms,
            ),
        )
        self._db.commit()

    def list_executions(self, chat_id: str, schedule_id: str | None = None, limit: int = 50) -> list[ScheduleExecution]:
        if schedule_id:
            rows = self._db.execute(
                """SELECT * FROM schedule_executions WHERE chat_id = ? AND schedule_id = ?
                   ORDER BY executed_at DESC, rowid DESC LIMIT ?""",
                (chat_id, schedule_id, limit),
            ).fetchall()
        else:
            rows = self._db.execute(
                """SELECT * FROM schedule_executions WHERE chat_id = ?
                   ORDER BY executed_at DESC, rowid DESC LIMIT ?""",
                (chat_id, limit),
            ).fetchall()
        return [self._row_to_execution(row) for row in rows]

    def prune_executions(self, chat_id: str, before: int) -> int:
        result = self._db.execute(
            "DELETE FROM schedule_executions WHERE chat_id = ? AND executed_at < ?", (chat_id, before)
        )
        self._db.commit()
        return result.rowcount

    def _row_to_schedule(self, row: sqlite3.Row) -> RecurringSchedule:
        return RecurringSchedule(
            id=row["id"],
            description=row["description"],
            cron=row["cron"],
            timezone=row["timezone"],
            prompt=row["prompt"],
            enabled=bool(row["enabled"]),
            next_run_at=row["next_run_at"],
            last_run_at=row["last_run_at"],
        )

    def _row_to_execution(self, row: sqlite3.Row) -> ScheduleExecution:
        return ScheduleExecution(
            id=row["id"],
            schedule_id=row["schedule_id"],
            executed_at=row["executed_at"],
            status=row["status"],
            error=row["error"],
            duration_ms=row["duration_ms"],
        )
