"""Durable alarm persistence: at most one wake-up instant per actor."""

from __future__ import annotations

import sqlite3


class AlarmRepository:
    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def get_alarm(self, namespace: str, key: str) -> int | None:
        row = self._db.execute(
            "SELECT wake_at FROM alarms WHERE namespace = ? AND key = ?", (namespace, key)
        ).fetchone()
        return row[0] if row else None

    def set_alarm(self, namespace: str, key: str, wake_at: int) -> None:
        self._db.execute(
            "INSERT OR REPLACE INTO alarms (namespace, key, wake_at) VALUES (?, ?, ?)",
            (namespace, key, wake_at),
        )
        self._db.commit()

    def delete_alarm(self, namespace: str, key: str) -> None:
        self._db.execute("DELETE FROM alarms WHERE namespace = ? AND key = ?", (namespace, key))
        self._db.commit()

    def get_due_alarms(self, now: int) -> list[tuple[str, str, int]]:
        rows = self._db.execute(
            "SELECT namespace, key, wake_at FROM alarms WHERE wake_at <= ? ORDER BY wake_at",
            (now,),
        ).fetchall()
        return [(row["namespace"], row["key"], row["wake_at"]) for row in rows]

    def get_next_wake(self) -> int | None:
        row = self._db.execute("SELECT MIN(wake_at) FROM alarms").fetchone()
        return row[0] if row else None
