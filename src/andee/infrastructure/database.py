"""SQLite database schema and AppDatabase composition root."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from andee.infrastructure.config import STORE_DIR
from andee.infrastructure.logger import logger


def create_schema(db: sqlite3.Connection) -> None:
    """Create all tables and indexes. Safe to call multiple times (IF NOT EXISTS)."""
    db.executescript("""
        CREATE TABLE IF NOT EXISTS reminders (
            sender_id TEXT NOT NULL,
            id TEXT NOT NULL,
            chat_id TEXT NOT NULL,
            is_group INTEGER NOT NULL,
            trigger_at INTEGER NOT NULL,
            message TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            created_at INTEGER NOT NULL,
            bot_token TEXT NOT NULL,
            PRIMARY KEY (sender_id, id)
        );
        CREATE INDEX IF NOT EXISTS idx_reminders_pending
            ON reminders(sender_id, trigger_at) WHERE status = 'pending';

        CREATE TABLE IF NOT EXISTS schedules (
            chat_id TEXT NOT NULL,
            id TEXT NOT NULL,
            description TEXT NOT NULL,
            cron TEXT NOT NULL,
            timezone TEXT NOT NULL,
            prompt TEXT NOT NULL,
            enabled INTEGER NOT NULL DEFAULT 1,
            next_run_at INTEGER,
            last_run_at INTEGER,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL,
            PRIMARY KEY (chat_id, id)
        );
        CREATE INDEX IF NOT EXISTS idx_schedules_enabled_next_run
            ON schedules(chat_id, next_run_at) WHERE enabled = 1;

        CREATE TABLE IF NOT EXISTS schedule_executions (
            id TEXT PRIMARY KEY,
            chat_id TEXT NOT NULL,
            schedule_id TEXT NOT NULL,
            executed_at INTEGER NOT NULL,
            status TEXT NOT NULL,
            error TEXT,
            duration_ms INTEGER
        );
        CREATE INDEX IF NOT EXISTS idx_executions_schedule
            ON schedule_executions(chat_id, schedule_id, executed_at DESC);

        CREATE TABLE IF NOT EXISTS schedule_configs (
            chat_id TEXT PRIMARY KEY,
            yaml_text TEXT NOT NULL,
            bot_token TEXT NOT NULL,
            timezone TEXT NOT NULL,
            updated_at INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS alarms (
            namespace TEXT NOT NULL,
            key TEXT NOT NULL,
            wake_at INTEGER NOT NULL,
            PRIMARY KEY (namespace, key)
        );
        CREATE INDEX IF NOT EXISTS idx_alarms_wake_at ON alarms(wake_at);
    """)


class AppDatabase:
    """Composition root that initializes the DB and exposes repositories."""

    def __init__(self) -> None:
        self._db: sqlite3.Connection | None = None
        # Repositories are set after init
        self.reminder_repo: ReminderRepository | None = None  # type: ignore[name-defined]
        self.schedule_repo: ScheduleRepository | None = None  # type: ignore[name-defined]
        self.alarm_repo: AlarmRepository | None = None  # type: ignore[name-defined]

    @property
    def db(self) -> sqlite3.Connection:
        assert self._db is not None, "Database not initialized. Call init() first."
        return self._db

    def init(self, db_path: Path | None = None) -> None:
        """Open (or create) the database file at the standard location."""
        db_path = db_path or STORE_DIR / "andee.db"
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(str(db_path))
        self._db.row_factory = sqlite3.Row
        self._db.execute("PRAGMA journal_mode=WAL")
        self._init_repos()
        logger.info("Database opened", path=str(db_path))

    def _init_test(self) -> None:
        """For tests only. Creates a fresh in-memory database."""
        # TestClient serves requests from a worker thread
        self._db = sqlite3.connect(":memory:", check_same_thread=False)
        self._db.row_factory = sqlite3.Row
        self._init_repos()

    @property
    def is_open(self) -> bool:
        return self._db is not None

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None

    def _init_repos(self) -> None:
        assert self._db is not None
        create_schema(self._db)

        # Import here to avoid circular imports
        from andee.infrastructure.alarm_repo import AlarmRepository
        from andee.recurring.repository import ScheduleRepository
        from andee.reminders.repository import ReminderRepository

        self.reminder_repo = ReminderRepository(self._db)
        self.schedule_repo = ScheduleRepository(self._db)
        self.alarm_repo = AlarmRepository(self._db)


# Module-level singleton
database = AppDatabase()
