"""Tests for database initialization, schema, and the alarm table."""

from andee.infrastructure.database import AppDatabase


class TestAppDatabase:
    def test_init_creates_schema(self):
        db = AppDatabase()
        db._init_test()
        tables = db.db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        ).fetchall()
        table_names = [row[0] for row in tables]
        assert "reminders" in table_names
        assert "schedules" in table_names
        assert "schedule_executions" in table_names
        assert "schedule_configs" in table_names
        assert "alarms" in table_names

    def test_repos_initialized(self):
        db = AppDatabase()
        db._init_test()
        assert db.reminder_repo is not None
        assert db.schedule_repo is not None
        assert db.alarm_repo is not None
        assert db.is_open

    def test_multiple_init_is_safe(self):
        db = AppDatabase()
        db._init_test()
        db._init_test()  # Should not raise

    def test_file_database_survives_reopen(self, tmp_path):
        path = tmp_path / "store" / "andee.db"
        db = AppDatabase()
        db.init(path)
        db.alarm_repo.set_alarm("scheduler", "u1", 1000)
        db.close()
        assert not db.is_open

        reopened = AppDatabase()
        reopened.init(path)
        assert reopened.alarm_repo.get_alarm("scheduler", "u1") == 1000
        reopened.close()


class TestAlarmRepo:
    def test_set_and_get(self, db):
        db.alarm_repo.set_alarm("scheduler", "u1", 5000)
        assert db.alarm_repo.get_alarm("scheduler", "u1") == 5000

    def test_get_nonexistent(self, db):
        assert db.alarm_repo.get_alarm("scheduler", "nobody") is None

    def test_one_alarm_per_actor(self, db):
        db.alarm_repo.set_alarm("scheduler", "u1", 5000)
        db.alarm_repo.set_alarm("scheduler", "u1", 3000)
        assert db.alarm_repo.get_alarm("scheduler", "u1") == 3000
        assert len(db.alarm_repo.get_due_alarms(10_000)) == 1

    def test_namespaces_are_separate(self, db):
        db.alarm_repo.set_alarm("scheduler", "42", 5000)
        db.alarm_repo.set_alarm("recurring", "42", 7000)
        assert db.alarm_repo.get_alarm("scheduler", "42") == 5000
        assert db.alarm_repo.get_alarm("recurring", "42") == 7000

    def test_delete(self, db):
        db.alarm_repo.set_alarm("scheduler", "u1", 5000)
        db.alarm_repo.delete_alarm("scheduler", "u1")
        assert db.alarm_repo.get_alarm("scheduler", "u1") is None

    def test_due_alarms_ordered_and_bounded(self, db):
        db.alarm_repo.set_alarm("scheduler", "late", 9000)
        db.alarm_repo.set_alarm("scheduler", "b", 2000)
        db.alarm_repo.set_alarm("recurring", "a", 1000)
        due = db.alarm_repo.get_due_alarms(2000)
        assert due == [("recurring", "a", 1000), ("scheduler", "b", 2000)]

    def test_next_wake(self, db):
        assert db.alarm_repo.get_next_wake() is None
        db.alarm_repo.set_alarm("scheduler", "u1", 9000)
        db.alarm_repo.set_alarm("scheduler", "u2", 4000)
        assert db.alarm_repo.get_next_wake() == 4000
