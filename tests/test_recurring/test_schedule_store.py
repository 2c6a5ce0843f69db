"""Tests for the recurring schedule store and repository."""

import pytest
import yaml

from andee.errors import InvalidConfigError, InvalidCronError, InvalidTimezoneError, UnknownScheduleError
from andee.recurring.store import RecurringScheduleStore, dump_config, parse_config, patch_enabled
from andee.recurring.types import ScheduleConfig, format_scheduled_prompt


def _config(**schedules):
    return parse_config(
        {
            "version": "1.0",
            "timezone": "America/New_York",
            "schedules": schedules or {
                "morning": {"description": "Morning", "cron": "0 6 * * *", "prompt": "Good morning"},
            },
        }
    )


@pytest.fixture
def store(db):
    return RecurringScheduleStore("c1", db.schedule_repo)


class TestParseConfig:
    def test_valid(self):
        config = _config()
        assert isinstance(config, ScheduleConfig)
        assert config.schedules["morning"].enabled is True

    def test_numeric_version(self):
        config = parse_config({"version": 1.0, "timezone": "UTC", "schedules": {}})
        assert config.version == "1.0"

    def test_null_schedules_is_empty(self):
        config = parse_config(yaml.safe_load('version: "1.0"\ntimezone: UTC\nschedules:\n'))
        assert config.schedules == {}

    def test_missing_prompt(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            parse_config({"version": "1.0", "timezone": "UTC", "schedules": {"x": {"cron": "0 6 * * *"}}})
        assert exc_info.value.code == "InvalidConfig"
        assert "prompt" in exc_info.value.message

    def test_missing_timezone(self):
        with pytest.raises(InvalidConfigError):
            parse_config({"version": "1.0", "schedules": {}})

    def test_not_a_mapping(self):
        with pytest.raises(InvalidConfigError):
            parse_config(["not", "a", "mapping"])


class TestSaveConfig:
    def test_saves_schedules_with_next_run(self, store, to_ms):
        now = to_ms("2025-06-01T05:00:00-04:00")
        schedules = store.save_config(_config(), "tok", now)
        assert [s.id for s in schedules] == ["morning"]
        assert schedules[0].next_run_at == to_ms("2025-06-01T06:00:00-04:00")
        assert schedules[0].timezone == "America/New_York"
        assert store.bot_token() == "tok"

    def test_round_trip(self, store, to_ms):
        config = _config(
            morning={"description": "Morning", "cron": "0 6 * * *", "prompt": "Good morning"},
            evening={"description": "Evening", "cron": "0 18 * * *", "enabled": False, "prompt": "Wind down"},
        )
        store.save_config(config, "tok", to_ms("2025-06-01T05:00:00-04:00"))
        assert store.get_config() == config

    def test_invalid_cron_rejects_whole_save(self, store, to_ms):
        now = to_ms("2025-06-01T05:00:00-04:00")
        store.save_config(_config(), "tok", now)

        bad = _config(
            fine={"cron": "0 7 * * *", "prompt": "ok"},
            broken={"cron": "not a cron", "prompt": "never"},
        )
        with pytest.raises(InvalidCronError):
            store.save_config(bad, "tok2", now)

        assert [s.id for s in store.list_schedules()] == ["morning"]
        assert store.bot_token() == "tok"

    def test_invalid_timezone_rejected(self, store):
        config = parse_config({"version": "1.0", "timezone": "Nowhere/City", "schedules": {}})
        with pytest.raises(InvalidTimezoneError):
            store.save_config(config, "tok", 0)
        assert store.get_config() is None

    def test_removed_schedule_deleted_with_history(self, store, to_ms):
        now = to_ms("2025-06-01T05:00:00-04:00")
        store.save_config(
            _config(
                keep={"cron": "0 6 * * *", "prompt": "a"},
                drop={"cron": "0 7 * * *", "prompt": "b"},
            ),
            "tok",
            now,
        )
        store.record_execution("drop", now, "completed")
        store.record_execution("keep", now, "completed")

        store.save_config(_config(keep={"cron": "0 6 * * *", "prompt": "a"}), "tok", now)

        assert [s.id for s in store.list_schedules()] == ["keep"]
        assert store.list_executions("drop") == []
        assert len(store.list_executions("keep")) == 1

    def test_resave_preserves_last_run(self, store, to_ms):
        now = to_ms("2025-06-01T06:00:00-04:00")
        store.save_config(_config(), "tok", now - 1)
        store.advance(store.get_schedule("morning"), now)

        store.save_config(_config(), "tok", now + 1)
        assert store.get_schedule("morning").last_run_at == now

    def test_keeps_supplied_yaml_text(self, store):
        text = "# my comments\nversion: '1.0'\ntimezone: UTC\nschedules: {}\n"
        store.save_config(parse_config(yaml.safe_load(text)), "tok", 0, yaml_text=text)
        assert store.get_config_yaml() == text

    def test_generates_yaml_when_none_supplied(self, store):
        config = _config()
        store.save_config(config, "tok", 0)
        assert store.get_config_yaml() == dump_config(config)


class TestToggle:
    def test_disable_keeps_next_run(self, store, to_ms):
        now = to_ms("2025-06-01T05:00:00-04:00")
        store.save_config(_config(), "tok", now)
        before = store.get_schedule("morning").next_run_at

        disabled = store.set_enabled("morning", False, now)

        assert disabled.enabled is False
        assert store.get_schedule("morning").next_run_at == before
        assert store.next_run() is None
        assert store.get_config().schedules["morning"].enabled is False

    def test_enable_recomputes_next_run(self, store, to_ms):
        now = to_ms("2025-06-01T05:00:00-04:00")
        store.save_config(_config(), "tok", now)
        store.set_enabled("morning", False, now)

        later = to_ms("2025-06-03T07:00:00-04:00")
        store.set_enabled("morning", True, later)

        assert store.get_schedule("morning").next_run_at == to_ms("2025-06-04T06:00:00-04:00")
        assert store.get_config().schedules["morning"].enabled is True

    def test_keeps_comments_and_layout(self, store):
        text = (
            "# team schedules\n"
            'version: "1.0"\n'
            "timezone: America/New_York\n"
            "schedules:\n"
            "  # wake-up nudge\n"
            "  morning:\n"
            "    description: Morning  # shown in the IDE\n"
            '    cron: "0 6 * * *"\n'
            "    enabled: true   # flip to pause\n"
            "    prompt: Good morning\n"
            "  evening:\n"
            '    cron: "0 18 * * *"\n'
            "    enabled: true\n"
            "    prompt: Wind down\n"
        )
        store.save_config(parse_config(yaml.safe_load(text)), "tok", 0, yaml_text=text)

        store.set_enabled("morning", False, 0)

        assert store.get_config_yaml() == text.replace(
            "enabled: true   # flip to pause", "enabled: false   # flip to pause"
        )
        assert store.get_config().schedules["evening"].enabled is True

    def test_adds_missing_enabled_key(self, store):
        text = 'version: "1.0"\ntimezone: UTC\nschedules:\n  morning:\n    cron: "0 6 * * *"  # daily\n    prompt: Hi\n'
        store.save_config(parse_config(yaml.safe_load(text)), "tok", 0, yaml_text=text)

        store.set_enabled("morning", False, 0)

        assert store.get_config_yaml() == text.replace("  morning:\n", "  morning:\n    enabled: false\n")

    def test_flow_style_document_regenerated(self, store):
        text = 'version: "1.0"\ntimezone: UTC\nschedules: {morning: {cron: "0 6 * * *", prompt: Hi}}\n'
        store.save_config(parse_config(yaml.safe_load(text)), "tok", 0, yaml_text=text)

        store.set_enabled("morning", False, 0)

        assert store.get_config().schedules["morning"].enabled is False

    def test_unknown_schedule(self, store):
        with pytest.raises(UnknownScheduleError) as exc_info:
            store.set_enabled("ghost", True, 0)
        assert exc_info.value.status_code == 404


class TestExecutions:
    def test_newest_first_with_limit(self, store):
        store.save_config(_config(), "tok", 0)
        for executed_at in (100, 300, 200):
            store.record_execution("morning", executed_at, "completed", duration_ms=5)
        assert [e.executed_at for e in store.list_executions()] == [300, 200, 100]
        assert [e.executed_at for e in store.list_executions(limit=2)] == [300, 200]

    def test_prune(self, store):
        store.save_config(_config(), "tok", 0)
        store.record_execution("morning", 100, "completed")
        store.record_execution("morning", 900, "failed", "boom")
        assert store.prune(500) == 1
        remaining = store.list_executions()
        assert len(remaining) == 1
        assert remaining[0].error == "boom"

    def test_chats_are_isolated(self, db, store):
        store.save_config(_config(), "tok", 0)
        store.record_execution("morning", 100, "completed")
        other = RecurringScheduleStore("c2", db.schedule_repo)
        assert other.list_executions() == []
        assert other.list_schedules() == []
        assert other.get_config() is None


def test_scheduled_prompt_text():
    assert format_scheduled_prompt("morning", "Hello") == "[SCHEDULED: morning]\n\nHello"


class TestPatchEnabled:
    def test_quoted_schedule_id(self):
        text = "schedules:\n  'morning':\n    enabled: false\n    prompt: Hi\n"
        assert patch_enabled(text, "morning", True) == "schedules:\n  'morning':\n    enabled: true\n    prompt: Hi\n"

    def test_ignores_same_key_outside_schedules(self):
        text = "meta:\n  morning:\n    enabled: true\nschedules:\n  morning:\n    enabled: true\n"
        assert patch_enabled(text, "morning", False) == (
            "meta:\n  morning:\n    enabled: true\nschedules:\n  morning:\n    enabled: false\n"
        )

    def test_nested_enabled_not_touched(self):
        text = "schedules:\n  morning:\n    prompt: Hi\n    extra:\n      enabled: true\n"
        assert patch_enabled(text, "morning", False) == (
            "schedules:\n  morning:\n    enabled: false\n    prompt: Hi\n    extra:\n      enabled: true\n"
        )

    def test_unknown_id(self):
        assert patch_enabled("schedules:\n  morning:\n    prompt: Hi\n", "ghost", True) is None
