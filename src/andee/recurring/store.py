"""Recurring schedule store: config validation, persistence, and run bookkeeping for one chat."""

from __future__ import annotations

import re
import uuid
from typing import Any

import yaml
from pydantic import ValidationError

from andee.errors import InvalidConfigError, UnknownScheduleError
from andee.recurring.cron import load_timezone, next_run_after
from andee.recurring.repository import ScheduleRepository
from andee.recurring.types import (
    ExecutionStatus,
    RecurringSchedule,
    ScheduleConfig,
    ScheduleExecution,
)


def parse_config(data: Any) -> ScheduleConfig:
    """Validate a raw config mapping (from JSON or YAML)."""
    if not isinstance(data, dict):
        raise InvalidConfigError("Invalid config: expected a mapping with version, timezone, and schedules")
    try:
        return ScheduleConfig.model_validate(data)
    except ValidationError as err:
        problems = [
            {"field": ".".join(str(part) for part in e["loc"]), "error": e["msg"]}
            for e in err.errors()
        ]
        summary = "; ".join(f"{p['field']}: {p['error']}" for p in problems)
        raise InvalidConfigError(f"Invalid config: {summary}", {"errors": problems}) from err


def dump_config(config: ScheduleConfig) -> str:
    return yaml.safe_dump(config.model_dump(), sort_keys=False, allow_unicode=True)


_TOP_LEVEL_KEY = re.compile(r"^[^\s#][^:]*:")
_ENABLED_LINE = re.compile(r"^(?P<indent>\s+)enabled\s*:\s*(?P<value>[^#\s]*)(?P<rest>\s*(#.*)?)$")


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def patch_enabled(yaml_text: str, schedule_id: str, enabled: bool) -> str | None:
    """Rewrite one schedule's ``enabled:`` value in place, keeping comments and layout.

    Returns None when the document is not in the block layout this can patch.
    """
    lines = yaml_text.splitlines(keepends=True)
    value = "true" if enabled else "false"
    id_pattern = re.compile(rf"^(\s+)([\"']?){re.escape(schedule_id)}\2\s*:\s*(#.*)?$")

    in_schedules = False
    for i, line in enumerate(lines):
        bare = line.rstrip("\r\n")
        if _TOP_LEVEL_KEY.match(bare):
            in_schedules = bare.split(":", 1)[0].strip() == "schedules"
            continue
        if not in_schedules or not id_pattern.match(bare):
            continue

        id_indent = _indent(bare)
        child_indent: int | None = None
        for j in range(i + 1, len(lines)):
            child = lines[j].rstrip("\r\n")
            if not child.strip() or child.lstrip().startswith("#"):
                continue
            if _indent(child) <= id_indent:
                break
            if child_indent is None:
                child_indent = _indent(child)
            match = _ENABLED_LINE.match(child)
            if match and _indent(child) == child_indent:
                newline = lines[j][len(child):]
                lines[j] = f"{match['indent']}enabled: {value}{match['rest']}{newline}"
                return "".join(lines)

        if child_indent is None:
            return None
        # No enabled key yet: add one as the first child
        lines.insert(i + 1, f"{' ' * child_indent}enabled: {value}\n")
        return "".join(lines)

    return None


class RecurringScheduleStore:
    def __init__(self, chat_id: str, repo: ScheduleRepository) -> None:
        self._chat_id = chat_id
        self._repo = repo

    # --- Config ---

    def save_config(
        self,
        config: ScheduleConfig,
        bot_token: str,
        now: int,
        yaml_text: str | None = None,
    ) -> list[RecurringSchedule]:
        """Replace the chat's config. Nothing is written unless every schedule validates."""
        load_timezone(config.timezone)

        schedules: list[RecurringSchedule] = []
        for schedule_id, definition in config.schedules.items():
            next_run = next_run_after(definition.cron, config.timezone, now)
            schedules.append(
                RecurringSchedule(
                    id=schedule_id,
                    description=definition.description,
                    cron=definition.cron,
                    timezone=config.timezone,
                    prompt=definition.prompt,
                    enabled=definition.enabled,
                    next_run_at=next_run,
                )
            )

        self._repo.replace_config(
            self._chat_id,
            schedules,
            yaml_text if yaml_text is not None else dump_config(config),
            bot_token,
            config.timezone,
            now,
        )
        return self._repo.get_schedules(self._chat_id)

    def get_config(self) -> ScheduleConfig | None:
        yaml_text = self.get_config_yaml()
        if yaml_text is None:
            return None
        return parse_config(yaml.safe_load(yaml_text))

    def get_config_yaml(self) -> str | None:
        row = self._repo.get_config_row(self._chat_id)
        return row["yaml_text"] if row else None

    def bot_token(self) -> str | None:
        row = self._repo.get_config_row(self._chat_id)
        return row["bot_token"] if row else None

    # --- Schedules ---

    def list_schedules(self) -> list[RecurringSchedule]:
        return self._repo.get_schedules(self._chat_id)

    def get_schedule(self, schedule_id: str) -> RecurringSchedule | None:
        return self._repo.get_schedule(self._chat_id, schedule_id)

    def require_schedule(self, schedule_id: str) -> RecurringSchedule:
        schedule = self._repo.get_schedule(self._chat_id, schedule_id)
        if schedule is None:
            raise UnknownScheduleError(f"Schedule {schedule_id} not found", {"scheduleId": schedule_id})
        return schedule

    def set_enabled(self, schedule_id: str, enabled: bool, now: int) -> RecurringSchedule:
        schedule = self.require_schedule(schedule_id)
        next_run = schedule.next_run_at
        if enabled:
            next_run = next_run_after(schedule.cron, schedule.timezone, now)
        self._repo.set_enabled(self._chat_id, schedule_id, enabled, next_run, now)

        yaml_text = self.get_config_yaml()
        if yaml_text is not None:
            self._repo.update_config_yaml(self._chat_id, self._toggled_yaml(yaml_text, schedule_id, enabled), now)

        return schedule.model_copy(update={"enabled": enabled, "next_run_at": next_run})

    @staticmethod
    def _toggled_yaml(yaml_text: str, schedule_id: str, enabled: bool) -> str:
        patched = patch_enabled(yaml_text, schedule_id, enabled)
        if patched is not None:
            try:
                schedule = parse_config(yaml.safe_load(patched)).schedules.get(schedule_id)
            except (yaml.YAMLError, InvalidConfigError):
                schedule = None
            if schedule is not None and schedule.enabled == enabled:
                return patched
        # Layout the line patch cannot follow: regenerate the document
        config = parse_config(yaml.safe_load(yaml_text))
        if schedule_id in config.schedules:
            config.schedules[schedule_id].enabled = enabled
        return dump_config(config)

    def get_due(self, now: int) -> list[RecurringSchedule]:
        return self._repo.get_due_schedules(self._chat_id, now)

    def next_run(self) -> int | None:
        return self._repo.get_next_run(self._chat_id)

    def advance(self, schedule: RecurringSchedule, now: int) -> int | None:
        """Record a run at ``now`` and move the schedule to its next slot after ``now``."""
        next_run = next_run_after(schedule.cron, schedule.timezone, now)
        self._repo.update_schedule_after_run(self._chat_id, schedule.id, next_run, now)
        return next_run

    # --- Executions ---

    def record_execution(
        self,
        schedule_id: str,
        executed_at: int,
        status: ExecutionStatus,
        error: str | None = None,
        duration_ms: int | None = None,
    ) -> ScheduleExecution:
        execution = ScheduleExecution(
            id=str(uuid.uuid4()),
            schedule_id=schedule_id,
            executed_at=executed_at,
            status=status,
            error=error,
            duration_ms=duration_ms,
        )
        self._repo.log_execution(self._chat_id, execution)
        return execution

    def list_executions(self, schedule_id: str | None = None, limit: int = 50) -> list[ScheduleExecution]:
        return self._repo.list_executions(self._chat_id, schedule_id, limit)

    def prune(self, before: int) -> int:
        return self._repo.prune_executions(self._chat_id, before)
