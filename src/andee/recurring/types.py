"""Recurring schedule domain types."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, field_validator

ExecutionStatus = Literal["completed", "failed"]


class ScheduleDefinition(BaseModel):
    """One entry of the config's ``schedules`` map; the map key is the schedule id."""

    description: str = ""
    cron: str
    enabled: bool = True
    prompt: str

    @field_validator("cron", "prompt")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class ScheduleConfig(BaseModel):
    """The versioned document a chat saves as a whole (YAML on disk)."""

    version: str
    timezone: str
    schedules: dict[str, ScheduleDefinition]

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> Any:
        # `version: 1.0` in YAML parses as a float
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("schedules", mode="before")
    @classmethod
    def _empty_schedules(cls, value: Any) -> Any:
        # `schedules:` with every entry commented out parses as null
        return {} if value is None else value


class RecurringSchedule(BaseModel):
    id: str
    description: str
    cron: str
    timezone: str
    prompt: str
    enabled: bool
    next_run_at: int | None = None  # ms since epoch
    last_run_at: int | None = None


class ScheduleExecution(BaseModel):
    id: str
    schedule_id: str
    executed_at: int
    status: ExecutionStatus
    error: str | None = None
    duration_ms: int | None = None


def format_scheduled_prompt(schedule_id: str, prompt: str) -> str:
    return f"[SCHEDULED: {schedule_id}]\n\n{prompt}"


_DEFAULT_CONFIG_TEMPLATE = """version: "{version}"
timezone: "{timezone}"

schedules:
  # Example schedule (uncomment and modify):
  # morning-weather:
  #   description: "Daily morning weather report"
  #   cron: "0 6 * * *"    # 6:00 AM daily
  #   enabled: true
  #   prompt: |
  #     Good morning! Generate a weather report for Boston.
  #     Be warm and conversational.
"""


def default_config_yaml(version: str, timezone: str) -> str:
    """Commented starter document shown when a chat has no config yet."""
    return _DEFAULT_CONFIG_TEMPLATE.format(version=version, timezone=timezone)
