"""HTTP request and response bodies. Field names are camelCase on the wire."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from andee.recurring.types import RecurringSchedule, ScheduleExecution
from andee.reminders.types import Reminder, ReminderStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


# --- Reminders ---


class ScheduleReminderRequest(CamelModel):
    sender_id: str = Field(min_length=1)
    chat_id: str = Field(min_length=1)
    is_group: bool = False
    reminder_id: str = Field(min_length=1)
    trigger_at: int
    message: str
    bot_token: str = Field(validation_alias=AliasChoices("botToken", "deliveryCredential", "bot_token"))


class ReminderActionRequest(CamelModel):
    sender_id: str = Field(min_length=1)
    reminder_id: str = Field(min_length=1)


class ReminderOut(CamelModel):
    """A reminder as callers see it; the delivery credential is never echoed."""

    id: str
    sender_id: str
    chat_id: str
    is_group: bool
    trigger_at: int
    message: str
    status: ReminderStatus
    created_at: int

    @classmethod
    def from_reminder(cls, reminder: Reminder) -> ReminderOut:
        return cls.model_validate(reminder.model_dump(exclude={"bot_token"}))


# --- Recurring schedules ---


class SaveScheduleConfigRequest(CamelModel):
    chat_id: str = Field(min_length=1)
    # Validated by the store so that problems surface as InvalidConfig rather than 422
    config: dict[str, Any]
    bot_token: str = Field(validation_alias=AliasChoices("botToken", "deliveryCredential", "bot_token"))


class RunScheduleRequest(CamelModel):
    chat_id: str = Field(min_length=1)
    schedule_id: str = Field(min_length=1)
    bot_token: str | None = Field(
        default=None, validation_alias=AliasChoices("botToken", "deliveryCredential", "bot_token")
    )


class ToggleScheduleRequest(CamelModel):
    chat_id: str = Field(min_length=1)
    schedule_id: str = Field(min_length=1)
    enabled: bool


class ScheduleOut(CamelModel):
    id: str
    description: str
    cron: str
    timezone: str
    prompt: str
    enabled: bool
    next_run_at: int | None = None
    last_run_at: int | None = None

    @classmethod
    def from_schedule(cls, schedule: RecurringSchedule) -> ScheduleOut:
        return cls.model_validate(schedule.model_dump())


class ExecutionOut(CamelModel):
    id: str
    schedule_id: str
    executed_at: int
    status: str
    error: str | None = None
    duration_ms: int | None = None

    @classmethod
    def from_execution(cls, execution: ScheduleExecution) -> ExecutionOut:
        return cls.model_validate(execution.model_dump())
