"""Validation errors surfaced synchronously to API callers."""

from __future__ import annotations

from typing import Any


class SchedulingError(Exception):
    """Expected failure of a store operation; never retried automatically."""

    code = "SchedulingError"
    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}

    @property
    def message(self) -> str:
        return self.args[0]


class DuplicateReminderError(SchedulingError):
    code = "DuplicateId"


class ReminderNotFoundError(SchedulingError):
    code = "NotFound"


class ReminderAlreadyTerminalError(SchedulingError):
    code = "AlreadyTerminal"


class InvalidConfigError(SchedulingError):
    code = "InvalidConfig"


class InvalidCronError(InvalidConfigError):
    code = "InvalidCron"


class InvalidTimezoneError(InvalidConfigError):
    code = "InvalidTimezone"


class UnknownScheduleError(SchedulingError):
    code = "UnknownSchedule"
    status_code = 404


class DeliveryFailedError(SchedulingError):
    """Raised only by on-demand runs; alarm-driven failures are recorded, not raised."""

    code = "DeliveryFailed"
    status_code = 502


class UnauthorizedError(SchedulingError):
    code = "Unauthorized"
    status_code = 401
