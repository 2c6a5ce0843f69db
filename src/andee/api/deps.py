"""Request dependencies: API key check and typed actor lookup."""

from __future__ import annotations

import hmac
from typing import cast

from fastapi import Request

from andee.actors.registry import ActorRegistry
from andee.errors import UnauthorizedError
from andee.recurring.scheduler import NAMESPACE as RECURRING_NAMESPACE
from andee.recurring.scheduler import RecurringScheduleScheduler
from andee.reminders.scheduler import NAMESPACE as REMINDER_NAMESPACE
from andee.reminders.scheduler import ReminderScheduler


async def require_api_key(request: Request) -> None:
    expected: str = request.app.state.api_key
    if not expected:
        return
    provided = request.headers.get("X-API-Key", "")
    if not provided or not hmac.compare_digest(provided, expected):
        raise UnauthorizedError("Missing or invalid X-API-Key")


def get_registry(request: Request) -> ActorRegistry:
    return request.app.state.registry


def reminder_scheduler(registry: ActorRegistry, sender_id: str) -> ReminderScheduler:
    return cast(ReminderScheduler, registry.get(REMINDER_NAMESPACE, sender_id))


def recurring_scheduler(registry: ActorRegistry, chat_id: str) -> RecurringScheduleScheduler:
    return cast(RecurringScheduleScheduler, registry.get(RECURRING_NAMESPACE, chat_id))
