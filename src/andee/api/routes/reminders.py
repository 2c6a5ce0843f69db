from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from andee.actors.registry import ActorRegistry
from andee.api.deps import get_registry, reminder_scheduler
from andee.api.schemas import ReminderActionRequest, ReminderOut, ScheduleReminderRequest
from andee.reminders.types import ReminderStatus

router = APIRouter(tags=["reminders"])


@router.post("/schedule-reminder")
async def schedule_reminder(
    payload: ScheduleReminderRequest, registry: ActorRegistry = Depends(get_registry)
) -> dict[str, Any]:
    reminder = await reminder_scheduler(registry, payload.sender_id).schedule(
        reminder_id=payload.reminder_id,
        chat_id=payload.chat_id,
        is_group=payload.is_group,
        trigger_at=payload.trigger_at,
        message=payload.message,
        bot_token=payload.bot_token,
    )
    return {
        "success": True,
        "message": f"Reminder {reminder.id} scheduled",
        "reminder": ReminderOut.from_reminder(reminder).to_json(),
    }


@router.post("/cancel-reminder")
async def cancel_reminder(
    payload: ReminderActionRequest, registry: ActorRegistry = Depends(get_registry)
) -> dict[str, Any]:
    await reminder_scheduler(registry, payload.sender_id).cancel(payload.reminder_id)
    return {"success": True, "message": f"Reminder {payload.reminder_id} cancelled"}


@router.post("/complete-reminder")
async def complete_reminder(
    payload: ReminderActionRequest, registry: ActorRegistry = Depends(get_registry)
) -> dict[str, Any]:
    await reminder_scheduler(registry, payload.sender_id).complete(payload.reminder_id)
    return {"success": True, "message": f"Reminder {payload.reminder_id} completed"}


@router.get("/reminders")
async def list_reminders(
    sender_id: str = Query(alias="senderId", min_length=1),
    status: ReminderStatus | None = None,
    registry: ActorRegistry = Depends(get_registry),
) -> dict[str, Any]:
    reminders = await reminder_scheduler(registry, sender_id).list(status)
    return {"success": True, "reminders": [ReminderOut.from_reminder(r).to_json() for r in reminders]}
