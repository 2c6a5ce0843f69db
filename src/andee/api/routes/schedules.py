from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse

from andee.actors.registry import ActorRegistry
from andee.api.deps import get_registry, recurring_scheduler
from andee.api.schemas import (
    ExecutionOut,
    RunScheduleRequest,
    SaveScheduleConfigRequest,
    ScheduleOut,
    ToggleScheduleRequest,
)
from andee.infrastructure.config import EXECUTION_LIST_LIMIT

router = APIRouter(tags=["schedules"])


@router.put("/schedule-config")
async def save_schedule_config(
    payload: SaveScheduleConfigRequest, registry: ActorRegistry = Depends(get_registry)
) -> dict[str, Any]:
    schedules = await recurring_scheduler(registry, payload.chat_id).save_config(payload.config, payload.bot_token)
    return {
        "success": True,
        "message": f"Saved {len(schedules)} schedule(s)",
        "schedules": [ScheduleOut.from_schedule(s).to_json() for s in schedules],
    }


@router.get("/schedule-config")
async def get_schedule_config(
    chat_id: str = Query(alias="chatId", min_length=1),
    registry: ActorRegistry = Depends(get_registry),
) -> dict[str, Any]:
    config, schedules = await recurring_scheduler(registry, chat_id).get_config()
    return {
        "success": True,
        "config": config.model_dump() if config else None,
        "schedules": [ScheduleOut.from_schedule(s).to_json() for s in schedules],
    }


@router.post("/run-schedule-now")
async def run_schedule_now(
    payload: RunScheduleRequest, registry: ActorRegistry = Depends(get_registry)
) -> dict[str, Any]:
    execution = await recurring_scheduler(registry, payload.chat_id).execute_now(
        payload.schedule_id, payload.bot_token
    )
    return {
        "success": True,
        "message": f"Schedule {payload.schedule_id} executed",
        "execution": ExecutionOut.from_execution(execution).to_json(),
    }


@router.get("/schedule-runs")
async def list_schedule_runs(
    chat_id: str = Query(alias="chatId", min_length=1),
    schedule_id: str | None = Query(default=None, alias="scheduleId"),
    limit: int = Query(default=EXECUTION_LIST_LIMIT, ge=1, le=500),
    registry: ActorRegistry = Depends(get_registry),
) -> dict[str, Any]:
    executions = await recurring_scheduler(registry, chat_id).list_executions(schedule_id, limit)
    return {"success": True, "executions": [ExecutionOut.from_execution(e).to_json() for e in executions]}


@router.post("/toggle-schedule")
async def toggle_schedule(
    payload: ToggleScheduleRequest, registry: ActorRegistry = Depends(get_registry)
) -> dict[str, Any]:
    await recurring_scheduler(registry, payload.chat_id).toggle(payload.schedule_id, payload.enabled)
    state = "enabled" if payload.enabled else "disabled"
    return {"success": True, "message": f"Schedule {payload.schedule_id} {state}"}


@router.get("/schedule-config-yaml", response_class=PlainTextResponse)
async def get_schedule_config_yaml(
    chat_id: str = Query(alias="chatId", min_length=1),
    registry: ActorRegistry = Depends(get_registry),
) -> PlainTextResponse:
    yaml_text = await recurring_scheduler(registry, chat_id).get_config_yaml()
    return PlainTextResponse(yaml_text, media_type="text/yaml")


@router.put("/schedule-config-yaml")
async def save_schedule_config_yaml(
    request: Request,
    chat_id: str = Query(alias="chatId", min_length=1),
    bot_token: str = Query(alias="botToken", min_length=1),
    registry: ActorRegistry = Depends(get_registry),
) -> dict[str, Any]:
    yaml_text = (await request.body()).decode("utf-8", errors="replace")
    schedules = await recurring_scheduler(registry, chat_id).save_config_yaml(yaml_text, bot_token)
    return {
        "success": True,
        "message": f"Saved {len(schedules)} schedule(s)",
        "schedules": [ScheduleOut.from_schedule(s).to_json() for s in schedules],
    }
