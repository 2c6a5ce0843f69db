"""FastAPI application factory for the scheduling control surface."""

from __future__ import annotations

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from andee.actors.registry import ActorRegistry
from andee.api.deps import require_api_key
from andee.api.routes import reminders, schedules
from andee.errors import SchedulingError
from andee.infrastructure.config import ANDEE_API_KEY
from andee.infrastructure.logger import logger


def create_app(registry: ActorRegistry, api_key: str = ANDEE_API_KEY) -> FastAPI:
    app = FastAPI(title="Andee Scheduler", version="1.0.0")
    app.state.registry = registry
    app.state.api_key = api_key

    if not api_key:
        logger.warning("ANDEE_API_KEY not set, scheduling endpoints are unauthenticated")

    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
        logger.warning(
            "Request rejected",
            path=request.url.path,
            code=exc.code,
            error=exc.message,
            **exc.details,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message, "code": exc.code},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(reminders.router, dependencies=[Depends(require_api_key)])
    app.include_router(schedules.router, dependencies=[Depends(require_api_key)])

    return app
