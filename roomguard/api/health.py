"""Health endpoints exposing liveness and dispatcher readiness."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/api/health", tags=["Health"], include_in_schema=False)


@router.get("/live")
async def live() -> dict[str, str]:
    """Return a lightweight liveness response without dependency checks."""

    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request) -> Response:
    """Report whether the room dispatcher is consuming events."""

    dispatcher = getattr(request.app.state, "dispatcher", None)
    running = bool(dispatcher is not None and dispatcher.running)
    payload = {
        "status": "ok" if running else "unavailable",
        "dispatcher": {
            "running": running,
            "reconnects": int(getattr(dispatcher, "reconnects", 0)),
        },
    }
    status_code = status.HTTP_200_OK if running else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=payload)
