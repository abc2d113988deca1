import time

from fastapi import APIRouter, Request

from toolrelay.utils import utcnow

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    state = request.app.state
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "server": state.settings.server_name,
        "version": state.settings.server_version,
        "uptime": round(time.monotonic() - state.started_at, 3),
        "activeConnections": len(state.transports),
    }
