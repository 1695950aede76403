"""
Health check endpoints for the gateway
"""
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from ..schemas import ReadinessResponse

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "ok"


@router.get("/health", status_code=status.HTTP_200_OK)
def health_check():
    """Liveness: the process is up and serving."""
    return {"status": "ok"}


@router.get("/health/ready", response_model=ReadinessResponse)
def readiness_check(request: Request):
    """
    Readiness check with database connectivity.

    The probe waits at most HEALTH_CHECK_TIMEOUT seconds for the database.

    Returns:
        200 when the database answers, 503 otherwise
    """
    manager = request.app.state.db
    timeout = request.app.state.settings.HEALTH_CHECK_TIMEOUT
    result = manager.ping(timeout)

    if result.healthy:
        return ReadinessResponse(status="ready", database="connected")

    body = ReadinessResponse(status="not_ready", database="disconnected", reason=result.reason)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump())
