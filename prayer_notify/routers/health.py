from fastapi import APIRouter, Request

from prayer_notify.config.settings import settings
from prayer_notify.utils.responses import ResponseBuilder

health_router = APIRouter()


@health_router.get("")
async def health_check(request: Request):
    """Liveness check for the API and the Cloud Tasks dispatch target"""
    return ResponseBuilder.success(
        request=request,
        data={"status": "healthy", "service": settings.NAME, "version": settings.VERSION},
        message="Service is running",
    )
