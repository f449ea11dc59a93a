from fastapi import APIRouter

from .announcements import announcements_router
from .health import health_router
from .notifications import notifications_router
from .prayer_notifications import prayer_notifications_router

main_router = APIRouter()

main_router.include_router(health_router, prefix="/health", tags=["Health Checks"])
main_router.include_router(
    notifications_router, prefix="/notifications", tags=["Notifications"]
)
main_router.include_router(
    prayer_notifications_router,
    prefix="/prayer-notifications",
    tags=["Prayer Notifications"],
)
main_router.include_router(
    announcements_router, prefix="/announcements", tags=["Announcements"]
)
