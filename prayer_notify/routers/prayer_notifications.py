import secrets
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_notify.config.settings import settings
from prayer_notify.db.session import get_async_session
from prayer_notify.middlewares.auth_middleware import AuthState, get_current_user
from prayer_notify.schemas.prayer_schemas import ScheduleTodayRequest
from prayer_notify.services.prayer_notifications import (
    PrayerNotificationScheduler,
    build_prayer_notification_scheduler,
)
from prayer_notify.utils.errors import AuthenticationError, PushValidationError
from prayer_notify.utils.logging import get_logger
from prayer_notify.utils.responses import ResponseBuilder

prayer_notifications_router = APIRouter()
logger = get_logger()


async def get_prayer_notification_scheduler(
    db: Annotated[AsyncSession, Depends(get_async_session)],
) -> PrayerNotificationScheduler:
    """Dependency function to create a PrayerNotificationScheduler instance"""
    return build_prayer_notification_scheduler(db)


@prayer_notifications_router.post("/schedule-today")
async def schedule_today(
    request: Request,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    scheduler: Annotated[
        PrayerNotificationScheduler, Depends(get_prayer_notification_scheduler)
    ],
    body: Annotated[Optional[ScheduleTodayRequest], Body()] = None,
):
    """
    Re-sync today's alerts for the signed-in subscriber.

    Called by the app after sign-in or a preference change. Alerts already
    queued by the daily sweep share the same task names and are not duplicated.
    """
    push_address = body.push_address if body else None
    if not push_address:
        raise PushValidationError(missing_fields=["pushAddress"])

    report = await scheduler.run_targeted_sweep(current_user.subscriber_id, push_address)

    return ResponseBuilder.success(
        request=request,
        data=report.to_dict(),
        message="Prayer notifications scheduled",
    )


@prayer_notifications_router.post("/trigger")
async def trigger_global_sweep(
    request: Request,
    scheduler: Annotated[
        PrayerNotificationScheduler, Depends(get_prayer_notification_scheduler)
    ],
    x_trigger_token: Annotated[Optional[str], Header()] = None,
):
    """Run the daily sweep on demand"""
    if settings.MANUAL_TRIGGER_TOKEN and not secrets.compare_digest(
        x_trigger_token or "", settings.MANUAL_TRIGGER_TOKEN
    ):
        raise AuthenticationError("Invalid trigger token", "INVALID_TRIGGER_TOKEN")

    logger.info("Manual prayer notification sweep triggered")
    report = await scheduler.run_global_sweep()

    return ResponseBuilder.success(
        request=request,
        data=report.to_dict(),
        message="Prayer notifications scheduled for all subscribers",
    )
