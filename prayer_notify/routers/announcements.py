from fastapi import APIRouter, Request, status

from prayer_notify.schemas.prayer_schemas import AnnouncementRequest
from prayer_notify.tasks.background import send_announcement_notification_task
from prayer_notify.utils.logging import get_logger
from prayer_notify.utils.responses import ResponseBuilder

announcements_router = APIRouter()
logger = get_logger()


@announcements_router.post("/notify")
async def notify_announcement(request: Request, body: AnnouncementRequest):
    """Queue a push to every follower of the venue who has posts enabled"""
    send_announcement_notification_task.delay(  # type: ignore
        request.state.request_id, body.venue_id, body.venue_name, body.message
    )
    logger.info(f"Announcement notification queued for {body.venue_id}")

    return ResponseBuilder.success(
        request=request,
        data={"venueId": body.venue_id},
        message="Announcement notification queued",
        status_code=status.HTTP_202_ACCEPTED,
    )
