import asyncio
from typing import Optional

from prayer_notify.celery import celery
from prayer_notify.db.session import AsyncSessionLocal, engine
from prayer_notify.services.announcement_service import (
    get_announcement_notification_service,
)
from prayer_notify.utils.context import set_request_id
from prayer_notify.utils.logging import get_logger


@celery.task(bind=True)
def send_announcement_notification_task(
    self,
    request_id: str,
    venue_id: str,
    venue_name: Optional[str] = None,
    message: Optional[str] = None,
):
    """
    Celery task to push a venue announcement to its followers.

    Args:
        request_id: The request ID of the HTTP request that queued the task
        venue_id: Venue that published the announcement
        venue_name: Display name for the title, looked up when omitted
        message: Announcement text used as the push body
    """
    return asyncio.run(
        _async_send_announcement_notification(request_id, venue_id, venue_name, message)
    )


async def _async_send_announcement_notification(
    request_id: str,
    venue_id: str,
    venue_name: Optional[str],
    message: Optional[str],
    gateway=None,
):
    # asyncio.run gives each task run its own context
    set_request_id(request_id)
    logger = get_logger()

    try:
        async with AsyncSessionLocal() as db_session:
            service = get_announcement_notification_service(db_session, gateway)
            result = await service.notify_followers(venue_id, venue_name, message)

        return {
            "success": True,
            "venue_id": venue_id,
            **result,
            "request_id": request_id,
        }

    except Exception as e:
        logger.error(
            f"Critical error in announcement notification task for {venue_id}: {str(e)}"
        )
        return {
            "success": False,
            "error": str(e),
            "venue_id": venue_id,
            "request_id": request_id,
        }

    finally:
        await engine.dispose()
