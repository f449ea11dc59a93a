import asyncio
from typing import Optional

from prayer_notify.celery import celery
from prayer_notify.db.session import AsyncSessionLocal, engine
from prayer_notify.services.prayer_notifications import (
    CloudTasksScheduler,
    build_prayer_notification_scheduler,
)
from prayer_notify.utils.context import set_request_id
from prayer_notify.utils.logging import get_logger


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def daily_prayer_notification_sweep_task(self, request_id: str):
    """
    Queue today's prayer alerts for every subscriber at every venue.

    Runs from Celery beat shortly after midnight in the schedule timezone, once
    venues have published the day's timetable. Re-running it is harmless: each
    alert is queued under a deterministic task name, so alerts already queued
    come back as already existing. A failed run is retried with backoff.
    """
    result = asyncio.run(_async_daily_prayer_notification_sweep(request_id))

    if not result["success"] and self.request.retries < self.max_retries:
        # Cap retry delay at 5 minutes
        retry_delay = min(2**self.request.retries * 60, 300)
        raise self.retry(countdown=retry_delay)

    return result


async def _async_daily_prayer_notification_sweep(
    request_id: str, task_scheduler: Optional[CloudTasksScheduler] = None
):
    # asyncio.run gives each task run its own context
    set_request_id(request_id)
    logger = get_logger()

    try:
        async with AsyncSessionLocal() as db_session:
            scheduler = build_prayer_notification_scheduler(
                db_session, task_scheduler=task_scheduler
            )
            report = await scheduler.run_global_sweep()

        logger.info(
            f"Daily prayer notification sweep completed: {report.created} created, "
            f"{report.already_exists} already queued, {report.failed} failed"
        )
        return {
            "success": True,
            "report": report.to_dict(),
            "request_id": request_id,
        }

    except Exception as e:
        logger.error(f"Critical error in daily prayer notification sweep: {str(e)}")
        return {
            "success": False,
            "error": str(e),
            "request_id": request_id,
        }

    finally:
        # Pooled connections belong to this event loop
        await engine.dispose()
