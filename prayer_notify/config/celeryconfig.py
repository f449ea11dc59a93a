from celery.schedules import crontab

from .settings import settings


def _redis_url() -> str:
    auth = f":{settings.REDIS_PASSWORD}@" if settings.REDIS_PASSWORD else ""
    return f"redis://{auth}{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"


broker_url = _redis_url()
result_backend = _redis_url()
result_expires = 24 * 60 * 60

include = ["prayer_notify.tasks"]
task_default_queue = "prayer_notify"

# Beat fires in the civil timezone the venues publish timetables in
timezone = settings.SCHEDULE_TIMEZONE
enable_utc = True

task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]

# A sweep only submits tasks, so it finishes well inside these limits
task_soft_time_limit = 10 * 60
task_time_limit = 15 * 60
task_track_started = True
task_acks_late = True
task_reject_on_worker_lost = True

worker_prefetch_multiplier = 1
worker_max_tasks_per_child = 500

beat_schedule = {
    "daily-prayer-notification-sweep": {
        "task": "prayer_notify.tasks.cron.daily_prayer_notification_sweep.daily_prayer_notification_sweep_task",
        "schedule": crontab(
            hour=settings.DAILY_SWEEP_HOUR, minute=settings.DAILY_SWEEP_MINUTE
        ),
        "args": ("daily_prayer_notification_sweep_cron",),
    },
}
beat_schedule_filename = "tmp/celerybeat-schedule"
