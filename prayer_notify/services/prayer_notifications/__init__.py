from .dedup_key import derive_key
from .fire_time_resolver import SECONDARY_ALERT_OFFSET, resolve
from .messages import build_announcement_payload, build_prayer_payload
from .sweep_orchestrator import (
    PrayerNotificationScheduler,
    SweepReport,
    build_prayer_notification_scheduler,
)
from .task_scheduler import CloudTasksScheduler, SubmitOutcome, SubmitResult

__all__ = [
    "derive_key",
    "resolve",
    "SECONDARY_ALERT_OFFSET",
    "build_prayer_payload",
    "build_announcement_payload",
    "CloudTasksScheduler",
    "SubmitOutcome",
    "SubmitResult",
    "PrayerNotificationScheduler",
    "SweepReport",
    "build_prayer_notification_scheduler",
]
