from .background import *
from .cron import *

__all__ = [
    "send_announcement_notification_task",
    # Scheduled/Cron Tasks
    "daily_prayer_notification_sweep_task",
]
