from .daily_prayer_notification_sweep import daily_prayer_notification_sweep_task

__all__ = ["daily_prayer_notification_sweep_task"]
