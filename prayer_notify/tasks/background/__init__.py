from .announcement_notification_sender import send_announcement_notification_task

__all__ = ["send_announcement_notification_task"]
