from typing import Optional
from zoneinfo import ZoneInfo

from prayer_notify.config.settings import settings
from prayer_notify.schemas.prayer_schemas import AlertKind, FireTime, PushPayload
from prayer_notify.services.prayer_notifications.fire_time_resolver import (
    SECONDARY_ALERT_OFFSET,
)
from prayer_notify.utils.datetime_utils import format_local_time


def build_prayer_payload(
    push_address: str,
    venue_id: str,
    venue_name: Optional[str],
    fire_time: FireTime,
    zone: Optional[ZoneInfo] = None,
) -> PushPayload:
    """
    Build the push a subscriber receives for one prayer alert.

    Start alerts carry the local start time, jamaat alerts go out ahead of the
    congregation so they announce the lead time instead.
    """
    title = venue_name or settings.DEFAULT_VENUE_NAME
    prayer_label = fire_time.event_name.capitalize()

    if fire_time.alert_kind == AlertKind.PRIMARY:
        body = f"{prayer_label} at {format_local_time(fire_time.fire_at, zone)}"
    else:
        lead_minutes = int(SECONDARY_ALERT_OFFSET.total_seconds() // 60)
        body = f"{prayer_label} Jamaat in {lead_minutes} mins"

    return PushPayload(
        push_address=push_address,
        title=title,
        body=body,
        routing_data={
            "type": "prayer",
            "prayer": fire_time.event_name,
            "timeType": AlertKind(fire_time.alert_kind).value,
            "mosqueName": title,
            "mosqueId": venue_id,
        },
    )


def build_announcement_payload(
    venue_id: str, venue_name: Optional[str], message: Optional[str]
) -> dict:
    """Title, body and data for a venue announcement multicast."""
    name = venue_name or settings.DEFAULT_VENUE_NAME
    return {
        "title": f"{name} posted",
        "body": message or "New announcement",
        "data": {"type": "announcement", "mosqueId": venue_id, "mosqueName": name},
    }
