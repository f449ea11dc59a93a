from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from prayer_notify.services.prayer_notifications.messages import (
    build_announcement_payload,
)
from prayer_notify.services.push_gateway import PushGateway, get_push_gateway
from prayer_notify.services.stores import (
    DeviceRegistry,
    PreferenceStore,
    SqlDeviceRegistry,
    SqlPreferenceStore,
    SqlVenueStore,
    VenueStore,
)
from prayer_notify.utils.logging import get_logger

logger = get_logger()


class AnnouncementNotificationService:
    """Fans a venue announcement out to followers who opted in to posts"""

    def __init__(
        self,
        venue_store: VenueStore,
        preference_store: PreferenceStore,
        device_registry: DeviceRegistry,
        gateway: PushGateway,
    ):
        self.venue_store = venue_store
        self.preference_store = preference_store
        self.device_registry = device_registry
        self.gateway = gateway

    async def collect_recipient_tokens(self, venue_id: str) -> List[str]:
        """
        Push tokens of followers with posts enabled for the venue.

        A follower whose settings or token cannot be read is logged and left out.
        """
        tokens: List[str] = []

        for subscriber_id in await self.venue_store.list_follower_ids(venue_id):
            try:
                preference = await self.preference_store.get_preference(
                    subscriber_id, venue_id
                )
                if not preference or not preference.posts:
                    continue

                token = await self.device_registry.get_push_address(subscriber_id)
            except Exception as e:
                logger.error(
                    f"Skipping follower {subscriber_id} of {venue_id}: {str(e)}"
                )
                continue

            if token and token not in tokens:
                tokens.append(token)

        return tokens

    async def notify_followers(
        self, venue_id: str, venue_name: Optional[str], message: Optional[str]
    ) -> Dict[str, Any]:
        if not venue_name:
            venue = await self.venue_store.get_venue(venue_id)
            venue_name = venue.name if venue else None

        tokens = await self.collect_recipient_tokens(venue_id)
        if not tokens:
            logger.info(f"No followers to notify for announcement at {venue_id}")
            return {"recipients": 0, "successCount": 0, "failureCount": 0}

        content = build_announcement_payload(venue_id, venue_name, message)
        counts = await self.gateway.send_multicast(
            tokens, content["title"], content["body"], content["data"]
        )

        logger.info(
            f"Announcement for {venue_id} sent to {counts['success_count']}/"
            f"{len(tokens)} devices"
        )
        return {
            "recipients": len(tokens),
            "successCount": counts["success_count"],
            "failureCount": counts["failure_count"],
        }


def get_announcement_notification_service(
    db_session: AsyncSession, gateway: Optional[PushGateway] = None
) -> AnnouncementNotificationService:
    """Create an AnnouncementNotificationService backed by the SQL stores"""
    return AnnouncementNotificationService(
        venue_store=SqlVenueStore(db_session),
        preference_store=SqlPreferenceStore(db_session),
        device_registry=SqlDeviceRegistry(db_session),
        gateway=gateway or get_push_gateway(),
    )
