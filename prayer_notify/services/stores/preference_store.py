from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from prayer_notify.db.models import NotificationSetting
from prayer_notify.schemas.prayer_schemas import EventPreference, Preference
from prayer_notify.services.stores.base import PreferenceStore
from prayer_notify.utils.errors import DatabaseError


class SqlPreferenceStore(PreferenceStore):
    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_preference(
        self, subscriber_id: str, venue_id: str
    ) -> Optional[Preference]:
        try:
            result = await self.db.execute(
                select(NotificationSetting)
                .options(selectinload(NotificationSetting.prayer_alerts))
                .where(
                    NotificationSetting.subscriber_id == subscriber_id,
                    NotificationSetting.venue_id == venue_id,
                )
                .execution_options(populate_existing=True)
            )
            setting = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError(
                f"Failed to load notification settings for {subscriber_id}/{venue_id}: {e}",
                "PREFERENCE_READ_ERROR",
            ) from e

        if setting is None:
            return None

        return Preference(
            subscriber_id=subscriber_id,
            venue_id=venue_id,
            posts=bool(setting.posts),
            events={
                alert.prayer_name: EventPreference(
                    alert_at_primary=bool(alert.start),
                    alert_at_secondary=bool(alert.jamaat),
                )
                for alert in setting.prayer_alerts
            },
        )
