from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_notify.db.models import Subscriber as SubscriberRow
from prayer_notify.schemas.prayer_schemas import Subscriber
from prayer_notify.services.stores.base import DeviceRegistry
from prayer_notify.utils.errors import DatabaseError


class SqlDeviceRegistry(DeviceRegistry):
    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def list_subscribers(self) -> List[Subscriber]:
        try:
            result = await self.db.execute(
                select(SubscriberRow.id, SubscriberRow.push_token).order_by(
                    SubscriberRow.id
                )
            )
            rows = result.all()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError(
                f"Failed to list subscribers: {e}", "DEVICE_READ_ERROR"
            ) from e

        return [
            Subscriber(id=row.id, push_address=row.push_token or None) for row in rows
        ]

    async def get_push_address(self, subscriber_id: str) -> Optional[str]:
        try:
            result = await self.db.execute(
                select(SubscriberRow.push_token).where(SubscriberRow.id == subscriber_id)
            )
            token = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError(
                f"Failed to load push token for {subscriber_id}: {e}",
                "DEVICE_READ_ERROR",
            ) from e

        return token or None
