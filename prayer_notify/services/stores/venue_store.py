from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_notify.db.models import Venue as VenueRow, VenueFollow
from prayer_notify.schemas.prayer_schemas import Venue
from prayer_notify.services.stores.base import VenueStore
from prayer_notify.utils.errors import DatabaseError


class SqlVenueStore(VenueStore):
    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def list_venues(self) -> List[Venue]:
        try:
            result = await self.db.execute(
                select(VenueRow.id, VenueRow.name).order_by(VenueRow.id)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError(f"Failed to list venues: {e}", "VENUE_READ_ERROR") from e

        return [Venue(id=row.id, name=row.name) for row in rows]

    async def get_venue(self, venue_id: str) -> Optional[Venue]:
        try:
            result = await self.db.execute(
                select(VenueRow.id, VenueRow.name).where(VenueRow.id == venue_id)
            )
            row = result.first()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError(
                f"Failed to load venue {venue_id}: {e}", "VENUE_READ_ERROR"
            ) from e

        return Venue(id=row.id, name=row.name) if row else None

    async def list_followed_venue_ids(self, subscriber_id: str) -> List[str]:
        try:
            result = await self.db.execute(
                select(VenueFollow.venue_id)
                .where(VenueFollow.subscriber_id == subscriber_id)
                .order_by(VenueFollow.venue_id)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError(
                f"Failed to list followed venues for {subscriber_id}: {e}",
                "FOLLOW_READ_ERROR",
            ) from e

    async def list_follower_ids(self, venue_id: str) -> List[str]:
        try:
            result = await self.db.execute(
                select(VenueFollow.subscriber_id)
                .where(VenueFollow.venue_id == venue_id)
                .order_by(VenueFollow.subscriber_id)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError(
                f"Failed to list followers of {venue_id}: {e}", "FOLLOW_READ_ERROR"
            ) from e
