from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_notify.db.models import PrayerTime
from prayer_notify.schemas.prayer_schemas import EventTimes, ScheduleEntry
from prayer_notify.services.stores.base import ScheduleStore
from prayer_notify.utils.datetime_utils import to_utc
from prayer_notify.utils.errors import DatabaseError


class SqlScheduleStore(ScheduleStore):
    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_schedule(
        self, venue_id: str, schedule_date: date
    ) -> Optional[ScheduleEntry]:
        try:
            result = await self.db.execute(
                select(PrayerTime).where(
                    PrayerTime.venue_id == venue_id,
                    PrayerTime.schedule_date == schedule_date,
                )
            )
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseError(
                f"Failed to load timetable for venue {venue_id} on {schedule_date}: {e}",
                "SCHEDULE_READ_ERROR",
            ) from e

        if not rows:
            return None

        events = {
            row.prayer_name: EventTimes(
                primary_at=to_utc(row.start_at) if row.start_at else None,
                secondary_at=to_utc(row.jamaat_at) if row.jamaat_at else None,
            )
            for row in rows
        }
        return ScheduleEntry(
            venue_id=venue_id, schedule_date=schedule_date, events=events
        )
