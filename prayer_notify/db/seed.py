from datetime import date
from typing import Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_notify.utils.datetime_utils import (
    civil_to_utc,
    current_day_key,
    to_naive_utc,
    utc_now,
)
from prayer_notify.utils.logging import get_logger

from .models import PrayerTime, Venue

logger = get_logger()

# Local (start, jamaat) wall-clock times of a typical winter day
DEMO_TIMETABLE: Dict[str, Tuple[str, Optional[str]]] = {
    "fajr": ("06:12", "06:45"),
    "sunrise": ("07:55", None),
    "dhuhr": ("12:10", "12:45"),
    "asr": ("14:05", "14:30"),
    "maghrib": ("16:20", "16:25"),
    "isha": ("17:55", "19:30"),
}


async def seed_demo_timetable(
    db_session: AsyncSession,
    venue_id: str = "demo-mosque",
    venue_name: str = "Demo Mosque",
    day: Optional[date] = None,
) -> int:
    """
    Publish DEMO_TIMETABLE for one venue and day, skipping prayers already present.

    Returns:
        int: Number of prayer rows added
    """
    day = day or current_day_key(utc_now())

    if await db_session.get(Venue, venue_id) is None:
        db_session.add(Venue(id=venue_id, name=venue_name))

    result = await db_session.execute(
        select(PrayerTime.prayer_name).where(
            PrayerTime.venue_id == venue_id, PrayerTime.schedule_date == day
        )
    )
    existing = set(result.scalars().all())

    rows = [
        PrayerTime(
            venue_id=venue_id,
            schedule_date=day,
            prayer_name=prayer,
            start_at=to_naive_utc(civil_to_utc(day, start)),
            jamaat_at=to_naive_utc(civil_to_utc(day, jamaat)) if jamaat else None,
        )
        for prayer, (start, jamaat) in DEMO_TIMETABLE.items()
        if prayer not in existing
    ]
    db_session.add_all(rows)
    await db_session.commit()

    logger.info(f"Seeded {len(rows)} prayer times for {venue_id} on {day}")
    return len(rows)

