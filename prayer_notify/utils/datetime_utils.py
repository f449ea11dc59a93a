from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from prayer_notify.config.settings import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Aware UTC datetime; naive input is taken to already be UTC, as stored in the DB."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: datetime) -> datetime:
    """Naive UTC datetime for DATETIME columns."""
    return to_utc(dt).replace(tzinfo=None)


def schedule_zone() -> ZoneInfo:
    """Civil timezone venues publish their prayer timetables in."""
    return ZoneInfo(settings.SCHEDULE_TIMEZONE)


def civil_to_utc(day: date, wall_time: str, zone: Optional[ZoneInfo] = None) -> datetime:
    """
    Resolve a timetable entry such as ``"05:42"`` on ``day`` to an aware UTC instant.

    Args:
        day: Civil date of the timetable
        wall_time: 24-hour ``HH:MM`` as published by the venue
        zone: Civil timezone (default: SCHEDULE_TIMEZONE)
    """
    local = datetime.combine(day, time.fromisoformat(wall_time), zone or schedule_zone())
    return local.astimezone(timezone.utc)


def current_day_key(now: datetime, zone: Optional[ZoneInfo] = None) -> date:
    """
    Civil date used to look up a venue's timetable.

    Only this lookup goes through the civil zone; instants are compared in UTC.
    """
    if now.tzinfo is None:
        raise ValueError("Input datetime must be timezone-aware")
    return now.astimezone(zone or schedule_zone()).date()


def format_local_time(dt: datetime, zone: Optional[ZoneInfo] = None) -> str:
    """24-hour HH:MM wall-clock time in the civil zone."""
    return to_utc(dt).astimezone(zone or schedule_zone()).strftime("%H:%M")
