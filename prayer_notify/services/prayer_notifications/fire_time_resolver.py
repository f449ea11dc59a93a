from datetime import datetime, timedelta
from typing import List

from prayer_notify.schemas.prayer_schemas import (
    AlertKind,
    FireTime,
    Preference,
    ScheduleEntry,
)

# Jamaat alerts go out this long before the congregation time
SECONDARY_ALERT_OFFSET = timedelta(minutes=30)


def resolve(
    schedule_entry: ScheduleEntry, preference: Preference, now: datetime
) -> List[FireTime]:
    """
    Compute the future delivery instants a subscriber wants for one venue-day.

    An alert is emitted only when the prayer appears in both the timetable and
    the preference map, the flag for that alert kind is on, the instant is
    published and the resulting fire time is strictly after ``now``.

    Args:
        schedule_entry: The venue's timetable for the day
        preference: The subscriber's settings for the same venue
        now: Timezone-aware reference instant

    Returns:
        List[FireTime]: Zero or more alerts, at most one per (prayer, alert kind)
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    fire_times: List[FireTime] = []

    for event_name, event_pref in preference.events.items():
        times = schedule_entry.events.get(event_name)
        if times is None:
            continue

        if event_pref.alert_at_primary and times.primary_at is not None:
            if times.primary_at > now:
                fire_times.append(
                    FireTime(
                        event_name=event_name,
                        alert_kind=AlertKind.PRIMARY,
                        fire_at=times.primary_at,
                    )
                )

        if event_pref.alert_at_secondary and times.secondary_at is not None:
            candidate = times.secondary_at - SECONDARY_ALERT_OFFSET
            if candidate > now:
                fire_times.append(
                    FireTime(
                        event_name=event_name,
                        alert_kind=AlertKind.SECONDARY,
                        fire_at=candidate,
                    )
                )

    return fire_times
