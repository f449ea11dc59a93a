from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from prayer_notify.schemas.prayer_schemas import ScheduleEntry, Venue
from prayer_notify.services.stores import (
    DeviceRegistry,
    PreferenceStore,
    ScheduleStore,
    SqlDeviceRegistry,
    SqlPreferenceStore,
    SqlScheduleStore,
    SqlVenueStore,
    VenueStore,
)
from prayer_notify.utils.datetime_utils import current_day_key, utc_now
from prayer_notify.utils.logging import get_logger

from .dedup_key import derive_key
from .fire_time_resolver import resolve
from .messages import build_prayer_payload
from .task_scheduler import CloudTasksScheduler, SubmitOutcome, SubmitResult


@dataclass
class SweepReport:
    """Counters for one sweep. Informational only, a sweep always completes."""

    venues_scanned: int = 0
    pairs_processed: int = 0
    created: int = 0
    already_exists: int = 0
    failed: int = 0
    skipped: int = 0

    def record(self, result: SubmitResult) -> None:
        if result.outcome == SubmitOutcome.CREATED:
            self.created += 1
        elif result.outcome == SubmitOutcome.ALREADY_EXISTS:
            self.already_exists += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict:
        return {to_camel(key): value for key, value in asdict(self).items()}


class PrayerNotificationScheduler:
    """
    Turns venue timetables and subscriber preferences into queued push alerts.

    Both entry points run the same resolve, derive, submit pipeline, so a
    re-run, a targeted re-sync and the daily sweep all land on the same task
    names and the queue drops the duplicates. Failures are contained to the
    item that raised them.
    """

    def __init__(
        self,
        schedule_store: ScheduleStore,
        preference_store: PreferenceStore,
        device_registry: DeviceRegistry,
        venue_store: VenueStore,
        task_scheduler: CloudTasksScheduler,
        clock: Optional[Callable[[], datetime]] = None,
        zone: Optional[ZoneInfo] = None,
    ):
        self.schedule_store = schedule_store
        self.preference_store = preference_store
        self.device_registry = device_registry
        self.venue_store = venue_store
        self.task_scheduler = task_scheduler
        self.clock = clock or utc_now
        self.zone = zone
        self.logger = get_logger()

    async def run_global_sweep(self) -> SweepReport:
        """Schedule today's alerts for every subscriber at every venue."""
        report = SweepReport()
        now = self.clock()
        day = current_day_key(now, self.zone)

        self.logger.info(f"Starting global prayer notification sweep for {day}")

        try:
            venues = await self.venue_store.list_venues()
            subscribers = await self.device_registry.list_subscribers()
        except Exception as e:
            self.logger.error(f"Global sweep could not load venues or subscribers: {e}")
            report.failed += 1
            return report

        reachable = [s for s in subscribers if s.push_address]
        if len(reachable) < len(subscribers):
            self.logger.debug(
                f"{len(subscribers) - len(reachable)} subscribers have no push token"
            )

        for venue in venues:
            report.venues_scanned += 1
            schedule = await self._load_schedule(venue.id, day, report)
            if schedule is None:
                continue

            for subscriber in reachable:
                await self._process_pair(
                    subscriber.id, subscriber.push_address, venue, schedule, now, report
                )

        self.logger.info(f"Global prayer notification sweep finished: {report.to_dict()}")
        return report

    async def run_targeted_sweep(
        self, subscriber_id: str, push_address: str
    ) -> SweepReport:
        """Schedule today's alerts for one subscriber across the venues they follow."""
        report = SweepReport()

        if not push_address:
            self.logger.warning(f"Targeted sweep for {subscriber_id} has no push token")
            report.skipped += 1
            return report

        now = self.clock()
        day = current_day_key(now, self.zone)

        try:
            venue_ids = await self.venue_store.list_followed_venue_ids(subscriber_id)
        except Exception as e:
            self.logger.error(f"Could not load followed venues for {subscriber_id}: {e}")
            report.failed += 1
            return report

        for venue_id in venue_ids:
            report.venues_scanned += 1

            try:
                venue = await self.venue_store.get_venue(venue_id) or Venue(id=venue_id)
            except Exception as e:
                self.logger.error(f"Could not load venue {venue_id}: {e}")
                report.failed += 1
                continue

            schedule = await self._load_schedule(venue_id, day, report)
            if schedule is None:
                continue

            await self._process_pair(
                subscriber_id, push_address, venue, schedule, now, report
            )

        self.logger.info(
            f"Targeted prayer notification sweep for {subscriber_id} finished: "
            f"{report.to_dict()}"
        )
        return report

    async def _load_schedule(
        self, venue_id: str, day, report: SweepReport
    ) -> Optional[ScheduleEntry]:
        try:
            schedule = await self.schedule_store.get_schedule(venue_id, day)
        except Exception as e:
            self.logger.error(f"Could not load timetable for {venue_id} on {day}: {e}")
            report.failed += 1
            return None

        if schedule is None:
            self.logger.debug(f"No timetable for {venue_id} on {day}")
            report.skipped += 1
        return schedule

    async def _process_pair(
        self,
        subscriber_id: str,
        push_address: str,
        venue: Venue,
        schedule: ScheduleEntry,
        now: datetime,
        report: SweepReport,
    ) -> None:
        report.pairs_processed += 1

        try:
            preference = await self.preference_store.get_preference(
                subscriber_id, venue.id
            )
        except Exception as e:
            self.logger.error(
                f"Could not load preferences for {subscriber_id}/{venue.id}: {e}"
            )
            report.failed += 1
            return

        if preference is None:
            report.skipped += 1
            return

        for fire_time in resolve(schedule, preference, now):
            try:
                key = derive_key(
                    push_address,
                    venue.id,
                    fire_time.event_name,
                    fire_time.alert_kind,
                    fire_time.fire_at,
                )
                payload = build_prayer_payload(
                    push_address, venue.id, venue.name, fire_time, self.zone
                )
            except Exception as e:
                self.logger.error(
                    f"Could not build alert {fire_time.event_name}/"
                    f"{fire_time.alert_kind.value} for {subscriber_id}: {e}"
                )
                report.failed += 1
                continue

            report.record(await self.task_scheduler.submit(key, payload, fire_time.fire_at))


def build_prayer_notification_scheduler(
    db_session: AsyncSession,
    task_scheduler: Optional[CloudTasksScheduler] = None,
) -> PrayerNotificationScheduler:
    """Wire the scheduler to the SQL stores sharing one session."""
    return PrayerNotificationScheduler(
        schedule_store=SqlScheduleStore(db_session),
        preference_store=SqlPreferenceStore(db_session),
        device_registry=SqlDeviceRegistry(db_session),
        venue_store=SqlVenueStore(db_session),
        task_scheduler=task_scheduler or CloudTasksScheduler(),
    )
