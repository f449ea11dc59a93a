import pytest
from datetime import timedelta

from sqlalchemy import event

from prayer_notify.db import db as db_module
from prayer_notify.db.models import Venue as VenueRow
from prayer_notify.db.seed import DEMO_TIMETABLE, seed_demo_timetable
from prayer_notify.schemas.prayer_schemas import EventPreference, Subscriber
from prayer_notify.services.prayer_notifications import (
    build_prayer_notification_scheduler,
)
from prayer_notify.services.stores import (
    SqlDeviceRegistry,
    SqlPreferenceStore,
    SqlScheduleStore,
    SqlVenueStore,
)

from conftest import (
    LONDON,
    PUSH_TOKEN,
    SUBSCRIBER_ID,
    TODAY,
    VENUE_ID,
    VENUE_NAME,
    FixedClock,
    at,
)


class TestSqlScheduleStore:
    @pytest.mark.asyncio
    async def test_loads_day_as_aware_utc(self, seeded_db):
        entry = await SqlScheduleStore(seeded_db).get_schedule(VENUE_ID, TODAY)

        assert entry.venue_id == VENUE_ID
        assert entry.schedule_date == TODAY
        assert set(entry.events) == {"fajr", "dhuhr"}
        assert entry.events["fajr"].primary_at == at(6, 0)
        assert entry.events["dhuhr"].secondary_at == at(13, 0)

    @pytest.mark.asyncio
    async def test_unpublished_day_is_none(self, seeded_db):
        store = SqlScheduleStore(seeded_db)

        assert await store.get_schedule(VENUE_ID, TODAY + timedelta(days=1)) is None
        assert await store.get_schedule("mosque-2", TODAY) is None


class TestSqlPreferenceStore:
    @pytest.mark.asyncio
    async def test_loads_prayer_flags(self, seeded_db):
        preference = await SqlPreferenceStore(seeded_db).get_preference(
            SUBSCRIBER_ID, VENUE_ID
        )

        assert preference.posts is True
        assert preference.events == {
            "fajr": EventPreference(alert_at_primary=True),
            "dhuhr": EventPreference(alert_at_secondary=True),
        }

    @pytest.mark.asyncio
    async def test_settings_without_prayer_rows(self, seeded_db):
        preference = await SqlPreferenceStore(seeded_db).get_preference(
            "user-2", VENUE_ID
        )

        assert preference.events == {}

    @pytest.mark.asyncio
    async def test_no_settings_is_none(self, seeded_db):
        store = SqlPreferenceStore(seeded_db)

        assert await store.get_preference(SUBSCRIBER_ID, "mosque-2") is None


class TestSqlDeviceRegistry:
    @pytest.mark.asyncio
    async def test_lists_subscribers_with_optional_tokens(self, seeded_db):
        subscribers = await SqlDeviceRegistry(seeded_db).list_subscribers()

        assert subscribers == [
            Subscriber(id=SUBSCRIBER_ID, push_address=PUSH_TOKEN),
            Subscriber(id="user-2", push_address=None),
        ]

    @pytest.mark.asyncio
    async def test_get_push_address(self, seeded_db):
        registry = SqlDeviceRegistry(seeded_db)

        assert await registry.get_push_address(SUBSCRIBER_ID) == PUSH_TOKEN
        assert await registry.get_push_address("user-2") is None
        assert await registry.get_push_address("unknown") is None


class TestSqlVenueStore:
    @pytest.mark.asyncio
    async def test_venue_lookups(self, seeded_db):
        store = SqlVenueStore(seeded_db)

        venues = await store.list_venues()
        assert [(v.id, v.name) for v in venues] == [
            (VENUE_ID, VENUE_NAME),
            ("mosque-2", None),
        ]
        assert (await store.get_venue(VENUE_ID)).name == VENUE_NAME
        assert await store.get_venue("unknown") is None

    @pytest.mark.asyncio
    async def test_follow_graph(self, seeded_db):
        store = SqlVenueStore(seeded_db)

        assert await store.list_followed_venue_ids(SUBSCRIBER_ID) == [VENUE_ID]
        assert await store.list_follower_ids(VENUE_ID) == [SUBSCRIBER_ID, "user-2"]
        assert await store.list_follower_ids("mosque-2") == []


class TestSqlBackedSweep:
    @pytest.mark.asyncio
    async def test_global_sweep_against_database(
        self, seeded_db, task_scheduler, fake_tasks_client
    ):
        scheduler = build_prayer_notification_scheduler(seeded_db, task_scheduler)
        scheduler.clock = FixedClock(at(5, 0))
        scheduler.zone = LONDON

        report = await scheduler.run_global_sweep()

        assert report.venues_scanned == 2
        assert report.created == 2
        assert report.failed == 0
        assert len(fake_tasks_client.tasks) == 2

    @pytest.mark.asyncio
    async def test_targeted_sweep_against_database(
        self, seeded_db, task_scheduler, fake_tasks_client
    ):
        scheduler = build_prayer_notification_scheduler(seeded_db, task_scheduler)
        scheduler.clock = FixedClock(at(6, 15))
        scheduler.zone = LONDON

        report = await scheduler.run_targeted_sweep(SUBSCRIBER_ID, PUSH_TOKEN)

        # Fajr start has passed, Dhuhr jamaat alert remains
        assert report.created == 1
        assert report.failed == 0

    @pytest.mark.asyncio
    async def test_dropped_connection_only_fails_one_venue(
        self, file_engine, file_seeded_db, task_scheduler, fake_tasks_client
    ):
        file_seeded_db.add(VenueRow(id="a-flaky", name="Flaky Mosque"))
        await file_seeded_db.commit()
        dropped = []

        @event.listens_for(file_engine.sync_engine, "before_cursor_execute")
        def drop_connection_once(conn, cursor, statement, parameters, context, many):
            if "prayer_times" in statement and "a-flaky" in parameters and not dropped:
                dropped.append(statement)
                raise conn.dialect.loaded_dbapi.OperationalError("connection lost")

        @event.listens_for(file_engine.sync_engine, "handle_error")
        def flag_disconnect(exception_context):
            if dropped:
                exception_context.is_disconnect = True

        scheduler = build_prayer_notification_scheduler(file_seeded_db, task_scheduler)
        scheduler.clock = FixedClock(at(5, 0))
        scheduler.zone = LONDON

        report = await scheduler.run_global_sweep()

        assert len(dropped) == 1
        assert report.venues_scanned == 3
        assert report.failed == 1
        assert report.created == 2
        assert len(fake_tasks_client.tasks) == 2


class TestDemoSeed:
    @pytest.mark.asyncio
    async def test_seeds_timetable_in_civil_time(self, db_session):
        summer_day = TODAY.replace(month=7, day=1)
        added = await seed_demo_timetable(db_session, day=summer_day)
        entry = await SqlScheduleStore(db_session).get_schedule(
            "demo-mosque", summer_day
        )

        assert added == len(DEMO_TIMETABLE)
        # 06:12 BST is 05:12 UTC
        assert entry.events["fajr"].primary_at.hour == 5
        assert entry.events["fajr"].primary_at.minute == 12
        assert entry.events["sunrise"].secondary_at is None

    @pytest.mark.asyncio
    async def test_reseeding_adds_nothing(self, db_session):
        await seed_demo_timetable(db_session, day=TODAY)

        assert await seed_demo_timetable(db_session, day=TODAY) == 0

    @pytest.mark.asyncio
    async def test_reset_db_recreates_and_seeds(
        self, monkeypatch, test_engine, session_factory, seeded_db
    ):
        monkeypatch.setattr(db_module, "engine", test_engine)
        monkeypatch.setattr(db_module, "AsyncSessionLocal", session_factory)

        await db_module.reset_db()

        async with session_factory() as session:
            assert await session.get(VenueRow, VENUE_ID) is None
            assert await session.get(VenueRow, "demo-mosque") is not None
