import pytest
from datetime import date, datetime, timezone
from typing import AsyncGenerator, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

import pytest_asyncio
from fastapi.testclient import TestClient
from google.api_core.exceptions import AlreadyExists
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from prayer_notify.db.models import (
    Base,
    NotificationSetting,
    PrayerAlertSetting,
    PrayerTime,
    Subscriber as SubscriberRow,
    Venue as VenueRow,
    VenueFollow,
)
from prayer_notify.schemas.prayer_schemas import (
    EventPreference,
    EventTimes,
    Preference,
    PushPayload,
    ScheduleEntry,
    Subscriber,
    Venue,
)
from prayer_notify.main import create_application
from prayer_notify.routers.prayer_notifications import (
    get_prayer_notification_scheduler,
)
from prayer_notify.services.push_gateway import get_push_gateway
from prayer_notify.services.prayer_notifications import (
    CloudTasksScheduler,
    PrayerNotificationScheduler,
)
from prayer_notify.services.stores import (
    DeviceRegistry,
    PreferenceStore,
    ScheduleStore,
    VenueStore,
)
from prayer_notify.utils.errors import PushDeliveryError


# Test database setup
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

LONDON = ZoneInfo("Europe/London")
# January keeps London on GMT, so local wall-clock times equal UTC
TODAY = date(2026, 1, 15)
VENUE_ID = "mosque-1"
VENUE_NAME = "East London Mosque"
SUBSCRIBER_ID = "user-1"
PUSH_TOKEN = "fcm-token-user-1"


def at(hour: int, minute: int = 0, day: date = TODAY) -> datetime:
    """Aware UTC instant on the test day."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


class FixedClock:
    """Clock whose current instant can be moved between sweeps."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# In-memory store implementations
class InMemoryScheduleStore(ScheduleStore):
    def __init__(self, entries: Optional[List[ScheduleEntry]] = None):
        self.entries = {(e.venue_id, e.schedule_date): e for e in entries or []}
        self.fail_for: set = set()

    async def get_schedule(self, venue_id, schedule_date):
        if venue_id in self.fail_for:
            raise RuntimeError(f"schedule store unavailable for {venue_id}")
        return self.entries.get((venue_id, schedule_date))


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(self, preferences: Optional[List[Preference]] = None):
        self.preferences = {
            (p.subscriber_id, p.venue_id): p for p in preferences or []
        }
        self.fail_for: set = set()

    async def get_preference(self, subscriber_id, venue_id):
        if subscriber_id in self.fail_for:
            raise RuntimeError(f"preference store unavailable for {subscriber_id}")
        return self.preferences.get((subscriber_id, venue_id))


class InMemoryDeviceRegistry(DeviceRegistry):
    def __init__(self, subscribers: Optional[List[Subscriber]] = None):
        self.subscribers = {s.id: s for s in subscribers or []}

    async def list_subscribers(self):
        return list(self.subscribers.values())

    async def get_push_address(self, subscriber_id):
        subscriber = self.subscribers.get(subscriber_id)
        return subscriber.push_address if subscriber else None


class InMemoryVenueStore(VenueStore):
    def __init__(
        self,
        venues: Optional[List[Venue]] = None,
        follows: Optional[List[Tuple[str, str]]] = None,
    ):
        self.venues = {v.id: v for v in venues or []}
        self.follows = list(follows or [])

    async def list_venues(self):
        return list(self.venues.values())

    async def get_venue(self, venue_id):
        return self.venues.get(venue_id)

    async def list_followed_venue_ids(self, subscriber_id):
        return [v for s, v in self.follows if s == subscriber_id]

    async def list_follower_ids(self, venue_id):
        return [s for s, v in self.follows if v == venue_id]


class FakeCloudTasksClient:
    """Stands in for CloudTasksAsyncClient, enforcing unique task names."""

    def __init__(self):
        self.tasks: Dict[str, object] = {}
        self.create_calls = 0
        self.error: Optional[Exception] = None

    async def create_task(self, parent, task):
        self.create_calls += 1
        if self.error is not None:
            raise self.error
        if task.name in self.tasks:
            raise AlreadyExists(f"Requested entity already exists: {task.name}")
        self.tasks[task.name] = task
        return task


class FakePushGateway:
    def __init__(self):
        self.sent: List[PushPayload] = []
        self.multicasts: List[dict] = []
        self.error: Optional[Exception] = None

    async def send(self, payload: PushPayload) -> str:
        if self.error is not None:
            raise PushDeliveryError(f"Failed: {self.error}") from self.error
        self.sent.append(payload)
        return f"projects/test/messages/{len(self.sent)}"

    async def send_multicast(self, tokens, title, body, data=None):
        self.multicasts.append(
            {"tokens": list(tokens), "title": title, "body": body, "data": data}
        )
        return {"success_count": len(tokens), "failure_count": 0}


# Database fixtures
@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def seed_sample_data(db_session: AsyncSession) -> None:
    """
    One venue with today's Fajr and Dhuhr, two subscribers following it.

    user-1 has a token and wants the Fajr start and Dhuhr jamaat alerts plus
    posts; user-2 follows without a token.
    """
    db_session.add_all(
        [
            VenueRow(id=VENUE_ID, name=VENUE_NAME),
            VenueRow(id="mosque-2", name=None),
            SubscriberRow(id=SUBSCRIBER_ID, push_token=PUSH_TOKEN),
            SubscriberRow(id="user-2", push_token=None),
        ]
    )
    await db_session.flush()

    db_session.add_all(
        [
            PrayerTime(
                venue_id=VENUE_ID,
                schedule_date=TODAY,
                prayer_name="fajr",
                start_at=datetime(2026, 1, 15, 6, 0),
                jamaat_at=datetime(2026, 1, 15, 6, 30),
            ),
            PrayerTime(
                venue_id=VENUE_ID,
                schedule_date=TODAY,
                prayer_name="dhuhr",
                start_at=datetime(2026, 1, 15, 12, 15),
                jamaat_at=datetime(2026, 1, 15, 13, 0),
            ),
            VenueFollow(subscriber_id=SUBSCRIBER_ID, venue_id=VENUE_ID),
            VenueFollow(subscriber_id="user-2", venue_id=VENUE_ID),
            NotificationSetting(
                subscriber_id=SUBSCRIBER_ID,
                venue_id=VENUE_ID,
                posts=True,
                prayer_alerts=[
                    PrayerAlertSetting(prayer_name="fajr", start=True, jamaat=False),
                    PrayerAlertSetting(prayer_name="dhuhr", start=False, jamaat=True),
                ],
            ),
            NotificationSetting(subscriber_id="user-2", venue_id=VENUE_ID, posts=True),
        ]
    )
    await db_session.commit()


@pytest_asyncio.fixture
async def seeded_db(db_session: AsyncSession) -> AsyncSession:
    await seed_sample_data(db_session)
    return db_session


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """File-backed database, so a dropped connection can reconnect to the same data."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'prayer_notify.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def file_seeded_db(file_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(
        bind=file_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_maker() as session:
        await seed_sample_data(session)
        yield session


# Service fixtures
@pytest.fixture
def fake_tasks_client() -> FakeCloudTasksClient:
    return FakeCloudTasksClient()


@pytest.fixture
def task_scheduler(fake_tasks_client) -> CloudTasksScheduler:
    return CloudTasksScheduler(
        client=fake_tasks_client,
        project="test-project",
        location="europe-west2",
        queue="prayerNotifications",
        dispatch_url="https://prayer-notify.test/api/v1/notifications/dispatch",
    )


@pytest.fixture
def fake_gateway() -> FakePushGateway:
    return FakePushGateway()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(at(5, 0))


@pytest.fixture
def schedule_entry() -> ScheduleEntry:
    return ScheduleEntry(
        venue_id=VENUE_ID,
        schedule_date=TODAY,
        events={
            "fajr": EventTimes(primary_at=at(6, 0), secondary_at=at(6, 30)),
            "dhuhr": EventTimes(primary_at=at(12, 15), secondary_at=at(13, 0)),
        },
    )


@pytest.fixture
def stores(schedule_entry):
    """In-memory stores holding the same data as ``seeded_db``."""
    return {
        "schedule_store": InMemoryScheduleStore([schedule_entry]),
        "preference_store": InMemoryPreferenceStore(
            [
                Preference(
                    subscriber_id=SUBSCRIBER_ID,
                    venue_id=VENUE_ID,
                    posts=True,
                    events={
                        "fajr": EventPreference(alert_at_primary=True),
                        "dhuhr": EventPreference(alert_at_secondary=True),
                    },
                ),
                Preference(subscriber_id="user-2", venue_id=VENUE_ID, posts=True),
            ]
        ),
        "device_registry": InMemoryDeviceRegistry(
            [
                Subscriber(id=SUBSCRIBER_ID, push_address=PUSH_TOKEN),
                Subscriber(id="user-2", push_address=None),
            ]
        ),
        "venue_store": InMemoryVenueStore(
            [Venue(id=VENUE_ID, name=VENUE_NAME)],
            follows=[(SUBSCRIBER_ID, VENUE_ID), ("user-2", VENUE_ID)],
        ),
    }


@pytest.fixture
def prayer_scheduler(stores, task_scheduler, clock) -> PrayerNotificationScheduler:
    return PrayerNotificationScheduler(
        **stores, task_scheduler=task_scheduler, clock=clock, zone=LONDON
    )


@pytest.fixture
def client(fake_gateway, prayer_scheduler) -> TestClient:
    """API client with the push gateway and scheduler swapped for fakes."""
    application = create_application()
    application.dependency_overrides[get_push_gateway] = lambda: fake_gateway
    application.dependency_overrides[get_prayer_notification_scheduler] = (
        lambda: prayer_scheduler
    )
    return TestClient(application)
