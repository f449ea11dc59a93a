from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from prayer_notify.schemas.prayer_schemas import (
    Preference,
    ScheduleEntry,
    Subscriber,
    Venue,
)


class ScheduleStore(ABC):
    """Read access to venues' published daily timetables."""

    @abstractmethod
    async def get_schedule(
        self, venue_id: str, schedule_date: date
    ) -> Optional[ScheduleEntry]:
        """Timetable for a venue on a civil date, or None if not published."""


class PreferenceStore(ABC):
    """Read access to per (subscriber, venue) notification settings."""

    @abstractmethod
    async def get_preference(
        self, subscriber_id: str, venue_id: str
    ) -> Optional[Preference]:
        """Settings document for the pair, or None if the subscriber has none."""


class DeviceRegistry(ABC):
    """Read access to subscribers and their current push addresses."""

    @abstractmethod
    async def list_subscribers(self) -> List[Subscriber]:
        pass

    @abstractmethod
    async def get_push_address(self, subscriber_id: str) -> Optional[str]:
        pass


class VenueStore(ABC):
    """Read access to the venue catalogue and the follow graph."""

    @abstractmethod
    async def list_venues(self) -> List[Venue]:
        pass

    @abstractmethod
    async def get_venue(self, venue_id: str) -> Optional[Venue]:
        pass

    @abstractmethod
    async def list_followed_venue_ids(self, subscriber_id: str) -> List[str]:
        pass

    @abstractmethod
    async def list_follower_ids(self, venue_id: str) -> List[str]:
        pass
