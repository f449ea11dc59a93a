from datetime import date, datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prayer_notify.schemas.camel_base_model import CamelCaseBaseModel


class AlertKind(str, Enum):
    """Which of a prayer's two instants an alert belongs to.

    Values are the ``timeType`` strings the mobile client routes on.
    """

    PRIMARY = "start"
    SECONDARY = "jamaat"


class FrozenRecord(BaseModel):
    model_config = ConfigDict(frozen=True)


class EventTimes(FrozenRecord):
    """Published instants of one prayer, timezone-aware UTC."""

    primary_at: Optional[datetime] = None
    secondary_at: Optional[datetime] = None

    @field_validator("primary_at", "secondary_at")
    @classmethod
    def require_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            raise ValueError("prayer instants must be timezone-aware")
        return value


class ScheduleEntry(FrozenRecord):
    """A venue's timetable for one civil date, keyed by prayer name."""

    venue_id: str
    schedule_date: date
    events: Dict[str, EventTimes] = Field(default_factory=dict)


class EventPreference(FrozenRecord):
    alert_at_primary: bool = False
    alert_at_secondary: bool = False


class Preference(FrozenRecord):
    """A subscriber's notification settings for one venue."""

    subscriber_id: str
    venue_id: str
    posts: bool = False
    events: Dict[str, EventPreference] = Field(default_factory=dict)


class Subscriber(FrozenRecord):
    id: str
    push_address: Optional[str] = None


class Venue(FrozenRecord):
    id: str
    name: Optional[str] = None


class FireTime(FrozenRecord):
    event_name: str
    alert_kind: AlertKind
    fire_at: datetime


class PushPayload(CamelCaseBaseModel):
    """Body of a queued delivery job and of the dispatch endpoint."""

    push_address: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    routing_data: Optional[Dict[str, str]] = None

    @field_validator("routing_data", mode="before")
    @classmethod
    def stringify_routing_data(cls, value):
        # FCM data payloads only carry string values
        if value is None:
            return None
        return {str(k): "" if v is None else str(v) for k, v in dict(value).items()}

    def missing_fields(self) -> list:
        return [
            alias
            for alias, value in (
                ("pushAddress", self.push_address),
                ("title", self.title),
                ("body", self.body),
            )
            if not value
        ]


class ScheduleTodayRequest(CamelCaseBaseModel):
    push_address: Optional[str] = None


class AnnouncementRequest(CamelCaseBaseModel):
    venue_id: str
    venue_name: Optional[str] = None
    message: Optional[str] = None
