from typing import List, Optional
from datetime import datetime, date
import uuid
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    UniqueConstraint,
    DateTime,
    Date,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


# Base model with common audit fields
class AuditMixin:
    """Mixin for common audit fields"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )


# Models
class Venue(Base, AuditMixin):
    """A mosque publishing a daily prayer timetable."""

    __tablename__ = "venues"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[Optional[str]] = mapped_column(String(255))

    prayer_times: Mapped[List["PrayerTime"]] = relationship(
        back_populates="venue", cascade="all, delete-orphan"
    )
    followers: Mapped[List["VenueFollow"]] = relationship(
        back_populates="venue", cascade="all, delete-orphan"
    )


class PrayerTime(Base, AuditMixin):
    """One prayer of one venue's timetable for one civil date.

    ``start_at`` and ``jamaat_at`` are naive UTC instants.
    """

    __tablename__ = "prayer_times"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    venue_id: Mapped[str] = mapped_column(
        ForeignKey("venues.id", ondelete="CASCADE"), nullable=False
    )
    schedule_date: Mapped[date] = mapped_column(Date, nullable=False)
    prayer_name: Mapped[str] = mapped_column(String(32), nullable=False)
    start_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    jamaat_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    venue: Mapped["Venue"] = relationship(back_populates="prayer_times")

    __table_args__ = (
        UniqueConstraint(
            "venue_id", "schedule_date", "prayer_name", name="uq_prayer_time_day"
        ),
        Index("ix_prayer_times_venue_date", "venue_id", "schedule_date"),
    )


class Subscriber(Base, AuditMixin):
    __tablename__ = "subscribers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    # Current FCM registration token, None when the device never registered
    push_token: Mapped[Optional[str]] = mapped_column(String(4096))

    follows: Mapped[List["VenueFollow"]] = relationship(
        back_populates="subscriber", cascade="all, delete-orphan"
    )


class VenueFollow(Base, AuditMixin):
    __tablename__ = "venue_follows"

    subscriber_id: Mapped[str] = mapped_column(
        ForeignKey("subscribers.id", ondelete="CASCADE"), primary_key=True
    )
    venue_id: Mapped[str] = mapped_column(
        ForeignKey("venues.id", ondelete="CASCADE"), primary_key=True
    )

    subscriber: Mapped["Subscriber"] = relationship(back_populates="follows")
    venue: Mapped["Venue"] = relationship(back_populates="followers")


class NotificationSetting(Base, AuditMixin):
    """Per (subscriber, venue) notification document.

    Its presence is what makes a subscriber eligible for a venue's alerts.
    """

    __tablename__ = "notification_settings"

    subscriber_id: Mapped[str] = mapped_column(
        ForeignKey("subscribers.id", ondelete="CASCADE"), primary_key=True
    )
    venue_id: Mapped[str] = mapped_column(
        ForeignKey("venues.id", ondelete="CASCADE"), primary_key=True
    )
    posts: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    prayer_alerts: Mapped[List["PrayerAlertSetting"]] = relationship(
        back_populates="notification_setting",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PrayerAlertSetting(Base):
    __tablename__ = "prayer_alert_settings"

    subscriber_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    venue_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    prayer_name: Mapped[str] = mapped_column(String(32), primary_key=True)
    start: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    jamaat: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    notification_setting: Mapped["NotificationSetting"] = relationship(
        back_populates="prayer_alerts"
    )

    __table_args__ = (
        ForeignKeyConstraint(
            ["subscriber_id", "venue_id"],
            ["notification_settings.subscriber_id", "notification_settings.venue_id"],
            ondelete="CASCADE",
        ),
    )
