from .base import DeviceRegistry, PreferenceStore, ScheduleStore, VenueStore
from .device_registry import SqlDeviceRegistry
from .preference_store import SqlPreferenceStore
from .schedule_store import SqlScheduleStore
from .venue_store import SqlVenueStore

__all__ = [
    "ScheduleStore",
    "PreferenceStore",
    "DeviceRegistry",
    "VenueStore",
    "SqlScheduleStore",
    "SqlPreferenceStore",
    "SqlDeviceRegistry",
    "SqlVenueStore",
]
