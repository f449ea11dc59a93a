import hashlib
import re
from datetime import datetime

from prayer_notify.schemas.prayer_schemas import AlertKind
from prayer_notify.utils.datetime_utils import to_utc

EVENT_KIND = "prayer"
TOKEN_HASH_LENGTH = 12
# Cloud Tasks task IDs: letters, digits, hyphens and underscores, at most 500 chars
MAX_COMPONENT_LENGTH = 64

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9-]")


def _digest(value: str, length: int) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]


def _component(value: str) -> str:
    """
    Make one key component safe for a task ID without losing injectivity.

    Underscore separates components, so it is treated as unsafe here too.
    Values that need rewriting, or are too long, get a digest of the raw
    value appended, which keeps "a.b" and "a-b" distinct.
    """
    safe = _UNSAFE_CHARS.sub("-", value)
    if safe == value and 0 < len(value) <= MAX_COMPONENT_LENGTH:
        return value
    return f"{safe[:48]}-{_digest(value, 8)}"


def derive_key(
    push_address: str,
    venue_id: str,
    event_name: str,
    alert_kind: AlertKind,
    fire_at: datetime,
) -> str:
    """
    Deterministic task name for one logical alert.

    Every trigger path (daily sweep, per-subscriber re-sync, manual trigger)
    must go through this function so the queue can collapse duplicates.
    The push token is hashed, never embedded.

    Args:
        push_address: Subscriber's FCM token
        venue_id: Venue the prayer belongs to
        event_name: Prayer name, e.g. "fajr"
        alert_kind: Start or jamaat alert
        fire_at: Timezone-aware delivery instant

    Returns:
        str: e.g. ``prayer_fajr_start_mosque-1_1a2b3c4d5e6f_1760594400``
    """
    if fire_at.tzinfo is None:
        raise ValueError("fire_at must be timezone-aware")

    epoch_seconds = int(to_utc(fire_at).timestamp())
    return "_".join(
        [
            EVENT_KIND,
            _component(event_name),
            AlertKind(alert_kind).value,
            _component(venue_id),
            _digest(push_address, TOKEN_HASH_LENGTH),
            str(epoch_seconds),
        ]
    )
