"""
Coarse "how long ago" formatting for refresh and progress timestamps.
"""
import math
from datetime import datetime, timezone
from typing import Optional, Union

from ..core.logging import logger


Timestamp = Union[datetime, int, float, str]

NO_HISTORY_TEXT = "No refresh history found."
INVALID_DATE_TEXT = "Invalid date"
FUTURE_TEXT = "just now"


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_epoch_millis(timestamp: Timestamp) -> Optional[float]:
    """
    Convert a supported timestamp into epoch milliseconds.

    Numbers are taken as epoch milliseconds, naive datetimes as UTC and
    strings as ISO-8601. Returns None when the value is not a valid instant.
    """
    if isinstance(timestamp, bool):
        return None

    if isinstance(timestamp, (int, float)):
        value = float(timestamp)
        return value if math.isfinite(value) else None

    if isinstance(timestamp, str):
        try:
            timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        except ValueError:
            return None

    if isinstance(timestamp, datetime):
        try:
            return ensure_aware(timestamp).timestamp() * 1000
        except (OverflowError, OSError, ValueError):
            return None

    return None


def _plural(count: int, unit: str) -> str:
    return f"1 {unit}" if count == 1 else f"{count} {unit}s"


def relative_time(
    timestamp: Optional[Timestamp],
    add_suffix: bool = False,
    now: Optional[datetime] = None
) -> str:
    """
    Render the age of a timestamp as a coarse human-readable bucket.

    Args:
        timestamp: Instant to describe (datetime, epoch millis or ISO string)
        add_suffix: Append " ago" to bucketed results
        now: Reference instant, defaults to the current UTC time

    Returns:
        "less than a minute", "{n} minute(s)", "{n} hour(s)" or "{n} day(s)",
        optionally suffixed. None, invalid and future timestamps map to fixed
        strings that never take a suffix.
    """
    if timestamp is None:
        return NO_HISTORY_TEXT

    then_ms = to_epoch_millis(timestamp)
    if then_ms is None:
        logger.error(f"Invalid timestamp provided: {timestamp!r}")
        return INVALID_DATE_TEXT

    now_ms = to_epoch_millis(now or utc_now())
    diff_ms = now_ms - then_ms

    if diff_ms < 0:
        logger.warning(f"Timestamp is in the future: {timestamp!r}")
        return FUTURE_TEXT

    minutes = int(diff_ms // 1000) // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        text = _plural(days, "day")
    elif hours > 0:
        text = _plural(hours, "hour")
    elif minutes > 0:
        text = _plural(minutes, "minute")
    else:
        text = "less than a minute"

    return f"{text} ago" if add_suffix else text
