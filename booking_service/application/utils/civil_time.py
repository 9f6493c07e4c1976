from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "America/Guayaquil"
DISPLAY_FORMAT = "%d/%m/%Y %H:%M:%S"


def parse_civil_datetime(text: str, tz: ZoneInfo) -> datetime:
    """
    Parse an ISO 8601 date or date-time into an absolute UTC instant.
    Values without an offset are wall-clock time in `tz`. Raises ValueError if unparseable.
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("empty date")
    parsed = datetime.fromisoformat(text.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed.astimezone(timezone.utc)


def format_civil(instant: datetime, tz: ZoneInfo) -> str:
    """Render an instant as dd/mm/yyyy HH:MM:SS wall-clock time in `tz`."""
    return as_utc(instant).astimezone(tz).strftime(DISPLAY_FORMAT)


def start_of_civil_day(now: datetime, tz: ZoneInfo) -> datetime:
    """Midnight of `now`'s calendar day in `tz`, as a UTC instant."""
    local = as_utc(now).astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # naive values come back from SQLite and are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
