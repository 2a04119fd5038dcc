from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """
    Treat naive datetimes read back from the store as UTC.

    SQLite drops tzinfo on the way in, PostgreSQL keeps it.
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def format_remaining(remaining: timedelta) -> str:
    """
    Render a cooldown as "2h 15m" / "40m", rounding up to the next minute.
    """
    total_minutes = max(int((remaining.total_seconds() + 59) // 60), 1)
    hours, minutes = divmod(total_minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
