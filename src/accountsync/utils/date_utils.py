"""Date helpers. All timestamps are timezone-aware UTC."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


def from_epoch_ms(value: int | float | None) -> datetime | None:
    """Convert epoch milliseconds (the identity provider's format) to a datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)
