from datetime import datetime, timezone


def to_naive_utc(value: datetime) -> datetime:
    """Stored datetimes are naive UTC; convert aware values to match"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
