"""Time helpers. All timestamps are naive UTC, matching what SQLite stores."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def elapsed_ms(started: datetime, finished: datetime | None = None) -> int:
    finished = finished or utc_now()
    return int((finished - started).total_seconds() * 1000)
