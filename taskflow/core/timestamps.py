"""Timestamp normalization shared by both storage adapters.

Every timestamp inside taskflow is a timezone-aware UTC ``datetime``. Adapters
convert at their boundary only:

- local store: ISO-8601 strings inside the JSON collection
- PocketBase: ``"YYYY-MM-DD HH:MM:SS.mmmZ"`` strings (its datetime format)
"""

from datetime import UTC, datetime

from dateutil import parser as dateutil_parser


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def normalize(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(value: object) -> datetime:
    """Parse a stored timestamp into an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings (``T`` or space separated, with or
    without ``Z``) and epoch milliseconds.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if isinstance(value, datetime):
        return normalize(value)
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    if isinstance(value, int | float):
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"Not a timestamp: {value!r}") from e
    if isinstance(value, str) and value.strip():
        try:
            return normalize(dateutil_parser.isoparse(value.strip()))
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Not a timestamp: {value!r}") from e
    raise ValueError(f"Not a timestamp: {value!r}")


def to_local(value: datetime) -> str:
    """Serialize a timestamp for the local JSON store."""
    return normalize(value).isoformat()


def to_remote(value: datetime) -> str:
    """Serialize a timestamp in PocketBase's datetime format."""
    return normalize(value).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3] + "Z"
