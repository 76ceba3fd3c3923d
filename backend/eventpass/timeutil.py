"""UTC helpers shared by the services.

All timestamps are stored and compared in UTC. SQLite hands back naive
datetimes, so anything read from the database goes through ``as_utc``.
"""
from datetime import datetime

import pytz


def utcnow() -> datetime:
    return datetime.now(pytz.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def to_iso(value: datetime) -> str:
    return as_utc(value).isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``.

    Raises ValueError on anything else.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(value))
