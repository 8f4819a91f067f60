# trapcam/models/types.py
"""
Column types shared by every table.

UtcDateTime is the single place where timestamps are normalised: values are
stored as naive UTC and always come back as timezone-aware UTC datetimes.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_id() -> uuid.UUID:
    return uuid.uuid4()


class UtcDateTime(TypeDecorator):
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return as_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


def force_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read the wall-clock value as UTC, discarding any declared offset."""
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)
