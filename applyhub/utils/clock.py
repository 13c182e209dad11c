"""Naive-UTC timestamps. All DateTime columns store UTC without tzinfo."""
from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Mark a stored naive-UTC datetime as UTC so it serializes with an offset."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Response field type: naive values from the DB go out as UTC instants
UtcDateTime = Annotated[datetime, AfterValidator(as_utc)]
