from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ---------- Event ----------
class EventUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    start_time: datetime
    end_time: datetime
    location: Optional[str] = Field(default=None, max_length=255)
    category: Optional[str] = Field(default=None, max_length=100)
    capacity: int = Field(ge=1)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return _to_naive_utc(value)


class EventCreate(EventUpdate):
    # Defaults to the caller. New events always start unpublished.
    organizer_id: Optional[int] = Field(default=None, ge=1)


class EventOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    start_time: datetime
    end_time: datetime
    location: Optional[str]
    category: Optional[str]
    capacity: int
    published: bool
    organizer_id: int
    organizer_name: Optional[str]
    registration_count: int
    available_spots: int

    class Config:
        from_attributes = True
