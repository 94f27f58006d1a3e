import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from event_registration.models.events import MAX_CAPACITY


# ---------- Event ----------
class EventCreate(BaseModel):
    title: str = Field(min_length=3, max_length=255)
    starts_at: datetime
    ends_at: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=255)
    capacity: int = Field(ge=1, le=MAX_CAPACITY)

    @field_validator("title", "location", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v

    @field_validator("capacity", mode="before")
    @classmethod
    def whole_number_capacity(cls, v):
        # JSON numbers only: 10 and 10.0 pass, true, "10" and 10.5 do not
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("capacity must be an integer")
        if isinstance(v, float) and not v.is_integer():
            raise ValueError("capacity must be an integer")
        return v

    @field_validator("location")
    @classmethod
    def blank_location_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("starts_at", "ends_at")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def check_schedule(self) -> "EventCreate":
        if self.starts_at <= datetime.now(timezone.utc):
            raise ValueError("starts_at must be in the future")
        if self.ends_at is not None and self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class EventCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_id: uuid.UUID = Field(alias="eventId")
    message: str = "Event created successfully"


class RegisteredUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    name: str
    email: str


class EventDetailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    starts_at: datetime
    ends_at: Optional[datetime]
    location: Optional[str]
    capacity: int
    registrations: list[RegisteredUserOut]


class UpcomingEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    starts_at: datetime
    location: Optional[str]
    capacity: int
    registered_count: int
    remaining_capacity: int
    is_full: bool


class PaginationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    limit: int
    offset: int
    total: int
    has_more: bool = Field(alias="hasMore")
    next_offset: Optional[int] = Field(alias="nextOffset")


class UpcomingEventsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    events: list[UpcomingEventOut]
    pagination: PaginationOut


class EventStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_registrations: int
    remaining_capacity: int
    percentage_used: float
