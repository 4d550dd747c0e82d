import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from edulearn.schemas.resource import normalize_tags

EventType = Literal["workshop", "seminar", "networking", "webinar"]


class EventIn(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = Field(min_length=1)
    date: dt.date
    time: dt.time
    location: str = Field(min_length=1, max_length=500)
    type: EventType
    capacity: int = Field(50, ge=1)
    tags: list[str] = Field(default_factory=list)
    speaker: str | None = None
    image: str | None = None

    class Config:
        extra = "forbid"

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return normalize_tags(v)


class EventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    date: dt.date | None = None
    time: dt.time | None = None
    location: str | None = None
    type: EventType | None = None
    capacity: int | None = Field(default=None, ge=1)
    tags: list[str] | None = None
    speaker: str | None = None
    image: str | None = None

    class Config:
        extra = "forbid"

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return None if v is None else normalize_tags(v)


class EventOut(BaseModel):
    id: int
    title: str
    description: str
    date: dt.date
    time: dt.time
    location: str
    type: str
    capacity: int
    registered: int
    tags: list[str]
    speaker: str | None = None
    image: str | None = None
    submitter_email: str | None = None
    submitter_name: str | None = None
    status: str
    is_approved: bool
    created_at: dt.datetime | None = None

    class Config:
        from_attributes = True

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return normalize_tags(v)


class EventAction(BaseModel):
    event_id: int

    class Config:
        extra = "forbid"
