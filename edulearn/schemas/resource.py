import json
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

Level = Literal["beginner", "intermediate", "advanced"]
Course = Literal["programming", "design", "business", "data-science", "marketing"]
ResourceType = Literal["video", "article", "tutorial", "course", "tool"]


def normalize_tags(value) -> list[str]:
    """Accepts a list, a JSON-encoded list or a comma separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                value = json.loads(text)
            except ValueError:
                value = text.strip("[]").split(",")
        else:
            value = text.split(",")
    return [str(t).strip() for t in value if str(t).strip()]


class ResourceIn(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = Field(min_length=1)
    level: Level
    course: Course
    tags: list[str] = Field(default_factory=list)
    type: ResourceType
    duration: str | None = None
    author: str = Field(min_length=1, max_length=255)
    link: str = Field(min_length=1)
    thumbnail: str | None = None

    class Config:
        extra = "forbid"

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return normalize_tags(v)


class ResourceUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    level: Level | None = None
    course: Course | None = None
    tags: list[str] | None = None
    type: ResourceType | None = None
    duration: str | None = None
    author: str | None = None
    rating: float | None = Field(default=None, ge=0, le=5)
    thumbnail: str | None = None
    link: str | None = None

    class Config:
        extra = "forbid"

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return None if v is None else normalize_tags(v)


class ResourceOut(BaseModel):
    id: int
    title: str
    description: str
    level: str
    course: str
    tags: list[str]
    type: str
    duration: str | None = None
    author: str
    rating: float = 0
    thumbnail: str | None = None
    link: str
    submitter_email: str | None = None
    submitter_name: str | None = None
    status: str
    is_approved: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return normalize_tags(v)


class ResourceAction(BaseModel):
    resource_id: int

    class Config:
        extra = "forbid"


class WebSearchIn(BaseModel):
    query: str | None = None

    class Config:
        extra = "forbid"


class WebSearchResult(BaseModel):
    title: str
    link: str
    snippet: str
