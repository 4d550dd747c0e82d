
from pydantic import BaseModel, Field


class ChatSettings(BaseModel):
    temperature: float = Field(0.7, ge=0, le=2)
    max_tokens: int = Field(2000, ge=1, le=32000)
    context: str = ""

    class Config:
        extra = "forbid"


class ChatIn(BaseModel):
    prompt: str = Field(min_length=1)
    model: str | None = None
    settings: ChatSettings = Field(default_factory=ChatSettings)

    class Config:
        extra = "forbid"
