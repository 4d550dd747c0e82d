
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class SignUpIn(BaseModel):
    email: EmailStr
    # length is checked in the service so the client gets the literal message
    password: str = Field(min_length=1, max_length=256)
    name: str = Field(min_length=1, max_length=255)
    openrouter_api_key: str | None = None

    class Config:
        extra = "forbid"


class SignInIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    class Config:
        extra = "forbid"


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    role: str | None = None
    is_admin: bool = False
    has_api_key: bool = False
    created_at: datetime | None = None


class AuthOut(BaseModel):
    user: UserOut
    message: str


class CreateAdminIn(SignUpIn):
    pass


class ApiKeyIn(BaseModel):
    api_key: str = Field(min_length=1)

    class Config:
        extra = "forbid"


class ToggleAdminIn(BaseModel):
    email: EmailStr
    is_admin: bool

    class Config:
        extra = "forbid"
