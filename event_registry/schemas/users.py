from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from event_registry.models.users import Role


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=100)
    full_name: Optional[str] = Field(default=None, max_length=200)
    roles: set[Role] = Field(default_factory=lambda: {Role.USER})


class UserUpdate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    full_name: Optional[str] = Field(default=None, max_length=200)
    # Unchanged when omitted
    password: Optional[str] = Field(default=None, min_length=6, max_length=100)
    roles: Optional[set[Role]] = None


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    full_name: Optional[str]
    roles: list[str]

    class Config:
        from_attributes = True
