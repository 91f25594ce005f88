import uuid
from typing import Literal
from fastapi_users import schemas
from pydantic import ConfigDict

UserRole = Literal["student", "tutor", "admin"]


class UserRead(schemas.BaseUser[uuid.UUID]):
    full_name: str
    role: UserRole

    model_config = ConfigDict(from_attributes=True)


class UserCreate(schemas.BaseUserCreate):
    full_name: str
    # Admins are never self-registered
    role: Literal["student", "tutor"] = "student"


class UserUpdate(schemas.BaseUserUpdate):
    # Role is fixed after registration; a student cannot promote themselves
    full_name: str | None = None
