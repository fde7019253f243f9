from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
import re

from eservice.schemas.auth import validate_phone
from eservice.schemas.common import RoleBrief, OfficeBrief, dump, empty_to_none

USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"


def check_password_strength(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not (re.search(r"[a-z]", value) and re.search(r"[A-Z]", value) and re.search(r"\d", value)):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


class UserCreate(BaseModel):
    """Account created by an administrator; username is generated when omitted"""
    name: str = Field(..., min_length=2, max_length=100)
    username: Optional[str] = Field(None, min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    phone_number: str
    password: str = Field(..., min_length=8, max_length=100)
    role_id: str = Field(..., min_length=1)
    office_id: Optional[str] = None

    @field_validator("username", "office_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return empty_to_none(v)

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("password")
    @classmethod
    def strong_password(cls, v):
        return check_password_strength(v)


class UserUpdate(BaseModel):
    """
    Partial update. Sending office_id replaces the user's office
    membership; an empty office_id removes it.
    """
    username: Optional[str] = Field(None, min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    phone_number: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8, max_length=100)
    role_id: Optional[str] = None
    office_id: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("username", "password", "role_id", "office_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return empty_to_none(v)

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, v):
        if v is None:
            return v
        return validate_phone(v)

    @field_validator("password")
    @classmethod
    def strong_password(cls, v):
        return check_password_strength(v)

    @model_validator(mode="after")
    def not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=2, max_length=100)
    phone_number: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return empty_to_none(v)

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, v):
        if v is None:
            return v
        return validate_phone(v)


class ManagedUserResponse(BaseModel):
    id: str
    username: str
    phone_number: str
    phone_verified: bool
    is_active: bool
    role: Optional[RoleBrief] = None
    office_id: Optional[str] = None
    office: Optional[OfficeBrief] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdminContact(BaseModel):
    id: str
    username: str
    phone_number: str

    class Config:
        from_attributes = True


def serialize_managed_user(user) -> dict:
    """User with role and the office of their first staff record"""
    data = dump(ManagedUserResponse, user)
    data["office"] = dump(OfficeBrief, user.staff.office) if user.staff else None
    return data
