from pydantic import BaseModel, Field, field_validator
from typing import Optional

from eservice.schemas.auth import validate_phone
from eservice.schemas.common import empty_to_none


class StaffCreate(BaseModel):
    """Link an existing user (user_id) or create one (username, phone_number, password)"""
    user_id: Optional[str] = None
    office_id: Optional[str] = None
    username: Optional[str] = Field(None, min_length=2, max_length=100)
    phone_number: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6, max_length=100)

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
