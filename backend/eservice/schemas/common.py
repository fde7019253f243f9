"""Schemas shared across resources"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime


def empty_to_none(value):
    """Blank form values arrive as "" and mean "not set" """
    if isinstance(value, str) and not value.strip():
        return None
    return value


class NamedItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)

    class Config:
        from_attributes = True


class NamedItemResponse(NamedItem):
    id: str


class FileIn(BaseModel):
    """File reference produced by a previous upload"""
    name: str = Field(..., min_length=1, max_length=255)
    filepath: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return empty_to_none(v)


class FileResponse(BaseModel):
    id: str
    name: str
    filepath: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class RoleBrief(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class UserBrief(BaseModel):
    id: str
    username: str
    phone_number: str
    role: Optional[RoleBrief] = None

    class Config:
        from_attributes = True


class OfficeBrief(BaseModel):
    id: str
    name: str
    subdomain: str
    status: bool

    class Config:
        from_attributes = True


class StaffResponse(BaseModel):
    id: str
    user_id: str
    office_id: str
    user: Optional[UserBrief] = None
    office: Optional[OfficeBrief] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StaffBrief(BaseModel):
    id: str
    user_id: str
    office_id: str
    user: Optional[UserBrief] = None

    class Config:
        from_attributes = True


def dump(schema, obj) -> dict:
    """ORM object -> JSON-ready dict through the given response schema"""
    return schema.model_validate(obj).model_dump(mode="json")


def dump_list(schema, objs) -> List[dict]:
    return [dump(schema, obj) for obj in objs]
