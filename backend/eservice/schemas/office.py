from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
import re

from eservice.core.types import to_naive_utc
from eservice.schemas.common import empty_to_none

SUBDOMAIN_RE = re.compile(r"^[a-z0-9-]+$")
LOGO_RE = re.compile(r"^(/\S+|https?://\S+)$")


def validate_subdomain(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().lower()
    if not SUBDOMAIN_RE.match(value):
        raise ValueError("Subdomain can only contain lowercase letters, numbers and hyphens")
    return value


def validate_logo(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not LOGO_RE.match(value):
        raise ValueError("Logo must be a path starting with / or an http(s) URL")
    return value


class OfficeBase(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return empty_to_none(v)

    @field_validator("subdomain", check_fields=False)
    @classmethod
    def check_subdomain(cls, v):
        return validate_subdomain(v)

    @field_validator("logo", check_fields=False)
    @classmethod
    def check_logo(cls, v):
        return validate_logo(v)

    @field_validator("started_at", check_fields=False)
    @classmethod
    def naive_started_at(cls, v):
        return to_naive_utc(v)


class OfficeCreate(OfficeBase):
    name: str = Field(..., min_length=1, max_length=255)
    room_number: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=500)
    subdomain: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20)
    logo: Optional[str] = Field(None, max_length=500)
    slogan: Optional[str] = Field(None, max_length=500)
    status: bool = True
    started_at: Optional[datetime] = None


class OfficeUpdate(OfficeBase):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    room_number: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    subdomain: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20)
    logo: Optional[str] = Field(None, max_length=500)
    slogan: Optional[str] = Field(None, max_length=500)
    status: Optional[bool] = None
    started_at: Optional[datetime] = None


class OfficeResponse(BaseModel):
    id: str
    name: str
    room_number: str
    address: str
    phone_number: Optional[str] = None
    subdomain: str
    logo: Optional[str] = None
    slogan: Optional[str] = None
    status: bool
    started_at: datetime
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
