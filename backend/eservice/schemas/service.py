from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from eservice.schemas.common import NamedItem, NamedItemResponse, OfficeBrief, StaffBrief


def coerce_named_items(value):
    """Accept ["Passport", ...] as well as [{"name": "Passport"}, ...]"""
    if isinstance(value, list):
        return [{"name": item} if isinstance(item, str) else item for item in value]
    return value


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    time_to_take: str = Field(..., min_length=1, max_length=100)
    office_id: str = Field(..., min_length=1)
    requirements: List[NamedItem] = []
    service_fors: List[NamedItem] = []

    @field_validator("requirements", "service_fors", mode="before")
    @classmethod
    def named_items(cls, v):
        return coerce_named_items(v)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    time_to_take: Optional[str] = Field(None, min_length=1, max_length=100)
    requirements: Optional[List[NamedItem]] = None
    service_fors: Optional[List[NamedItem]] = None

    @field_validator("requirements", "service_fors", mode="before")
    @classmethod
    def named_items(cls, v):
        return coerce_named_items(v)


class ServiceStaffAssign(BaseModel):
    staff_ids: Optional[List[str]] = None


class ServiceStaffAssignmentResponse(BaseModel):
    id: str
    staff_id: str
    staff: Optional[StaffBrief] = None

    class Config:
        from_attributes = True


class ServiceResponse(BaseModel):
    id: str
    name: str
    description: str
    time_to_take: str
    office_id: str
    office: Optional[OfficeBrief] = None
    requirements: List[NamedItemResponse] = []
    service_fors: List[NamedItemResponse] = []
    staff_assignments: List[ServiceStaffAssignmentResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServiceBrief(BaseModel):
    id: str
    name: str
    office_id: str
    time_to_take: str

    class Config:
        from_attributes = True
