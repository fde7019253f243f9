from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from eservice.core.types import to_naive_utc
from eservice.models.request import ApprovalAction
from eservice.schemas.common import FileIn, FileResponse, UserBrief, StaffBrief, empty_to_none
from eservice.schemas.service import ServiceBrief


# ==================== Requests ====================

class RequestCreate(BaseModel):
    service_id: str = Field(..., min_length=1)
    current_address: str = Field(..., min_length=1, max_length=500)
    date: datetime
    files: List[FileIn] = []

    @field_validator("date")
    @classmethod
    def naive_date(cls, v):
        return to_naive_utc(v)


class StaffApprovalRequest(BaseModel):
    action: ApprovalAction
    note: Optional[str] = Field(None, max_length=1000)


class ManagerApprovalRequest(BaseModel):
    action: ApprovalAction = ApprovalAction.APPROVE
    note: Optional[str] = Field(None, max_length=1000)


class RequestResponse(BaseModel):
    id: str
    user_id: str
    service_id: str
    current_address: str
    date: datetime
    status: str
    status_by_staff: str
    status_by_manager: str
    approve_staff_id: Optional[str] = None
    approve_manager_id: Optional[str] = None
    approve_note: Optional[str] = None
    service: Optional[ServiceBrief] = None
    user: Optional[UserBrief] = None
    files: List[FileResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RequestSummary(BaseModel):
    """Row in the dashboard overviews"""
    id: str
    status: str
    status_by_staff: str
    status_by_manager: str
    service: Optional[ServiceBrief] = None
    user: Optional[UserBrief] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ==================== Appointments ====================

class AppointmentCreate(BaseModel):
    request_id: str = Field(..., min_length=1)
    date: datetime
    time: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=1000)
    staff_id: Optional[str] = None

    @field_validator("time", "notes", "staff_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return empty_to_none(v)

    @field_validator("date")
    @classmethod
    def naive_date(cls, v):
        return to_naive_utc(v)


class AppointmentUpdate(BaseModel):
    date: Optional[datetime] = None
    time: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=1000)
    staff_id: Optional[str] = None
    status: Optional[str] = Field(None, pattern=r"^(pending|cancelled)$")

    @field_validator("date")
    @classmethod
    def naive_date(cls, v):
        return to_naive_utc(v)


class AppointmentAction(BaseModel):
    action: str = Field("approve", pattern=r"^(approve|reject|complete)$")
    notes: Optional[str] = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    id: str
    request_id: str
    user_id: str
    staff_id: Optional[str] = None
    date: datetime
    time: Optional[str] = None
    notes: Optional[str] = None
    status: str
    user: Optional[UserBrief] = None
    staff: Optional[StaffBrief] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ==================== Feedback ====================

class FeedbackCreate(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = Field(None, max_length=2000)


class FeedbackResponse(BaseModel):
    id: str
    request_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
