from pydantic import BaseModel, Field
from typing import Optional, List, Union
from datetime import datetime

from eservice.models.request import ApprovalAction
from eservice.schemas.common import FileIn, FileResponse, UserBrief


class StaffReportCreate(BaseModel):
    """Required fields are checked by the endpoint to return a single message"""
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    report_sent_to: Optional[str] = None
    files: List[FileIn] = []


class ManagerReportCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    report_sent_to: Optional[Union[str, List[str]]] = None
    files: List[FileIn] = []

    def recipient_ids(self) -> List[str]:
        """Unique recipient ids, input order kept"""
        if self.report_sent_to is None:
            return []
        ids = [self.report_sent_to] if isinstance(self.report_sent_to, str) else self.report_sent_to
        seen = []
        for recipient_id in ids:
            recipient_id = (recipient_id or "").strip()
            if recipient_id and recipient_id not in seen:
                seen.append(recipient_id)
        return seen


class ReportDecision(BaseModel):
    action: ApprovalAction = ApprovalAction.APPROVE


class ReportResponse(BaseModel):
    id: str
    name: str
    description: str
    sent_by_id: str
    sent_to_id: str
    receiver_status: str
    sent_by: Optional[UserBrief] = None
    sent_to: Optional[UserBrief] = None
    files: List[FileResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
