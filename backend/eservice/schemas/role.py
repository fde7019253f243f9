from pydantic import BaseModel, Field
from typing import Optional, List, Any
from datetime import datetime


class PermissionResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    office_id: Optional[str] = None
    permission_ids: List[str] = []


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


class RolePermissionsUpdate(BaseModel):
    # Type is checked by the endpoint so a non-list gets its own message
    permission_ids: Any = None


class RoleResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    office_id: Optional[str] = None
    permissions: List[PermissionResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
