from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

from eservice.schemas.common import RoleBrief
from eservice.utils.phone import normalize_phone_number, is_valid_ethiopian_phone


def validate_phone(value: str) -> str:
    if not value or not is_valid_ethiopian_phone(value):
        raise ValueError("Invalid Ethiopian phone number")
    return normalize_phone_number(value)


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    phone_number: str
    password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str
    otp_code: Optional[str] = Field(None, pattern=r"^\d{6}$")

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("otp_code", mode="before")
    @classmethod
    def blank_otp(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    phone_number: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("phone_number")
    @classmethod
    def normalize(cls, v):
        return normalize_phone_number(v)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class ResetPasswordRequest(BaseModel):
    phone_number: str
    otp_code: str = Field(..., pattern=r"^\d{4,8}$")
    new_password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        if self.new_password == self.current_password:
            raise ValueError("New password must be different from the current password")
        return self


class UserResponse(BaseModel):
    id: str
    username: str
    phone_number: str
    is_active: bool
    phone_verified: bool
    role: Optional[RoleBrief] = None
    permissions: List[str] = []
    office_id: Optional[str] = None
    staff_id: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


def serialize_user(user) -> dict:
    """User with role, sorted permission names and staff office"""
    data = UserResponse.model_validate(user).model_dump(mode="json")
    data["permissions"] = sorted(user.permission_names)
    data["staff_id"] = user.staff.id if user.staff else None
    return data


# ==================== OTP / SMS ====================

class SendOtpRequest(BaseModel):
    phone_number: str

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class VerifyOtpRequest(BaseModel):
    phone_number: str
    otp_code: str = Field(..., min_length=4, max_length=8)

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class SendSmsRequest(BaseModel):
    phone: str
    message: str = Field(..., min_length=1, max_length=1000)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class HahuSendOtpRequest(BaseModel):
    phone: str
    message: Optional[str] = Field(None, max_length=500)
    expire: Optional[int] = Field(None, ge=30, le=3600)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class HahuVerifyOtpRequest(BaseModel):
    otp: str = Field(..., min_length=4, max_length=8)
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v is None:
            return v
        return validate_phone(v)
