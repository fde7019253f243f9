from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from eservice.schemas.common import empty_to_none


# ==================== Gallery ====================

class GalleryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    images: List[str] = Field(..., min_length=1)

    @field_validator("images")
    @classmethod
    def strip_images(cls, v):
        images = [image.strip() for image in v if image and image.strip()]
        if not images:
            raise ValueError("At least one image is required")
        return images


class GalleryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    images: Optional[List[str]] = None

    @field_validator("images")
    @classmethod
    def strip_images(cls, v):
        if v is None:
            return v
        images = [image.strip() for image in v if image and image.strip()]
        if not images:
            raise ValueError("At least one image is required")
        return images


class GalleryImageResponse(BaseModel):
    id: str
    filename: str
    order: int

    class Config:
        from_attributes = True


class GalleryResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    images: List[GalleryImageResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ==================== About / Administration ====================

class AboutCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=5000)
    image: str = Field(..., min_length=1, max_length=500)


class AboutUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    image: Optional[str] = Field(None, min_length=1, max_length=500)

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return empty_to_none(v)


class AdministrationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=1000)
    image: str = Field(..., min_length=1, max_length=500)


class AdministrationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    image: Optional[str] = Field(None, min_length=1, max_length=500)

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return empty_to_none(v)


class SectionResponse(BaseModel):
    """About and administration entries share this shape"""
    id: str
    name: str
    description: str
    image: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
