from sqlalchemy import Column, String, DateTime, Text, Integer, ForeignKey
from sqlalchemy.orm import relationship

from eservice.core.database import Base
from eservice.core.types import GUID, generate_uuid, utcnow


class Gallery(Base):
    __tablename__ = "galleries"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    images = relationship(
        "GalleryImage",
        back_populates="gallery",
        cascade="all, delete-orphan",
        order_by="GalleryImage.order",
        lazy="selectin",
    )


class GalleryImage(Base):
    __tablename__ = "gallery_images"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    gallery_id = Column(GUID, ForeignKey("galleries.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String(500), nullable=False)
    order = Column(Integer, default=0, nullable=False)

    gallery = relationship("Gallery", back_populates="images")


class About(Base):
    """About-page section"""
    __tablename__ = "about"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    image = Column(String(500), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Administration(Base):
    """Administration (leadership) profile shown on the public site"""
    __tablename__ = "administrations"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    image = Column(String(500), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
