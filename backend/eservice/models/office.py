from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from eservice.core.database import Base
from eservice.core.types import GUID, generate_uuid, utcnow


class Office(Base):
    """Government service location"""
    __tablename__ = "offices"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False, index=True)
    room_number = Column(String(100), nullable=False)
    address = Column(String(500), nullable=False)
    phone_number = Column(String(20), nullable=True)
    subdomain = Column(String(100), unique=True, index=True, nullable=False)
    logo = Column(String(500), nullable=True)
    slogan = Column(Text, nullable=True)
    status = Column(Boolean, default=True, nullable=False)
    started_at = Column(DateTime, default=utcnow, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    services = relationship("Service", back_populates="office", cascade="all, delete-orphan", passive_deletes=True)
    staff_members = relationship("Staff", back_populates="office", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Office {self.subdomain}>"


class Staff(Base):
    """Membership of a user in an office (staff members and managers)"""
    __tablename__ = "staff"
    __table_args__ = (UniqueConstraint("user_id", "office_id", name="uq_staff_user_office"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    office_id = Column(GUID, ForeignKey("offices.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="staff_records", lazy="selectin")
    office = relationship("Office", back_populates="staff_members", lazy="selectin")
    service_assignments = relationship(
        "ServiceStaffAssignment",
        back_populates="staff",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Staff {self.user_id}@{self.office_id}>"
