from sqlalchemy import Column, String, DateTime, Text, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
import enum

from eservice.core.database import Base
from eservice.core.types import GUID, generate_uuid, utcnow


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ServiceRequest(Base):
    """
    A customer's application for a service.

    status_by_staff and status_by_manager are decided independently;
    status is the aggregate of the two.
    """
    __tablename__ = "requests"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(GUID, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)

    current_address = Column(String(500), nullable=False)
    date = Column(DateTime, nullable=False)

    status = Column(String(20), default=RequestStatus.PENDING.value, nullable=False, index=True)
    status_by_staff = Column(String(20), default=RequestStatus.PENDING.value, nullable=False)
    status_by_manager = Column(String(20), default=RequestStatus.PENDING.value, nullable=False)

    approve_staff_id = Column(GUID, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True)
    approve_manager_id = Column(GUID, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True)
    approve_note = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", lazy="selectin")
    service = relationship("Service", back_populates="requests", lazy="selectin")
    files = relationship(
        "RequestFile",
        back_populates="request",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    approve_staff = relationship("Staff", foreign_keys=[approve_staff_id], lazy="selectin")
    approve_manager = relationship("Staff", foreign_keys=[approve_manager_id], lazy="selectin")
    appointments = relationship("Appointment", back_populates="request", cascade="all, delete-orphan", passive_deletes=True)
    feedback = relationship(
        "Feedback", back_populates="request", cascade="all, delete-orphan", uselist=False, passive_deletes=True
    )

    def __repr__(self):
        return f"<ServiceRequest {self.id} {self.status}>"


class RequestFile(Base):
    """Document attached to a request"""
    __tablename__ = "request_files"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    request_id = Column(GUID, ForeignKey("requests.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    filepath = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    request = relationship("ServiceRequest", back_populates="files")


class Appointment(Base):
    """Visit scheduled for an approved request"""
    __tablename__ = "appointments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    request_id = Column(GUID, ForeignKey("requests.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_id = Column(GUID, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True)

    date = Column(DateTime, nullable=False, index=True)
    time = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default=AppointmentStatus.PENDING.value, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    request = relationship("ServiceRequest", back_populates="appointments", lazy="selectin")
    user = relationship("User", lazy="selectin")
    staff = relationship("Staff", lazy="selectin")

    def is_locked(self) -> bool:
        return self.status in (AppointmentStatus.APPROVED.value, AppointmentStatus.COMPLETED.value)


class Feedback(Base):
    """Customer satisfaction rating, one per request"""
    __tablename__ = "customer_satisfaction"
    __table_args__ = (UniqueConstraint("request_id", name="uq_feedback_request"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    request_id = Column(GUID, ForeignKey("requests.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    request = relationship("ServiceRequest", back_populates="feedback")
