from sqlalchemy import Column, String, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from eservice.core.database import Base
from eservice.core.types import GUID, generate_uuid, utcnow


class Service(Base):
    """Service offered by an office"""
    __tablename__ = "services"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    time_to_take = Column(String(100), nullable=False)
    office_id = Column(GUID, ForeignKey("offices.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    office = relationship("Office", back_populates="services", lazy="selectin")
    requirements = relationship(
        "ServiceRequirement",
        back_populates="service",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    service_fors = relationship(
        "ServiceFor",
        back_populates="service",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    staff_assignments = relationship(
        "ServiceStaffAssignment",
        back_populates="service",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    requests = relationship("ServiceRequest", back_populates="service", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Service {self.name}>"


class ServiceRequirement(Base):
    """Document or precondition a citizen must bring"""
    __tablename__ = "service_requirements"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    service_id = Column(GUID, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    service = relationship("Service", back_populates="requirements")


class ServiceFor(Base):
    """Audience a service is intended for"""
    __tablename__ = "service_fors"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    service_id = Column(GUID, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    service = relationship("Service", back_populates="service_fors")


class ServiceStaffAssignment(Base):
    """Staff member allowed to process requests for a service"""
    __tablename__ = "service_staff_assignments"
    __table_args__ = (UniqueConstraint("service_id", "staff_id", name="uq_service_staff"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    service_id = Column(GUID, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_id = Column(GUID, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    service = relationship("Service", back_populates="staff_assignments")
    staff = relationship("Staff", back_populates="service_assignments", lazy="selectin")
