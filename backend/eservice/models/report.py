from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
import enum

from eservice.core.database import Base
from eservice.core.types import GUID, generate_uuid, utcnow


class ReceiverStatus(str, enum.Enum):
    PENDING = "pending"
    READ = "read"
    ARCHIVED = "archived"


class Report(Base):
    """Internal report sent staff -> manager or manager -> admin"""
    __tablename__ = "reports"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)

    sent_by_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sent_to_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_status = Column(String(20), default=ReceiverStatus.PENDING.value, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    sent_by = relationship("User", foreign_keys=[sent_by_id], lazy="selectin")
    sent_to = relationship("User", foreign_keys=[sent_to_id], lazy="selectin")
    files = relationship(
        "ReportFile",
        back_populates="report",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Report {self.name}>"


class ReportFile(Base):
    __tablename__ = "report_files"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    report_id = Column(GUID, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    filepath = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    report = relationship("Report", back_populates="files")
