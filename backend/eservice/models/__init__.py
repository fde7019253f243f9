# Re-export all models for convenient imports
from eservice.models.user import User, Role, Permission, RolePermission, RoleName, Otp
from eservice.models.office import Office, Staff
from eservice.models.service import Service, ServiceRequirement, ServiceFor, ServiceStaffAssignment
from eservice.models.request import (
    ServiceRequest,
    RequestFile,
    RequestStatus,
    ApprovalAction,
    Appointment,
    AppointmentStatus,
    Feedback,
)
from eservice.models.report import Report, ReportFile, ReceiverStatus
from eservice.models.content import Gallery, GalleryImage, About, Administration

__all__ = [
    # Users & access
    "User",
    "Role",
    "Permission",
    "RolePermission",
    "RoleName",
    "Otp",
    # Offices
    "Office",
    "Staff",
    # Services
    "Service",
    "ServiceRequirement",
    "ServiceFor",
    "ServiceStaffAssignment",
    # Requests
    "ServiceRequest",
    "RequestFile",
    "RequestStatus",
    "ApprovalAction",
    "Appointment",
    "AppointmentStatus",
    "Feedback",
    # Reports
    "Report",
    "ReportFile",
    "ReceiverStatus",
    # Public content
    "Gallery",
    "GalleryImage",
    "About",
    "Administration",
]
