"""Dashboard overviews for admins, managers and staff"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, func, and_, or_, not_
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.types import utcnow
from eservice.models.office import Staff
from eservice.models.request import ServiceRequest, Appointment, AppointmentStatus, RequestStatus
from eservice.models.service import Service, ServiceStaffAssignment
from eservice.models.user import User, RoleName
from eservice.modules.auth.dependencies import require_roles, get_staff_record
from eservice.schemas.common import OfficeBrief, dump
from eservice.services.request_workflow import calculate_overall_status
from eservice.utils.responses import success_response

router = APIRouter(tags=["Overview"])

RECENT_LIMIT = 10
SCHEDULED_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.APPROVED.value)

# Neither fully approved nor fully rejected
UNDECIDED = not_(or_(
    and_(ServiceRequest.status_by_staff == RequestStatus.APPROVED.value,
         ServiceRequest.status_by_manager == RequestStatus.APPROVED.value),
    and_(ServiceRequest.status_by_staff == RequestStatus.REJECTED.value,
         ServiceRequest.status_by_manager == RequestStatus.REJECTED.value),
))


async def count(db: AsyncSession, query) -> int:
    result = await db.execute(select(func.count()).select_from(query.subquery()))
    return result.scalar() or 0


async def recent_requests(db: AsyncSession, query) -> list:
    result = await db.execute(query.order_by(ServiceRequest.created_at.desc()).limit(RECENT_LIMIT))
    return [
        {
            "id": request.id,
            "applicant": request.user.username if request.user else None,
            "service": request.service.name if request.service else None,
            "date": request.date.isoformat(),
            "status": calculate_overall_status(request.status_by_staff, request.status_by_manager),
        }
        for request in result.scalars().all()
    ]


def growth_percent(previous: int, current: int) -> int:
    """Month-over-month growth of active users"""
    if previous > 0:
        return round((current - previous) / previous * 100)
    return 100 if current > 0 else 0


async def office_staff_or_403(db: AsyncSession, user: User, detail: str) -> Staff:
    staff = await get_staff_record(db, user)
    if not staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return staff


@router.get("/admin/overview")
async def admin_overview(
    current_user: User = Depends(require_roles(RoleName.ADMIN, detail="Forbidden - Admin access required")),
    db: AsyncSession = Depends(get_db),
):
    now = utcnow()
    month_start = datetime(now.year, now.month, 1)
    active_users = select(User.id).where(User.is_active.is_(True))

    previous = await count(db, active_users.where(User.created_at < month_start))
    current = await count(db, active_users.where(User.created_at >= month_start))

    return success_response({
        "total_users": await count(db, active_users),
        "pending_applications": await count(db, select(ServiceRequest.id).where(UNDECIDED)),
        "scheduled_appointments": await count(
            db, select(Appointment.id).where(Appointment.status.in_(SCHEDULED_STATUSES))
        ),
        "system_growth": growth_percent(previous, current),
        "recent_applications": await recent_requests(db, select(ServiceRequest)),
    })


@router.get("/manager/overview")
async def manager_overview(
    current_user: User = Depends(require_roles(RoleName.MANAGER, detail="Forbidden - Manager access required")),
    db: AsyncSession = Depends(get_db),
):
    staff = await office_staff_or_403(db, current_user, "Manager office not found")
    office_id = staff.office_id

    office_requests = (
        select(ServiceRequest)
        .join(Service, ServiceRequest.service_id == Service.id)
        .where(Service.office_id == office_id)
    )

    return success_response({
        "total_staff": await count(db, select(Staff.id).where(Staff.office_id == office_id)),
        "pending_requests": await count(db, office_requests.where(UNDECIDED)),
        "scheduled_appointments": await count(
            db,
            select(Appointment.id)
            .join(ServiceRequest, Appointment.request_id == ServiceRequest.id)
            .join(Service, ServiceRequest.service_id == Service.id)
            .where(Service.office_id == office_id, Appointment.status.in_(SCHEDULED_STATUSES)),
        ),
        "total_services": await count(db, select(Service.id).where(Service.office_id == office_id)),
        "recent_requests": await recent_requests(db, office_requests),
        "office": dump(OfficeBrief, staff.office),
        "username": current_user.username,
        "role": current_user.role.name if current_user.role else RoleName.MANAGER.value,
    })


@router.get("/staff/overview")
async def staff_overview(
    current_user: User = Depends(require_roles(RoleName.STAFF, detail="Forbidden - Staff access required")),
    db: AsyncSession = Depends(get_db),
):
    """Counts limited to the services the staff member is assigned to"""
    staff = await office_staff_or_403(db, current_user, "Staff office not found")
    assigned = select(ServiceStaffAssignment.service_id).where(ServiceStaffAssignment.staff_id == staff.id)
    assigned_requests = select(ServiceRequest).where(ServiceRequest.service_id.in_(assigned))

    return success_response({
        "my_pending_requests": await count(db, assigned_requests.where(UNDECIDED)),
        "my_assigned_requests": await count(db, assigned_requests),
        "scheduled_appointments": await count(
            db,
            select(Appointment.id)
            .join(ServiceRequest, Appointment.request_id == ServiceRequest.id)
            .where(ServiceRequest.service_id.in_(assigned), Appointment.status.in_(SCHEDULED_STATUSES)),
        ),
        "total_services": await count(db, select(Service.id).where(Service.id.in_(assigned))),
        "recent_requests": await recent_requests(db, assigned_requests),
        "office": dump(OfficeBrief, staff.office),
    })
