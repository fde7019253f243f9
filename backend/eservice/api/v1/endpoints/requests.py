"""
Service request endpoints.

Customers apply; a staff member assigned to the service decides first and
a manager of the office decides second. See services/request_workflow.py.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.models.office import Staff
from eservice.models.request import ServiceRequest, RequestFile, RequestStatus
from eservice.models.service import Service, ServiceStaffAssignment
from eservice.models.user import User
from eservice.modules.auth.dependencies import (
    get_current_user,
    require_permission,
    get_staff_record,
    is_admin,
    is_manager,
    is_staff,
)
from eservice.schemas.common import dump, dump_list
from eservice.schemas.request import (
    RequestCreate,
    RequestResponse,
    StaffApprovalRequest,
    ManagerApprovalRequest,
)
from eservice.services.request_workflow import (
    apply_staff_decision,
    apply_manager_decision,
    can_staff_approve_service,
)
from eservice.utils.pagination import paginate
from eservice.utils.responses import success_response
from eservice.utils.search import build_search_filter

router = APIRouter(prefix="/request", tags=["Requests"])


def assigned_service_ids(user: User):
    """Subquery of services the user is assigned to as staff"""
    return (
        select(ServiceStaffAssignment.service_id)
        .join(Staff, ServiceStaffAssignment.staff_id == Staff.id)
        .where(Staff.user_id == user.id)
    )


async def can_view_request(db: AsyncSession, user: User, request: ServiceRequest) -> bool:
    if is_admin(user) or request.user_id == user.id:
        return True
    if is_manager(user):
        return user.office_id is not None and request.service.office_id == user.office_id
    if is_staff(user):
        result = await db.execute(
            assigned_service_ids(user).where(ServiceStaffAssignment.service_id == request.service_id)
        )
        return result.first() is not None
    return False


async def get_request_or_404(db: AsyncSession, request_id: str) -> ServiceRequest:
    request = await db.get(ServiceRequest, request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    return request


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: RequestCreate,
    current_user: User = Depends(require_permission("request:create")),
    db: AsyncSession = Depends(get_db),
):
    service = await db.get(Service, payload.service_id)
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    if not service.office or not service.office.status:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Service is not available at this office"
        )

    request = ServiceRequest(
        user=current_user,
        service=service,
        current_address=payload.current_address,
        date=payload.date,
        status=RequestStatus.PENDING.value,
        status_by_staff=RequestStatus.PENDING.value,
        status_by_manager=RequestStatus.PENDING.value,
        files=[
            RequestFile(name=f.name, filepath=f.filepath, description=f.description)
            for f in payload.files
        ],
    )
    db.add(request)
    await db.flush()
    await db.refresh(request)

    logger.info(f"Request created: {request.id} for service {service.id} by {current_user.id}")
    return success_response(dump(RequestResponse, request), message="Request submitted successfully")


@router.get("")
async def list_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    user_id: Optional[str] = Query(None),
    office_id: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("request:read")),
    db: AsyncSession = Depends(get_db),
):
    """
    Visibility:
    - admin: every request, optionally by user_id / office_id
    - manager: requests for services of their office
    - staff: requests for services assigned to them
    - anyone else: their own requests
    """
    query = (
        select(ServiceRequest)
        .join(Service, ServiceRequest.service_id == Service.id)
        .join(User, ServiceRequest.user_id == User.id)
    )

    if is_admin(current_user):
        if user_id:
            query = query.where(ServiceRequest.user_id == user_id)
        if office_id:
            query = query.where(Service.office_id == office_id)
    elif is_manager(current_user):
        query = query.where(Service.office_id == current_user.office_id)
    elif is_staff(current_user):
        query = query.where(ServiceRequest.service_id.in_(assigned_service_ids(current_user)))
    else:
        query = query.where(ServiceRequest.user_id == current_user.id)

    if status_filter:
        query = query.where(ServiceRequest.status == status_filter.lower())

    search_clause = build_search_filter(search, Service.name, ServiceRequest.current_address, User.username)
    if search_clause is not None:
        query = query.where(search_clause)

    requests, pagination = await paginate(db, query.order_by(ServiceRequest.created_at.desc()), page, limit)
    return success_response(dump_list(RequestResponse, requests), pagination=pagination)


@router.get("/{request_id}")
async def get_request(
    request_id: str,
    current_user: User = Depends(require_permission("request:read")),
    db: AsyncSession = Depends(get_db),
):
    request = await get_request_or_404(db, request_id)
    if not await can_view_request(db, current_user, request):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return success_response(dump(RequestResponse, request))


@router.delete("/{request_id}")
async def delete_request(
    request_id: str,
    current_user: User = Depends(require_permission("request:delete")),
    db: AsyncSession = Depends(get_db),
):
    request = await get_request_or_404(db, request_id)
    if request.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only delete your own requests")
    if request.status_by_staff != RequestStatus.PENDING.value or request.status_by_manager != RequestStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only pending requests can be deleted")

    await db.delete(request)
    await db.flush()

    logger.info(f"Request deleted: {request_id} by {current_user.id}")
    return success_response(message="Request deleted successfully")


# ==================== Approval workflow ====================

@router.post("/{request_id}/approve-staff")
async def approve_by_staff(
    request_id: str,
    payload: StaffApprovalRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not is_staff(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only staff can approve requests")

    staff = await get_staff_record(db, current_user)
    if not staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff record not found")

    request = await get_request_or_404(db, request_id)
    await apply_staff_decision(db, request, staff, payload.action, payload.note)
    await db.refresh(request)

    return success_response(
        dump(RequestResponse, request),
        message=f"Request {request.status_by_staff} by staff"
    )


@router.get("/{request_id}/can-approve-staff")
async def can_approve_by_staff(
    request_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await get_request_or_404(db, request_id)

    if not is_staff(current_user):
        return success_response({"can_approve": False, "reason": "Only staff can approve requests"})

    staff = await get_staff_record(db, current_user)
    if not staff:
        return success_response({"can_approve": False, "reason": "Staff record not found"})

    allowed, reason = await can_staff_approve_service(db, staff, request.service_id)
    if allowed and request.status_by_staff != RequestStatus.PENDING.value:
        allowed, reason = False, "Request already processed by staff"

    return success_response({"can_approve": allowed, "reason": reason})


@router.post("/{request_id}/approve")
async def approve_by_manager(
    request_id: str,
    payload: ManagerApprovalRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not is_manager(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only managers can approve requests")

    manager = await get_staff_record(db, current_user)
    if not manager:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Manager staff record not found")

    request = await get_request_or_404(db, request_id)
    await apply_manager_decision(db, request, manager, payload.action, payload.note)
    await db.refresh(request)

    return success_response(
        dump(RequestResponse, request),
        message=f"Request {request.status_by_manager} by manager"
    )
