"""
Service endpoints, including the staff assignments that decide who may
process a service's requests.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.models.office import Office, Staff
from eservice.models.service import Service, ServiceRequirement, ServiceFor, ServiceStaffAssignment
from eservice.models.user import User
from eservice.modules.auth.dependencies import (
    get_optional_current_user,
    require_permission,
    is_admin,
    is_manager,
    is_staff,
)
from eservice.schemas.common import StaffResponse, dump, dump_list
from eservice.schemas.service import ServiceCreate, ServiceUpdate, ServiceStaffAssign, ServiceResponse
from eservice.utils.pagination import paginate
from eservice.utils.responses import success_response
from eservice.utils.search import build_search_filter

router = APIRouter(prefix="/service", tags=["Services"])


async def get_service_or_404(db: AsyncSession, service_id: str) -> Service:
    service = await db.get(Service, service_id)
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return service


def ensure_can_manage_office(user: User, office_id: str, detail: str) -> None:
    """Admins manage every office; managers only their own"""
    if is_admin(user):
        return
    if not is_manager(user) or user.office_id != office_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


@router.get("")
async def list_services(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    office_id: Optional[str] = Query(None),
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Staff and managers see their office's services; everyone else sees
    services of active offices.
    """
    query = select(Service).join(Office, Service.office_id == Office.id)

    if current_user and (is_staff(current_user) or is_manager(current_user)) and current_user.office_id:
        query = query.where(Service.office_id == current_user.office_id)
    else:
        query = query.where(Office.status.is_(True))
        if office_id:
            query = query.where(Service.office_id == office_id)

    search_clause = build_search_filter(search, Service.name, Service.description, Office.name)
    if search_clause is not None:
        query = query.where(search_clause)

    services, pagination = await paginate(db, query.order_by(Service.name), page, limit)
    return success_response(dump_list(ServiceResponse, services), pagination=pagination)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    current_user: User = Depends(require_permission("service:create")),
    db: AsyncSession = Depends(get_db),
):
    office = await db.get(Office, payload.office_id)
    if not office:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Office not found")
    ensure_can_manage_office(current_user, office.id, "You can only create services for your own office")

    service = Service(
        name=payload.name,
        description=payload.description,
        time_to_take=payload.time_to_take,
        office_id=office.id,
        requirements=[ServiceRequirement(name=item.name) for item in payload.requirements],
        service_fors=[ServiceFor(name=item.name) for item in payload.service_fors],
        staff_assignments=[],
    )
    db.add(service)
    await db.flush()
    await db.refresh(service)

    logger.info(f"Service created: {service.name} in office {office.id}")
    return success_response(dump(ServiceResponse, service), message="Service created successfully")


@router.get("/{service_id}")
async def get_service(service_id: str, db: AsyncSession = Depends(get_db)):
    service = await get_service_or_404(db, service_id)
    return success_response(dump(ServiceResponse, service))


@router.patch("/{service_id}")
async def update_service(
    service_id: str,
    payload: ServiceUpdate,
    current_user: User = Depends(require_permission("service:update")),
    db: AsyncSession = Depends(get_db),
):
    service = await get_service_or_404(db, service_id)
    ensure_can_manage_office(current_user, service.office_id, "You can only update services of your own office")

    changes = payload.model_dump(exclude_unset=True)
    for field in ("name", "description", "time_to_take"):
        if changes.get(field) is not None:
            setattr(service, field, changes[field])

    # Given lists replace the existing children
    if payload.requirements is not None:
        service.requirements = [ServiceRequirement(name=item.name) for item in payload.requirements]
    if payload.service_fors is not None:
        service.service_fors = [ServiceFor(name=item.name) for item in payload.service_fors]

    await db.flush()
    await db.refresh(service)

    return success_response(dump(ServiceResponse, service), message="Service updated successfully")


@router.delete("/{service_id}")
async def delete_service(
    service_id: str,
    current_user: User = Depends(require_permission("service:delete")),
    db: AsyncSession = Depends(get_db),
):
    service = await get_service_or_404(db, service_id)
    ensure_can_manage_office(current_user, service.office_id, "You can only delete services of your own office")

    await db.delete(service)
    await db.flush()

    logger.info(f"Service deleted: {service_id} by {current_user.id}")
    return success_response(message="Service deleted successfully")


# ==================== Staff assignments ====================

@router.get("/{service_id}/staff")
async def list_service_staff(
    service_id: str,
    current_user: User = Depends(require_permission("service:read")),
    db: AsyncSession = Depends(get_db),
):
    service = await get_service_or_404(db, service_id)
    staff = [assignment.staff for assignment in service.staff_assignments if assignment.staff]
    return success_response(dump_list(StaffResponse, staff))


@router.post("/{service_id}/staff")
async def assign_service_staff(
    service_id: str,
    payload: ServiceStaffAssign,
    current_user: User = Depends(require_permission("service:assign-staff")),
    db: AsyncSession = Depends(get_db),
):
    """Replace the service's staff assignments with `staff_ids`"""
    if payload.staff_ids is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="staff_ids array is required")

    service = await get_service_or_404(db, service_id)
    ensure_can_manage_office(current_user, service.office_id, "You can only assign services from your own office")

    staff_ids = list(dict.fromkeys(payload.staff_ids))
    staff_members = {}
    if staff_ids:
        result = await db.execute(select(Staff).where(Staff.id.in_(staff_ids)))
        staff_members = {member.id: member for member in result.scalars().all()}

    invalid = [
        staff_id for staff_id in staff_ids
        if staff_id not in staff_members or staff_members[staff_id].office_id != service.office_id
    ]
    if invalid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All staff members must belong to the same office as the service"
        )

    keep = [a for a in service.staff_assignments if a.staff_id in staff_members]
    existing_ids = {a.staff_id for a in keep}
    for staff_id in staff_ids:
        if staff_id not in existing_ids:
            keep.append(ServiceStaffAssignment(staff=staff_members[staff_id]))
    service.staff_assignments = keep

    await db.flush()
    await db.refresh(service)

    logger.info(f"Service {service.id} assigned to {len(staff_ids)} staff member(s)")
    return success_response(
        dump(ServiceResponse, service),
        message=f"Successfully assigned service to {len(staff_ids)} staff member(s)",
    )


@router.delete("/{service_id}/staff")
async def remove_service_staff(
    service_id: str,
    staff_id: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("service:assign-staff")),
    db: AsyncSession = Depends(get_db),
):
    if not staff_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="staff_id query parameter is required")

    service = await get_service_or_404(db, service_id)
    ensure_can_manage_office(current_user, service.office_id, "You can only assign services from your own office")

    assignment = next((a for a in service.staff_assignments if a.staff_id == staff_id), None)
    if assignment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")

    service.staff_assignments.remove(assignment)
    await db.flush()

    return success_response(message="Staff removed from service successfully")
