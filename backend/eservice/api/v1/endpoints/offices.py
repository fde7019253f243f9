"""
Office endpoints.

Listing and reading offices is public; writes need `office:*` permissions.
Managers may update only their own office and never its subdomain or status.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func, distinct
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.core.types import utcnow
from eservice.models.office import Office, Staff
from eservice.models.request import ServiceRequest, Appointment
from eservice.models.service import Service
from eservice.models.user import User, Role, RoleName
from eservice.modules.auth.dependencies import require_permission, require_any_permission, is_admin, is_manager
from eservice.schemas.common import StaffResponse, dump
from eservice.schemas.office import OfficeCreate, OfficeUpdate, OfficeResponse
from eservice.utils.pagination import paginate
from eservice.utils.responses import success_response
from eservice.utils.search import build_search_filter

router = APIRouter(prefix="/office", tags=["Offices"])

SUBDOMAIN_TAKEN = "Subdomain already exists. Please choose a different one."


async def get_office_or_404(db: AsyncSession, office_id: str) -> Office:
    office = await db.get(Office, office_id)
    if not office:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Office not found")
    return office


async def subdomain_taken(db: AsyncSession, subdomain: str, exclude_id: Optional[str] = None) -> bool:
    query = select(Office.id).where(Office.subdomain == subdomain)
    if exclude_id:
        query = query.where(Office.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def office_stats(db: AsyncSession, office_id: str) -> dict:
    """Request, appointment, staff and service counts for one office"""
    total_requests = await db.scalar(
        select(func.count(ServiceRequest.id))
        .join(Service, ServiceRequest.service_id == Service.id)
        .where(Service.office_id == office_id)
    )
    total_appointments = await db.scalar(
        select(func.count(Appointment.id))
        .join(ServiceRequest, Appointment.request_id == ServiceRequest.id)
        .join(Service, ServiceRequest.service_id == Service.id)
        .where(Service.office_id == office_id)
    )
    total_staff = await db.scalar(
        select(func.count(distinct(Staff.user_id))).where(Staff.office_id == office_id)
    )
    total_services = await db.scalar(
        select(func.count(Service.id)).where(Service.office_id == office_id)
    )
    return {
        "total_requests": total_requests or 0,
        "total_appointments": total_appointments or 0,
        "total_staff": total_staff or 0,
        "total_services": total_services or 0,
    }


@router.get("")
async def list_offices(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    status_filter: Optional[bool] = Query(None, alias="status"),
    include_stats: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    """Paginated office list with case-insensitive search"""
    query = select(Office)

    search_clause = build_search_filter(
        search,
        Office.name,
        Office.address,
        Office.room_number,
        Office.subdomain,
        Office.slogan,
        phone_columns=(Office.phone_number,),
    )
    if search_clause is not None:
        query = query.where(search_clause)
    if status_filter is not None:
        query = query.where(Office.status == status_filter)

    offices, pagination = await paginate(db, query.order_by(Office.created_at.desc()), page, limit)

    items = []
    for office in offices:
        item = dump(OfficeResponse, office)
        if include_stats:
            item["stats"] = await office_stats(db, office.id)
        items.append(item)

    return success_response(items, pagination=pagination)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_office(
    payload: OfficeCreate,
    current_user: User = Depends(require_permission("office:create")),
    db: AsyncSession = Depends(get_db),
):
    if await subdomain_taken(db, payload.subdomain):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=SUBDOMAIN_TAKEN)

    data = payload.model_dump()
    data["started_at"] = data.get("started_at") or utcnow()
    office = Office(**data)
    db.add(office)
    await db.flush()
    await db.refresh(office)

    logger.info(f"Office created: {office.subdomain} by {current_user.id}")
    return success_response(dump(OfficeResponse, office), message="Office created successfully")


@router.get("/{office_id}")
async def get_office(office_id: str, db: AsyncSession = Depends(get_db)):
    office = await get_office_or_404(db, office_id)
    return success_response(dump(OfficeResponse, office))


@router.patch("/{office_id}")
async def update_office(
    office_id: str,
    payload: OfficeUpdate,
    current_user: User = Depends(require_any_permission("office:update", "office:configure")),
    db: AsyncSession = Depends(get_db),
):
    office = await get_office_or_404(db, office_id)
    changes = payload.model_dump(exclude_unset=True)

    if not is_admin(current_user):
        if not is_manager(current_user) or current_user.office_id != office.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only update your own office"
            )
        if "subdomain" in changes or "status" in changes:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Managers cannot change the office subdomain or status"
            )

    if changes.get("subdomain") and await subdomain_taken(db, changes["subdomain"], exclude_id=office.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=SUBDOMAIN_TAKEN)

    for field in ("name", "room_number", "address", "subdomain", "status", "started_at"):
        # Required columns cannot be cleared
        if field in changes and changes[field] is None:
            changes.pop(field)

    for field, value in changes.items():
        setattr(office, field, value)
    await db.flush()
    await db.refresh(office)

    logger.info(f"Office updated: {office.id} fields={sorted(changes)}")
    return success_response(dump(OfficeResponse, office), message="Office updated successfully")


@router.delete("/{office_id}")
async def delete_office(
    office_id: str,
    current_user: User = Depends(require_permission("office:delete")),
    db: AsyncSession = Depends(get_db),
):
    office = await get_office_or_404(db, office_id)
    await db.delete(office)
    await db.flush()

    logger.info(f"Office deleted: {office_id} by {current_user.id}")
    return success_response(message="Office deleted successfully")


@router.get("/{office_id}/stats")
async def get_office_stats(office_id: str, db: AsyncSession = Depends(get_db)):
    await get_office_or_404(db, office_id)
    return success_response(await office_stats(db, office_id))


@router.get("/{office_id}/manager")
async def get_office_manager(office_id: str, db: AsyncSession = Depends(get_db)):
    """The office's manager staff record, or null"""
    await get_office_or_404(db, office_id)
    result = await db.execute(
        select(Staff)
        .join(User, Staff.user_id == User.id)
        .join(Role, User.role_id == Role.id)
        .where(Staff.office_id == office_id, func.lower(Role.name) == RoleName.MANAGER.value)
        .order_by(Staff.created_at)
    )
    manager = result.scalars().first()
    return success_response(dump(StaffResponse, manager) if manager else None)
