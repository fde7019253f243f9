"""Appointment endpoints for requests approved by both staff and manager"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.models.office import Staff
from eservice.models.request import ServiceRequest, Appointment, AppointmentStatus
from eservice.models.service import Service
from eservice.models.user import User
from eservice.modules.auth.dependencies import (
    require_permission,
    require_any_permission,
    get_staff_record,
    is_admin,
    is_manager,
    is_staff,
)
from eservice.schemas.common import dump, dump_list
from eservice.schemas.request import AppointmentCreate, AppointmentUpdate, AppointmentAction, AppointmentResponse
from eservice.services.request_workflow import is_fully_approved, can_staff_approve_service
from eservice.utils.pagination import paginate
from eservice.utils.responses import success_response

router = APIRouter(prefix="/appointment", tags=["Appointments"])

ACTION_STATUS = {
    "approve": AppointmentStatus.APPROVED.value,
    "reject": AppointmentStatus.REJECTED.value,
    "complete": AppointmentStatus.COMPLETED.value,
}

# Status an appointment must be in for each action
ALLOWED_FROM = {
    "approve": AppointmentStatus.PENDING.value,
    "reject": AppointmentStatus.PENDING.value,
    "complete": AppointmentStatus.APPROVED.value,
}


def office_member(user: User) -> bool:
    return is_staff(user) or is_manager(user)


async def get_appointment_or_404(db: AsyncSession, appointment_id: str) -> Appointment:
    appointment = await db.get(Appointment, appointment_id)
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return appointment


def ensure_can_access(user: User, appointment: Appointment) -> None:
    """Office members see their office's appointments; everyone else only their own"""
    if is_admin(user):
        return
    if office_member(user):
        if appointment.request.service.office_id == user.office_id:
            return
    elif appointment.user_id == user.id:
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")


async def validate_staff_assignment(db: AsyncSession, staff_id: str, office_id: str) -> None:
    staff = await db.get(Staff, staff_id)
    if not staff or staff.office_id != office_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid staff assignment")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    current_user: User = Depends(require_permission("appointment:create")),
    db: AsyncSession = Depends(get_db),
):
    if not office_member(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only managers and staff can create appointments"
        )

    request = await db.get(ServiceRequest, payload.request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")

    office_id = request.service.office_id
    if office_id != current_user.office_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Request does not belong to your office")

    if not is_fully_approved(request):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Appointments can only be created for requests approved by both staff and manager"
        )

    if payload.staff_id:
        await validate_staff_assignment(db, payload.staff_id, office_id)

    appointment = Appointment(
        request_id=request.id,
        user_id=request.user_id,
        staff_id=payload.staff_id,
        date=payload.date,
        time=payload.time,
        notes=payload.notes,
        status=AppointmentStatus.PENDING.value,
    )
    db.add(appointment)
    await db.flush()
    await db.refresh(appointment)

    logger.info(f"Appointment created: {appointment.id} for request {request.id} by {current_user.id}")
    return success_response(dump(AppointmentResponse, appointment), message="Appointment created successfully")


@router.get("")
async def list_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    request_id: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("appointment:read")),
    db: AsyncSession = Depends(get_db),
):
    query = select(Appointment)

    if is_admin(current_user):
        pass
    elif office_member(current_user):
        query = (
            query.join(ServiceRequest, Appointment.request_id == ServiceRequest.id)
            .join(Service, ServiceRequest.service_id == Service.id)
            .where(Service.office_id == current_user.office_id)
        )
    else:
        query = query.where(Appointment.user_id == current_user.id)

    if request_id:
        query = query.where(Appointment.request_id == request_id)

    appointments, pagination = await paginate(db, query.order_by(Appointment.date.asc()), page, limit)
    return success_response(dump_list(AppointmentResponse, appointments), pagination=pagination)


@router.get("/{appointment_id}")
async def get_appointment(
    appointment_id: str,
    current_user: User = Depends(require_permission("appointment:read")),
    db: AsyncSession = Depends(get_db),
):
    appointment = await get_appointment_or_404(db, appointment_id)
    ensure_can_access(current_user, appointment)
    return success_response(dump(AppointmentResponse, appointment))


@router.patch("/{appointment_id}")
async def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    current_user: User = Depends(require_permission("appointment:update")),
    db: AsyncSession = Depends(get_db),
):
    appointment = await get_appointment_or_404(db, appointment_id)
    ensure_can_access(current_user, appointment)

    if appointment.is_locked():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot update approved or completed appointment"
        )

    changes = payload.model_dump(exclude_unset=True)
    if changes.get("staff_id"):
        await validate_staff_assignment(db, changes["staff_id"], appointment.request.service.office_id)

    for field, value in changes.items():
        if field in ("date", "status") and value is None:
            continue
        setattr(appointment, field, value)

    await db.flush()
    await db.refresh(appointment)

    return success_response(dump(AppointmentResponse, appointment), message="Appointment updated successfully")


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    current_user: User = Depends(require_any_permission("appointment:delete", "appointment:manage")),
    db: AsyncSession = Depends(get_db),
):
    appointment = await get_appointment_or_404(db, appointment_id)
    ensure_can_access(current_user, appointment)

    if appointment.is_locked():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete approved or completed appointment"
        )

    await db.delete(appointment)
    await db.flush()

    logger.info(f"Appointment deleted: {appointment_id} by {current_user.id}")
    return success_response(message="Appointment deleted successfully")


@router.post("/{appointment_id}/approve")
async def decide_appointment(
    appointment_id: str,
    payload: AppointmentAction,
    current_user: User = Depends(require_permission("appointment:approve")),
    db: AsyncSession = Depends(get_db),
):
    """Approve, reject or complete; the acting staff record is stored on the appointment"""
    if not office_member(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only staff and managers can approve appointments"
        )

    staff = await get_staff_record(db, current_user)
    if not staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff record not found")

    appointment = await get_appointment_or_404(db, appointment_id)
    service_id = appointment.request.service_id

    if is_manager(current_user):
        if appointment.request.service.office_id != staff.office_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Request does not belong to your office")
    else:
        allowed, _ = await can_staff_approve_service(db, staff, service_id)
        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not assigned to this service or cannot approve it"
            )

    if appointment.status != ALLOWED_FROM[payload.action]:
        detail = (
            "Only approved appointments can be completed"
            if payload.action == "complete"
            else f"Appointment is already {appointment.status}"
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    appointment.status = ACTION_STATUS[payload.action]
    appointment.staff_id = staff.id
    if payload.notes:
        appointment.notes = payload.notes

    await db.flush()
    await db.refresh(appointment)

    logger.log_workflow_event("appointment", appointment.id, payload.action, current_user.id, status=appointment.status)
    return success_response(
        dump(AppointmentResponse, appointment),
        message=f"Appointment {appointment.status} successfully"
    )
