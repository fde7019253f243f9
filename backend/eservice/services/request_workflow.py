"""
Request approval workflow.

A request is decided twice: first by a staff member assigned to the
service, then by a manager of the service's office. Each side decides
once. The overall status follows calculate_overall_status.
"""

from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.exceptions import WorkflowError, AuthorizationError
from eservice.core.logging_config import logger
from eservice.models.office import Staff
from eservice.models.request import ServiceRequest, RequestStatus, ApprovalAction
from eservice.models.service import Service, ServiceStaffAssignment

PENDING = RequestStatus.PENDING.value
APPROVED = RequestStatus.APPROVED.value
REJECTED = RequestStatus.REJECTED.value


def calculate_overall_status(status_by_staff: str, status_by_manager: str) -> str:
    """
    Both approved -> approved; both rejected -> rejected; otherwise pending.
    """
    if status_by_staff == APPROVED and status_by_manager == APPROVED:
        return APPROVED
    if status_by_staff == REJECTED and status_by_manager == REJECTED:
        return REJECTED
    return PENDING


def decision_status(action) -> str:
    action = action.value if isinstance(action, ApprovalAction) else str(action)
    return APPROVED if action == ApprovalAction.APPROVE.value else REJECTED


async def can_staff_approve_service(db: AsyncSession, staff: Staff, service_id: str) -> Tuple[bool, Optional[str]]:
    """
    Staff may decide requests for services of their own office that they
    are assigned to. Returns (allowed, reason when not).
    """
    service = await db.get(Service, service_id)
    if service is None:
        return False, "Service not found"
    if service.office_id != staff.office_id:
        return False, "Service belongs to a different office"

    result = await db.execute(
        select(ServiceStaffAssignment.id).where(
            ServiceStaffAssignment.service_id == service_id,
            ServiceStaffAssignment.staff_id == staff.id,
        )
    )
    if result.first() is None:
        return False, "You are not assigned to this service"
    return True, None


async def apply_staff_decision(
    db: AsyncSession,
    request: ServiceRequest,
    staff: Staff,
    action,
    note: Optional[str] = None,
) -> ServiceRequest:
    allowed, _ = await can_staff_approve_service(db, staff, request.service_id)
    if not allowed:
        raise AuthorizationError("You are not assigned to this service or cannot approve it")
    if request.status_by_staff != PENDING or request.approve_staff_id:
        raise WorkflowError("Request already processed by staff")

    request.status_by_staff = decision_status(action)
    request.approve_staff_id = staff.id
    if note:
        request.approve_note = note
    request.status = calculate_overall_status(request.status_by_staff, request.status_by_manager)
    await db.flush()

    logger.log_workflow_event(
        "request", request.id, f"staff_{request.status_by_staff}", staff.user_id, status=request.status
    )
    return request


async def apply_manager_decision(
    db: AsyncSession,
    request: ServiceRequest,
    manager_staff: Staff,
    action,
    note: Optional[str] = None,
) -> ServiceRequest:
    service = await db.get(Service, request.service_id)
    if service is None or service.office_id != manager_staff.office_id:
        raise AuthorizationError("Request does not belong to your office")
    if request.status_by_manager != PENDING or request.approve_manager_id:
        raise WorkflowError("Request already approved by manager")
    if request.status_by_staff == PENDING:
        raise WorkflowError("Request must be processed by staff first")

    request.status_by_manager = decision_status(action)
    request.approve_manager_id = manager_staff.id
    if note:
        request.approve_note = note
    request.status = calculate_overall_status(request.status_by_staff, request.status_by_manager)
    await db.flush()

    logger.log_workflow_event(
        "request", request.id, f"manager_{request.status_by_manager}", manager_staff.user_id, status=request.status
    )
    return request


def is_fully_approved(request: ServiceRequest) -> bool:
    return request.status_by_staff == APPROVED and request.status_by_manager == APPROVED
