"""
Internal reports.

Staff send reports to a manager of their office; managers send reports to
one or more admins. Recipients mark a report read (approve) or archived
(reject).
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.models.office import Staff
from eservice.models.report import Report, ReportFile, ReceiverStatus
from eservice.models.request import ApprovalAction
from eservice.models.user import User, RoleName
from eservice.modules.auth.dependencies import get_current_user, require_roles, get_staff_record
from eservice.schemas.common import FileIn, dump, dump_list
from eservice.schemas.report import StaffReportCreate, ManagerReportCreate, ReportDecision, ReportResponse
from eservice.utils.pagination import paginate
from eservice.utils.responses import success_response
from eservice.utils.search import build_search_filter

staff_router = APIRouter(prefix="/staff/report", tags=["Reports"])
manager_router = APIRouter(prefix="/manager/report", tags=["Reports"])
router = APIRouter(prefix="/report", tags=["Reports"])

require_staff = require_roles(RoleName.STAFF, detail="Forbidden - Staff access required")
require_manager = require_roles(RoleName.MANAGER, detail="Forbidden - Manager access required")
require_admin = require_roles(RoleName.ADMIN, detail="Forbidden - Admin access required")

Sender = aliased(User)


def build_report(name: str, description: str, sender: User, recipient: User, files: List[FileIn]) -> Report:
    return Report(
        name=name,
        description=description,
        sent_by=sender,
        sent_to=recipient,
        receiver_status=ReceiverStatus.PENDING.value,
        files=[ReportFile(name=f.name, filepath=f.filepath, description=f.description) for f in files],
    )


def mailbox_query(
    user: User,
    box: str,
    search: Optional[str] = None,
    status_filter: Optional[str] = None,
):
    """Reports received by (box="received") or sent by the user"""
    query = select(Report).join(Sender, Report.sent_by_id == Sender.id)
    if box == "sent":
        query = query.where(Report.sent_by_id == user.id)
    else:
        query = query.where(Report.sent_to_id == user.id)

    if status_filter:
        query = query.where(Report.receiver_status == status_filter.lower())

    search_clause = build_search_filter(search, Report.name, Report.description, Sender.username)
    if search_clause is not None:
        query = query.where(search_clause)
    return query.order_by(Report.created_at.desc())


async def get_visible_report(db: AsyncSession, report_id: str, user: User) -> Report:
    report = await db.get(Report, report_id)
    if not report or user.id not in (report.sent_by_id, report.sent_to_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found or access denied")
    return report


async def decide_report(db: AsyncSession, report_id: str, user: User, action: ApprovalAction) -> Report:
    """approve -> read, reject -> archived; only the recipient decides"""
    report = await db.get(Report, report_id)
    if not report or report.sent_to_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found or access denied")

    report.receiver_status = (
        ReceiverStatus.READ.value if action == ApprovalAction.APPROVE else ReceiverStatus.ARCHIVED.value
    )
    await db.flush()
    await db.refresh(report)

    logger.log_workflow_event("report", report.id, action.value, user.id, status=report.receiver_status)
    return report


# ==================== Staff -> manager ====================

@staff_router.post("", status_code=status.HTTP_201_CREATED)
async def send_staff_report(
    payload: StaffReportCreate,
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    if not (payload.name and payload.description and payload.report_sent_to):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name, description, and recipient are required"
        )

    staff = await get_staff_record(db, current_user)
    if not staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff office not found")

    recipient = await db.get(User, payload.report_sent_to)
    if not recipient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found")
    if not recipient.has_role(RoleName.MANAGER):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Reports can only be sent to managers")
    if not await get_staff_record(db, recipient, office_id=staff.office_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Manager must be from the same office as staff"
        )

    report = build_report(payload.name, payload.description, current_user, recipient, payload.files)
    db.add(report)
    await db.flush()
    await db.refresh(report)

    logger.info(f"Report sent: {report.id} from staff {current_user.id} to manager {recipient.id}")
    return success_response(dump(ReportResponse, report), message="Report sent successfully")


@staff_router.get("")
async def list_staff_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    box: str = Query("sent", alias="type", pattern=r"^(received|sent)$"),
    search: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    query = mailbox_query(current_user, box, search, status_filter)
    reports, pagination = await paginate(db, query, page, limit)
    return success_response(dump_list(ReportResponse, reports), pagination=pagination)


# ==================== Manager -> admin ====================

@manager_router.post("", status_code=status.HTTP_201_CREATED)
async def send_manager_report(
    payload: ManagerReportCreate,
    current_user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """
    One report per admin recipient. Recipients that cannot receive the
    report are listed in `warnings`; the call fails only when none succeed.
    """
    recipient_ids = payload.recipient_ids()
    if not (payload.name and payload.description and recipient_ids):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name, description, and recipient are required"
        )

    created: List[Report] = []
    warnings: List[str] = []

    for recipient_id in recipient_ids:
        recipient = await db.get(User, recipient_id)
        if not recipient:
            warnings.append(f"Recipient {recipient_id} not found")
            continue
        if not recipient.has_role(RoleName.ADMIN):
            warnings.append(f"Recipient {recipient.username} is not an admin")
            continue

        try:
            async with db.begin_nested():
                report = build_report(payload.name, payload.description, current_user, recipient, payload.files)
                db.add(report)
                await db.flush()
        except SQLAlchemyError as e:
            logger.log_error_with_context(e, "send_manager_report", recipient_id=recipient_id)
            warnings.append(f"Failed to send report to {recipient.username}")
            continue
        created.append(report)

    if not created:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to send report to any recipient: " + "; ".join(warnings)
        )

    for report in created:
        await db.refresh(report)

    logger.info(f"Manager {current_user.id} sent {len(created)} report(s), {len(warnings)} warning(s)")
    return success_response(
        dump_list(ReportResponse, created),
        message=f"Report sent to {len(created)} recipient(s)",
        warnings=warnings or None,
    )


@manager_router.get("")
async def list_manager_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    box: str = Query("received", alias="type", pattern=r"^(received|sent)$"),
    search: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    query = mailbox_query(current_user, box, search, status_filter)
    if box == "received" and current_user.office_id:
        # Received reports come from staff of the manager's own office
        query = query.where(
            Report.sent_by_id.in_(select(Staff.user_id).where(Staff.office_id == current_user.office_id))
        )
    reports, pagination = await paginate(db, query, page, limit)
    return success_response(dump_list(ReportResponse, reports), pagination=pagination)


@manager_router.get("/{report_id}")
async def get_manager_report(
    report_id: str,
    current_user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    report = await get_visible_report(db, report_id, current_user)
    return success_response(dump(ReportResponse, report))


@manager_router.patch("/{report_id}/approve")
async def decide_manager_report(
    report_id: str,
    payload: ReportDecision,
    current_user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    report = await decide_report(db, report_id, current_user, payload.action)
    return success_response(dump(ReportResponse, report), message=f"Report marked as {report.receiver_status}")


# ==================== Admin ====================

@router.get("")
async def list_admin_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    office_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    query = mailbox_query(current_user, "received", search, status_filter)
    if office_id:
        query = query.where(
            Report.sent_by_id.in_(select(Staff.user_id).where(Staff.office_id == office_id))
        )
    reports, pagination = await paginate(db, query, page, limit)
    return success_response(dump_list(ReportResponse, reports), pagination=pagination)


@router.get("/{report_id}")
async def get_admin_report(
    report_id: str,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    report = await get_visible_report(db, report_id, current_user)
    return success_response(dump(ReportResponse, report))


@router.patch("/{report_id}/approve")
async def decide_admin_report(
    report_id: str,
    payload: ReportDecision,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    report = await decide_report(db, report_id, current_user, payload.action)
    return success_response(dump(ReportResponse, report), message=f"Report marked as {report.receiver_status}")


@router.delete("/{report_id}")
async def delete_report(
    report_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Only the sender can delete a report"""
    report = await db.get(Report, report_id)
    if not report or report.sent_by_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found or access denied")

    await db.delete(report)
    await db.flush()

    logger.info(f"Report deleted: {report_id} by {current_user.id}")
    return success_response(message="Report deleted successfully")
