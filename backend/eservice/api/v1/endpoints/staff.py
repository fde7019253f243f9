"""Office staff membership endpoints"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.core.security import get_password_hash
from eservice.db.seed_data import get_or_create_role
from eservice.models.office import Office, Staff
from eservice.models.user import User, RoleName
from eservice.modules.auth.dependencies import get_current_user, require_permission, is_admin, is_manager
from eservice.schemas.common import StaffResponse, dump, dump_list
from eservice.schemas.staff import StaffCreate
from eservice.utils.pagination import paginate
from eservice.utils.responses import success_response
from eservice.utils.search import build_search_filter

router = APIRouter(prefix="/staff", tags=["Staff"])


async def get_staff_or_404(db: AsyncSession, staff_id: str, current_user: User) -> Staff:
    staff = await db.get(Staff, staff_id)
    if not staff:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff not found")
    if not is_admin(current_user) and staff.office_id != current_user.office_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return staff


@router.get("")
async def list_staff(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    office_id: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("staff:read")),
    db: AsyncSession = Depends(get_db),
):
    """Staff of the caller's office; admins see every office or filter by office_id"""
    query = select(Staff).join(User, Staff.user_id == User.id)

    if is_admin(current_user):
        if office_id:
            query = query.where(Staff.office_id == office_id)
    elif current_user.office_id:
        query = query.where(Staff.office_id == current_user.office_id)
    else:
        return success_response([], pagination={"page": page, "limit": limit, "total": 0, "total_pages": 0})

    search_clause = build_search_filter(search, User.username, phone_columns=(User.phone_number,))
    if search_clause is not None:
        query = query.where(search_clause)

    members, pagination = await paginate(db, query.order_by(Staff.created_at.desc()), page, limit)
    return success_response(dump_list(StaffResponse, members), pagination=pagination)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_staff(
    payload: StaffCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Link an existing user to an office, or create a new staff user"""
    if not (is_admin(current_user) or is_manager(current_user)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only office managers and admins can create staff"
        )

    if is_admin(current_user):
        office_id = payload.office_id
        if not office_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="office_id is required")
    else:
        office_id = current_user.office_id
        if not office_id or (payload.office_id and payload.office_id != office_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only add staff to your own office"
            )

    office = await db.get(Office, office_id)
    if not office:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Office not found")

    if payload.user_id:
        user = await db.get(User, payload.user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        result = await db.execute(
            select(Staff.id).where(Staff.user_id == user.id, Staff.office_id == office.id)
        )
        if result.first() is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Staff already exists for this user and office"
            )
    else:
        if not (payload.username and payload.phone_number and payload.password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="username, phone_number and password are required to create a new user"
            )

        result = await db.execute(
            select(User.id).where(
                or_(User.phone_number == payload.phone_number, User.username == payload.username)
            )
        )
        if result.first() is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User with this phone number or username already exists"
            )

        staff_role = await get_or_create_role(db, RoleName.STAFF.value)
        user = User(
            username=payload.username,
            phone_number=payload.phone_number,
            password_hash=get_password_hash(payload.password),
            role=staff_role,
            is_active=True,
            phone_verified=True,
            staff_records=[],
        )
        db.add(user)

    staff = Staff(user=user, office=office)
    db.add(staff)
    await db.flush()
    await db.refresh(staff)

    logger.info(f"Staff created: user {user.id} in office {office.id} by {current_user.id}")
    return success_response(dump(StaffResponse, staff), message="Staff created successfully")


@router.get("/{staff_id}")
async def get_staff(
    staff_id: str,
    current_user: User = Depends(require_permission("staff:read")),
    db: AsyncSession = Depends(get_db),
):
    staff = await get_staff_or_404(db, staff_id, current_user)
    return success_response(dump(StaffResponse, staff))


@router.delete("/{staff_id}")
async def delete_staff(
    staff_id: str,
    current_user: User = Depends(require_permission("staff:delete")),
    db: AsyncSession = Depends(get_db),
):
    staff = await get_staff_or_404(db, staff_id, current_user)
    if staff.user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot remove yourself")

    await db.delete(staff)
    await db.flush()

    logger.info(f"Staff removed: {staff_id} by {current_user.id}")
    return success_response(message="Staff deleted successfully")
