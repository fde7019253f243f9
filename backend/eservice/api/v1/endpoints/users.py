"""
User management.

Administrators list, create, edit, block and delete accounts under /user.
Every signed-in user reads and edits their own profile at /user/profile,
and /admin/list gives managers the admins they can send reports to.
"""
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.core.security import get_password_hash
from eservice.models.office import Office, Staff
from eservice.models.user import User, Role
from eservice.modules.auth.dependencies import get_current_user, require_permission
from eservice.schemas.auth import serialize_user
from eservice.schemas.common import dump_list
from eservice.schemas.user import (
    UserCreate,
    UserUpdate,
    ProfileUpdate,
    AdminContact,
    serialize_managed_user,
)
from eservice.utils.pagination import paginate
from eservice.utils.responses import success_response
from eservice.utils.search import build_search_filter

router = APIRouter(prefix="/user", tags=["Users"])
admin_router = APIRouter(prefix="/admin", tags=["Users"])

ADMIN_ROLE_NAMES = ("admin", "administrator")
DUPLICATE_USER = "User with this phone number or username already exists"


def generated_username(name: str, phone_number: str) -> str:
    """`{name_with_underscores}_{last 4 digits}`"""
    base = re.sub(r"\s+", "_", name.strip().lower())
    digits = re.sub(r"\D", "", phone_number)
    return f"{base}_{digits[-4:]}"


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def ensure_unique(
    db: AsyncSession,
    phone_number: Optional[str],
    username: Optional[str],
    exclude_id: Optional[str] = None,
) -> None:
    clauses = []
    if phone_number:
        clauses.append(User.phone_number == phone_number)
    if username:
        clauses.append(User.username == username)
    if not clauses:
        return

    query = select(User.id).where(or_(*clauses))
    if exclude_id:
        query = query.where(User.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_USER)


async def get_role_or_400(db: AsyncSession, role_id: str) -> Role:
    role = await db.get(Role, role_id)
    if not role:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
    return role


async def get_office_or_404(db: AsyncSession, office_id: str) -> Office:
    office = await db.get(Office, office_id)
    if not office:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Office not found")
    return office


# ==================== Own profile ====================
# Declared before /{user_id} so "profile" is not taken for an id

@router.get("/profile")
async def get_profile(current_user: User = Depends(require_permission("profile:read"))):
    return success_response(serialize_user(current_user))


@router.put("/profile")
async def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(require_permission("profile:update")),
    db: AsyncSession = Depends(get_db),
):
    """Change the caller's username and/or phone number"""
    if payload.username and payload.username != current_user.username:
        result = await db.execute(
            select(User.id).where(User.username == payload.username, User.id != current_user.id)
        )
        if result.first() is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")
        current_user.username = payload.username

    if payload.phone_number and payload.phone_number != current_user.phone_number:
        result = await db.execute(
            select(User.id).where(User.phone_number == payload.phone_number, User.id != current_user.id)
        )
        if result.first() is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone number already exists")
        current_user.phone_number = payload.phone_number

    await db.flush()
    logger.info(f"[Users] Profile updated by {current_user.id}")
    return success_response(serialize_user(current_user), message="Profile updated successfully")


# ==================== Administration ====================

@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    role_id: Optional[str] = Query(None),
    office_id: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    current_user: User = Depends(require_permission("user:read")),
    db: AsyncSession = Depends(get_db),
):
    """
    Paginated user list, newest first.

    `search` matches username, phone number, role name and the name of any
    office the user works in.
    """
    query = select(User).outerjoin(Role, User.role_id == Role.id)

    search_clause = build_search_filter(search, User.username, Role.name, phone_columns=(User.phone_number,))
    if search_clause is not None:
        office_members = (
            select(Staff.user_id)
            .join(Office, Staff.office_id == Office.id)
            .where(build_search_filter(search, Office.name))
        )
        query = query.where(or_(search_clause, User.id.in_(office_members)))

    if role_id:
        query = query.where(User.role_id == role_id)
    if office_id:
        query = query.where(User.id.in_(select(Staff.user_id).where(Staff.office_id == office_id)))
    if is_active is not None:
        query = query.where(User.is_active == is_active)

    users, pagination = await paginate(db, query.order_by(User.created_at.desc()), page, limit)
    return success_response([serialize_managed_user(user) for user in users], pagination=pagination)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    current_user: User = Depends(require_permission("user:create")),
    db: AsyncSession = Depends(get_db),
):
    username = payload.username or generated_username(payload.name, payload.phone_number)
    await ensure_unique(db, payload.phone_number, username)

    role = await get_role_or_400(db, payload.role_id)
    office = await get_office_or_404(db, payload.office_id) if payload.office_id else None

    user = User(
        username=username,
        phone_number=payload.phone_number,
        password_hash=get_password_hash(payload.password),
        role=role,
        is_active=True,
        phone_verified=False,
        staff_records=[],
    )
    db.add(user)
    if office is not None:
        db.add(Staff(user=user, office=office))
    await db.flush()
    await db.refresh(user)

    logger.info(f"[Users] Created user {user.id} ({role.name}) by {current_user.id}")
    return success_response(serialize_managed_user(user), message="User created successfully")


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    current_user: User = Depends(require_permission("user:read")),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_or_404(db, user_id)
    return success_response(serialize_managed_user(user))


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    payload: UserUpdate,
    current_user: User = Depends(require_permission("user:update")),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_or_404(db, user_id)
    await ensure_unique(db, payload.phone_number, payload.username, exclude_id=user.id)

    if payload.is_active is False and user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot block yourself")

    changes = []
    if payload.username:
        user.username = payload.username
        changes.append("username")
    if payload.phone_number:
        user.phone_number = payload.phone_number
        changes.append("phone_number")
    if payload.password:
        user.password_hash = get_password_hash(payload.password)
        changes.append("password")
    if payload.role_id:
        user.role = await get_role_or_400(db, payload.role_id)
        changes.append("role")
    if payload.is_active is not None:
        user.is_active = payload.is_active
        changes.append("is_active")

    if "office_id" in payload.model_fields_set:
        office = await get_office_or_404(db, payload.office_id) if payload.office_id else None
        user.staff_records.clear()
        await db.flush()
        if office is not None:
            user.staff_records.append(Staff(office=office))
        changes.append("office")

    await db.flush()
    await db.refresh(user)

    logger.info(f"[Users] Updated user {user.id} ({', '.join(changes) or 'no changes'}) by {current_user.id}")
    return success_response(serialize_managed_user(user), message="User updated successfully")


async def set_active(db: AsyncSession, user_id: str, current_user: User, active: bool) -> User:
    user = await get_user_or_404(db, user_id)
    if not active and user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot block yourself")

    user.is_active = active
    await db.flush()
    logger.info(f"[Users] {'Unblocked' if active else 'Blocked'} user {user.id} by {current_user.id}")
    return user


@router.post("/{user_id}/block")
async def block_user(
    user_id: str,
    current_user: User = Depends(require_permission("user:update")),
    db: AsyncSession = Depends(get_db),
):
    """Blocked users keep their data but can no longer sign in"""
    user = await set_active(db, user_id, current_user, active=False)
    return success_response(serialize_managed_user(user), message="User blocked successfully")


@router.post("/{user_id}/unblock")
async def unblock_user(
    user_id: str,
    current_user: User = Depends(require_permission("user:update")),
    db: AsyncSession = Depends(get_db),
):
    user = await set_active(db, user_id, current_user, active=True)
    return success_response(serialize_managed_user(user), message="User unblocked successfully")


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    current_user: User = Depends(require_permission("user:delete")),
    db: AsyncSession = Depends(get_db),
):
    """Remove the account together with its requests, appointments and reports"""
    user = await get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete yourself")
    if user.role_name in ADMIN_ROLE_NAMES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot delete admin users. Admin accounts are protected."
        )

    await db.delete(user)
    await db.flush()

    logger.info(f"[Users] Deleted user {user_id} by {current_user.id}")
    return success_response(message="User deleted successfully")


# ==================== Report recipients ====================

@admin_router.get("/list")
async def list_admins(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Active administrators, sorted by username"""
    result = await db.execute(
        select(User)
        .join(Role, User.role_id == Role.id)
        .where(User.is_active.is_(True), func.lower(Role.name).in_(ADMIN_ROLE_NAMES))
        .order_by(User.username)
    )
    return success_response(dump_list(AdminContact, result.scalars().all()))
