from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from eservice.core.database import get_db
from eservice.core.logging_config import set_user_id, set_office_id
from eservice.core.security import decode_token
from eservice.models.user import User, RoleName
from eservice.models.office import Staff
from eservice.modules.auth.rbac import check_permission, check_any_permission, check_all_permissions

# auto_error=False so a missing header becomes our own 401 instead of FastAPI's 403
security = HTTPBearer(auto_error=False)


async def _load_user_from_token(token: str, db: AsyncSession) -> User:
    payload = decode_token(token)

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type"
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

    user = await _load_user_from_token(credentials.credentials, db)

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    # Rate limiter keys on this; logging context picks up both ids
    request.state.user_id = user.id
    set_user_id(user.id)
    if user.office_id:
        set_office_id(user.office_id)

    return user


async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Current user when a valid token is sent, otherwise None"""
    if credentials is None or not credentials.credentials:
        return None
    try:
        user = await _load_user_from_token(credentials.credentials, db)
    except HTTPException:
        return None
    return user if user.is_active else None


# ==================== Role helpers ====================

def is_admin(user: User) -> bool:
    return user.has_role(RoleName.ADMIN)


def is_manager(user: User) -> bool:
    return user.has_role(RoleName.MANAGER)


def is_staff(user: User) -> bool:
    return user.has_role(RoleName.STAFF)


def require_roles(*roles: RoleName, detail: str = "Forbidden"):
    """Dependency factory: the current user must hold one of `roles`"""
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(*roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=detail
            )
        return current_user
    return checker


# ==================== Permission Dependencies ====================

def require_permission(permission: str):
    """
    Dependency factory for a single permission.

    Usage:
        @router.post("")
        async def create_office(current_user: User = Depends(require_permission("office:create"))):
            ...
    """
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        check_permission(current_user, permission)
        return current_user
    return checker


def require_any_permission(*permissions: str):
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        check_any_permission(current_user, permissions)
        return current_user
    return checker


def require_all_permissions(*permissions: str):
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        check_all_permissions(current_user, permissions)
        return current_user
    return checker


# ==================== Staff records ====================

async def get_staff_record(
    db: AsyncSession,
    user: User,
    office_id: Optional[str] = None
) -> Optional[Staff]:
    """The user's staff row, optionally restricted to one office"""
    query = select(Staff).where(Staff.user_id == user.id)
    if office_id:
        query = query.where(Staff.office_id == office_id)
    result = await db.execute(query.order_by(Staff.created_at))
    return result.scalars().first()
