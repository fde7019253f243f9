"""Role and permission management"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.models.user import Role, Permission, User, RoleName
from eservice.modules.auth.dependencies import require_permission, require_any_permission, require_all_permissions
from eservice.schemas.common import dump, dump_list
from eservice.schemas.role import (
    RoleCreate,
    RoleUpdate,
    RolePermissionsUpdate,
    RoleResponse,
    PermissionResponse,
)
from eservice.utils.responses import success_response

router = APIRouter(prefix="/role", tags=["Roles"])
permission_router = APIRouter(prefix="/permission", tags=["Roles"])

BUILT_IN_ROLES = {role.value for role in RoleName}


def is_admin_role(role: Role) -> bool:
    return role.office_id is None and role.name.lower() == RoleName.ADMIN.value


async def get_role_or_404(db: AsyncSession, role_id: str) -> Role:
    role = await db.get(Role, role_id)
    if not role:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    return role


async def role_name_taken(db: AsyncSession, name: str, office_id: Optional[str], exclude_id: Optional[str] = None) -> bool:
    query = select(Role.id).where(func.lower(Role.name) == name.lower())
    query = query.where(Role.office_id == office_id if office_id else Role.office_id.is_(None))
    if exclude_id:
        query = query.where(Role.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def load_permissions(db: AsyncSession, permission_ids) -> list:
    """Permissions for the given ids; 400 when any id is unknown"""
    ids = list(dict.fromkeys(permission_ids))
    if not ids:
        return []
    result = await db.execute(select(Permission).where(Permission.id.in_(ids)))
    permissions = result.scalars().all()
    if len(permissions) != len(ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="One or more permissions not found")
    return list(permissions)


async def all_permissions(db: AsyncSession) -> list:
    result = await db.execute(select(Permission).order_by(Permission.name))
    return list(result.scalars().all())


@router.get("")
async def list_roles(
    office_id: Optional[str] = Query(None),
    current_user: User = Depends(require_permission("role:read")),
    db: AsyncSession = Depends(get_db),
):
    query = select(Role)
    if office_id:
        query = query.where(Role.office_id == office_id)
    result = await db.execute(query.order_by(Role.name))
    return success_response(dump_list(RoleResponse, result.scalars().all()))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_role(
    payload: RoleCreate,
    current_user: User = Depends(require_permission("role:create")),
    db: AsyncSession = Depends(get_db),
):
    name = payload.name.strip()
    if await role_name_taken(db, name, payload.office_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Role already exists")

    role = Role(
        name=name,
        description=payload.description,
        office_id=payload.office_id,
        permissions=await load_permissions(db, payload.permission_ids),
    )
    db.add(role)
    await db.flush()
    await db.refresh(role)

    logger.info(f"Role created: {role.name} by {current_user.id}")
    return success_response(dump(RoleResponse, role), message="Role created successfully")


@router.patch("/{role_id}")
async def update_role(
    role_id: str,
    payload: RoleUpdate,
    current_user: User = Depends(require_permission("role:update")),
    db: AsyncSession = Depends(get_db),
):
    role = await get_role_or_404(db, role_id)

    if payload.name is not None:
        name = payload.name.strip()
        if role.name.lower() in BUILT_IN_ROLES and name.lower() != role.name.lower():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Built-in roles cannot be renamed")
        if await role_name_taken(db, name, role.office_id, exclude_id=role.id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Role already exists")
        role.name = name
    if "description" in payload.model_fields_set:
        role.description = payload.description

    await db.flush()
    await db.refresh(role)
    return success_response(dump(RoleResponse, role), message="Role updated successfully")


@router.delete("/{role_id}")
async def delete_role(
    role_id: str,
    current_user: User = Depends(require_permission("role:delete")),
    db: AsyncSession = Depends(get_db),
):
    role = await get_role_or_404(db, role_id)
    if role.office_id is None and role.name.lower() in BUILT_IN_ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Built-in roles cannot be deleted")

    await db.delete(role)
    await db.flush()

    logger.info(f"Role deleted: {role_id} by {current_user.id}")
    return success_response(message="Role deleted successfully")


@router.get("/{role_id}/permissions")
async def get_role_permissions(
    role_id: str,
    current_user: User = Depends(require_all_permissions("role:read", "permission:read")),
    db: AsyncSession = Depends(get_db),
):
    """Every permission with an `assigned` flag for this role"""
    role = await get_role_or_404(db, role_id)
    assigned = {p.id for p in role.permissions}
    permissions = [
        {**dump(PermissionResponse, p), "assigned": p.id in assigned}
        for p in await all_permissions(db)
    ]
    return success_response({"role": dump(RoleResponse, role), "permissions": permissions})


@router.post("/{role_id}/permissions")
async def set_role_permissions(
    role_id: str,
    payload: RolePermissionsUpdate,
    current_user: User = Depends(require_permission("role:assign-permissions")),
    db: AsyncSession = Depends(get_db),
):
    """Replace the role's permissions; the admin role always keeps every permission"""
    if not isinstance(payload.permission_ids, list) or not all(isinstance(p, str) for p in payload.permission_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="permission_ids must be an array")

    role = await get_role_or_404(db, role_id)
    permissions = await load_permissions(db, payload.permission_ids)
    if is_admin_role(role):
        permissions = await all_permissions(db)

    role.permissions = permissions
    await db.flush()
    await db.refresh(role)

    logger.info(f"Role {role.name} now has {len(permissions)} permission(s), set by {current_user.id}")
    return success_response(dump(RoleResponse, role), message="Permissions updated successfully")


@permission_router.get("")
async def list_permissions(
    current_user: User = Depends(require_any_permission("permission:read", "role:read")),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump_list(PermissionResponse, await all_permissions(db)))
